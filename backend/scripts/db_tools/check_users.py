import sys
import os
from dotenv import load_dotenv

load_dotenv(os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))), ".env"))
sys.path.append(os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))
from app.database import SessionLocal
from app.models.user import User
from app.crud import chat as crud_chat


def check_users():
    db = SessionLocal()
    try:
        users = db.query(User).all()
        print(f"Total Users: {len(users)}")
        for u in users:
            sessions = crud_chat.get_chat_sessions(db, u.id)
            count = crud_chat.get_message_count(db, u.id)
            print(f"User ID: {u.id}, Name: {u.name}, Email: {u.email}, Messages: {count}, Sessions: {len(sessions)}")
            for session_id in sessions:
                print(f"  - {session_id}: {crud_chat.get_message_count(db, u.id, session_id=session_id)} messages")
    finally:
        db.close()


if __name__ == "__main__":
    check_users()

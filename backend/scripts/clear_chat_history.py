import sys
import os

# Add backend directory to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.database import SessionLocal
from app.crud import chat as crud_chat
from app.crud import user as crud_user
from app.utils.errors import APIError


def clear_chat_history(email, session_id=None):
    scope = f"session '{session_id}'" if session_id else "ALL sessions"
    print(f"--- 🗑️  CLEARING CHAT HISTORY for {email} ({scope}) ---")
    with SessionLocal() as db:
        try:
            user = crud_user.get_user_by_email(db, email)
            if user is None:
                print(f"❌ No user with email {email}")
                return
            deleted = crud_chat.delete_chat_history(db, user.id, session_id=session_id)
            print(f"✅ Deleted {deleted} messages.")
        except APIError as e:
            print(f"❌ Failed to clear history: {e.message}")


if __name__ == "__main__":
    import argparse
    parser = argparse.ArgumentParser()
    parser.add_argument("email", help="Email of the account to clear")
    parser.add_argument("--session", help="Only clear this chat session")
    parser.add_argument("--force", action="store_true", help="Skip confirmation")
    args = parser.parse_args()

    if args.force:
        clear_chat_history(args.email, args.session)
    else:
        confirm = input("⚠️  Are you sure you want to delete this chat history? (y/n): ")
        if confirm.lower().startswith('y'):
            clear_chat_history(args.email, args.session)
        else:
            print("Operation cancelled.")

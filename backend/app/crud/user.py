import logging
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from app.models.user import User
from app.models.chat import ChatMessage
from app.schemas.user import UserCreate
from app.utils.utils import hash_password
from app.utils.errors import ConflictError, DatabaseError

logger = logging.getLogger(__name__)


def get_user(db: Session, user_id: int):
    try:
        return db.query(User).filter(User.id == user_id).first()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[User CRUD] Failed to retrieve user {user_id}: {e}")
        raise DatabaseError("Failed to retrieve user by ID")


def get_user_by_email(db: Session, email: str):
    try:
        return db.query(User).filter(User.email == email).first()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[User CRUD] Failed to retrieve user by email: {e}")
        raise DatabaseError("Failed to retrieve user by email")


def create_user(db: Session, user: UserCreate) -> User:
    if get_user_by_email(db, email=user.email):
        raise ConflictError("User already exists")

    db_user = User(
        name=user.name.strip(),
        email=user.email,
        password=hash_password(user.password),
    )
    try:
        db.add(db_user)
        db.commit()
        db.refresh(db_user)
    except IntegrityError:
        # Lost a race against a concurrent registration for the same email
        db.rollback()
        raise ConflictError("User already exists")
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[User CRUD] Failed to create user: {e}")
        raise DatabaseError("Failed to create user")

    logger.info(f"[User CRUD] Created user {db_user.id}")
    return db_user


def delete_user(db: Session, user_id: int):
    """Delete a user together with their whole chat history."""
    try:
        db_user = db.query(User).filter(User.id == user_id).first()
        if db_user:
            db.query(ChatMessage).filter(ChatMessage.user_id == user_id).delete(synchronize_session=False)
            db.delete(db_user)
            db.commit()
        return db_user
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[User CRUD] Failed to delete user {user_id}: {e}")
        raise DatabaseError("Failed to delete user")

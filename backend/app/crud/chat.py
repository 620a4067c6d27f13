"""
Chat message persistence.

Messages are append-only rows grouped into conversation threads by an
optional, client-generated ``session_id``. History reads come back most
recent first; ``get_recent_chat_history`` flips that to chronological order
for building model context or reloading a thread.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.chat import ChatMessage, MESSAGE_ROLES
from app.utils.errors import DatabaseError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 50
MAX_HISTORY_LIMIT = 100


def _require_user(user_id) -> None:
    if not user_id:
        raise ValidationError("User ID is required", field="user_id")


def validate_limit(limit: int) -> None:
    if limit < 1 or limit > MAX_HISTORY_LIMIT:
        raise ValidationError(f"Limit must be between 1 and {MAX_HISTORY_LIMIT}", field="limit")


def save_chat_message(
    db: Session,
    user_id: int,
    role: str,
    content: str,
    session_id: Optional[str] = None,
) -> ChatMessage:
    _require_user(user_id)
    if not content or content.strip() == "":
        raise ValidationError("Message content cannot be empty", field="content")
    if role not in MESSAGE_ROLES:
        raise ValidationError("Invalid message role", field="role")

    message = ChatMessage(
        user_id=user_id,
        role=role,
        content=content.strip(),
        session_id=session_id,
        timestamp=datetime.now(timezone.utc),
    )
    try:
        db.add(message)
        db.commit()
        db.refresh(message)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[Chat CRUD] Database error in save_chat_message: {e}")
        raise DatabaseError("Failed to save chat message")
    return message


def get_chat_history(
    db: Session,
    user_id: int,
    limit: int = DEFAULT_HISTORY_LIMIT,
    session_id: Optional[str] = None,
    before: Optional[datetime] = None,
) -> List[ChatMessage]:
    """Most recent first, at most ``limit`` rows, optionally older than ``before``."""
    _require_user(user_id)
    validate_limit(limit)

    try:
        query = db.query(ChatMessage).filter(ChatMessage.user_id == user_id)
        if session_id:
            query = query.filter(ChatMessage.session_id == session_id)
        if before:
            if before.tzinfo is not None:
                before = before.astimezone(timezone.utc)
            else:
                before = before.replace(tzinfo=timezone.utc)
            query = query.filter(ChatMessage.timestamp < before)
        return (
            query.order_by(ChatMessage.timestamp.desc(), ChatMessage.id.desc())
            .limit(limit)
            .all()
        )
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[Chat CRUD] Database error in get_chat_history: {e}")
        raise DatabaseError("Failed to retrieve chat history")


def get_recent_chat_history(
    db: Session,
    user_id: int,
    limit: int = 20,
    session_id: Optional[str] = None,
) -> List[ChatMessage]:
    messages = get_chat_history(db, user_id, limit=limit, session_id=session_id)
    return list(reversed(messages))


def delete_chat_history(db: Session, user_id: int, session_id: Optional[str] = None) -> int:
    """Bulk delete a user's messages, narrowed to one thread when ``session_id`` is given."""
    _require_user(user_id)

    try:
        query = db.query(ChatMessage).filter(ChatMessage.user_id == user_id)
        if session_id:
            query = query.filter(ChatMessage.session_id == session_id)
        deleted = query.delete(synchronize_session=False)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[Chat CRUD] Database error in delete_chat_history: {e}")
        raise DatabaseError("Failed to delete chat history")

    logger.info(f"[Chat CRUD] Deleted {deleted} messages for user {user_id} (session={session_id})")
    return deleted or 0


def get_chat_sessions(db: Session, user_id: int) -> List[str]:
    """Distinct session ids, most recently active first."""
    _require_user(user_id)

    try:
        rows = (
            db.query(ChatMessage.session_id)
            .filter(
                ChatMessage.user_id == user_id,
                ChatMessage.session_id.isnot(None),
                ChatMessage.session_id != "",
            )
            .group_by(ChatMessage.session_id)
            .order_by(func.max(ChatMessage.timestamp).desc(), ChatMessage.session_id)
            .all()
        )
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[Chat CRUD] Database error in get_chat_sessions: {e}")
        raise DatabaseError("Failed to retrieve chat sessions")

    return [row[0] for row in rows if row[0]]


def get_message_count(db: Session, user_id: int, session_id: Optional[str] = None) -> int:
    _require_user(user_id)

    try:
        query = db.query(func.count(ChatMessage.id)).filter(ChatMessage.user_id == user_id)
        if session_id:
            query = query.filter(ChatMessage.session_id == session_id)
        return query.scalar() or 0
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[Chat CRUD] Database error in get_message_count: {e}")
        raise DatabaseError("Failed to count messages")

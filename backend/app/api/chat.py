import json
import logging
from datetime import datetime
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.database import get_db, SessionLocal
from app.api.auth import get_current_user
from app.models.user import User
from app.crud import chat as crud_chat
from app.schemas.chat import (
    ChatRequest,
    ChatHistoryResponse,
    ChatSessionsResponse,
    ChatThreadResponse,
    DeleteHistoryResponse,
)
from app.services.chat_agent import ChatAgent
from app.utils.errors import APIError, DatabaseError, ExternalServiceError, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])


def _sse(event: Dict[str, Any]) -> str:
    return f"data: {json.dumps(event, ensure_ascii=False, default=str)}\n\n"


def _parse_limit(limit: Optional[str]) -> int:
    if limit is None or limit == "":
        return crud_chat.DEFAULT_HISTORY_LIMIT
    try:
        value = int(limit)
    except ValueError:
        raise ValidationError(f"Limit must be between 1 and {crud_chat.MAX_HISTORY_LIMIT}", field="limit")
    crud_chat.validate_limit(value)
    return value


def _parse_before(before: Optional[str]) -> Optional[datetime]:
    if not before:
        return None
    try:
        return datetime.fromisoformat(before.replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError("Invalid date format for 'before' parameter", field="before")


def persist_assistant_reply(user_id: int, text: str, session_id: Optional[str]) -> None:
    """Best-effort save of the finished reply; the client already has the text."""
    if not text.strip():
        return
    try:
        with SessionLocal() as db:
            crud_chat.save_chat_message(db, user_id, "assistant", text, session_id)
    except (APIError, SQLAlchemyError) as e:
        logger.error(f"[Chat API] Failed to save assistant message for user {user_id}: {e}")


async def _event_stream(
    agent: ChatAgent,
    first_event: Optional[Dict[str, Any]],
    events: AsyncIterator[Dict[str, Any]],
    user_id: int,
    session_id: Optional[str],
):
    try:
        if first_event is not None:
            yield _sse(first_event)
        async for event in events:
            yield _sse(event)
    except Exception as e:
        # Headers are already sent; report in-band and keep the partial reply out of history
        logger.error(f"[Chat API] Model stream failed mid-response: {e}")
        yield _sse({"type": "error", "error": "Failed to generate AI response", "code": "EXTERNAL_SERVICE_ERROR"})
        return

    await run_in_threadpool(persist_assistant_reply, user_id, agent.text, session_id)
    yield _sse({"type": "done", "session_id": session_id})


@router.post("")
async def chat(
    request: ChatRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Stream an assistant reply as server-sent events.
    The user's turn is saved before the model is called, the assistant's after the stream ends.
    """
    if request.messages is None:
        raise ValidationError("Invalid messages format", field="messages")
    if len(request.messages) == 0:
        raise ValidationError("Messages array cannot be empty", field="messages")

    user_id = current_user.id
    session_id = request.session_id

    last = request.messages[-1]
    if last.role == "user":
        try:
            await run_in_threadpool(crud_chat.save_chat_message, db, user_id, "user", last.content, session_id)
        except DatabaseError:
            raise DatabaseError("Failed to save message to database")

    try:
        agent = ChatAgent()
        events = agent.stream([turn.model_dump() for turn in request.messages])
        # Pull the first event eagerly so provider failures still get a proper status code
        try:
            first_event = await events.__anext__()
        except StopAsyncIteration:
            first_event = None
    except Exception as e:
        logger.error(f"[Chat API] AI service error: {e}")
        raise ExternalServiceError("Failed to generate AI response")

    return StreamingResponse(
        _event_stream(agent, first_event, events, user_id, session_id),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.get("/history", response_model=ChatHistoryResponse)
def get_chat_history(
    session_id: Optional[str] = None,
    limit: Optional[str] = None,
    before: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Fetch a page of history (most recent first) plus the user's session ids.
    Pass the oldest timestamp of a page as ``before`` to load the next one.
    """
    page_size = _parse_limit(limit)
    before_dt = _parse_before(before)

    messages = crud_chat.get_chat_history(
        db, current_user.id, limit=page_size, session_id=session_id or None, before=before_dt
    )
    sessions = crud_chat.get_chat_sessions(db, current_user.id)
    total = crud_chat.get_message_count(db, current_user.id, session_id=session_id or None)

    return {
        "messages": messages,
        "sessions": sessions,
        "has_more": len(messages) == page_size,
        "total": total,
    }


@router.delete("/history", response_model=DeleteHistoryResponse)
def delete_chat_history(
    session_id: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    if not session_id:
        raise ValidationError("session_id is required", field="session_id")

    deleted = crud_chat.delete_chat_history(db, current_user.id, session_id=session_id)
    return {"deleted_count": deleted}


@router.get("/sessions", response_model=ChatSessionsResponse)
def get_chat_sessions(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return {"sessions": crud_chat.get_chat_sessions(db, current_user.id)}


@router.get("/sessions/{session_id}", response_model=ChatThreadResponse)
def get_chat_thread(
    session_id: str,
    limit: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Reload one conversation in chronological order."""
    messages = crud_chat.get_recent_chat_history(
        db, current_user.id, limit=_parse_limit(limit), session_id=session_id
    )
    return {"session_id": session_id, "messages": messages}

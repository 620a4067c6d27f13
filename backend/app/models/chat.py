from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import relationship
from app.database import Base
from app.models.user import utcnow

MESSAGE_ROLES = ("user", "assistant")


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(20), nullable=False)  # "user" or "assistant"
    content = Column(Text, nullable=False)
    timestamp = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    # Client-generated conversation thread id; threads have no table of their own
    session_id = Column(String(100), nullable=True, index=True)

    user = relationship("User", back_populates="messages")

    __table_args__ = (
        CheckConstraint("role IN ('user', 'assistant')", name="ck_chat_messages_role"),
        Index("ix_chat_messages_user_timestamp", "user_id", "timestamp"),
        Index("ix_chat_messages_user_session_timestamp", "user_id", "session_id", "timestamp"),
    )

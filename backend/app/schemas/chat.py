from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import List, Literal, Optional


class ChatTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    messages: Optional[List[ChatTurn]] = None
    session_id: Optional[str] = None


class ChatMessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    role: str
    content: str
    timestamp: datetime
    session_id: Optional[str] = None


class ChatHistoryResponse(BaseModel):
    messages: List[ChatMessageResponse]
    sessions: List[str]
    has_more: bool
    total: int


class ChatSessionsResponse(BaseModel):
    sessions: List[str]


class ChatThreadResponse(BaseModel):
    session_id: str
    messages: List[ChatMessageResponse]


class DeleteHistoryResponse(BaseModel):
    deleted_count: int

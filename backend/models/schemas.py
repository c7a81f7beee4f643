import datetime
import uuid
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional, Literal

MessageRole = Literal["user", "assistant", "system"]


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: MessageRole
    content: str
    timestamp: Optional[datetime.datetime] = None


class Conversation(BaseModel):
    # Stored as camelCase "createdAt"; either spelling is accepted on load
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    title: str
    messages: List[Message] = Field(default_factory=list)
    created_at: datetime.datetime = Field(default_factory=utcnow, alias="createdAt")


class SessionState(BaseModel):
    conversations: List[Conversation] = Field(default_factory=list)
    active_conversation_id: Optional[str] = None


class CompletionRequest(BaseModel):
    prompt: str
    model: str


class ErrorResponse(BaseModel):
    error: str

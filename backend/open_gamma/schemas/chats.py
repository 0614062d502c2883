"""Chat history request/response schemas."""

import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from open_gamma.schemas.chat import MAX_CHAT_MESSAGES

_MAX_TITLE_LENGTH = 255
_MAX_MODEL_LENGTH = 128


class ChatCreate(BaseModel):
    """Request body for POST /chats."""

    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, max_length=_MAX_TITLE_LENGTH)
    model: str | None = Field(default=None, max_length=_MAX_MODEL_LENGTH)


class ChatUpdate(BaseModel):
    """Request body for PUT /chats/{id}. Empty fields are left unchanged."""

    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, max_length=_MAX_TITLE_LENGTH)
    model: str | None = Field(default=None, max_length=_MAX_MODEL_LENGTH)


class ChatRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    model: str | None
    created_at: datetime
    updated_at: datetime


class StoredMessage(BaseModel):
    """A UI message as saved by the client.

    Attributes:
        id: Client-generated message id.
        role: Author role.
        parts: UI message parts; text parts carry the content.
    """

    id: str = Field(..., min_length=1, max_length=128)
    role: Literal["user", "assistant", "system"]
    parts: list[dict[str, Any]] = Field(default_factory=list)


class MessageRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    role: str
    content: str
    parts: list[dict[str, Any]] | None
    created_at: datetime


class ChatWithMessages(ChatRead):
    messages: list[MessageRead]


class SaveMessagesRequest(BaseModel):
    """Request body for POST /chats/{id}/messages."""

    messages: list[StoredMessage] = Field(
        ...,
        min_length=1,
        max_length=MAX_CHAT_MESSAGES,
    )

    @model_validator(mode="after")
    def check_unique_ids(self) -> "SaveMessagesRequest":
        ids = [m.id for m in self.messages]
        if len(set(ids)) != len(ids):
            msg = "Message ids must be unique within a chat"
            raise ValueError(msg)
        return self


class SaveMessagesResult(BaseModel):
    """Result of replacing a chat's messages.

    Attributes:
        success: Always True.
        message_count: Number of messages stored.
        title: New title when one was generated, else None.
    """

    success: bool = True
    message_count: int
    title: str | None = None

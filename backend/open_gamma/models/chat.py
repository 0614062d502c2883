"""Chat and ChatMessage models - persisted conversations."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, func, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from open_gamma.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from open_gamma.models.user import User

DEFAULT_CHAT_TITLE = "New Chat"


class Chat(Base, TimestampMixin):
    """A conversation owned by one user.

    Attributes:
        id: UUID primary key.
        user_id: Owning user; chats are deleted with the user.
        title: Display title. Starts as "New Chat" and is replaced by the
            first user message when messages are first saved.
        model: Model id (``provider/model``) last used in this chat.
    """

    __tablename__ = "chats"
    __table_args__ = (Index("ix_chats_user_updated", "user_id", "updated_at"),)

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
        default=uuid.uuid4,
    )
    user_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        server_default=DEFAULT_CHAT_TITLE,
        default=DEFAULT_CHAT_TITLE,
    )
    model: Mapped[str | None] = mapped_column(
        String(128),
        nullable=True,
    )

    user: Mapped["User"] = relationship("User", back_populates="chats")
    messages: Mapped[list["ChatMessage"]] = relationship(
        "ChatMessage",
        back_populates="chat",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ChatMessage.position",
    )


class ChatMessage(Base):
    """One message in a chat, as stored by the client.

    Attributes:
        chat_id: Parent chat.
        id: Client-generated message id, unique within the chat.
        position: Order within the chat (0-based).
        role: "user", "assistant" or "system".
        content: Plain-text content.
        parts: Raw UI message parts, kept for faithful re-rendering.
        created_at: Insert timestamp.
    """

    __tablename__ = "chat_messages"

    # Message ids are client-generated, so they are unique per chat only
    chat_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("chats.id", ondelete="CASCADE"),
        primary_key=True,
    )
    id: Mapped[str] = mapped_column(
        String(128),
        primary_key=True,
    )
    position: Mapped[int] = mapped_column(nullable=False, default=0)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    content: Mapped[str] = mapped_column(Text(), nullable=False, default="")
    parts: Mapped[list[dict[str, Any]] | None] = mapped_column(
        JSONB,
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    chat: Mapped["Chat"] = relationship("Chat", back_populates="messages")

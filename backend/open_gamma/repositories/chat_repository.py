"""Repository for Chat and ChatMessage operations.

Every lookup is scoped by owner: a chat that exists but belongs to someone
else is indistinguishable from a missing one.
"""

import uuid
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from open_gamma.models.chat import DEFAULT_CHAT_TITLE, Chat, ChatMessage

# Fields that may be updated via ChatRepository.update().
_UPDATABLE_FIELDS: frozenset[str] = frozenset({"title", "model"})


class ChatRepository:
    """Stateless repository for chat persistence."""

    @staticmethod
    async def list_for_user(db: AsyncSession, user_id: str) -> list[Chat]:
        """List a user's chats, most recently updated first."""
        stmt = (
            select(Chat)
            .where(Chat.user_id == user_id)
            .order_by(Chat.updated_at.desc(), Chat.created_at.desc())
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def get_for_user(
        db: AsyncSession, chat_id: uuid.UUID, user_id: str
    ) -> Chat | None:
        """Fetch a chat if it exists and belongs to ``user_id``.

        Args:
            db: Async database session.
            chat_id: Chat primary key.
            user_id: Requesting user.

        Returns:
            Chat if found and owned, None otherwise.
        """
        stmt = select(Chat).where(Chat.id == chat_id, Chat.user_id == user_id)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        user_id: str,
        title: str | None = None,
        model: str | None = None,
    ) -> Chat:
        chat = Chat(user_id=user_id, title=title or DEFAULT_CHAT_TITLE, model=model)
        db.add(chat)
        await db.flush()
        await db.refresh(chat)
        return chat

    @staticmethod
    async def update(db: AsyncSession, chat: Chat, **kwargs: str | None) -> Chat:
        """Update chat fields.

        Only fields in _UPDATABLE_FIELDS are allowed; None values are
        skipped.

        Raises:
            ValueError: If an unknown field name is passed.
        """
        unknown = set(kwargs) - _UPDATABLE_FIELDS
        if unknown:
            msg = f"Unknown fields: {', '.join(sorted(unknown))}"
            raise ValueError(msg)

        for field, value in kwargs.items():
            if value is not None:
                setattr(chat, field, value)

        await db.flush()
        await db.refresh(chat)
        return chat

    @staticmethod
    async def delete(db: AsyncSession, chat: Chat) -> None:
        await db.delete(chat)
        await db.flush()

    @staticmethod
    async def list_messages(db: AsyncSession, chat_id: uuid.UUID) -> list[ChatMessage]:
        stmt = (
            select(ChatMessage)
            .where(ChatMessage.chat_id == chat_id)
            .order_by(ChatMessage.position)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def replace_messages(
        db: AsyncSession,
        chat: Chat,
        messages: list[dict[str, Any]],
    ) -> int:
        """Replace every stored message of ``chat`` with ``messages``.

        Args:
            db: Async database session.
            chat: Owning chat (already ownership-checked).
            messages: Dicts with ``id``, ``role``, ``content`` and ``parts``.

        Returns:
            Number of messages stored.
        """
        await db.execute(delete(ChatMessage).where(ChatMessage.chat_id == chat.id))
        for position, message in enumerate(messages):
            db.add(
                ChatMessage(
                    id=message["id"],
                    chat_id=chat.id,
                    position=position,
                    role=message["role"],
                    content=message.get("content") or "",
                    parts=message.get("parts"),
                )
            )
        await db.execute(
            update(Chat).where(Chat.id == chat.id).values(updated_at=func.now())
        )
        await db.flush()
        return len(messages)

"""SQLAlchemy ORM models.

- user.py: User (created when an account link completes)
- chat.py: Chat, ChatMessage
"""

from open_gamma.models.base import Base, TimestampMixin
from open_gamma.models.chat import DEFAULT_CHAT_TITLE, Chat, ChatMessage
from open_gamma.models.user import User

__all__ = [
    "Base",
    "TimestampMixin",
    "User",
    "Chat",
    "ChatMessage",
    "DEFAULT_CHAT_TITLE",
]

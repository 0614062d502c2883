"""User model.

Users are created implicitly when an account link completes. The primary
key is the linked identity itself, so there is no separate external id.
"""

from typing import TYPE_CHECKING

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from open_gamma.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from open_gamma.models.chat import Chat


class User(Base, TimestampMixin):
    """Linked user.

    Attributes:
        id: Identity issued during account linking (``user-XXXXXXXXXX``).
        email: Placeholder address derived from the id; unique.
        name: Display name.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    name: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    chats: Mapped[list["Chat"]] = relationship(
        "Chat",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

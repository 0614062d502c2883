"""Repository for User operations."""

from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from open_gamma.models.user import User

# Linked users have no real address; this keeps the unique column filled
PLACEHOLDER_EMAIL_DOMAIN = "composio.local"
DEFAULT_USER_NAME = "Composio User"


def placeholder_email(user_id: str) -> str:
    return f"{user_id}@{PLACEHOLDER_EMAIL_DOMAIN}"


class UserRepository:
    """Stateless repository for User table operations.

    All methods are static. Pass an AsyncSession for every call so the
    caller controls transaction boundaries.
    """

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: str) -> User | None:
        """Fetch a user by primary key.

        Args:
            db: Async database session.
            user_id: Linked identity.

        Returns:
            User if found, None otherwise.
        """
        return await db.get(User, user_id)

    @staticmethod
    async def ensure_exists(db: AsyncSession, user_id: str) -> None:
        """Insert the user row unless it already exists.

        Uses ON CONFLICT DO NOTHING so concurrent completions for the same
        identity never fail.

        Args:
            db: Async database session.
            user_id: Linked identity.
        """
        stmt = (
            insert(User)
            .values(
                id=user_id,
                email=placeholder_email(user_id),
                name=DEFAULT_USER_NAME,
            )
            .on_conflict_do_nothing(index_elements=[User.id])
        )
        await db.execute(stmt)
        await db.flush()


class SqlUserStore:
    """Adapts UserRepository to the account-linking UserStore protocol."""

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def ensure_user_exists(self, user_id: str) -> None:
        await UserRepository.ensure_exists(self._db, user_id)

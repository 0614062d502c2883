"""Shared dependencies for API endpoints.

Long-lived components (settings, codec, limiter, providers) are built once
by the app factory and stored on ``app.state``; these dependencies read
them back so tests can swap any of them with ``app.dependency_overrides``.
"""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from open_gamma.core.account_linking import LinkingService, UserStore
from open_gamma.core.auth import decode_session_jwt
from open_gamma.core.chat_rate_limit import SlidingWindowRateLimiter
from open_gamma.core.config import Settings
from open_gamma.core.database import get_db
from open_gamma.core.errors import RateLimitedError, UnauthorizedError
from open_gamma.repositories.user_repository import SqlUserStore
from open_gamma.services.chat_service import ChatService


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


AppSettings = Annotated[Settings, Depends(get_settings)]
DbSession = Annotated[AsyncSession, Depends(get_db)]


def get_current_user_id(request: Request, settings: AppSettings) -> str:
    """Get the current user's identity from the session cookie.

    Args:
        request: HTTP request (injected by FastAPI).
        settings: Application settings (injected).

    Returns:
        The linked identity.

    Raises:
        UnauthorizedError: For any missing, invalid or expired session.
            The cause is never disclosed.
    """
    token = request.cookies.get(settings.session_cookie_name)
    if not token:
        raise UnauthorizedError()

    user_id = decode_session_jwt(token, settings)
    if user_id is None:
        raise UnauthorizedError()
    return user_id


CurrentUserId = Annotated[str, Depends(get_current_user_id)]


def get_chat_rate_limiter(request: Request) -> SlidingWindowRateLimiter:
    return request.app.state.chat_rate_limiter


def enforce_chat_rate_limit(
    user_id: CurrentUserId,
    limiter: Annotated[SlidingWindowRateLimiter, Depends(get_chat_rate_limiter)],
) -> str:
    """Admit one chat request for the current user.

    Runs after authentication and before the request body is validated,
    so rejected requests never reach the model.

    Returns:
        The identity that was admitted.

    Raises:
        RateLimitedError: If the user has exhausted the current window.
    """
    if not limiter.admit(user_id):
        raise RateLimitedError()
    return user_id


ChatRateLimitedUserId = Annotated[str, Depends(enforce_chat_rate_limit)]


def get_linking_service(request: Request) -> LinkingService:
    return request.app.state.linking_service


def get_user_store(db: DbSession) -> UserStore:
    return SqlUserStore(db)


def get_chat_service(request: Request) -> ChatService:
    return request.app.state.chat_service


LinkingServiceDep = Annotated[LinkingService, Depends(get_linking_service)]
UserStoreDep = Annotated[UserStore, Depends(get_user_store)]
ChatServiceDep = Annotated[ChatService, Depends(get_chat_service)]

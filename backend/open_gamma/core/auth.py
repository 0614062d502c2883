"""Session JWT creation, decoding and cookie management.

A session is issued once the account-linking handshake completes. It is
an HS256 JWT whose ``sub`` is the linked identity, carried in an httpOnly
cookie and checked on every authenticated request.
"""

from datetime import UTC, datetime, timedelta

import jwt
from fastapi import Response

from open_gamma.core.auth_state import MAX_USER_ID_LENGTH
from open_gamma.core.config import Settings

_AUDIENCE = "open-gamma"
_ALGORITHM = "HS256"


def create_session_jwt(
    *,
    user_id: str,
    settings: Settings,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed session JWT with standard claims.

    Args:
        user_id: Linked identity for the sub claim.
        settings: Application settings (secret, issuer, default TTL).
        expires_delta: Time until expiration. Defaults to the session TTL.

    Returns:
        Encoded JWT string.
    """
    now = datetime.now(UTC)
    payload = {
        "sub": user_id,
        "aud": _AUDIENCE,
        "iss": settings.auth_issuer,
        "exp": now
        + (expires_delta or timedelta(seconds=settings.session_ttl_seconds)),
        "iat": now,
    }
    return jwt.encode(
        payload, settings.auth_secret.get_secret_value(), algorithm=_ALGORITHM
    )


def decode_session_jwt(token: str, settings: Settings) -> str | None:
    """Validate a session JWT and return its subject.

    Args:
        token: JWT string from the session cookie.
        settings: Application settings.

    Returns:
        The identity, or None for any invalid, expired or malformed token.
    """
    try:
        payload = jwt.decode(
            token,
            settings.auth_secret.get_secret_value(),
            algorithms=[_ALGORITHM],
            audience=_AUDIENCE,
            issuer=settings.auth_issuer,
        )
    except jwt.InvalidTokenError:
        return None

    sub = payload.get("sub")
    if not isinstance(sub, str) or not 1 <= len(sub) <= MAX_USER_ID_LENGTH:
        return None
    return sub


def set_session_cookie(response: Response, token: str, settings: Settings) -> None:
    """Set the httpOnly session cookie on a response."""
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        httponly=True,
        secure=settings.cookie_secure,
        samesite=settings.auth_cookie_samesite,
        path="/",
        max_age=settings.session_ttl_seconds,
    )


def clear_session_cookie(response: Response, settings: Settings) -> None:
    """Expire the session cookie."""
    response.delete_cookie(
        key=settings.session_cookie_name,
        path="/",
        secure=settings.cookie_secure,
        httponly=True,
        samesite=settings.auth_cookie_samesite,
    )

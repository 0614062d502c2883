"""IP-based rate limiting for the public auth endpoints, using slowapi.

The link endpoints are reachable without a session, so they are keyed on
the client address. Chat requests are limited per user by
``open_gamma.core.chat_rate_limit`` instead.

Usage in routers:
    from open_gamma.core.rate_limiting import AUTH_RATE_LIMIT, limiter

    @router.post("/link")
    @limiter.limit(AUTH_RATE_LIMIT)
    async def start_link(request: Request, ...):
        ...
"""

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from open_gamma.core.errors import RateLimitedError
from open_gamma.core.responses import error_response

# Budget for POST /auth/link and POST /auth/verify per client address
AUTH_RATE_LIMIT = "10/minute"

# In-memory storage (single-instance deployment). For multiple instances,
# configure a shared backend via RATELIMIT_STORAGE_URI.
limiter = Limiter(key_func=get_remote_address)


def rate_limit_exceeded_handler(
    _request: Request,
    _exc: RateLimitExceeded,
) -> Response:
    """Render slowapi's RateLimitExceeded with the standard error envelope.

    Returns:
        JSONResponse with 429 status and no retry detail.
    """
    return error_response(RateLimitedError())

"""Account-linking and session endpoints.

- POST /link: start linking; returns the provider consent URL and sets the
  auth-state cookie.
- POST /verify: complete linking after the provider redirects back; issues
  the session cookie.
- POST /logout: clear the session cookie.
- GET /session: report the current session's identity.
"""

import logging

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse

from open_gamma.api.deps import (
    AppSettings,
    CurrentUserId,
    LinkingServiceDep,
    UserStoreDep,
)
from open_gamma.core.account_linking import (
    STATE_COOKIE_NAME,
    clear_state_cookie,
    set_state_cookie,
)
from open_gamma.core.auth import (
    clear_session_cookie,
    create_session_jwt,
    set_session_cookie,
)
from open_gamma.core.errors import APIError
from open_gamma.core.rate_limiting import AUTH_RATE_LIMIT, limiter
from open_gamma.core.responses import DataResponse, error_response
from open_gamma.schemas.auth import LinkedUser, LinkStartResponse

logger = logging.getLogger(__name__)

router = APIRouter()


# ===================================================================
# POST /auth/link - Start Linking
# ===================================================================


@router.post("/link")
@limiter.limit(AUTH_RATE_LIMIT)
async def start_link(
    request: Request,  # noqa: ARG001
    response: Response,
    linking: LinkingServiceDep,
    settings: AppSettings,
) -> DataResponse[LinkStartResponse]:
    """Begin linking a new identity.

    Rate limit: AUTH_RATE_LIMIT per client address.

    Returns:
        DataResponse with the consent URL and pending connection id.
    """
    started = await linking.start_link()
    set_state_cookie(response, started.state_token, settings)
    return DataResponse(
        data=LinkStartResponse(
            redirect_url=started.redirect_url,
            connection_id=started.connection_id,
        )
    )


# ===================================================================
# POST /auth/verify - Complete Linking
# ===================================================================


@router.post("/verify")
@limiter.limit(AUTH_RATE_LIMIT)
async def verify_link(
    request: Request,
    linking: LinkingServiceDep,
    users: UserStoreDep,
    settings: AppSettings,
) -> Response:
    """Complete linking and sign the user in.

    The auth-state cookie is cleared whether or not verification succeeds;
    a failed attempt has to start over.

    Returns:
        JSONResponse with the linked identity and the session cookie set,
        or the error envelope.
    """
    token = request.cookies.get(STATE_COOKIE_NAME)
    try:
        user_id = await linking.complete_link(token, users)
    except APIError as exc:
        failed = error_response(exc)
        clear_state_cookie(failed, settings)
        return failed

    response = JSONResponse(
        content=DataResponse(data=LinkedUser(user_id=user_id)).model_dump(
            mode="json"
        )
    )
    clear_state_cookie(response, settings)
    set_session_cookie(
        response,
        create_session_jwt(user_id=user_id, settings=settings),
        settings,
    )
    return response


# ===================================================================
# Session
# ===================================================================


@router.post("/logout")
async def logout(response: Response, settings: AppSettings) -> DataResponse[dict]:
    """Clear the session cookie. Succeeds without a session."""
    clear_session_cookie(response, settings)
    return DataResponse(data={"message": "Logged out"})


@router.get("/session")
async def get_session(user_id: CurrentUserId) -> DataResponse[LinkedUser]:
    """Return the identity of the current session.

    Raises:
        UnauthorizedError: Without a valid session cookie.
    """
    return DataResponse(data=LinkedUser(user_id=user_id))

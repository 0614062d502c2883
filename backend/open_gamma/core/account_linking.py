"""Account-linking handshake between a new identity and the linking provider.

Flow:
1. start_link: generate an identity, sign an auth-state token for it, ask
   the provider for a consent URL. The router stores the token in an
   httpOnly cookie and hands the URL to the browser.
2. The user consents at the provider, which redirects back to the app.
3. complete_link: verify the cookie's token, confirm the provider reports
   at least one connected account for the identity, make sure a local
   user row exists, and return the identity as the new principal.

A token is spent by the first completion that finds a connected account;
until then the same token may be presented again. There are no automatic
retries. Provider failures are logged here and surfaced as a generic
UpstreamError so provider details never reach the client.
"""

import logging
from dataclasses import dataclass
from typing import Protocol

from fastapi import Response

from open_gamma.core.auth_state import (
    AuthStateCodec,
    ConsumedStateRegistry,
    generate_user_id,
)
from open_gamma.core.config import Settings
from open_gamma.core.errors import UpstreamError, ValidationError
from open_gamma.providers.errors import ProviderError
from open_gamma.providers.linking.base import LinkingProvider

logger = logging.getLogger(__name__)

# Cookie carrying the signed auth-state token between start and completion
STATE_COOKIE_NAME = "composio_auth_state"

# Client-facing messages; identical for every verification failure cause
_NO_STATE_MESSAGE = "No auth state"
_INVALID_STATE_MESSAGE = "Invalid or expired state"
_NO_CONNECTION_MESSAGE = "No connected account found"
_START_FAILED_MESSAGE = "Failed to initiate login"
_VERIFY_FAILED_MESSAGE = "Verification failed"


class UserStore(Protocol):
    """Makes sure a local user record exists for an identity."""

    async def ensure_user_exists(self, user_id: str) -> None:
        """Idempotently create the user row for ``user_id``."""
        ...


@dataclass(frozen=True)
class LinkStart:
    """Result of starting a link.

    Attributes:
        user_id: Generated identity.
        state_token: Signed token to store in the state cookie.
        redirect_url: Provider consent URL for the browser.
        connection_id: Provider id of the pending connection.
    """

    user_id: str
    state_token: str
    redirect_url: str
    connection_id: str


class LinkingService:
    """Orchestrates the linking handshake.

    Stateless apart from the consumed-token registry; one instance is
    shared by all requests.
    """

    def __init__(
        self,
        *,
        codec: AuthStateCodec,
        provider: LinkingProvider,
        consumed: ConsumedStateRegistry,
        auth_config_id: str,
        callback_url: str,
    ) -> None:
        self.codec = codec
        self.provider = provider
        self.consumed = consumed
        self.auth_config_id = auth_config_id
        self.callback_url = callback_url

    async def start_link(self) -> LinkStart:
        """Begin a linking attempt for a freshly generated identity.

        Returns:
            LinkStart with the token to store and the URL to redirect to.

        Raises:
            UpstreamError: If the provider fails.
        """
        user_id = generate_user_id()
        state_token = self.codec.issue(user_id)

        try:
            link = await self.provider.link(
                user_id,
                self.auth_config_id,
                callback_url=self.callback_url,
            )
        except ProviderError:
            logger.exception("Account link initiation failed")
            raise UpstreamError(_START_FAILED_MESSAGE) from None

        logger.info("Account link started", extra={"user_id": user_id})
        return LinkStart(
            user_id=user_id,
            state_token=state_token,
            redirect_url=link.redirect_url,
            connection_id=link.id,
        )

    async def complete_link(self, token: str | None, users: UserStore) -> str:
        """Finish a linking attempt.

        Args:
            token: Auth-state token from the cookie, if any.
            users: Collaborator that materializes the local user.

        Returns:
            The verified identity.

        Raises:
            ValidationError: No token, invalid/expired/replayed token, or
                no connected account at the provider.
            UpstreamError: If the provider or user store fails.
        """
        if not token:
            raise ValidationError(_NO_STATE_MESSAGE)

        state = self.codec.verify(token)
        if state is None:
            logger.info("Auth state rejected")
            raise ValidationError(_INVALID_STATE_MESSAGE)

        try:
            connections = await self.provider.list_connections(state.user_id)
        except ProviderError:
            logger.exception(
                "Connected account lookup failed",
                extra={"user_id": state.user_id},
            )
            raise UpstreamError(_VERIFY_FAILED_MESSAGE) from None

        if not connections:
            logger.info(
                "No connected account for identity",
                extra={"user_id": state.user_id},
            )
            raise ValidationError(_NO_CONNECTION_MESSAGE)

        # Spent only once a connection exists; earlier failures may retry
        if not self.consumed.consume(token, state.expires_at):
            logger.warning(
                "Auth state replayed",
                extra={"user_id": state.user_id},
            )
            raise ValidationError(_INVALID_STATE_MESSAGE)

        try:
            await users.ensure_user_exists(state.user_id)
        except Exception:
            logger.exception(
                "Could not materialize linked user",
                extra={"user_id": state.user_id},
            )
            raise UpstreamError(_VERIFY_FAILED_MESSAGE) from None

        logger.info(
            "Account link completed",
            extra={"user_id": state.user_id, "connections": len(connections)},
        )
        return state.user_id


def set_state_cookie(response: Response, token: str, settings: Settings) -> None:
    """Store the auth-state token in its httpOnly cookie.

    Max-age matches the token TTL so the browser drops it when the token
    could no longer verify.
    """
    response.set_cookie(
        key=STATE_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
        max_age=settings.auth_state_ttl_seconds,
        path="/",
    )


def clear_state_cookie(response: Response, settings: Settings) -> None:
    """Expire the auth-state cookie."""
    response.delete_cookie(
        key=STATE_COOKIE_NAME,
        path="/",
        secure=settings.cookie_secure,
        httponly=True,
        samesite="lax",
    )

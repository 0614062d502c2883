"""Tests for the account-linking orchestrator.

Covers start/complete with a mock provider and an in-memory user store:
success, missing/invalid/expired/replayed state, missing connection, and
provider or store failures surfacing as generic upstream errors.
"""

import re

import pytest

from open_gamma.core.account_linking import LinkingService
from open_gamma.core.auth_state import AuthStateCodec, ConsumedStateRegistry
from open_gamma.core.errors import UpstreamError, ValidationError
from open_gamma.providers.errors import TransientError
from open_gamma.providers.linking.mock import MockLinkingProvider
from tests.conftest import TEST_AUTH_CONFIG_ID, TEST_AUTH_SECRET, FakeUserStore

_CALLBACK_URL = "http://localhost:3000/auth/callback"


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def provider() -> MockLinkingProvider:
    return MockLinkingProvider()


@pytest.fixture
def users() -> FakeUserStore:
    return FakeUserStore()


@pytest.fixture
def service(clock: FakeClock, provider: MockLinkingProvider) -> LinkingService:
    return LinkingService(
        codec=AuthStateCodec(TEST_AUTH_SECRET, clock=clock),
        provider=provider,
        consumed=ConsumedStateRegistry(clock=clock),
        auth_config_id=TEST_AUTH_CONFIG_ID,
        callback_url=_CALLBACK_URL,
    )


# =============================================================================
# start_link
# =============================================================================


class TestStartLink:
    """start_link generates an identity and asks the provider for a URL."""

    async def test_returns_redirect_and_token(self, service, provider):
        """Result carries the provider URL and a token for the new identity."""
        started = await service.start_link()

        assert re.fullmatch(r"user-[A-Za-z0-9_-]{10}", started.user_id)
        assert started.redirect_url.startswith(provider.redirect_base)
        assert started.connection_id.startswith("link_")
        state = service.codec.verify(started.state_token)
        assert state.user_id == started.user_id

    async def test_passes_config_and_callback_to_provider(self, service, provider):
        """The provider receives the auth config id and callback URL."""
        started = await service.start_link()

        assert provider.calls == [
            {
                "method": "link",
                "user_id": started.user_id,
                "auth_config_id": TEST_AUTH_CONFIG_ID,
                "callback_url": _CALLBACK_URL,
            }
        ]

    async def test_each_start_uses_a_new_identity(self, service):
        """Two starts never share an identity."""
        first = await service.start_link()
        second = await service.start_link()
        assert first.user_id != second.user_id

    async def test_provider_failure_is_generic_upstream_error(self, service, provider):
        """Provider errors become UpstreamError without provider detail."""
        provider.fail_with(TransientError("composio exploded: secret detail"))

        with pytest.raises(UpstreamError) as exc_info:
            await service.start_link()

        assert exc_info.value.status_code == 500
        assert "secret detail" not in exc_info.value.message


# =============================================================================
# complete_link
# =============================================================================


class TestCompleteLink:
    """complete_link verifies state, checks connections, creates the user."""

    async def test_success_returns_identity_and_creates_user(
        self, service, provider, users
    ):
        """A valid token with a connection yields the identity."""
        started = await service.start_link()
        provider.register_connection(started.user_id)

        user_id = await service.complete_link(started.state_token, users)

        assert user_id == started.user_id
        assert users.user_ids == [started.user_id]

    @pytest.mark.parametrize("token", [None, ""])
    async def test_missing_token(self, service, users, token):
        """No cookie means "No auth state"."""
        with pytest.raises(ValidationError) as exc_info:
            await service.complete_link(token, users)
        assert exc_info.value.message == "No auth state"

    async def test_garbage_token(self, service, users):
        """A token that does not verify is rejected generically."""
        with pytest.raises(ValidationError) as exc_info:
            await service.complete_link("garbage.token", users)
        assert exc_info.value.message == "Invalid or expired state"

    async def test_expired_token(self, service, provider, users, clock):
        """Expired tokens are rejected with the same message."""
        started = await service.start_link()
        provider.register_connection(started.user_id)
        clock.now += 601

        with pytest.raises(ValidationError) as exc_info:
            await service.complete_link(started.state_token, users)
        assert exc_info.value.message == "Invalid or expired state"
        assert users.user_ids == []

    async def test_replayed_token_is_rejected(self, service, provider, users):
        """A token that already completed a link cannot be reused."""
        started = await service.start_link()
        provider.register_connection(started.user_id)
        await service.complete_link(started.state_token, users)

        with pytest.raises(ValidationError) as exc_info:
            await service.complete_link(started.state_token, users)
        assert exc_info.value.message == "Invalid or expired state"

    async def test_no_connected_account(self, service, users):
        """Without a connection at the provider, no user is created."""
        started = await service.start_link()

        with pytest.raises(ValidationError) as exc_info:
            await service.complete_link(started.state_token, users)

        assert exc_info.value.message == "No connected account found"
        assert users.user_ids == []

    async def test_completes_once_connection_appears(self, service, provider, users):
        """A token refused for lack of a connection still works afterwards."""
        started = await service.start_link()
        with pytest.raises(ValidationError):
            await service.complete_link(started.state_token, users)

        provider.register_connection(started.user_id)
        user_id = await service.complete_link(started.state_token, users)

        assert user_id == started.user_id
        assert users.user_ids == [started.user_id]

    async def test_token_spent_after_successful_retry(self, service, provider, users):
        """Once a retry succeeds the token is single-use again."""
        started = await service.start_link()
        with pytest.raises(ValidationError):
            await service.complete_link(started.state_token, users)
        provider.register_connection(started.user_id)
        await service.complete_link(started.state_token, users)

        with pytest.raises(ValidationError) as exc_info:
            await service.complete_link(started.state_token, users)
        assert exc_info.value.message == "Invalid or expired state"

    async def test_connections_looked_up_for_token_identity(
        self, service, provider, users
    ):
        """The identity from the token is the one queried at the provider."""
        started = await service.start_link()
        provider.register_connection(started.user_id)
        await service.complete_link(started.state_token, users)

        assert provider.calls[-1] == {
            "method": "list_connections",
            "user_id": started.user_id,
        }

    async def test_provider_failure_is_generic_upstream_error(
        self, service, provider, users
    ):
        """Lookup failures surface as UpstreamError with no detail."""
        started = await service.start_link()
        provider.fail_with(TransientError("connection reset by composio"))

        with pytest.raises(UpstreamError) as exc_info:
            await service.complete_link(started.state_token, users)

        assert "composio" not in exc_info.value.message
        assert users.user_ids == []

    async def test_user_store_failure_is_upstream_error(
        self, service, provider, users
    ):
        """A failing user store is reported as UpstreamError."""
        started = await service.start_link()
        provider.register_connection(started.user_id)
        users.failure = RuntimeError("database is down")

        with pytest.raises(UpstreamError) as exc_info:
            await service.complete_link(started.state_token, users)

        assert "database" not in exc_info.value.message

"""Tests for the Composio linking adapter.

HTTP traffic is served by httpx.MockTransport; nothing leaves the process.
"""

import json

import httpx
import pytest

from open_gamma.providers.errors import (
    AuthenticationError,
    ProviderError,
    RateLimitError,
    TransientError,
)
from open_gamma.providers.linking.composio import ComposioLinkingProvider

_BASE_URL = "https://composio.example.test/api/v3"


def _provider(handler) -> ComposioLinkingProvider:
    return ComposioLinkingProvider(
        "ck_test_key",
        base_url=_BASE_URL,
        transport=httpx.MockTransport(handler),
    )


# =============================================================================
# link
# =============================================================================


class TestLink:
    """POST /connected_accounts/link."""

    async def test_sends_expected_request(self):
        """Request carries the API key header and the link parameters."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={
                    "redirect_url": "https://connect.composio.dev/link/abc",
                    "connected_account_id": "ca_123",
                },
            )

        result = await _provider(handler).link(
            "user-abc", "ac_1", callback_url="http://localhost:3000/auth/callback"
        )

        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == f"{_BASE_URL}/connected_accounts/link"
        assert request.headers["x-api-key"] == "ck_test_key"
        assert json.loads(request.content) == {
            "auth_config_id": "ac_1",
            "user_id": "user-abc",
            "callback_url": "http://localhost:3000/auth/callback",
        }
        assert result.redirect_url == "https://connect.composio.dev/link/abc"
        assert result.id == "ca_123"

    async def test_accepts_camel_case_redirect(self):
        def handler(_request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, json={"redirectUrl": "https://x.test/r", "id": "ca_9"}
            )

        result = await _provider(handler).link("u", "ac", callback_url="http://cb")

        assert result.redirect_url == "https://x.test/r"
        assert result.id == "ca_9"

    async def test_missing_redirect_is_provider_error(self):
        def handler(_request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"id": "ca_1"})

        with pytest.raises(ProviderError):
            await _provider(handler).link("u", "ac", callback_url="http://cb")


# =============================================================================
# list_connections
# =============================================================================


class TestListConnections:
    """GET /connected_accounts."""

    async def test_parses_items(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={
                    "items": [
                        {
                            "id": "ca_1",
                            "status": "ACTIVE",
                            "toolkit": {"slug": "googleslides"},
                        },
                        {"id": "ca_2", "status": "INITIATED"},
                    ]
                },
            )

        accounts = await _provider(handler).list_connections("user-abc")

        assert seen[0].url.params["user_ids"] == "user-abc"
        assert [a.id for a in accounts] == ["ca_1", "ca_2"]
        assert accounts[0].toolkit == "googleslides"
        assert accounts[1].toolkit is None

    async def test_empty_list(self):
        def handler(_request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"items": []})

        assert await _provider(handler).list_connections("u") == []

    async def test_malformed_items_is_provider_error(self):
        def handler(_request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"items": "nope"})

        with pytest.raises(ProviderError):
            await _provider(handler).list_connections("u")


# =============================================================================
# Error classification
# =============================================================================


class TestErrorClassification:
    """HTTP failures map onto the provider error taxonomy."""

    @pytest.mark.parametrize(
        ("status", "expected"),
        [
            (401, AuthenticationError),
            (403, AuthenticationError),
            (429, RateLimitError),
            (500, TransientError),
            (503, TransientError),
            (400, ProviderError),
            (404, ProviderError),
        ],
    )
    async def test_status_codes(self, status, expected):
        def handler(_request: httpx.Request) -> httpx.Response:
            return httpx.Response(status, json={"error": "boom"})

        with pytest.raises(expected):
            await _provider(handler).list_connections("u")

    async def test_retry_after_is_parsed(self):
        def handler(_request: httpx.Request) -> httpx.Response:
            return httpx.Response(429, headers={"retry-after": "12"})

        with pytest.raises(RateLimitError) as exc_info:
            await _provider(handler).list_connections("u")

        assert exc_info.value.retry_after_seconds == 12.0

    async def test_connection_failure_is_transient(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(TransientError):
            await _provider(handler).link("u", "ac", callback_url="http://cb")

    async def test_non_json_body_is_provider_error(self):
        def handler(_request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"<html>oops</html>")

        with pytest.raises(ProviderError):
            await _provider(handler).list_connections("u")

    async def test_non_object_body_is_provider_error(self):
        def handler(_request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[1, 2, 3])

        with pytest.raises(ProviderError):
            await _provider(handler).list_connections("u")

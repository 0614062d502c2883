"""Tests for POST /api/v1/chat.

These tests verify:
- Check ordering: 401 before 429 before 400
- The per-user budget of 10 requests per window
- SSE event stream contents and in-band failure reporting
"""

import json

import pytest
from httpx import ASGITransport, AsyncClient

from open_gamma.providers.errors import TransientError
from tests.conftest import OTHER_USER_ID, create_test_session_token

_CHAT_URL = "/api/v1/chat"

_VALID_BODY = {
    "messages": [
        {
            "id": "m1",
            "role": "user",
            "parts": [{"type": "text", "text": "Make a deck about solar power"}],
        }
    ],
}


def _parse_sse(body: str) -> list[dict]:
    """Split an SSE body into decoded event payloads."""
    events = []
    for block in body.split("\n\n"):
        if block.startswith("data: "):
            events.append(json.loads(block[len("data: ") :]))
    return events


# =============================================================================
# Authentication and ordering
# =============================================================================


class TestChatAccessChecks:
    """Authentication, rate limiting and validation happen in that order."""

    @pytest.mark.asyncio
    async def test_requires_session(self, client: AsyncClient):
        """Unauthenticated requests get 401."""
        response = await client.post(_CHAT_URL, json=_VALID_BODY)

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHORIZED"

    @pytest.mark.asyncio
    async def test_unauthenticated_bad_body_is_401_not_400(self, client: AsyncClient):
        """Authentication is checked before the body."""
        response = await client.post(
            _CHAT_URL,
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_eleventh_request_is_rate_limited(self, auth_client: AsyncClient):
        """Ten requests stream, the eleventh in the window gets 429."""
        for _ in range(10):
            response = await auth_client.post(_CHAT_URL, json=_VALID_BODY)
            assert response.status_code == 200

        response = await auth_client.post(_CHAT_URL, json=_VALID_BODY)

        assert response.status_code == 429
        assert response.json()["error"]["code"] == "RATE_LIMITED"

    @pytest.mark.asyncio
    async def test_rate_limit_checked_before_body(self, auth_client: AsyncClient):
        """Once limited, even invalid bodies get 429 rather than 400."""
        for _ in range(10):
            await auth_client.post(_CHAT_URL, json={"messages": []})

        response = await auth_client.post(_CHAT_URL, json={"messages": []})

        assert response.status_code == 429

    @pytest.mark.asyncio
    async def test_rate_limit_is_per_user(self, app, auth_client: AsyncClient):
        """Another user's budget is unaffected."""
        for _ in range(11):
            await auth_client.post(_CHAT_URL, json=_VALID_BODY)

        settings = app.state.settings
        other_token = create_test_session_token(OTHER_USER_ID, settings)
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
            cookies={settings.session_cookie_name: other_token},
        ) as other_client:
            response = await other_client.post(_CHAT_URL, json=_VALID_BODY)

        assert response.status_code == 200


# =============================================================================
# Body validation
# =============================================================================


class TestChatBodyValidation:
    """Invalid bodies are rejected with 400 after auth and rate limiting."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            {},
            {"messages": []},
            {"messages": "hello"},
            {"messages": ["not an object"]},
            {"messages": [{"role": "user"}] * 101},
            {"messages": [{"role": "user"}], "model": 42},
        ],
    )
    async def test_invalid_body_returns_400(self, auth_client: AsyncClient, body):
        response = await auth_client.post(_CHAT_URL, json=body)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_malformed_json_returns_400(self, auth_client: AsyncClient):
        response = await auth_client.post(
            _CHAT_URL,
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Invalid request body"

    @pytest.mark.asyncio
    async def test_hundred_messages_accepted(self, auth_client: AsyncClient):
        """100 messages is the upper bound, inclusive."""
        messages = [{"role": "user", "content": f"msg {i}"} for i in range(100)]

        response = await auth_client.post(_CHAT_URL, json={"messages": messages})

        assert response.status_code == 200


# =============================================================================
# Streaming
# =============================================================================


class TestChatStreaming:
    """The reply arrives as chat_token events followed by chat_done."""

    @pytest.mark.asyncio
    async def test_streams_tokens_then_done(self, auth_client: AsyncClient, mock_chat):
        response = await auth_client.post(_CHAT_URL, json=_VALID_BODY)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        events = _parse_sse(response.text)
        tokens = [e["text"] for e in events if e["type"] == "chat_token"]
        assert "".join(tokens).strip() == mock_chat.reply
        assert events[-1]["type"] == "chat_done"
        assert events[-1]["model"] == "openai/gpt-5.2"

    @pytest.mark.asyncio
    async def test_passes_text_and_system_prompt_to_model(
        self, auth_client: AsyncClient, mock_chat
    ):
        """UI message parts are flattened and the system prompt is set."""
        await auth_client.post(
            _CHAT_URL,
            json={**_VALID_BODY, "model": "openai/gpt-4o"},
        )

        call = mock_chat.calls[0]
        assert call["model"] == "gpt-4o"
        assert call["messages"][0].role == "user"
        assert call["messages"][0].content == "Make a deck about solar power"
        assert "Google Slides" in call["system"]

    @pytest.mark.asyncio
    async def test_unknown_provider_falls_back_to_default(
        self, auth_client: AsyncClient, mock_chat
    ):
        await auth_client.post(_CHAT_URL, json={**_VALID_BODY, "model": "acme/x-1"})

        assert mock_chat.calls[0]["model"] == "gpt-5.2"

    @pytest.mark.asyncio
    async def test_unconfigured_provider_returns_500(self, auth_client: AsyncClient):
        """A provider without an API key fails before streaming starts."""
        response = await auth_client.post(
            _CHAT_URL,
            json={**_VALID_BODY, "model": "anthropic/claude-sonnet-4-20250514"},
        )

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "UPSTREAM_ERROR"

    @pytest.mark.asyncio
    async def test_mid_stream_failure_emits_generic_error_event(
        self, auth_client: AsyncClient, mock_chat
    ):
        """Provider failures after streaming began are reported in-band."""
        mock_chat.fail_after = 1
        mock_chat.failure = TransientError("upstream said: internal key xyz")

        response = await auth_client.post(_CHAT_URL, json=_VALID_BODY)

        events = _parse_sse(response.text)
        assert events[0]["type"] == "chat_token"
        assert events[-1]["type"] == "error"
        assert "xyz" not in response.text

    @pytest.mark.asyncio
    async def test_no_cache_headers(self, auth_client: AsyncClient):
        response = await auth_client.post(_CHAT_URL, json=_VALID_BODY)
        assert "no-store" in response.headers["cache-control"]

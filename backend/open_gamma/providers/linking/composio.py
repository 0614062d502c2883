"""Composio account-linking adapter.

Talks to the Composio v3 REST API with httpx:
- POST /connected_accounts/link      start a hosted consent flow
- GET  /connected_accounts?user_ids= list a user's connections
"""

import contextlib
import time
from typing import Any

import httpx
import structlog

from open_gamma.providers.errors import (
    AuthenticationError,
    ProviderError,
    RateLimitError,
    TransientError,
)
from open_gamma.providers.linking.base import (
    ConnectedAccount,
    LinkingProvider,
    LinkRequest,
)

logger = structlog.get_logger()

# HTTP client timeout for Composio calls
_COMPOSIO_HTTP_TIMEOUT = 10.0


def _classify_http_error(error: httpx.HTTPError) -> ProviderError:
    """Map httpx failures to the provider error taxonomy.

    Returns a ProviderError subclass instance (does not raise).
    """
    if isinstance(error, httpx.TimeoutException | httpx.TransportError):
        return TransientError(f"Composio unreachable: {type(error).__name__}")

    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        if status in (401, 403):
            return AuthenticationError(f"Composio rejected credentials ({status})")
        if status == 429:
            retry_after = None
            header = error.response.headers.get("retry-after")
            if header is not None:
                with contextlib.suppress(ValueError):
                    retry_after = float(header)
            return RateLimitError("Composio rate limit", retry_after_seconds=retry_after)
        if status >= 500:
            return TransientError(f"Composio server error ({status})")
        return ProviderError(f"Composio request failed ({status})")

    return ProviderError(str(error))


class ComposioLinkingProvider(LinkingProvider):
    """LinkingProvider backed by Composio connected accounts."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = "https://backend.composio.dev/api/v3",
        timeout: float = _COMPOSIO_HTTP_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the adapter.

        Args:
            api_key: Composio project API key.
            base_url: API root, without trailing slash.
            timeout: Per-request timeout in seconds.
            transport: Optional httpx transport (tests use MockTransport).
        """
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        start_time = time.monotonic()
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                resp = await client.request(
                    method,
                    path,
                    params=params,
                    json=json,
                    headers={"x-api-key": self._api_key},
                )
                resp.raise_for_status()
                body = resp.json()
        except httpx.HTTPError as e:
            logger.error(
                "composio_request_failed",
                method=method,
                path=path,
                error_type=type(e).__name__,
                latency_ms=(time.monotonic() - start_time) * 1000,
            )
            raise _classify_http_error(e) from e
        except ValueError as e:
            raise ProviderError("Composio returned a non-JSON body") from e

        if not isinstance(body, dict):
            raise ProviderError("Composio returned an unexpected body")
        return body

    async def link(
        self,
        user_id: str,
        auth_config_id: str,
        *,
        callback_url: str,
    ) -> LinkRequest:
        body = await self._request(
            "POST",
            "/connected_accounts/link",
            json={
                "auth_config_id": auth_config_id,
                "user_id": user_id,
                "callback_url": callback_url,
            },
        )
        redirect_url = body.get("redirect_url") or body.get("redirectUrl")
        connection_id = body.get("connected_account_id") or body.get("id")
        if not isinstance(redirect_url, str) or not redirect_url:
            raise ProviderError("Composio link response has no redirect_url")

        logger.info("composio_link_created", user_id=user_id)
        return LinkRequest(id=str(connection_id or ""), redirect_url=redirect_url)

    async def list_connections(self, user_id: str) -> list[ConnectedAccount]:
        body = await self._request(
            "GET",
            "/connected_accounts",
            params={"user_ids": user_id},
        )
        items = body.get("items") or []
        if not isinstance(items, list):
            raise ProviderError("Composio connection list is malformed")

        accounts = []
        for item in items:
            if not isinstance(item, dict):
                continue
            toolkit = item.get("toolkit")
            accounts.append(
                ConnectedAccount(
                    id=str(item.get("id", "")),
                    status=str(item.get("status", "")),
                    toolkit=toolkit.get("slug") if isinstance(toolkit, dict) else None,
                )
            )
        return accounts

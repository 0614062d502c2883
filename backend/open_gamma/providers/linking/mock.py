"""Mock account-linking provider for tests and offline development."""

import uuid
from typing import Any

from open_gamma.providers.linking.base import (
    ConnectedAccount,
    LinkingProvider,
    LinkRequest,
)


class MockLinkingProvider(LinkingProvider):
    """In-memory provider.

    ``register_connection`` stands in for the user finishing the consent
    flow; ``fail_with`` makes every following call raise.

    Attributes:
        connections: Connected accounts keyed by user identity.
        calls: Record of all method invocations for test assertions.
        failure: Exception raised by every call while set.
    """

    def __init__(self, redirect_base: str = "https://connect.example.test/link") -> None:
        self.redirect_base = redirect_base
        self.connections: dict[str, list[ConnectedAccount]] = {}
        self.calls: list[dict[str, Any]] = []
        self.failure: Exception | None = None

    def fail_with(self, error: Exception | None = None) -> None:
        """Make subsequent calls raise ``error`` (None restores success)."""
        self.failure = error

    def register_connection(self, user_id: str, toolkit: str = "googleslides") -> None:
        """Record a connected account for ``user_id``."""
        self.connections.setdefault(user_id, []).append(
            ConnectedAccount(id=f"ca_{uuid.uuid4().hex[:12]}", status="ACTIVE", toolkit=toolkit)
        )

    async def link(
        self,
        user_id: str,
        auth_config_id: str,
        *,
        callback_url: str,
    ) -> LinkRequest:
        self.calls.append(
            {
                "method": "link",
                "user_id": user_id,
                "auth_config_id": auth_config_id,
                "callback_url": callback_url,
            }
        )
        if self.failure is not None:
            raise self.failure
        link_id = f"link_{uuid.uuid4().hex[:12]}"
        return LinkRequest(id=link_id, redirect_url=f"{self.redirect_base}/{link_id}")

    async def list_connections(self, user_id: str) -> list[ConnectedAccount]:
        self.calls.append({"method": "list_connections", "user_id": user_id})
        if self.failure is not None:
            raise self.failure
        return list(self.connections.get(user_id, []))

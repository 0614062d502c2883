"""Abstract interface for the external account-linking provider.

The provider runs the OAuth-like consent flow for a user identity and
reports which accounts that identity has connected. Only the fields this
service depends on are modelled.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class LinkRequest:
    """A pending link created by the provider.

    Attributes:
        id: Provider identifier of the pending connection.
        redirect_url: Where the browser must go to give consent.
    """

    id: str
    redirect_url: str


@dataclass(frozen=True)
class ConnectedAccount:
    """An account the user connected through the provider.

    Attributes:
        id: Provider identifier of the connection.
        status: Provider status string (e.g., "ACTIVE").
        toolkit: Toolkit slug the connection belongs to, if reported.
    """

    id: str
    status: str
    toolkit: str | None = None


class LinkingProvider(ABC):
    """Account-linking provider as seen by the linking orchestrator."""

    @abstractmethod
    async def link(
        self,
        user_id: str,
        auth_config_id: str,
        *,
        callback_url: str,
    ) -> LinkRequest:
        """Start a consent flow for ``user_id``.

        Args:
            user_id: Identity the connection will belong to.
            auth_config_id: Provider-side link configuration.
            callback_url: Where the provider redirects after consent.

        Returns:
            LinkRequest with the consent redirect URL.

        Raises:
            ProviderError: On any provider failure.
        """
        ...

    @abstractmethod
    async def list_connections(self, user_id: str) -> list[ConnectedAccount]:
        """List accounts connected by ``user_id``.

        Raises:
            ProviderError: On any provider failure.
        """
        ...

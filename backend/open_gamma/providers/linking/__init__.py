"""Account-linking provider module.

Interface, Composio adapter and in-memory mock.
"""

from open_gamma.providers.linking.base import (
    ConnectedAccount,
    LinkingProvider,
    LinkRequest,
)
from open_gamma.providers.linking.composio import ComposioLinkingProvider
from open_gamma.providers.linking.mock import MockLinkingProvider

__all__ = [
    "ComposioLinkingProvider",
    "ConnectedAccount",
    "LinkingProvider",
    "LinkRequest",
    "MockLinkingProvider",
]

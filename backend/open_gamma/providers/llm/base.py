"""Abstract base class and types for chat model providers.

The chat endpoint only streams text. Tool calling, JSON mode and token
accounting belong to the model SDKs and are not modelled here.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass


@dataclass(frozen=True)
class ChatMessage:
    """Provider-agnostic message.

    Attributes:
        role: "user" or "assistant". System text is passed separately.
        content: Plain text content.
    """

    role: str
    content: str


class ChatModelProvider(ABC):
    """Streams a reply from one vendor's chat models."""

    def __init__(self, api_key: str, default_max_tokens: int = 4096) -> None:
        self.api_key = api_key
        self.default_max_tokens = default_max_tokens

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider prefix used in model ids (e.g., 'openai')."""
        ...

    @abstractmethod
    def stream(
        self,
        messages: list[ChatMessage],
        *,
        model: str,
        system: str | None = None,
        max_tokens: int | None = None,
    ) -> AsyncIterator[str]:
        """Stream a completion as text chunks.

        Args:
            messages: Conversation history, oldest first.
            model: Vendor model name (without the provider prefix).
            system: System prompt.
            max_tokens: Override the default output budget.

        Yields:
            Content chunks as they arrive.

        Raises:
            ProviderError: On API failure.
        """
        ...

"""Mock chat provider for testing."""

from collections.abc import AsyncIterator
from typing import Any

from open_gamma.providers.llm.base import ChatMessage, ChatModelProvider


class MockChatProvider(ChatModelProvider):
    """Deterministic provider that streams a canned reply word by word.

    Attributes:
        reply: Text streamed for every call.
        calls: Record of all invocations for test assertions.
        fail_after: If set, raise ``failure`` after this many chunks.
        failure: Exception raised when ``fail_after`` is reached.
    """

    def __init__(
        self,
        reply: str = "Mock presentation outline",
        *,
        name: str = "openai",
    ) -> None:
        # No API key needed for the mock
        super().__init__(api_key="mock")
        self.reply = reply
        self._name = name
        self.calls: list[dict[str, Any]] = []
        self.fail_after: int | None = None
        self.failure: Exception | None = None

    @property
    def provider_name(self) -> str:
        return self._name

    async def stream(  # type: ignore[override]
        self,
        messages: list[ChatMessage],
        *,
        model: str,
        system: str | None = None,
        max_tokens: int | None = None,
    ) -> AsyncIterator[str]:
        self.calls.append(
            {
                "messages": messages,
                "model": model,
                "system": system,
                "max_tokens": max_tokens,
            }
        )
        for index, word in enumerate(self.reply.split()):
            if self.fail_after is not None and index >= self.fail_after:
                raise self.failure or RuntimeError("mock failure")
            yield word + " "
        if self.fail_after is not None and self.fail_after >= len(self.reply.split()):
            raise self.failure or RuntimeError("mock failure")

"""Claude/Anthropic chat adapter."""

import contextlib
import time
from collections.abc import AsyncIterator

import anthropic
import structlog
from anthropic import AsyncAnthropic

from open_gamma.providers.errors import (
    AuthenticationError,
    ContentFilterError,
    ContextLengthError,
    ModelNotFoundError,
    ProviderError,
    RateLimitError,
    TransientError,
)
from open_gamma.providers.llm.base import ChatMessage, ChatModelProvider

logger = structlog.get_logger()


def _classify_claude_error(error: Exception) -> ProviderError:
    """Map Anthropic SDK exceptions to the provider error taxonomy.

    Returns a ProviderError subclass instance (does not raise).
    """
    if isinstance(error, anthropic.RateLimitError):
        retry_after = None
        retry_header = error.response.headers.get("retry-after")
        if retry_header is not None:
            with contextlib.suppress(ValueError):
                retry_after = float(retry_header)
        return RateLimitError(str(error), retry_after_seconds=retry_after)
    if isinstance(error, anthropic.AuthenticationError):
        return AuthenticationError(str(error))
    if isinstance(error, anthropic.NotFoundError):
        return ModelNotFoundError(str(error))
    if isinstance(error, anthropic.BadRequestError):
        error_msg = str(error).lower()
        if "context_length" in error_msg or "prompt is too long" in error_msg:
            return ContextLengthError(str(error))
        if "content_policy" in error_msg:
            return ContentFilterError(str(error))
        return ProviderError(str(error))
    if isinstance(error, anthropic.APIConnectionError | anthropic.InternalServerError):
        return TransientError(str(error))
    return ProviderError(str(error))


class ClaudeChatAdapter(ChatModelProvider):
    """Streams replies from Claude models."""

    def __init__(self, api_key: str, default_max_tokens: int = 4096) -> None:
        super().__init__(api_key, default_max_tokens)
        self.client = AsyncAnthropic(api_key=api_key)

    @property
    def provider_name(self) -> str:
        return "anthropic"

    async def stream(  # type: ignore[override]
        self,
        messages: list[ChatMessage],
        *,
        model: str,
        system: str | None = None,
        max_tokens: int | None = None,
    ) -> AsyncIterator[str]:
        api_messages = [{"role": m.role, "content": m.content} for m in messages]

        logger.info(
            "llm_request_start",
            provider="anthropic",
            model=model,
            message_count=len(messages),
        )
        start_time = time.monotonic()

        kwargs: dict = {}
        if system:
            kwargs["system"] = system

        try:
            async with self.client.messages.stream(
                model=model,
                max_tokens=max_tokens or self.default_max_tokens,
                messages=api_messages,  # type: ignore[arg-type]
                **kwargs,
            ) as stream:
                async for text in stream.text_stream:
                    yield text
        except anthropic.AnthropicError as e:
            logger.error(
                "llm_request_failed",
                provider="anthropic",
                model=model,
                error=str(e),
                error_type=type(e).__name__,
                latency_ms=(time.monotonic() - start_time) * 1000,
            )
            raise _classify_claude_error(e) from e

        logger.info(
            "llm_request_complete",
            provider="anthropic",
            model=model,
            latency_ms=(time.monotonic() - start_time) * 1000,
        )

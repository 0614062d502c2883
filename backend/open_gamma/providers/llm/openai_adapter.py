"""OpenAI chat adapter."""

import time
from collections.abc import AsyncIterator

import openai
import structlog
from openai import AsyncOpenAI

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


def _classify_openai_error(error: Exception) -> ProviderError:
    """Map OpenAI SDK exceptions to the provider error taxonomy.

    Returns a ProviderError subclass instance (does not raise).
    """
    if isinstance(error, openai.RateLimitError):
        return RateLimitError(str(error))
    if isinstance(error, openai.AuthenticationError):
        return AuthenticationError(str(error))
    if isinstance(error, openai.NotFoundError):
        return ModelNotFoundError(str(error))
    if isinstance(error, openai.BadRequestError):
        error_msg = str(error).lower()
        if "context_length" in error_msg or "maximum context" in error_msg:
            return ContextLengthError(str(error))
        if "content_policy" in error_msg or "content_filter" in error_msg:
            return ContentFilterError(str(error))
        return ProviderError(str(error))
    if isinstance(error, openai.APIConnectionError | openai.InternalServerError):
        return TransientError(str(error))
    return ProviderError(str(error))


class OpenAIChatAdapter(ChatModelProvider):
    """Streams replies from OpenAI chat models."""

    def __init__(self, api_key: str, default_max_tokens: int = 4096) -> None:
        super().__init__(api_key, default_max_tokens)
        self.client = AsyncOpenAI(api_key=api_key)

    @property
    def provider_name(self) -> str:
        return "openai"

    async def stream(  # type: ignore[override]
        self,
        messages: list[ChatMessage],
        *,
        model: str,
        system: str | None = None,
        max_tokens: int | None = None,
    ) -> AsyncIterator[str]:
        api_messages: list[dict] = []
        if system:
            api_messages.append({"role": "system", "content": system})
        api_messages.extend({"role": m.role, "content": m.content} for m in messages)

        logger.info(
            "llm_request_start",
            provider="openai",
            model=model,
            message_count=len(messages),
        )
        start_time = time.monotonic()

        try:
            response = await self.client.chat.completions.create(
                model=model,
                messages=api_messages,  # type: ignore[arg-type]
                max_completion_tokens=max_tokens or self.default_max_tokens,
                stream=True,
            )
            async for chunk in response:
                if chunk.choices and chunk.choices[0].delta.content:
                    yield chunk.choices[0].delta.content
        except openai.OpenAIError as e:
            logger.error(
                "llm_request_failed",
                provider="openai",
                model=model,
                error=str(e),
                error_type=type(e).__name__,
                latency_ms=(time.monotonic() - start_time) * 1000,
            )
            raise _classify_openai_error(e) from e

        logger.info(
            "llm_request_complete",
            provider="openai",
            model=model,
            latency_ms=(time.monotonic() - start_time) * 1000,
        )

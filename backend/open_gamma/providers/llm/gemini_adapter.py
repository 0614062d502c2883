"""Google Gemini chat adapter."""

import time
from collections.abc import AsyncIterator

import structlog
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from open_gamma.providers.errors import (
    AuthenticationError,
    ModelNotFoundError,
    ProviderError,
    RateLimitError,
    TransientError,
)
from open_gamma.providers.llm.base import ChatMessage, ChatModelProvider

logger = structlog.get_logger()


def _classify_gemini_error(error: Exception) -> ProviderError:
    """Map google-genai exceptions to the provider error taxonomy.

    Returns a ProviderError subclass instance (does not raise).
    """
    if isinstance(error, genai_errors.APIError):
        if error.code == 429:
            return RateLimitError(str(error))
        if error.code in (401, 403):
            return AuthenticationError(str(error))
        if error.code == 404:
            return ModelNotFoundError(str(error))
        if error.code >= 500:
            return TransientError(str(error))
    return ProviderError(str(error))


def _convert_gemini_messages(messages: list[ChatMessage]) -> list[types.Content]:
    """Convert messages to Gemini contents ("assistant" becomes "model")."""
    return [
        types.Content(
            role="model" if m.role == "assistant" else "user",
            parts=[types.Part(text=m.content)],
        )
        for m in messages
    ]


class GeminiChatAdapter(ChatModelProvider):
    """Streams replies from Gemini models."""

    def __init__(self, api_key: str, default_max_tokens: int = 4096) -> None:
        super().__init__(api_key, default_max_tokens)
        self.client = genai.Client(api_key=api_key)

    @property
    def provider_name(self) -> str:
        return "google"

    async def stream(  # type: ignore[override]
        self,
        messages: list[ChatMessage],
        *,
        model: str,
        system: str | None = None,
        max_tokens: int | None = None,
    ) -> AsyncIterator[str]:
        gen_config = types.GenerateContentConfig(
            max_output_tokens=max_tokens or self.default_max_tokens,
            system_instruction=system,
        )

        logger.info(
            "llm_request_start",
            provider="google",
            model=model,
            message_count=len(messages),
        )
        start_time = time.monotonic()

        try:
            async for chunk in await self.client.aio.models.generate_content_stream(
                model=model,
                contents=_convert_gemini_messages(messages),  # type: ignore[arg-type]
                config=gen_config,
            ):
                if chunk.text:
                    yield chunk.text
        except Exception as e:
            logger.error(
                "llm_request_failed",
                provider="google",
                model=model,
                error=str(e),
                error_type=type(e).__name__,
                latency_ms=(time.monotonic() - start_time) * 1000,
            )
            raise _classify_gemini_error(e) from e

        logger.info(
            "llm_request_complete",
            provider="google",
            model=model,
            latency_ms=(time.monotonic() - start_time) * 1000,
        )

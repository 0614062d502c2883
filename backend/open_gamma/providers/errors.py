"""Provider error taxonomy.

Adapters for external services (account linking, chat models) map their
SDK or HTTP failures onto these classes so callers handle every provider
the same way. None of these reach the client directly: the API layer
logs them and answers with a generic UpstreamError.
"""

__all__ = [
    "ProviderError",
    "RateLimitError",
    "AuthenticationError",
    "ModelNotFoundError",
    "ContentFilterError",
    "ContextLengthError",
    "TransientError",
]


class ProviderError(Exception):
    """Base class for all provider errors."""


class RateLimitError(ProviderError):
    """The provider throttled us.

    May carry the provider's retry hint for logging.
    """

    def __init__(self, message: str, retry_after_seconds: float | None = None):
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds


class AuthenticationError(ProviderError):
    """Invalid or expired API key. Needs operator action, not a retry."""


class ModelNotFoundError(ProviderError):
    """Requested model doesn't exist or isn't accessible with this key."""


class ContentFilterError(ProviderError):
    """Content blocked by the provider's safety filter."""


class ContextLengthError(ProviderError):
    """Input exceeded the model's context window."""


class TransientError(ProviderError):
    """Network failure, timeout or 5xx response."""

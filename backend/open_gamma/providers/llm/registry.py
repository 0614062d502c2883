"""Chat model catalogue and provider lookup.

Model ids have the form ``<provider>/<model>``, e.g. ``openai/gpt-4.1``.
The provider part selects an adapter; the rest is passed to the vendor
SDK unchanged.
"""

from dataclasses import dataclass

from open_gamma.core.config import Settings
from open_gamma.providers.errors import ProviderError
from open_gamma.providers.llm.base import ChatModelProvider
from open_gamma.providers.llm.claude_adapter import ClaudeChatAdapter
from open_gamma.providers.llm.gemini_adapter import GeminiChatAdapter
from open_gamma.providers.llm.openai_adapter import OpenAIChatAdapter


@dataclass(frozen=True)
class ModelInfo:
    """A selectable chat model."""

    id: str
    name: str
    provider: str


AVAILABLE_MODELS: tuple[ModelInfo, ...] = (
    ModelInfo("openai/gpt-4.1", "GPT-4.1", "openai"),
    ModelInfo("openai/gpt-5.2", "GPT-5.2", "openai"),
    ModelInfo("openai/gpt-4o", "GPT-4o", "openai"),
    ModelInfo("openai/gpt-4o-mini", "GPT-4o Mini", "openai"),
    ModelInfo("anthropic/claude-sonnet-4-20250514", "Claude Sonnet 4", "anthropic"),
    ModelInfo("anthropic/claude-3-5-sonnet-20241022", "Claude 3.5 Sonnet", "anthropic"),
    ModelInfo("google/gemini-2.0-flash", "Gemini 2.0 Flash", "google"),
)

DEFAULT_MODEL = "openai/gpt-5.2"

_KNOWN_PROVIDERS = frozenset({"openai", "anthropic", "google"})


class ProviderNotConfiguredError(ProviderError):
    """The selected model's provider has no API key."""


def split_model_id(model_id: str | None) -> tuple[str, str]:
    """Split a model id into (provider, model name).

    Unknown providers, empty ids and ids without a model part fall back
    to DEFAULT_MODEL.

    Args:
        model_id: Requested model id, or None for the default.

    Returns:
        Tuple of (provider, model name).
    """
    provider, _, model_name = (model_id or "").partition("/")
    if provider not in _KNOWN_PROVIDERS or not model_name:
        provider, _, model_name = DEFAULT_MODEL.partition("/")
    return provider, model_name


class ChatModelRegistry:
    """Holds one adapter per configured provider."""

    def __init__(self, providers: dict[str, ChatModelProvider]) -> None:
        self._providers = dict(providers)

    @classmethod
    def from_settings(cls, settings: Settings) -> "ChatModelRegistry":
        """Build adapters for every provider with an API key."""
        providers: dict[str, ChatModelProvider] = {}
        max_tokens = settings.chat_max_output_tokens
        if settings.openai_api_key is not None:
            providers["openai"] = OpenAIChatAdapter(
                settings.openai_api_key.get_secret_value(), max_tokens
            )
        if settings.anthropic_api_key is not None:
            providers["anthropic"] = ClaudeChatAdapter(
                settings.anthropic_api_key.get_secret_value(), max_tokens
            )
        if settings.google_api_key is not None:
            providers["google"] = GeminiChatAdapter(
                settings.google_api_key.get_secret_value(), max_tokens
            )
        return cls(providers)

    @property
    def configured(self) -> frozenset[str]:
        return frozenset(self._providers)

    def resolve(self, model_id: str | None) -> tuple[ChatModelProvider, str]:
        """Find the adapter and vendor model name for ``model_id``.

        Raises:
            ProviderNotConfiguredError: If the provider has no API key.
        """
        provider, model_name = split_model_id(model_id)
        adapter = self._providers.get(provider)
        if adapter is None:
            raise ProviderNotConfiguredError(f"Provider '{provider}' is not configured")
        return adapter, model_name

"""Chat model provider module.

Streaming chat interface, vendor adapters and the model registry.
"""

from open_gamma.providers.llm.base import ChatMessage, ChatModelProvider
from open_gamma.providers.llm.claude_adapter import ClaudeChatAdapter
from open_gamma.providers.llm.gemini_adapter import GeminiChatAdapter
from open_gamma.providers.llm.mock_adapter import MockChatProvider
from open_gamma.providers.llm.openai_adapter import OpenAIChatAdapter
from open_gamma.providers.llm.registry import (
    AVAILABLE_MODELS,
    DEFAULT_MODEL,
    ChatModelRegistry,
    ProviderNotConfiguredError,
)

__all__ = [
    # Base types
    "ChatMessage",
    "ChatModelProvider",
    # Adapters
    "ClaudeChatAdapter",
    "GeminiChatAdapter",
    "MockChatProvider",
    "OpenAIChatAdapter",
    # Registry
    "AVAILABLE_MODELS",
    "DEFAULT_MODEL",
    "ChatModelRegistry",
    "ProviderNotConfiguredError",
]

"""Streams slide-presentation assistant replies as SSE events.

The model is chosen per request from the ``provider/model`` id. Provider
selection happens before the response starts, so a missing API key becomes
an ordinary error response; failures after the first byte can only be
reported in-band as an ``error`` event.
"""

import logging
import uuid
from collections.abc import AsyncIterator
from typing import Any

from open_gamma.core.errors import UpstreamError, ValidationError
from open_gamma.providers.llm.base import ChatMessage, ChatModelProvider
from open_gamma.providers.llm.registry import (
    DEFAULT_MODEL,
    ChatModelRegistry,
    ProviderNotConfiguredError,
    split_model_id,
)
from open_gamma.schemas.chat import (
    ChatDoneEvent,
    ChatRequest,
    ChatTokenEvent,
    ErrorEvent,
    extract_text_content,
)

logger = logging.getLogger(__name__)

_CONVERSATION_ROLES = frozenset({"user", "assistant"})

_TITLE_MAX_LENGTH = 50
_TITLE_TRUNCATED_LENGTH = 47

SYSTEM_PROMPT = """\
You are an expert presentation generation agent that creates high-impact, \
professional presentations in Google Slides.

GATHERING REQUIREMENTS:
- Ask the user for all their input in ONE message. Don't keep asking \
questions one after the other.
- Key questions: What's the topic? Who's the audience? What's the \
goal/call-to-action? How many slides?
- Offer customization options: theme, color scheme, tone (formal/casual), \
content density.

PRESENTATION STRUCTURE:
- Less is more: keep slides minimal, about 3-5 minutes of content per slide.
- Flow: Hook/Problem, Context, Solution (the "Golden Slide"), Supporting \
Points, Call to Action.
- Build towards the Golden Slide in the first third of the presentation.
- Open with a bold statement, compelling story, or striking statistic.
- Close with clear takeaways or a specific call to action.

SLIDE CONTENT PRINCIPLES:
- Use keywords, not full sentences.
- Limit each slide to three key ideas or bullet points.
- Give every slide a clear, action-oriented title.
- Avoid jargon and acronyms unless the audience needs them.

VISUAL DESIGN:
- Use visuals (images, graphs, charts) to convey messages.
- Use color and emphasis sparingly.
- Every slide without a table or chart should have at least one image.
"""


def to_provider_messages(messages: list[dict[str, Any]]) -> list[ChatMessage]:
    """Convert UI messages to provider chat messages.

    System messages and messages without text are dropped; the system
    prompt is supplied separately.

    Args:
        messages: UI message dicts from the client.

    Returns:
        Provider messages in conversation order.
    """
    converted: list[ChatMessage] = []
    for message in messages:
        role = message.get("role")
        if role not in _CONVERSATION_ROLES:
            continue
        text = extract_text_content(message)
        if not text.strip():
            continue
        converted.append(ChatMessage(role=role, content=text))
    return converted


def generate_title(content: str) -> str:
    """Derive a chat title from the first user message.

    Newlines become spaces. Text longer than 50 characters is cut to 47
    characters plus "...".
    """
    cleaned = content.strip().replace("\n", " ")
    if len(cleaned) <= _TITLE_MAX_LENGTH:
        return cleaned
    return cleaned[:_TITLE_TRUNCATED_LENGTH] + "..."


class ChatService:
    """Turns a chat request into a stream of SSE strings."""

    def __init__(
        self,
        registry: ChatModelRegistry,
        *,
        system_prompt: str = SYSTEM_PROMPT,
    ) -> None:
        self.registry = registry
        self.system_prompt = system_prompt

    def stream_reply(self, request: ChatRequest, user_id: str) -> AsyncIterator[str]:
        """Resolve the model and return the SSE stream for its reply.

        Provider failures during streaming are reported in-band.

        Args:
            request: Validated chat request.
            user_id: Requesting user, for logging.

        Returns:
            Async iterator of SSE-formatted strings.

        Raises:
            UpstreamError: If the selected provider is not configured.
            ValidationError: If no message carries text.
        """
        provider_name, model_name = split_model_id(request.model or DEFAULT_MODEL)
        model_id = f"{provider_name}/{model_name}"
        try:
            adapter, model_name = self.registry.resolve(model_id)
        except ProviderNotConfiguredError:
            logger.error(
                "Chat provider not configured",
                extra={"provider": provider_name, "user_id": user_id},
            )
            raise UpstreamError("Chat model unavailable") from None

        messages = to_provider_messages(request.messages)
        if not messages:
            raise ValidationError("Messages contain no text")

        return self._generate(adapter, model_name, model_id, messages, user_id)

    async def _generate(
        self,
        adapter: ChatModelProvider,
        model_name: str,
        model_id: str,
        messages: list[ChatMessage],
        user_id: str,
    ) -> AsyncIterator[str]:
        try:
            async for chunk in adapter.stream(
                messages,
                model=model_name,
                system=self.system_prompt,
            ):
                yield ChatTokenEvent(text=chunk).to_sse()
        except Exception:
            logger.exception(
                "Chat stream failed",
                extra={"model": model_id, "user_id": user_id},
            )
            yield ErrorEvent().to_sse()
            return

        yield ChatDoneEvent(message_id=str(uuid.uuid4()), model=model_id).to_sse()

"""Chat streaming request and SSE event schemas.

Event Types:
- chat_token: Streaming model output chunk
- chat_done: Reply complete marker
- error: Reply failed; carries a generic message only
"""

from typing import Any, Literal

from pydantic import BaseModel, Field

MAX_CHAT_MESSAGES = 100

# =============================================================================
# Request Schemas
# =============================================================================


class ChatRequest(BaseModel):
    """Request body for POST /chat.

    Messages are UI messages as produced by the client. Only their shape
    as objects is validated here; text is extracted by the chat service.

    Attributes:
        messages: Conversation so far, oldest first (1-100 entries).
        model: Optional model id (``provider/model``).
    """

    messages: list[dict[str, Any]] = Field(
        ...,
        min_length=1,
        max_length=MAX_CHAT_MESSAGES,
        description="Conversation messages, oldest first",
    )
    model: str | None = Field(default=None, max_length=128)


def extract_text_content(message: dict[str, Any]) -> str:
    """Join the text of a UI message.

    Text parts are concatenated in order. Messages without parts fall back
    to a plain ``content`` string.

    Args:
        message: UI message dict.

    Returns:
        Extracted text (may be empty).
    """
    parts = message.get("parts")
    if isinstance(parts, list):
        return "".join(
            part["text"]
            for part in parts
            if isinstance(part, dict)
            and part.get("type") == "text"
            and isinstance(part.get("text"), str)
        )
    content = message.get("content")
    return content if isinstance(content, str) else ""


# =============================================================================
# SSE Event Schemas
# =============================================================================


class SSEEvent(BaseModel):
    """Base class for all SSE events."""

    type: str

    def to_sse(self) -> str:
        """Serialize event to SSE wire format.

        Returns:
            String in format: "data: {json}\\n\\n"
        """
        return f"data: {self.model_dump_json()}\n\n"


class ChatTokenEvent(SSEEvent):
    """Streaming output chunk; the client appends ``text``."""

    type: Literal["chat_token"] = "chat_token"
    text: str = Field(..., description="Text to append to the reply")


class ChatDoneEvent(SSEEvent):
    """Reply complete.

    Attributes:
        message_id: Server-generated id of the assistant message.
        model: Model id that produced the reply.
    """

    type: Literal["chat_done"] = "chat_done"
    message_id: str
    model: str


class ErrorEvent(SSEEvent):
    """Reply failed mid-stream."""

    type: Literal["error"] = "error"
    message: str = "Failed to generate a response"

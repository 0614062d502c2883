"""Chat streaming endpoint.

POST /chat streams the assistant's reply as Server-Sent Events.

Checks run in a fixed order: session (401), per-user rate limit (429),
then the request body (400). The body is parsed inside the handler rather
than declared as a parameter, since FastAPI decodes declared bodies before
resolving dependencies.
"""

import json

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse
from pydantic import ValidationError as PydanticValidationError

from open_gamma.api.deps import ChatRateLimitedUserId, ChatServiceDep
from open_gamma.core.errors import ValidationError
from open_gamma.schemas.chat import ChatRequest

router = APIRouter()

_INVALID_BODY_MESSAGE = "Invalid request body"


async def _parse_chat_request(request: Request) -> ChatRequest:
    """Decode and validate the chat request body.

    Raises:
        ValidationError: If the body is not JSON or does not match
            ChatRequest.
    """
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationError(_INVALID_BODY_MESSAGE) from None

    try:
        return ChatRequest.model_validate(payload)
    except PydanticValidationError as exc:
        details = [
            {"loc": list(e["loc"]), "msg": e["msg"], "type": e["type"]}
            for e in exc.errors()
        ]
        raise ValidationError(_INVALID_BODY_MESSAGE, details=details) from None


@router.post("")
async def chat(
    request: Request,
    user_id: ChatRateLimitedUserId,
    chat_service: ChatServiceDep,
) -> StreamingResponse:
    """Stream a reply to the conversation in the request body.

    Returns:
        StreamingResponse with text/event-stream content type.
    """
    body = await _parse_chat_request(request)
    stream = chat_service.stream_reply(body, user_id)
    return StreamingResponse(
        stream,
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
        },
    )

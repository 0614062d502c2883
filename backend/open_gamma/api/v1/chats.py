"""Chat history endpoints.

All routes are scoped to the caller: chats owned by someone else answer
404 exactly like missing ones.
"""

import uuid

from fastapi import APIRouter

from open_gamma.api.deps import CurrentUserId, DbSession
from open_gamma.core.errors import NotFoundError
from open_gamma.core.responses import DataResponse
from open_gamma.models.chat import DEFAULT_CHAT_TITLE, Chat
from open_gamma.repositories.chat_repository import ChatRepository
from open_gamma.repositories.user_repository import UserRepository
from open_gamma.schemas.chat import extract_text_content
from open_gamma.schemas.chats import (
    ChatCreate,
    ChatRead,
    ChatUpdate,
    ChatWithMessages,
    MessageRead,
    SaveMessagesRequest,
    SaveMessagesResult,
)
from open_gamma.services.chat_service import generate_title

router = APIRouter()

_CHAT_RESOURCE = "Chat"


async def _get_owned_chat(db: DbSession, chat_id: uuid.UUID, user_id: str) -> Chat:
    chat = await ChatRepository.get_for_user(db, chat_id, user_id)
    if chat is None:
        raise NotFoundError(_CHAT_RESOURCE, str(chat_id))
    return chat


@router.get("")
async def list_chats(
    user_id: CurrentUserId,
    db: DbSession,
) -> DataResponse[list[ChatRead]]:
    """List the caller's chats, most recently updated first."""
    chats = await ChatRepository.list_for_user(db, user_id)
    return DataResponse(data=[ChatRead.model_validate(c) for c in chats])


@router.post("", status_code=201)
async def create_chat(
    body: ChatCreate,
    user_id: CurrentUserId,
    db: DbSession,
) -> DataResponse[ChatRead]:
    """Create an empty chat.

    The user row is ensured first, since sessions can outlive it.
    """
    await UserRepository.ensure_exists(db, user_id)
    chat = await ChatRepository.create(
        db, user_id=user_id, title=body.title, model=body.model
    )
    return DataResponse(data=ChatRead.model_validate(chat))


@router.get("/{chat_id}")
async def get_chat(
    chat_id: uuid.UUID,
    user_id: CurrentUserId,
    db: DbSession,
) -> DataResponse[ChatWithMessages]:
    """Fetch a chat with its messages in conversation order."""
    chat = await _get_owned_chat(db, chat_id, user_id)
    messages = await ChatRepository.list_messages(db, chat.id)
    return DataResponse(
        data=ChatWithMessages(
            **ChatRead.model_validate(chat).model_dump(),
            messages=[MessageRead.model_validate(m) for m in messages],
        )
    )


@router.put("/{chat_id}")
async def update_chat(
    chat_id: uuid.UUID,
    body: ChatUpdate,
    user_id: CurrentUserId,
    db: DbSession,
) -> DataResponse[ChatRead]:
    chat = await _get_owned_chat(db, chat_id, user_id)
    chat = await ChatRepository.update(
        db,
        chat,
        title=body.title or None,
        model=body.model or None,
    )
    return DataResponse(data=ChatRead.model_validate(chat))


@router.delete("/{chat_id}")
async def delete_chat(
    chat_id: uuid.UUID,
    user_id: CurrentUserId,
    db: DbSession,
) -> DataResponse[dict]:
    chat = await _get_owned_chat(db, chat_id, user_id)
    await ChatRepository.delete(db, chat)
    return DataResponse(data={"success": True})


@router.post("/{chat_id}/messages")
async def save_messages(
    chat_id: uuid.UUID,
    body: SaveMessagesRequest,
    user_id: CurrentUserId,
    db: DbSession,
) -> DataResponse[SaveMessagesResult]:
    """Replace a chat's stored messages.

    A chat still titled "New Chat" is renamed after its first user message.

    Returns:
        DataResponse with the stored message count and the new title, if
        one was generated.
    """
    chat = await _get_owned_chat(db, chat_id, user_id)

    rows = [
        {
            "id": m.id,
            "role": m.role,
            "content": extract_text_content(m.model_dump()),
            "parts": m.parts,
        }
        for m in body.messages
    ]
    count = await ChatRepository.replace_messages(db, chat, rows)

    new_title: str | None = None
    if chat.title == DEFAULT_CHAT_TITLE:
        first_user = next((r for r in rows if r["role"] == "user"), None)
        if first_user is not None and first_user["content"].strip():
            new_title = generate_title(first_user["content"])
            await ChatRepository.update(db, chat, title=new_title)

    return DataResponse(data=SaveMessagesResult(message_count=count, title=new_title))

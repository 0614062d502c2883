"""Chat model catalogue endpoint."""

from fastapi import APIRouter

from open_gamma.api.deps import ChatServiceDep, CurrentUserId
from open_gamma.core.responses import DataResponse
from open_gamma.providers.llm.registry import AVAILABLE_MODELS, DEFAULT_MODEL
from open_gamma.schemas.models import ModelRead

router = APIRouter()


@router.get("")
async def list_models(
    _user_id: CurrentUserId,
    chat_service: ChatServiceDep,
) -> DataResponse[list[ModelRead]]:
    """List selectable models, flagging those whose vendor is configured."""
    configured = chat_service.registry.configured
    return DataResponse(
        data=[
            ModelRead(
                id=m.id,
                name=m.name,
                provider=m.provider,
                available=m.provider in configured,
                is_default=m.id == DEFAULT_MODEL,
            )
            for m in AVAILABLE_MODELS
        ]
    )

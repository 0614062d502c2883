"""API v1 router aggregator.

All v1 endpoint routers are included here.
"""

from fastapi import APIRouter

from open_gamma.api.v1 import auth_link, chat, chats, models

router = APIRouter()

# =============================================================================
# Authentication
# =============================================================================

router.include_router(auth_link.router, prefix="/auth", tags=["auth"])

# =============================================================================
# Chat
# =============================================================================

router.include_router(chat.router, prefix="/chat", tags=["chat"])
router.include_router(chats.router, prefix="/chats", tags=["chats"])
router.include_router(models.router, prefix="/models", tags=["chat"])

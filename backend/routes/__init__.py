"""FastAPI API endpoints under /api.

Endpoint groups: health/settings, providers (status + hot swap), agents
(spawn, move, despawn, chat, conversation open/close, story events, inbound
triggers, manual emissions), conversations (history read/clear/save) and
signals (grid updates from the world layer, current output levels).
"""

from fastapi import APIRouter

from .agents import router as agents_router
from .conversations import router as conversations_router
from .providers import router as providers_router
from .settings import router as settings_router
from .signals import router as signals_router

router = APIRouter()
router.include_router(settings_router)
router.include_router(providers_router)
router.include_router(agents_router)
router.include_router(conversations_router)
router.include_router(signals_router)

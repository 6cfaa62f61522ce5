"""Provider status and hot-swap endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from backend.deps import get_hub
from storyteller.hub import StorytellerHub
from storyteller.llm import ProviderId

from .models import SwitchProvider

router = APIRouter()


def _status(hub: StorytellerHub) -> dict:
    manager = hub.providers
    return {
        "active": manager.active_id.value if manager.active_id else None,
        "active_name": manager.active_provider_name,
        "available": manager.is_available(),
        "providers": {
            pid.value: {"name": p.name, "available": p.is_available()}
            for pid, p in manager.providers.items()
        },
    }


@router.get("/providers")
async def provider_status(hub: StorytellerHub = Depends(get_hub)):
    return _status(hub)


@router.post("/providers/switch")
async def switch_provider(body: SwitchProvider, hub: StorytellerHub = Depends(get_hub)):
    """Switch the active provider. The current one stays active if the switch fails."""
    try:
        pid = ProviderId(body.provider.strip().lower())
    except ValueError:
        raise HTTPException(400, f"Unknown provider '{body.provider}'")
    switched = await hub.providers.switch_provider(pid)
    return {"switched": switched, **_status(hub)}

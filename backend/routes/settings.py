"""Health check and settings endpoints."""

from fastapi import APIRouter, Depends

from backend.deps import get_hub
from storyteller.hub import StorytellerHub

router = APIRouter()


@router.get("/health")
async def health(hub: StorytellerHub = Depends(get_hub)):
    """Health check."""
    return {
        "status": "ok",
        "provider": hub.providers.active_provider_name,
        "agents": len(hub.agents),
    }


@router.get("/settings")
async def get_settings(hub: StorytellerHub = Depends(get_hub)):
    """Effective settings. API keys are masked."""
    data = hub.settings.model_dump(mode="json")
    for section in ("claude", "openai"):
        if data["llm"][section]["api_key"]:
            data["llm"][section]["api_key"] = "***"
    return data

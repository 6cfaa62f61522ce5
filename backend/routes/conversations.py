"""Conversation history endpoints."""

from fastapi import APIRouter, Depends

from backend.deps import get_hub
from storyteller.hub import StorytellerHub

router = APIRouter()


@router.get("/agents/{agent_id}/conversations/{player_id}")
async def get_conversation(agent_id: str, player_id: str, hub: StorytellerHub = Depends(get_hub)):
    """History, exchange count and prompt summary for one agent/player pair."""
    store = hub.store
    return {
        "messages": [m.model_dump(mode="json") for m in store.get_history(agent_id, player_id)],
        "exchange_count": store.exchange_count(agent_id, player_id),
        "summary": store.build_summary(agent_id, player_id),
        "can_interact": store.can_interact(agent_id, player_id),
        "retry_after": store.time_until_can_interact(agent_id, player_id),
    }


@router.delete("/agents/{agent_id}/conversations/{player_id}")
async def clear_conversation(agent_id: str, player_id: str, hub: StorytellerHub = Depends(get_hub)):
    hub.store.clear_history(agent_id, player_id)
    return {"ok": True}


@router.delete("/agents/{agent_id}/conversations")
async def clear_agent_conversations(agent_id: str, hub: StorytellerHub = Depends(get_hub)):
    """Forget every conversation of an agent, including counters."""
    hub.store.clear_agent_history(agent_id)
    return {"ok": True}


@router.post("/conversations/save")
async def save_conversations(hub: StorytellerHub = Depends(get_hub)):
    return {"saved": hub.save_histories()}

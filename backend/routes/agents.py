"""Agent lifecycle, chat, story event and trigger endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from backend.deps import get_hub, require_agent
from storyteller.hub import StorytellerHub
from storyteller.models import Agent, Character, ExternalEvent
from storyteller.orchestrator import ChatStatus

from .models import ChatBody, EmitBody, MoveAgent, OpenConversation, SpawnAgent, StoryEventBody, TriggerBody

router = APIRouter()


def _agent_status(hub: StorytellerHub, agent: Agent) -> dict:
    session = hub.orchestrator.session(agent.id)
    emission = hub.emitter.get(agent.id)
    return {
        "id": agent.id,
        "name": agent.name,
        "character_id": agent.character.id,
        "position": list(agent.position),
        "busy": session.busy if session else False,
        "thinking": session.thinking if session else False,
        "in_conversation": session.in_conversation if session else False,
        "talking_to": session.talking_to if session else None,
        "emission": emission.model_dump() if emission else None,
    }


@router.get("/agents")
async def list_agents(hub: StorytellerHub = Depends(get_hub)):
    """List spawned agents with their conversation state."""
    return [_agent_status(hub, agent) for agent in hub.agents.values()]


@router.post("/agents", status_code=201)
async def spawn_agent(body: SpawnAgent, hub: StorytellerHub = Depends(get_hub)):
    """Spawn an agent (replaces any agent with the same id)."""
    agent = Agent(
        id=body.id,
        character=body.character or Character.default(),
        display_name=body.display_name,
        position=body.position,
    )
    hub.spawn(agent)
    return _agent_status(hub, agent)


@router.get("/agents/{agent_id}")
async def get_agent(agent_id: str, hub: StorytellerHub = Depends(get_hub)):
    return _agent_status(hub, require_agent(hub, agent_id))


@router.delete("/agents/{agent_id}")
async def despawn_agent(agent_id: str, hub: StorytellerHub = Depends(get_hub)):
    """Remove an agent and its bridge state. Conversation history is kept."""
    require_agent(hub, agent_id)
    hub.despawn(agent_id)
    return {"ok": True}


@router.put("/agents/{agent_id}/position")
async def move_agent(agent_id: str, body: MoveAgent, hub: StorytellerHub = Depends(get_hub)):
    require_agent(hub, agent_id)
    agent = hub.move(agent_id, body.position)
    return _agent_status(hub, agent)


@router.post("/agents/{agent_id}/conversation")
async def open_conversation(agent_id: str, body: OpenConversation, hub: StorytellerHub = Depends(get_hub)):
    """Start talking to an agent. Refused with a notice while rate limited."""
    require_agent(hub, agent_id)
    outcome = hub.open_conversation(agent_id, body.player, body.world)
    return outcome.model_dump()


@router.delete("/agents/{agent_id}/conversation")
async def end_conversation(agent_id: str, hub: StorytellerHub = Depends(get_hub)):
    require_agent(hub, agent_id)
    hub.end_conversation(agent_id)
    return {"ok": True}


@router.post("/agents/{agent_id}/chat")
async def chat(agent_id: str, body: ChatBody, hub: StorytellerHub = Depends(get_hub)):
    """Send one player message and wait for the agent's reply."""
    outcome = await hub.chat(agent_id, body.player, body.message, body.world)
    if outcome.status is ChatStatus.UNKNOWN_AGENT:
        raise HTTPException(404, f"Agent '{agent_id}' not found")
    result = outcome.model_dump()
    if outcome.status is ChatStatus.RATE_LIMITED:
        result["retry_after"] = hub.store.time_until_can_interact(agent_id, body.player.id)
    return result


@router.post("/agents/{agent_id}/events", status_code=202)
async def story_event(agent_id: str, body: StoryEventBody, hub: StorytellerHub = Depends(get_hub)):
    """Fire a story event: configured output signal plus webhook (in the background)."""
    require_agent(hub, agent_id)
    hub.trigger_story_event(agent_id, body.event, body.player, body.world, body.data)
    emission = hub.emitter.get(agent_id)
    return {"event": body.event.value, "emission": emission.model_dump() if emission else None}


@router.post("/agents/{agent_id}/trigger")
async def external_trigger(agent_id: str, body: TriggerBody, hub: StorytellerHub = Depends(get_hub)):
    """Deliver an external event; its context reaches the agent's next reply."""
    require_agent(hub, agent_id)
    announcement = hub.handle_external_event(agent_id, ExternalEvent(type=body.type, data=body.data))
    return {"ok": True, "announcement": announcement}


@router.post("/agents/{agent_id}/emit")
async def emit(agent_id: str, body: EmitBody, hub: StorytellerHub = Depends(get_hub)):
    """Start an output emission directly."""
    require_agent(hub, agent_id)
    emission = hub.emit_signal(agent_id, body.strength, body.duration, body.pattern)
    if emission is None:
        raise HTTPException(409, "Signal output is disabled")
    return emission.model_dump()

"""Request-scoped access to the hub owned by the running app."""

from fastapi import HTTPException, Request

from storyteller.hub import StorytellerHub
from storyteller.models import Agent


def get_hub(request: Request) -> StorytellerHub:
    return request.app.state.hub


def require_agent(hub: StorytellerHub, agent_id: str) -> Agent:
    agent = hub.agents.get(agent_id)
    if agent is None:
        raise HTTPException(404, f"Agent '{agent_id}' not found")
    return agent

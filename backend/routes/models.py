"""Pydantic request bodies for API endpoints."""

from typing import Any

from pydantic import BaseModel, Field

from storyteller.models import Character, ExternalEventType, Player, WebhookEvent
from storyteller.world import MAX_SIGNAL, Position, WorldSnapshot


class SpawnAgent(BaseModel):
    id: str
    character: Character | None = None
    display_name: str = ""
    position: Position = Position(0, 0, 0)


class MoveAgent(BaseModel):
    position: Position


class OpenConversation(BaseModel):
    player: Player
    world: WorldSnapshot | None = None


class ChatBody(BaseModel):
    player: Player
    message: str = Field(min_length=1)
    world: WorldSnapshot | None = None


class StoryEventBody(BaseModel):
    event: WebhookEvent
    player: Player | None = None
    world: WorldSnapshot | None = None
    data: dict[str, Any] = Field(default_factory=dict)


class TriggerBody(BaseModel):
    type: ExternalEventType = ExternalEventType.HTTP_TRIGGER
    data: dict[str, Any] = Field(default_factory=dict)


class EmitBody(BaseModel):
    strength: int = Field(default=MAX_SIGNAL, ge=0, le=MAX_SIGNAL)
    duration: int = Field(default=40, ge=1)
    pattern: str = "constant"


class SignalUpdate(BaseModel):
    position: Position
    strength: int = Field(ge=0, le=MAX_SIGNAL)


class SignalUpdates(BaseModel):
    updates: list[SignalUpdate]


class SwitchProvider(BaseModel):
    provider: str

"""Core domain models.

Conversation, orchestration and bridge code all operate on these types.
Pydantic is used for validation and serialisation at every data boundary:
character sheets arrive as JSON, chat messages are persisted as JSON and
HTTP bodies embed players and events.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from storyteller.world import Position


# ---------------------------------------------------------------------------
# Chat vocabulary shared by every provider
# ---------------------------------------------------------------------------

class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class ChatMessage(BaseModel):
    """One entry of a conversation. Immutable; order within a list is chronological."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str

    @classmethod
    def user(cls, content: str) -> ChatMessage:
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> ChatMessage:
        return cls(role=Role.ASSISTANT, content=content)


# ---------------------------------------------------------------------------
# Character sheet
# ---------------------------------------------------------------------------

class Personality(BaseModel):
    traits: list[str] = Field(default_factory=list)
    backstory: str = ""
    motivation: str = ""
    fears: list[str] = Field(default_factory=list)
    quirks: list[str] = Field(default_factory=list)


class HiddenAgenda(BaseModel):
    short_term_goal: str = ""
    long_term_goal: str = ""
    secret: str = ""
    reveal_conditions: list[str] = Field(default_factory=list)


class Behavior(BaseModel):
    greeting_style: str = "friendly"
    farewell_style: str = "warm"
    idle_actions: list[str] = Field(default_factory=list)


class SpeechStyle(BaseModel):
    vocabulary: str = "normal"
    sentence_length: str = "medium"
    common_phrases: list[str] = Field(default_factory=list)
    avoid_phrases: list[str] = Field(default_factory=list)


class ExternalTrigger(BaseModel):
    """How a character reacts to one kind of external event."""

    action: str = "speak"
    message: str = ""  # announced to nearby listeners
    mood_shift: str = ""
    inject_context: str = ""  # replaces the default context sentence
    reveal_level: int = 0


class StoryTrigger(BaseModel):
    """Output signal to emit when a story event fires."""

    emit_signal: bool = False
    signal_strength: int = Field(default=15, ge=0, le=15)
    signal_duration: int = Field(default=40, ge=1)  # ticks
    signal_pattern: str = "constant"


class Character(BaseModel):
    """A conversational persona. Loaded from the world's character files."""

    id: str
    name: str = "Storyteller"
    title: str = ""
    personality: Personality = Field(default_factory=Personality)
    hidden_agenda: HiddenAgenda = Field(default_factory=HiddenAgenda)
    behavior: Behavior = Field(default_factory=Behavior)
    speech_style: SpeechStyle = Field(default_factory=SpeechStyle)
    external_triggers: dict[str, ExternalTrigger] = Field(default_factory=dict)
    story_triggers: dict[str, StoryTrigger] = Field(default_factory=dict)

    @classmethod
    def default(cls) -> Character:
        return cls(
            id="eldric",
            name="Eldric",
            title="The Wandering Sage",
            personality=Personality(
                traits=["wise", "mysterious", "patient", "slightly mischievous"],
                backstory=(
                    "An ancient traveler who has wandered between worlds for centuries, "
                    "collecting stories and secrets."
                ),
                motivation=(
                    "To find worthy adventurers and guide them toward their destiny, "
                    "while searching for something lost long ago."
                ),
                fears=["being forgotten", "the void between worlds"],
                quirks=[
                    "Often speaks in riddles",
                    "Pauses dramatically before revealing important information",
                ],
            ),
            hidden_agenda=HiddenAgenda(
                short_term_goal="Gain the player's trust through helpful advice",
                long_term_goal="Guide players to find the fragments of an ancient artifact",
                secret="Is bound to this world by a curse and needs the artifact to break free",
                reveal_conditions=[
                    "After 20+ conversations with the same player",
                    "When the player mentions ancient artifacts",
                ],
            ),
            speech_style=SpeechStyle(
                vocabulary="archaic, poetic",
                sentence_length="varied, sometimes brief and cryptic, sometimes flowing",
                common_phrases=["Ah, young traveler...", "But that is a tale for another time..."],
                avoid_phrases=["As an AI", "I cannot", "In this game"],
            ),
        )


# ---------------------------------------------------------------------------
# Participants
# ---------------------------------------------------------------------------

class Player(BaseModel):
    id: str
    name: str


class Agent(BaseModel):
    """An NPC taking part in conversations and the signal bridge.

    `position` is updated by the world layer as the agent moves; the bridge
    reads it at scan time.
    """

    id: str
    character: Character
    position: Position = Position(0, 0, 0)
    display_name: str = ""

    @property
    def name(self) -> str:
        return self.display_name or self.character.name


# ---------------------------------------------------------------------------
# External events (world → agent)
# ---------------------------------------------------------------------------

class ExternalEventType(str, Enum):
    SIGNAL_ON = "signal_on"
    SIGNAL_OFF = "signal_off"
    SIGNAL_PULSE = "signal_pulse"
    HTTP_TRIGGER = "http_trigger"
    CUSTOM = "custom"


class ExternalEvent(BaseModel):
    type: ExternalEventType
    data: dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Story events (agent → outside world)
# ---------------------------------------------------------------------------

class WebhookEvent(str, Enum):
    CONVERSATION_STARTED = "conversation_started"
    SECRET_REVEALED = "secret_revealed"
    QUEST_STARTED = "quest_started"
    QUEST_COMPLETED = "quest_completed"
    MOOD_CHANGED = "mood_changed"
    DANGER_WARNING = "danger_warning"

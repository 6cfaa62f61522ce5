"""Tests for core models and world helpers."""

import pytest
from pydantic import ValidationError

from storyteller.models import Agent, Character, ChatMessage, Role, StoryTrigger, WebhookEvent
from storyteller.world import MemoryGrid, Position, WorldSnapshot, time_of_day


def test_chat_message_is_immutable():
    msg = ChatMessage.user("hi")
    with pytest.raises(ValidationError):
        msg.content = "changed"
    assert msg.role is Role.USER
    assert ChatMessage.assistant("yo").role is Role.ASSISTANT


def test_character_from_json():
    data = {
        "id": "mira",
        "name": "Mira",
        "personality": {"traits": ["curious"]},
        "external_triggers": {"signal_on": {"message": "The lights!"}},
        "story_triggers": {"quest_started": {"emit_signal": True, "signal_pattern": "fade"}},
    }
    character = Character.model_validate(data)
    assert character.personality.traits == ["curious"]
    assert character.external_triggers["signal_on"].message == "The lights!"
    trigger = character.story_triggers["quest_started"]
    assert trigger.emit_signal
    assert trigger.signal_strength == 15
    assert trigger.signal_duration == 40


def test_story_trigger_strength_bounds():
    with pytest.raises(ValidationError):
        StoryTrigger(signal_strength=16)


def test_default_character():
    character = Character.default()
    assert character.name == "Eldric"
    assert character.hidden_agenda.secret


def test_agent_name_prefers_display_name():
    agent = Agent(id="a1", character=Character.default())
    assert agent.name == "Eldric"
    assert Agent(id="a1", character=Character.default(), display_name="Old Man").name == "Old Man"


def test_agent_position_from_list():
    agent = Agent.model_validate({"id": "a1", "character": {"id": "c"}, "position": [1, 64, -3]})
    assert agent.position == Position(1, 64, -3)


def test_webhook_event_values():
    assert WebhookEvent.CONVERSATION_STARTED.value == "conversation_started"
    assert len(WebhookEvent) == 6


# ── world ────────────────────────────────────────────────────


@pytest.mark.parametrize("day_time, label", [
    (0, "morning"), (5999, "morning"), (6000, "day"), (11999, "day"),
    (12000, "evening"), (17999, "evening"), (18000, "night"), (23999, "night"), (30000, "day"),
])
def test_time_of_day(day_time, label):
    assert time_of_day(day_time) == label


@pytest.mark.parametrize("raining, thundering, weather", [
    (False, False, "clear"), (True, False, "rain"), (True, True, "thunder"),
])
def test_weather(raining, thundering, weather):
    assert WorldSnapshot(raining=raining, thundering=thundering).weather == weather


def test_world_payload():
    world = WorldSnapshot(dimension="the_nether", day_time=13000, raining=True)
    assert world.to_payload() == {"dimension": "the_nether", "time": "evening", "weather": "rain"}


def test_world_prompt_mentions_player_state():
    text = WorldSnapshot(player_name="Alex", player_health=4, player_underground=True,
                         main_hand_item="iron sword").to_prompt()
    assert "- Speaking with: Alex" in text
    assert "badly wounded" in text
    assert "deep underground" in text
    assert "- The player is holding: iron sword" in text


def test_memory_grid_clamps_and_clears():
    grid = MemoryGrid()
    pos = Position(1, 2, 3)
    assert grid.signal_at(pos) == 0
    grid.set_signal(pos, 99)
    assert grid.signal_at(pos) == 15
    grid.set_signal(pos, 0)
    assert grid.signal_at(pos) == 0


def test_position_helpers():
    assert Position(1, 2, 3).offset(-1, 0, 2) == Position(0, 2, 5)
    assert Position(1, 2, 3).short_string() == "1, 2, 3"

"""Narrow interfaces onto the simulated world.

The hub never owns world simulation. It consumes:

    SignalGrid     raw signal strength (0 to 15) at a grid position
    SignalOutput   receives the strength an agent is currently emitting
    WorldSnapshot  a plain description of the agent's surroundings,
                   supplied by the caller per request

MemoryGrid is a dict-backed SignalGrid used by the HTTP service (the world
layer pushes strengths to it) and by tests.
"""

from __future__ import annotations

from typing import NamedTuple, Protocol

from pydantic import BaseModel

MAX_SIGNAL = 15


class Position(NamedTuple):
    x: int
    y: int
    z: int

    def offset(self, dx: int, dy: int, dz: int) -> Position:
        return Position(self.x + dx, self.y + dy, self.z + dz)

    def short_string(self) -> str:
        return f"{self.x}, {self.y}, {self.z}"


class SignalGrid(Protocol):
    def signal_at(self, position: Position) -> int: ...


class SignalOutput(Protocol):
    def set_signal(self, agent_id: str, strength: int) -> None: ...


class MemoryGrid:
    """SignalGrid backed by a dict. Unset positions read as 0."""

    def __init__(self) -> None:
        self._signals: dict[Position, int] = {}

    def signal_at(self, position: Position) -> int:
        return self._signals.get(position, 0)

    def set_signal(self, position: Position, strength: int) -> None:
        strength = max(0, min(MAX_SIGNAL, strength))
        if strength:
            self._signals[position] = strength
        else:
            self._signals.pop(position, None)


class OutputLog:
    """SignalOutput that remembers the latest strength per agent."""

    def __init__(self) -> None:
        self.levels: dict[str, int] = {}

    def set_signal(self, agent_id: str, strength: int) -> None:
        self.levels[agent_id] = strength


# ---------------------------------------------------------------------------
# World snapshot
# ---------------------------------------------------------------------------

def time_of_day(day_time: int) -> str:
    """Coarse label used in webhook payloads."""
    day_time %= 24000
    if day_time < 6000:
        return "morning"
    if day_time < 12000:
        return "day"
    if day_time < 18000:
        return "evening"
    return "night"


def _prompt_time_of_day(day_time: int) -> str:
    day_time %= 24000
    for limit, label in (
        (1000, "dawn"),
        (6000, "morning"),
        (12000, "midday"),
        (13000, "afternoon"),
        (14000, "dusk"),
        (18000, "evening"),
        (22000, "night"),
    ):
        if day_time < limit:
            return label
    return "late night"


class WorldSnapshot(BaseModel):
    dimension: str = "overworld"
    biome: str = "plains"
    day_time: int = 6000
    raining: bool = False
    thundering: bool = False
    light_level: int = 15
    player_name: str | None = None
    player_health: int = 20
    player_hunger: int = 20
    player_underground: bool = False
    main_hand_item: str | None = None
    off_hand_item: str | None = None

    @property
    def weather(self) -> str:
        if self.thundering:
            return "thunder"
        return "rain" if self.raining else "clear"

    def to_payload(self) -> dict[str, str]:
        return {
            "dimension": self.dimension,
            "time": time_of_day(self.day_time),
            "weather": self.weather,
        }

    def to_prompt(self) -> str:
        weather = "thunderstorm" if self.thundering else self.weather
        lines = [
            f"- Location: {self.biome.replace('_', ' ')} biome in {self.dimension.replace('_', ' ')}",
            f"- Time: {_prompt_time_of_day(self.day_time)}",
            f"- Weather: {weather}",
        ]
        if self.light_level < 7:
            lines.append("- It is quite dark here")
        if self.player_name:
            lines.append(f"- Speaking with: {self.player_name}")
        if self.player_health <= 6:
            lines.append("- The player looks badly wounded")
        elif self.player_health <= 12:
            lines.append("- The player appears somewhat injured")
        if self.player_hunger <= 6:
            lines.append("- The player looks hungry")
        if self.player_underground:
            lines.append("- The player has come from deep underground")
        if self.main_hand_item:
            lines.append(f"- The player is holding: {self.main_hand_item}")
        if self.off_hand_item:
            lines.append(f"- In their off hand: {self.off_hand_item}")
        return "\n".join(lines)

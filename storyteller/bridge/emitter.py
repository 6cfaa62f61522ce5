"""Active output emissions, one per agent."""

from __future__ import annotations

import logging

from pydantic import BaseModel

from storyteller.bridge.patterns import strength_at
from storyteller.world import MAX_SIGNAL

logger = logging.getLogger(__name__)


class ActiveEmission(BaseModel):
    strength: int
    duration: int
    pattern: str
    started_tick: int

    def elapsed(self, tick: int) -> int:
        return tick - self.started_tick


class EmissionTracker:
    """Drives each agent's output strength from its active emission.

    Starting an emission replaces any emission the agent already has.
    """

    def __init__(self) -> None:
        self._active: dict[str, ActiveEmission] = {}

    def start(self, agent_id: str, strength: int, duration: int, pattern: str, tick: int) -> ActiveEmission:
        emission = ActiveEmission(
            strength=max(0, min(MAX_SIGNAL, strength)),
            duration=max(1, duration),
            pattern=pattern,
            started_tick=tick,
        )
        self._active[agent_id] = emission
        logger.debug(
            "Agent %s emitting signal: strength=%d, duration=%d, pattern=%s",
            agent_id, emission.strength, emission.duration, pattern,
        )
        return emission

    def get(self, agent_id: str) -> ActiveEmission | None:
        return self._active.get(agent_id)

    def advance(self, agent_id: str, tick: int) -> int | None:
        """Output strength for this tick, or None when the agent emits nothing.

        The tick on which an emission completes returns 0 and removes it, so
        the zero is reported exactly once.
        """
        emission = self._active.get(agent_id)
        if emission is None:
            return None
        elapsed = emission.elapsed(tick)
        if elapsed >= emission.duration:
            del self._active[agent_id]
            return 0
        return strength_at(emission.pattern, emission.strength, emission.duration, elapsed)

    def agents(self) -> list[str]:
        return list(self._active)

    def clear_agent(self, agent_id: str) -> None:
        self._active.pop(agent_id, None)

"""Edge detection over the signal grid around each agent."""

from __future__ import annotations

import logging

from storyteller.config import BridgeSettings
from storyteller.models import ExternalEvent, ExternalEventType
from storyteller.world import Position, SignalGrid

logger = logging.getLogger(__name__)


class SignalScanner:
    """Tracks the powered state of every position near every agent.

    The first observation of a position only records it. Afterwards a
    rising edge produces a signal_on event, subject to the per-agent
    cooldown, and a falling edge always produces a signal_off event. The new
    state is recorded whether or not the event was suppressed.
    """

    def __init__(self, settings: BridgeSettings) -> None:
        self._settings = settings
        self._states: dict[str, dict[Position, bool]] = {}
        self._last_activation: dict[str, int] = {}

    def scan(self, agent_id: str, center: Position, grid: SignalGrid, tick: int) -> list[ExternalEvent]:
        radius = self._settings.detection_radius
        states = self._states.setdefault(agent_id, {})
        events: list[ExternalEvent] = []

        for dx in range(-radius, radius + 1):
            for dy in range(-radius, radius + 1):
                for dz in range(-radius, radius + 1):
                    pos = center.offset(dx, dy, dz)
                    power = grid.signal_at(pos)
                    powered = power > 0
                    was_powered = states.get(pos)
                    states[pos] = powered

                    if was_powered is None or was_powered == powered:
                        continue
                    if powered:
                        if self._cooling_down(agent_id, tick):
                            logger.debug("Activation near %s at %s suppressed by cooldown", agent_id, pos)
                            continue
                        self._last_activation[agent_id] = tick
                        logger.debug("Signal activated near %s at %s (power: %d)", agent_id, pos, power)
                        events.append(ExternalEvent(
                            type=ExternalEventType.SIGNAL_ON,
                            data={"position": pos.short_string(), "power": power, "source": "signal_relay"},
                        ))
                    else:
                        logger.debug("Signal deactivated near %s at %s", agent_id, pos)
                        events.append(ExternalEvent(
                            type=ExternalEventType.SIGNAL_OFF,
                            data={"position": pos.short_string()},
                        ))
        return events

    def _cooling_down(self, agent_id: str, tick: int) -> bool:
        last = self._last_activation.get(agent_id)
        return last is not None and tick - last < self._settings.cooldown_ticks

    def known_state(self, agent_id: str, position: Position) -> bool | None:
        return self._states.get(agent_id, {}).get(position)

    def clear_agent(self, agent_id: str) -> None:
        self._states.pop(agent_id, None)
        self._last_activation.pop(agent_id, None)

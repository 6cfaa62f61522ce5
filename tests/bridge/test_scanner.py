"""Tests for SignalScanner edge detection."""

import pytest

from storyteller.bridge.scanner import SignalScanner
from storyteller.config import BridgeSettings
from storyteller.models import ExternalEventType
from storyteller.world import MemoryGrid, Position

ORIGIN = Position(0, 64, 0)
NEAR = Position(1, 65, -1)


@pytest.fixture
def scanner() -> SignalScanner:
    return SignalScanner(BridgeSettings(detection_radius=1, cooldown_ticks=40))


@pytest.fixture
def grid() -> MemoryGrid:
    return MemoryGrid()


def test_first_observation_is_silent(scanner, grid):
    grid.set_signal(NEAR, 15)
    assert scanner.scan("npc", ORIGIN, grid, tick=10) == []
    assert scanner.known_state("npc", NEAR) is True
    # still powered: no edge
    assert scanner.scan("npc", ORIGIN, grid, tick=20) == []


def test_on_then_off(scanner, grid):
    scanner.scan("npc", ORIGIN, grid, tick=10)
    grid.set_signal(NEAR, 7)
    events = scanner.scan("npc", ORIGIN, grid, tick=20)
    assert len(events) == 1
    assert events[0].type is ExternalEventType.SIGNAL_ON
    assert events[0].data == {"position": "1, 65, -1", "power": 7, "source": "signal_relay"}

    grid.set_signal(NEAR, 0)
    events = scanner.scan("npc", ORIGIN, grid, tick=30)
    assert [e.type for e in events] == [ExternalEventType.SIGNAL_OFF]
    assert events[0].data == {"position": "1, 65, -1"}


def test_activation_cooldown_is_recorded_anyway(scanner, grid):
    other = Position(-1, 64, 0)
    scanner.scan("npc", ORIGIN, grid, tick=10)
    grid.set_signal(NEAR, 15)
    assert len(scanner.scan("npc", ORIGIN, grid, tick=20)) == 1

    grid.set_signal(other, 15)
    assert scanner.scan("npc", ORIGIN, grid, tick=30) == []
    assert scanner.known_state("npc", other) is True
    # suppressed edge is not replayed later
    assert scanner.scan("npc", ORIGIN, grid, tick=70) == []


def test_deactivation_is_never_suppressed(scanner, grid):
    scanner.scan("npc", ORIGIN, grid, tick=10)
    grid.set_signal(NEAR, 15)
    scanner.scan("npc", ORIGIN, grid, tick=20)
    grid.set_signal(NEAR, 0)
    events = scanner.scan("npc", ORIGIN, grid, tick=21)
    assert [e.type for e in events] == [ExternalEventType.SIGNAL_OFF]


def test_activation_after_cooldown(scanner, grid):
    scanner.scan("npc", ORIGIN, grid, tick=10)
    grid.set_signal(NEAR, 15)
    scanner.scan("npc", ORIGIN, grid, tick=20)
    grid.set_signal(NEAR, 0)
    scanner.scan("npc", ORIGIN, grid, tick=30)
    grid.set_signal(NEAR, 15)
    events = scanner.scan("npc", ORIGIN, grid, tick=60)
    assert [e.type for e in events] == [ExternalEventType.SIGNAL_ON]


def test_positions_outside_radius_are_ignored(scanner, grid):
    scanner.scan("npc", ORIGIN, grid, tick=10)
    grid.set_signal(Position(2, 64, 0), 15)
    assert scanner.scan("npc", ORIGIN, grid, tick=20) == []


def test_agents_have_separate_state_and_cooldown(scanner, grid):
    scanner.scan("a", ORIGIN, grid, tick=10)
    scanner.scan("b", ORIGIN, grid, tick=10)
    grid.set_signal(NEAR, 15)
    assert len(scanner.scan("a", ORIGIN, grid, tick=20)) == 1
    assert len(scanner.scan("b", ORIGIN, grid, tick=20)) == 1


def test_clear_agent_forgets_state(scanner, grid):
    scanner.scan("npc", ORIGIN, grid, tick=10)
    scanner.clear_agent("npc")
    grid.set_signal(NEAR, 15)
    assert scanner.scan("npc", ORIGIN, grid, tick=20) == []
    assert scanner.known_state("npc", NEAR) is True

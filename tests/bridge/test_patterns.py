"""Tests for output signal patterns."""

import pytest

from storyteller.bridge.patterns import SOS_BITS, coded, constant, fade, get_pattern, pulsed, strength_at


def test_constant_until_duration():
    assert [constant(12, 5, t) for t in range(7)] == [12, 12, 12, 12, 12, 0, 0]


def test_fade_endpoints():
    assert fade(15, 40, 0) == 15
    assert fade(15, 40, 40) == 0
    assert fade(15, 40, 20) == 7


def test_fade_never_increases():
    values = [fade(15, 40, t) for t in range(41)]
    assert values == sorted(values, reverse=True)


def test_pulsed_three_pulses():
    # duration 30 -> period 10, on for the first 5 ticks of each period
    values = [pulsed(9, 30, t) for t in range(30)]
    assert values == ([9] * 5 + [0] * 5) * 3
    assert pulsed(9, 30, 30) == 0


def test_pulsed_short_duration_stays_on():
    assert [pulsed(9, 3, t) for t in range(3)] == [9, 9, 9]


def test_coded_four_ticks_per_bit_and_loops():
    duration = 1000
    for bit_index, bit in enumerate(SOS_BITS):
        for t in range(bit_index * 4, bit_index * 4 + 4):
            assert coded(15, duration, t) == (15 if bit else 0)
    loop_start = len(SOS_BITS) * 4
    assert coded(15, duration, loop_start) == coded(15, duration, 0)


@pytest.mark.parametrize("name", ["constant", "fade", "pulsed", "coded", "pulse_3x", "sos", "mystery"])
def test_every_pattern_ends_at_zero(name):
    assert strength_at(name, 15, 40, 40) == 0
    assert strength_at(name, 15, 40, 41) == 0


def test_aliases_and_unknown_names():
    assert get_pattern("pulse_3x") is pulsed
    assert get_pattern("SOS") is coded
    assert get_pattern("sparkle") is constant

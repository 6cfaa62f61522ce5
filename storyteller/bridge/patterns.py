"""Output signal patterns.

A pattern maps (base strength, total duration, elapsed ticks) to the
strength emitted on that tick. Every pattern is a pure function and reads
as 0 once `elapsed >= duration`.
"""

from __future__ import annotations

from collections.abc import Callable

Pattern = Callable[[int, int, int], int]

TICKS_PER_BIT = 4
# ... --- ...
SOS_BITS = (1, 0, 1, 0, 1, 0, 0, 1, 1, 0, 1, 1, 0, 1, 1, 0, 0, 1, 0, 1, 0, 1, 0, 0)


def constant(base: int, duration: int, elapsed: int) -> int:
    return base if elapsed < duration else 0


def fade(base: int, duration: int, elapsed: int) -> int:
    if elapsed >= duration:
        return 0
    return int(base * (1 - elapsed / duration))


def pulsed(base: int, duration: int, elapsed: int) -> int:
    """Three pulses: on for the first half of each third of the duration."""
    if elapsed >= duration:
        return 0
    period = max(1, duration // 3)
    half = max(1, period // 2)
    return base if elapsed % period < half else 0


def coded(base: int, duration: int, elapsed: int) -> int:
    if elapsed >= duration:
        return 0
    bit = SOS_BITS[(elapsed // TICKS_PER_BIT) % len(SOS_BITS)]
    return base if bit else 0


PATTERNS: dict[str, Pattern] = {
    "constant": constant,
    "fade": fade,
    "pulsed": pulsed,
    "pulse_3x": pulsed,
    "coded": coded,
    "sos": coded,
}


def get_pattern(name: str) -> Pattern:
    """Look up a pattern by name; unknown names behave as constant."""
    return PATTERNS.get(name.lower(), constant)


def strength_at(name: str, base: int, duration: int, elapsed: int) -> int:
    return get_pattern(name)(base, duration, elapsed)

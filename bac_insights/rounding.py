"""Small numeric helpers shared by the scoring modules.

Scores and percentages round half away from zero (0.5 -> 1, 2.5 -> 3),
not Python's banker's rounding.
"""

import math


def round_half_up(value: float) -> int:
    if value >= 0:
        return int(math.floor(value + 0.5))
    return -int(math.floor(-value + 0.5))


def clamp(value, min_value, max_value):
    return max(min_value, min(max_value, value))


def round_to_50(value: int) -> int:
    """Nearest multiple of 50 ml, never negative."""
    return max(0, round_half_up(value / 50.0) * 50)


def capped_percent(value: int) -> int:
    """Scenario percentages stay within 0..99 so nothing reads as certain."""
    return int(clamp(value, 0, 99))

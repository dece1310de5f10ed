"""Numeric helpers shared by the scoring stages."""

from __future__ import annotations

import math


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from negative infinity.

    Python's ``round`` uses banker's rounding, which would turn 2.5 into 2.
    """
    return int(math.floor(value + 0.5))


def round_to_quarter(hours: float) -> float:
    """Round hours to the nearest quarter hour."""
    return round_half_up(hours * 4) / 4


def clamp(value: float, lower: float, upper: float) -> float:
    """Clamp ``value`` into ``[lower, upper]``."""
    return min(max(value, lower), upper)


def percent(fraction: float) -> int:
    """Express a 0-1 fraction as a whole percentage."""
    return round_half_up(fraction * 100)


__all__ = ["round_half_up", "round_to_quarter", "clamp", "percent"]

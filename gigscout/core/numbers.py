from __future__ import annotations

import math


def round_half_up(x: float) -> int:
    """2.5 -> 3, -2.5 -> -2 (Python's round() would give 2 for 2.5)."""
    return int(math.floor(x + 0.5))


def clamp(x: float, lo: float, hi: float) -> float:
    return lo if x < lo else (hi if x > hi else x)


def round_to_nearest(x: float, step: int) -> int:
    if step <= 0:
        return round_half_up(x)
    return round_half_up(x / step) * step

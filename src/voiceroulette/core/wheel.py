"""Wheel geometry — sector layout, pointer lookup, and spin targets.

Angles follow canvas conventions: radians, 0 at three o'clock, increasing
clockwise. Member ``k`` of ``n`` owns the arc
``[rotation + k·a, rotation + (k+1)·a)`` with ``a = 2π / n``, in roster order.
The pointer is fixed at the top of the wheel (``-π/2``).
"""

from __future__ import annotations

import math

TAU = 2 * math.pi
POINTER_ANGLE = -math.pi / 2


def sector_angle(sector_count: int) -> float:
    """Angular width of one sector."""
    if sector_count < 1:
        raise ValueError("a wheel needs at least one sector")
    return TAU / sector_count


def sector_bounds(index: int, sector_count: int, rotation: float = 0.0) -> tuple[float, float]:
    """Start and end angle of sector ``index`` at ``rotation``."""
    width = sector_angle(sector_count)
    start = rotation + width * index
    return start, start + width


def pointer_offset(rotation: float) -> float:
    """Where the pointer sits on the wheel, measured from sector 0's start, in ``[0, 2π)``."""
    return (POINTER_ANGLE - rotation) % TAU


def sector_at(rotation: float, sector_count: int) -> int:
    """Index of the sector under the pointer."""
    width = sector_angle(sector_count)
    return min(int(pointer_offset(rotation) // width), sector_count - 1)


def target_rotation(
    current_rotation: float,
    target_index: int,
    sector_count: int,
    extra_turns: int,
) -> float:
    """Absolute rotation that lands the pointer on the midpoint of ``target_index``.

    Always ahead of ``current_rotation``: the wheel makes ``extra_turns`` full
    turns, then the smallest non-negative remainder to reach the midpoint.
    """
    if not 0 <= target_index < sector_count:
        raise ValueError(f"sector {target_index} out of range for {sector_count} sectors")
    width = sector_angle(sector_count)
    landing = (POINTER_ANGLE - width * target_index - width / 2) % TAU
    remainder = (landing - current_rotation) % TAU
    return current_rotation + extra_turns * TAU + remainder


def ease_out_cubic(progress: float) -> float:
    """Decelerating curve: fast start, gentle stop. ``0 → 0``, ``1 → 1``."""
    return 1 - (1 - progress) ** 3

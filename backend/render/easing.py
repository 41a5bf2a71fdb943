"""Piecewise-linear interpolation with easing, shared by every render planner."""
from __future__ import annotations

from typing import Callable, Literal, Sequence

Easing = Callable[[float], float]
Extrapolate = Literal["extend", "clamp"]


def linear(t: float) -> float:
    return t


def ease_out_cubic(t: float) -> float:
    return 1 - (1 - t) ** 3


def ease_in_cubic(t: float) -> float:
    return t ** 3


def interpolate(
    value: float,
    input_range: Sequence[float],
    output_range: Sequence[float],
    easing: Easing = linear,
    extrapolate_left: Extrapolate = "extend",
    extrapolate_right: Extrapolate = "extend",
) -> float:
    """Map ``value`` from ``input_range`` onto ``output_range``.

    Both ranges have the same length (>= 2) and ``input_range`` is strictly
    increasing. The segment containing ``value`` is picked, its local
    progress is eased, then mapped linearly. Outside the range the edge
    segment is either extended or clamped.
    """
    if len(input_range) != len(output_range) or len(input_range) < 2:
        raise ValueError("input_range and output_range must have the same length >= 2")

    seg = len(input_range) - 2
    for i in range(1, len(input_range) - 1):
        if value < input_range[i]:
            seg = i - 1
            break

    in_lo, in_hi = input_range[seg], input_range[seg + 1]
    out_lo, out_hi = output_range[seg], output_range[seg + 1]

    if value < in_lo and extrapolate_left == "clamp":
        return out_lo
    if value > in_hi and extrapolate_right == "clamp":
        return out_hi

    progress = (value - in_lo) / (in_hi - in_lo)
    progress = easing(progress)
    return out_lo + (out_hi - out_lo) * progress


def lerp(a: float, b: float, progress: float) -> float:
    return a + (b - a) * progress

"""World point helpers."""

from __future__ import annotations

import math
from typing import Iterable, Sequence, Tuple


Point = Tuple[float, float, float]


def distance(a: Sequence[float], b: Sequence[float]) -> float:
    """Return the straight-line distance between ``a`` and ``b``."""

    return math.dist(a, b)


def polyline_length(corners: Iterable[Sequence[float]]) -> float:
    """Return the summed length of the legs between consecutive ``corners``."""

    total = 0.0
    previous = None
    for corner in corners:
        if previous is not None:
            total += math.dist(previous, corner)
        previous = corner
    return total


def as_point(value: Sequence[float]) -> Point:
    """Normalise a 2D or 3D coordinate sequence into a hashable 3D ``Point``."""

    if len(value) == 2:
        return (float(value[0]), float(value[1]), 0.0)
    if len(value) != 3:
        raise ValueError(f"Expected 2 or 3 coordinates, got {len(value)}")
    return (float(value[0]), float(value[1]), float(value[2]))


__all__ = ["Point", "distance", "polyline_length", "as_point"]

"""Navigable route segments between two world points."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol, Sequence, Tuple

from ..core.geometry import Point, as_point, polyline_length

logger = logging.getLogger(__name__)

SegmentKey = Tuple[Point, Point]


class RouteStatus(Enum):
    COMPLETE = "complete"
    PARTIAL = "partial"
    INVALID = "invalid"


@dataclass(frozen=True)
class RouteResult:
    """Answer returned by a :class:`Navigator` for one route query."""

    status: RouteStatus
    corners: Tuple[Point, ...] = ()
    length: float | None = None


class Navigator(Protocol):
    """Compute a navigable corridor between two points."""

    def route_between(self, start: Point, end: Point) -> RouteResult: ...


@dataclass(frozen=True)
class PathSegment:
    """Directed corridor from ``start`` to ``end`` through ``corners``."""

    start: Point
    end: Point
    corners: Tuple[Point, ...]
    status: RouteStatus = RouteStatus.COMPLETE
    length: float | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "start", as_point(self.start))
        object.__setattr__(self, "end", as_point(self.end))
        object.__setattr__(self, "corners", tuple(as_point(c) for c in self.corners))
        if self.length is None:
            object.__setattr__(self, "length", polyline_length(self.corners))

    @property
    def key(self) -> SegmentKey:
        return (self.start, self.end)

    @property
    def is_complete(self) -> bool:
        return self.status is RouteStatus.COMPLETE

    @classmethod
    def from_route(cls, start: Sequence[float], end: Sequence[float], result: RouteResult) -> "PathSegment":
        return cls(start, end, tuple(result.corners), result.status, result.length)

    def append(self, other: "PathSegment") -> "PathSegment":
        """Return this segment followed by ``other``.

        ``other`` must start exactly where this segment ends. The shared joint
        corner appears once in the combined corner list.
        """

        if self.end != other.start:
            raise ValueError(f"Cannot append segment starting at {other.start} to one ending at {self.end}")

        tail = other.corners
        if self.corners and tail and tail[0] == self.corners[-1]:
            tail = tail[1:]
        status = RouteStatus.COMPLETE if self.is_complete and other.is_complete else RouteStatus.PARTIAL
        return PathSegment(
            self.start,
            other.end,
            self.corners + tail,
            status,
            (self.length or 0.0) + (other.length or 0.0),
        )

    def __str__(self) -> str:
        return f"{self.start} -> {self.end} ({self.status.value}, {self.length:.1f}m)"


def try_route(navigator: Navigator, start: Sequence[float], end: Sequence[float]) -> PathSegment:
    """Query ``navigator``; a failing query is reported as an invalid segment."""

    start_point = as_point(start)
    end_point = as_point(end)
    try:
        result = navigator.route_between(start_point, end_point)
    except Exception:  # navigation backend errors are treated as unreachable
        logger.exception("Route query from %s to %s failed", start_point, end_point)
        return PathSegment(start_point, end_point, (), RouteStatus.INVALID, 0.0)
    return PathSegment.from_route(start_point, end_point, result)


__all__ = [
    "RouteStatus",
    "RouteResult",
    "Navigator",
    "PathSegment",
    "SegmentKey",
    "try_route",
]

"""Per-agent route tracking with a static path fallback."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, List, Sequence, Tuple

from ..config import QuestingConfig
from ..core.events import STATIC_PATH_USED, append_event
from ..core.geometry import Point, as_point, distance
from ..core.time_manager import Clock
from .cache import PathSegmentCache
from .segments import Navigator, PathSegment, RouteStatus, try_route

logger = logging.getLogger(__name__)


class PathUpdateReason(Enum):
    NONE = "none"
    FORCE = "force"
    NEW_TARGET = "new_target"
    INCOMPLETE_PATH = "incomplete_path"


class AgentPath:
    """Current route of one agent towards its objective.

    When the direct route to the target is only partial, cached static paths
    ending at the target are tried in order of estimated total length. The
    first one whose start the agent can reach completely is stitched onto
    the route.
    """

    def __init__(
        self,
        agent_id: str,
        navigator: Navigator,
        cache: PathSegmentCache,
        clock: Clock,
        config: QuestingConfig,
        event_log: List[Dict[str, Any]] | None = None,
    ) -> None:
        self.agent_id = agent_id
        self.navigator = navigator
        self.cache = cache
        self.clock = clock
        self.config = config
        self.event_log = event_log

        self.target: Point | None = None
        self.reach_distance: float = 0.5
        self.start_position: Point | None = None
        self.corners: Tuple[Point, ...] = ()
        self.status: RouteStatus | None = None
        self.last_set_time: float | None = None
        self.static_path: PathSegment | None = None

    def check_if_update_needed(
        self,
        position: Sequence[float],
        target: Sequence[float],
        reach_distance: float = 0.5,
        force: bool = False,
    ) -> PathUpdateReason:
        """Recompute the route when needed and return why it was recomputed."""

        position = as_point(position)
        target = as_point(target)
        reason = PathUpdateReason.NONE

        if force:
            reason = PathUpdateReason.FORCE
        elif target != self.target or reach_distance != self.reach_distance:
            self.target = target
            self.reach_distance = reach_distance
            reason = PathUpdateReason.NEW_TARGET
        elif self.status is RouteStatus.INVALID:
            reason = PathUpdateReason.INCOMPLETE_PATH
        elif self.status is RouteStatus.PARTIAL:
            retry = self.config.pathing.incomplete_path_retry_interval
            if self.last_set_time is None or self.clock.now() - self.last_set_time > retry:
                reason = PathUpdateReason.INCOMPLETE_PATH

        if reason is not PathUpdateReason.NONE:
            self.target = target
            self._update_corners(position, target)
        return reason

    def distance_to_final_point(self, position: Sequence[float]) -> float:
        if not self.corners:
            return float("nan")
        return distance(as_point(position), self.corners[-1])

    @property
    def has_complete_path(self) -> bool:
        return self.status is RouteStatus.COMPLETE

    def _update_corners(self, position: Point, target: Point) -> None:
        self.start_position = position
        self.static_path = None

        segment = try_route(self.navigator, position, target)
        if segment.status is RouteStatus.PARTIAL:
            candidates = sorted(
                self.cache.lookup(target),
                key=lambda s: (s.length or 0.0) + distance(position, s.start),
            )
            for static_path in candidates:
                lead = try_route(self.navigator, position, static_path.start)
                if not lead.is_complete:
                    continue
                self._set(lead.append(static_path))
                self.static_path = static_path
                logger.info(
                    "Using static path from %s to %s for agent %s",
                    static_path.start,
                    static_path.end,
                    self.agent_id,
                )
                append_event(self.event_log, self.clock.now(), STATIC_PATH_USED, {
                    "agent": self.agent_id, "start": static_path.start, "end": static_path.end,
                })
                return

        self._set(segment)

    def _set(self, segment: PathSegment) -> None:
        self.corners = segment.corners
        self.status = segment.status
        self.last_set_time = self.clock.now()


__all__ = ["AgentPath", "PathUpdateReason"]

"""Discover static paths between quest waypoints and objectives."""

from __future__ import annotations

import logging
from typing import Dict

from ..core.geometry import Point
from ..core.jobs import TimeSlicedJob
from ..core.time_manager import Clock
from ..quests.graph import ObjectiveGraph
from ..quests.models import Quest
from .cache import PathSegmentCache
from .segments import Navigator, PathSegment, SegmentKey, try_route

logger = logging.getLogger(__name__)


class StaticPathDiscovery:
    """Per-session job that fills a :class:`PathSegmentCache`.

    For every quest with waypoints, routes are attempted between each ordered
    pair of distinct waypoints and from each waypoint to each valid
    objective's first step. Complete routes are combined into longer chains
    and merged into the cache. Only complete segments are ever cached, and
    keys already in the cache are reused instead of queried again, so the job
    can be rerun or resumed at any point.
    """

    def __init__(
        self,
        graph: ObjectiveGraph,
        cache: PathSegmentCache,
        navigator: Navigator,
        budget: float,
        clock: Clock | None = None,
    ) -> None:
        self.graph = graph
        self.cache = cache
        self.navigator = navigator
        self.misses: int = 0
        self._job = TimeSlicedJob(
            graph.quests,
            self.find_static_paths,
            budget,
            clock=clock,
            name="static path discovery",
            on_complete=self._log_done,
        )

    @property
    def done(self) -> bool:
        return self._job.done

    def step(self) -> bool:
        return self._job.step()

    def run_to_completion(self) -> None:
        self._job.run_to_completion()

    # ------------------------------------------------------------------
    # Per quest
    # ------------------------------------------------------------------
    def find_static_paths(self, quest: Quest) -> int:
        """Discover and cache paths for ``quest``; return how many were added."""

        waypoints = quest.waypoints
        if not waypoints:
            return 0

        found: Dict[SegmentKey, PathSegment] = {}
        for start in waypoints:
            for end in waypoints:
                if start == end:
                    continue
                self._attempt(quest, start, end, found)

        for objective in quest.valid_objectives:
            target = objective.first_step_position()
            if target is None:
                continue
            for waypoint in waypoints:
                if waypoint == target:
                    continue
                self._attempt(quest, waypoint, target, found)

        combined = PathSegmentCache.combine(found.values())
        added = self.cache.store_all(combined)
        logger.info("Cached %d static paths for quest %s", added, quest.name)
        return added

    def _attempt(
        self,
        quest: Quest,
        start: Point,
        end: Point,
        found: Dict[SegmentKey, PathSegment],
    ) -> None:
        key = (start, end)
        if key in found:
            return

        cached = self.cache.get(start, end)
        if cached is not None:
            found[key] = cached
            return

        segment = try_route(self.navigator, start, end)
        if segment.is_complete:
            logger.info("Found a static path from %s to %s for %s", start, end, quest)
            found[key] = segment
        else:
            self.misses += 1
            logger.warning(
                "Could not find a static path from %s to %s for %s (%s)",
                start,
                end,
                quest,
                segment.status.value,
            )

    def _log_done(self) -> None:
        logger.info(
            "Finding static paths...done. %d cached, %d misses", len(self.cache), self.misses
        )


__all__ = ["StaticPathDiscovery"]

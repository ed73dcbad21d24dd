"""Process-scoped container for the questing collaborators."""

from __future__ import annotations

import random
from typing import Any, Dict, List, Protocol

from ..assignment.ledger import AssignmentLedger
from ..assignment.selector import ObjectiveSelector
from ..config import CONFIG, QuestingConfig
from ..pathing.cache import PathSegmentCache
from ..pathing.segments import Navigator
from ..quests.graph import ObjectiveGraph
from ..quests.models import AgentSnapshot
from .time_manager import Clock, MonotonicClock


class WorldView(Protocol):
    """Read access to the host simulation."""

    def snapshot_of(self, agent_id: str) -> AgentSnapshot | None:
        """Return the agent's current attributes, or ``None`` if not ready."""
        ...


class QuestingContext:
    """Hold the graph, ledger, path cache and selector for one session.

    One context is built per session and handed to every component, then
    discarded with :meth:`close`.
    """

    def __init__(
        self,
        config: QuestingConfig | None = None,
        clock: Clock | None = None,
        rng: random.Random | None = None,
        navigator: Navigator | None = None,
        world: WorldView | None = None,
        event_log: List[Dict[str, Any]] | None = None,
    ) -> None:
        self.config: QuestingConfig = config if config is not None else CONFIG
        self.clock: Clock = clock if clock is not None else MonotonicClock()
        self.rng: random.Random = rng if rng is not None else random.Random()
        self.navigator = navigator
        self.world = world
        self.event_log = event_log

        self.graph = ObjectiveGraph()
        self.ledger = AssignmentLedger(self.clock, event_log)
        self.path_cache = PathSegmentCache()
        self.selector = ObjectiveSelector(
            self.graph, self.ledger, self.config, self.clock, self.rng
        )

    @property
    def session_time(self) -> float:
        return self.selector.session_time

    def close(self) -> None:
        """Tear down all session state."""

        self.graph.clear()
        self.ledger.clear()
        self.path_cache.clear()


__all__ = ["QuestingContext", "WorldView"]

"""Public entry points of the questing core."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Sequence

from .assignment.ledger import JobAssignment
from .core.context import QuestingContext
from .core.geometry import as_point
from .errors import InvariantError
from .pathing.discovery import StaticPathDiscovery
from .pathing.segments import PathSegment
from .quests.graph import GraphBuilder, QuestLoader, spawn_point_quest
from .quests.models import AgentSnapshot, Quest

logger = logging.getLogger(__name__)


class QuestingEngine:
    """Facade used by the host simulation and by agent controllers."""

    def __init__(self, context: QuestingContext) -> None:
        self.context = context

    # ------------------------------------------------------------------
    # Graph
    # ------------------------------------------------------------------
    def build_graph(self, loaders: Iterable[QuestLoader]) -> GraphBuilder:
        """Return a time-sliced job that loads quests and marks the graph built."""

        return GraphBuilder(
            self.context.graph,
            loaders,
            self.context.config.questing.max_calc_time_per_frame,
            clock=self.context.clock,
        )

    def notify_graph_built(self) -> None:
        self.context.graph.notify_built()

    def is_graph_built(self) -> bool:
        return self.context.graph.is_built

    def add_chaser_quest(self, position: Sequence[float], name: str = "Chaser") -> Quest | None:
        """Append a reactive quest sending agents to ``position``."""

        if not self.is_graph_built():
            logger.error("Chaser quest %s cannot be added before the quests are built", name)
            return None
        return self.context.graph.add_go_to_position_quest(
            position, name, self.context.config.chaser_quest, self.context.session_time
        )

    def add_spawn_point_quest(
        self, positions: Iterable[Sequence[float]], name: str = "Spawn Point Wander"
    ) -> Quest | None:
        """Add a quest with one objective per spawn position, if there are any."""

        quest = spawn_point_quest(positions, name, self.context.config.spawn_point_quest)
        if quest is None:
            logger.warning("No positions for quest %s", name)
            return None
        self.context.graph.add_quest(quest)
        logger.info("Added quest %s with %d objectives", name, quest.number_of_valid_objectives)
        return quest

    def write_quest_log(self, directory: str | Path | None = None) -> Path | None:
        """Dump the quest table as CSV when debugging is enabled."""

        debug = self.context.config.debug
        if not debug.enabled:
            return None
        folder = Path(directory if directory is not None else debug.quest_log_dir)
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return self.context.graph.write_quest_log(folder / f"quests_{stamp}.csv")

    # ------------------------------------------------------------------
    # Assignments
    # ------------------------------------------------------------------
    def select_next_objective(
        self,
        agent_id: str,
        position: Sequence[float],
        level: int = 0,
        category: str | None = None,
    ) -> JobAssignment | None:
        """Select and record a new assignment for ``agent_id``."""

        agent = AgentSnapshot(agent_id, as_point(position), level, category)
        return self.assign_next(agent)

    def assign_next(self, agent: AgentSnapshot) -> JobAssignment | None:
        current = self.context.ledger.open_assignment(agent.agent_id)
        if current is not None:
            raise InvariantError(f"Agent {agent.agent_id} still has an open assignment: {current}")
        selection = self.context.selector.select_next_objective(agent)
        if selection is None:
            return None
        quest, objective = selection
        return self.context.ledger.assign(agent.agent_id, quest, objective)

    def next_assignment(self, agent: AgentSnapshot) -> JobAssignment | None:
        """Return the agent's open assignment, creating one if needed.

        A completed step is followed by the next step of the same objective
        before a new objective is selected.
        """

        ledger = self.context.ledger
        current = ledger.open_assignment(agent.agent_id)
        if current is not None:
            return current
        if ledger.is_disabled(agent.agent_id):
            return None

        advanced = ledger.try_advance_step(agent.agent_id)
        if advanced is not None:
            return advanced
        assignment = self.assign_next(agent)
        if assignment is None:
            logger.warning("Could not get a job assignment for agent %s", agent.agent_id)
        return assignment

    def record_completion(self, assignment: JobAssignment) -> None:
        self.context.ledger.complete(assignment)

    def record_failure(self, assignment: JobAssignment) -> None:
        self.context.ledger.fail(assignment)

    def get_current_assignment(self, agent_id: str) -> JobAssignment | None:
        return self.context.ledger.open_assignment(agent_id)

    def disable_questing(self, agent_id: str) -> None:
        self.context.ledger.disable_agent(agent_id)

    # ------------------------------------------------------------------
    # Static paths
    # ------------------------------------------------------------------
    def discover_static_paths(self) -> StaticPathDiscovery:
        """Return a time-sliced discovery job over the quests in the graph."""

        if self.context.navigator is None:
            raise ValueError("A navigator is required to discover static paths")
        return StaticPathDiscovery(
            self.context.graph,
            self.context.path_cache,
            self.context.navigator,
            self.context.config.questing.max_calc_time_per_frame,
            clock=self.context.clock,
        )

    def find_static_paths(self, destination: Sequence[float]) -> List[PathSegment]:
        return self.context.path_cache.lookup(destination)


__all__ = ["QuestingEngine"]

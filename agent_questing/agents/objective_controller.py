"""Per-agent objective state machine."""

from __future__ import annotations

import logging
import math
from enum import Enum

from ..assignment.ledger import JobAssignment
from ..core.events import QUESTING_DISABLED, append_event
from ..core.geometry import Point, distance
from ..core.time_manager import RateLimiter, Stopwatch
from ..engine import QuestingEngine
from ..errors import InvariantError
from ..pathing.agent_path import AgentPath, PathUpdateReason
from ..quests.models import AgentSnapshot, QuestAction

logger = logging.getLogger(__name__)


class ControllerState(Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    QUESTING_DISABLED = "questing_disabled"
    QUESTING_ACTIVE = "questing_active"


class AgentObjectiveController:
    """Own one agent's current assignment and decide when to replace it.

    :meth:`update` is polled every tick. The expensive part, asking for a new
    assignment, is additionally limited to once per
    ``questing.selection_interval`` seconds.
    """

    def __init__(self, agent_id: str, engine: QuestingEngine) -> None:
        context = engine.context
        if context.world is None:
            raise ValueError("AgentObjectiveController requires a world view")

        self.agent_id = agent_id
        self.engine = engine
        self.context = context
        self.config = context.config
        self.clock = context.clock

        self.state: ControllerState = ControllerState.UNINITIALIZED
        self.assignment: JobAssignment | None = None
        self.no_objective_count: int = 0

        self._snapshot: AgentSnapshot | None = None
        self._time_at_objective = Stopwatch(self.clock)
        self._since_initialization = Stopwatch(self.clock)
        self._selection_limiter = RateLimiter(self.clock, self.config.questing.selection_interval)

        self.path: AgentPath | None = None
        if context.navigator is not None:
            self.path = AgentPath(
                agent_id, context.navigator, context.path_cache, self.clock, self.config, context.event_log
            )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    @property
    def is_initialized(self) -> bool:
        return self.state in (ControllerState.QUESTING_ACTIVE, ControllerState.QUESTING_DISABLED)

    @property
    def is_questing_allowed(self) -> bool:
        return self.state is ControllerState.QUESTING_ACTIVE

    @property
    def is_job_assignment_active(self) -> bool:
        return self.assignment is not None and self.assignment.is_active

    @property
    def position(self) -> Point | None:
        return self.assignment.position if self.assignment is not None else None

    @property
    def current_action(self) -> QuestAction:
        if self.assignment is None or self.assignment.step is None:
            return QuestAction.UNDEFINED
        return self.assignment.step.action

    @property
    def consecutive_failures(self) -> int:
        """Failed assignments at the end of the agent's history, however recorded."""

        return self.context.ledger.consecutive_failures(self.agent_id)

    @property
    def time_at_objective(self) -> float:
        return self._time_at_objective.elapsed

    @property
    def time_since_initialization(self) -> float:
        return self._since_initialization.elapsed

    @property
    def distance_to_objective(self) -> float:
        target = self.position
        if target is None or self._snapshot is None:
            return math.nan
        return distance(self._snapshot.position, target)

    def is_close_to_objective(self, max_distance: float | None = None) -> bool:
        if max_distance is None:
            max_distance = self.config.search_distances.objective_reached_ideal
        return self.distance_to_objective <= max_distance

    def can_sprint_to_objective(self) -> bool:
        if self.assignment is None:
            return True

        if self.distance_to_objective < self.assignment.objective.max_run_distance:
            return False

        quest = self.assignment.quest
        if (
            not quest.can_run_between_objectives
            and self.context.ledger.last_objective_ending_time(self.agent_id, quest) is not None
        ):
            return False

        return True

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------
    def update(self) -> None:
        if self.state is ControllerState.QUESTING_DISABLED:
            return

        self._snapshot = self.context.world.snapshot_of(self.agent_id)

        if self.state is ControllerState.UNINITIALIZED:
            if self._snapshot is None:
                return
            self.state = ControllerState.INITIALIZING

        if self.state is ControllerState.INITIALIZING:
            self._initialize()
            return

        if self._snapshot is None:
            return

        if self.is_close_to_objective():
            self._time_at_objective.start()
        else:
            self._time_at_objective.reset()

        # Don't run objective selection on every tick
        if not self._selection_limiter.ready():
            return

        now = self.clock.now()
        cooldown = self.config.questing.assignment_end_cooldown
        if self.assignment is None or self.assignment.has_waited_long_enough_after_ending(now, cooldown):
            if self.consecutive_failures >= self.config.stuck_detection.max_count:
                logger.warning(
                    "Agent %s has failed too many consecutive assignments and is no longer allowed to quest.",
                    self.agent_id,
                )
                self.stop_questing()
                return
            self._fetch_assignment()

    def _initialize(self) -> None:
        snapshot = self._snapshot
        if snapshot is None:
            return

        if snapshot.category is None:
            logger.error("Could not determine category for agent %s", self.agent_id)
            self.stop_questing()
            return

        if not self.config.allowed_categories.get(snapshot.category.lower(), False):
            logger.info("Agent %s of category %s may not quest", self.agent_id, snapshot.category)
            self.stop_questing()
            return

        if not self.engine.is_graph_built():
            return

        self.state = ControllerState.QUESTING_ACTIVE
        self._since_initialization.start()
        logger.info("Setting objective for %s agent %s...", snapshot.category, self.agent_id)
        self._fetch_assignment()

    def _fetch_assignment(self) -> None:
        assignment = self.engine.next_assignment(self._snapshot)
        self._take(assignment)

    def _take(self, assignment: JobAssignment | None) -> None:
        if assignment is None:
            self.no_objective_count += 1
            if self.no_objective_count >= self.config.stuck_detection.max_no_objective_count:
                logger.warning("Agent %s cannot find any valid objective", self.agent_id)
                self.stop_questing()
        else:
            self.no_objective_count = 0
            if assignment is not self.assignment:
                self._time_at_objective.reset()
        self.assignment = assignment

    # ------------------------------------------------------------------
    # Assignment lifecycle
    # ------------------------------------------------------------------
    def start_job_assignment(self) -> None:
        self._require_assignment().start(self.clock.now())

    def complete_objective(self) -> None:
        self.engine.record_completion(self._require_assignment())

    def fail_objective(self) -> None:
        self.engine.record_failure(self._require_assignment())
        self.try_change_objective()

    def try_change_objective(self) -> bool:
        """Switch to a new objective unless the last switch was too recent."""

        since = self._time_since_last_switch()
        if since is not None and since < self.config.questing.min_time_between_switching_objectives:
            return False

        if self._snapshot is None:
            self._snapshot = self.context.world.snapshot_of(self.agent_id)
            if self._snapshot is None:
                return False

        # An abandoned assignment is closed as failed
        if self.assignment is not None and self.assignment.is_open:
            self.engine.record_failure(self.assignment)

        assignment = self.engine.assign_next(self._snapshot)
        self._take(assignment)
        return assignment is not None

    def stop_questing(self) -> None:
        if self.state is ControllerState.QUESTING_DISABLED:
            return
        self.state = ControllerState.QUESTING_DISABLED
        self.engine.disable_questing(self.agent_id)
        append_event(self.context.event_log, self.clock.now(), QUESTING_DISABLED, {"agent": self.agent_id})
        logger.info("Agent %s is no longer allowed to quest.", self.agent_id)

    def _time_since_last_switch(self) -> float | None:
        if self.assignment is None:
            return None
        last = self.assignment.created_time
        if self.assignment.ending_time is not None:
            last = max(last, self.assignment.ending_time)
        return self.clock.now() - last

    def _require_assignment(self) -> JobAssignment:
        if self.assignment is None:
            raise InvariantError(f"Agent {self.agent_id} has no assignment")
        return self.assignment

    # ------------------------------------------------------------------
    # Routing
    # ------------------------------------------------------------------
    def update_path(self, force: bool = False) -> PathUpdateReason:
        """Refresh the route towards the current objective."""

        if self.path is None or self._snapshot is None or self.position is None:
            return PathUpdateReason.NONE
        reason = self.path.check_if_update_needed(
            self._snapshot.position,
            self.position,
            self.config.search_distances.objective_reached_ideal,
            force=force,
        )
        if self.assignment is not None:
            self.assignment.has_complete_path = self.path.has_complete_path
        return reason

    def report_incomplete_path(self) -> None:
        self._require_assignment().has_complete_path = False

    def __str__(self) -> str:
        if self.assignment is not None:
            return f"{self.assignment.objective} for quest {self.assignment.quest.name}"
        return f"Position {self.position or '???'}"


__all__ = ["AgentObjectiveController", "ControllerState"]

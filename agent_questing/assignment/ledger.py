"""Per-agent history of job assignments."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Set

from ..core.events import (
    ASSIGNMENT_COMPLETED,
    ASSIGNMENT_FAILED,
    ASSIGNMENT_STARTED,
    append_event,
)
from ..core.geometry import Point
from ..core.time_manager import Clock
from ..errors import InvariantError
from ..quests.models import Objective, Quest, Step

logger = logging.getLogger(__name__)


class AssignmentStatus(Enum):
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_open(self) -> bool:
        return self in (AssignmentStatus.PENDING, AssignmentStatus.ACTIVE)


@dataclass(eq=False)
class JobAssignment:
    """Binding of one agent to a (quest, objective, step) attempt."""

    agent_id: str
    quest: Quest
    objective: Objective
    step: Step | None
    created_time: float
    status: AssignmentStatus = AssignmentStatus.PENDING
    start_time: float | None = None
    ending_time: float | None = None
    has_complete_path: bool = field(default=True, repr=False)

    @property
    def position(self) -> Point | None:
        return self.step.position if self.step is not None else None

    @property
    def is_open(self) -> bool:
        return self.status.is_open

    @property
    def is_active(self) -> bool:
        return self.status is AssignmentStatus.ACTIVE

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self, now: float) -> None:
        if self.status is AssignmentStatus.ACTIVE:
            return
        if self.status is not AssignmentStatus.PENDING:
            raise InvariantError(f"Cannot start {self.status.value} assignment: {self}")
        self.status = AssignmentStatus.ACTIVE
        self.start_time = now

    def complete(self, now: float) -> None:
        self._end(AssignmentStatus.COMPLETED, now)

    def fail(self, now: float) -> None:
        self._end(AssignmentStatus.FAILED, now)

    def _end(self, status: AssignmentStatus, now: float) -> None:
        if not self.status.is_open:
            raise InvariantError(f"Cannot mark {self.status.value} assignment as {status.value}: {self}")
        if self.start_time is None:
            self.start_time = now
        self.status = status
        self.ending_time = now

    # ------------------------------------------------------------------
    # Timing
    # ------------------------------------------------------------------
    def time_since_ended(self, now: float) -> float | None:
        if self.ending_time is None:
            return None
        return now - self.ending_time

    def has_waited_long_enough_after_ending(self, now: float, cooldown: float) -> bool:
        elapsed = self.time_since_ended(now)
        return elapsed is not None and elapsed >= cooldown

    def __str__(self) -> str:
        step = str(self.step.step_number) if self.step and self.step.step_number else "???"
        return f"Step #{step} for objective {self.objective} in quest {self.quest.name}"


class AssignmentLedger:
    """Append-only assignment lists keyed by agent id.

    At most one assignment per agent is open (pending or active); every
    earlier entry is completed or failed.
    """

    def __init__(self, clock: Clock, event_log: List[Dict[str, Any]] | None = None) -> None:
        self.clock = clock
        self.event_log = event_log
        self._assignments: Dict[str, List[JobAssignment]] = {}
        self._disabled: Set[str] = set()
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------
    def assign(
        self,
        agent_id: str,
        quest: Quest,
        objective: Objective,
        step: Step | None = None,
    ) -> JobAssignment:
        """Append a new pending assignment for ``agent_id``."""

        _require_agent(agent_id)
        _require_quest(quest)
        if objective is None:
            raise InvariantError("objective must not be None")
        if step is None:
            step = objective.first_step()

        with self._lock:
            history = self._assignments.setdefault(agent_id, [])
            if history and history[-1].is_open:
                raise InvariantError(
                    f"Agent {agent_id} still has an open assignment: {history[-1]}"
                )
            assignment = JobAssignment(agent_id, quest, objective, step, self.clock.now())
            history.append(assignment)

        logger.info("Agent %s is now doing %s", agent_id, assignment)
        append_event(self.event_log, assignment.created_time, ASSIGNMENT_STARTED, {
            "agent": agent_id, "quest": quest.name, "objective": str(objective),
        })
        return assignment

    def complete(self, assignment: JobAssignment) -> None:
        now = self.clock.now()
        with self._lock:
            assignment.complete(now)
        append_event(self.event_log, now, ASSIGNMENT_COMPLETED, {
            "agent": assignment.agent_id, "quest": assignment.quest.name,
            "objective": str(assignment.objective),
        })

    def fail(self, assignment: JobAssignment) -> None:
        now = self.clock.now()
        with self._lock:
            assignment.fail(now)
        append_event(self.event_log, now, ASSIGNMENT_FAILED, {
            "agent": assignment.agent_id, "quest": assignment.quest.name,
            "objective": str(assignment.objective),
        })

    def try_advance_step(self, agent_id: str) -> JobAssignment | None:
        """Assign the next step of the agent's last completed objective, if any."""

        last = self.current(agent_id)
        if last is None or last.status is not AssignmentStatus.COMPLETED or last.step is None:
            return None
        next_step = last.objective.next_step(last.step)
        if next_step is None:
            return None
        return self.assign(agent_id, last.quest, last.objective, next_step)

    # ------------------------------------------------------------------
    # Agent queries
    # ------------------------------------------------------------------
    def history(self, agent_id: str) -> List[JobAssignment]:
        _require_agent(agent_id)
        with self._lock:
            return list(self._assignments.get(agent_id, ()))

    def has_history(self, agent_id: str) -> bool:
        return bool(self._assignments.get(agent_id))

    def current(self, agent_id: str) -> JobAssignment | None:
        """Return the agent's latest assignment, open or not."""

        _require_agent(agent_id)
        with self._lock:
            history = self._assignments.get(agent_id)
            return history[-1] if history else None

    def open_assignment(self, agent_id: str) -> JobAssignment | None:
        last = self.current(agent_id)
        return last if last is not None and last.is_open else None

    def last_ending_time(self, agent_id: str) -> float | None:
        for assignment in reversed(self.history(agent_id)):
            if assignment.ending_time is not None:
                return assignment.ending_time
        return None

    def consecutive_failures(self, agent_id: str) -> int:
        count = 0
        for assignment in reversed(self.history(agent_id)):
            if assignment.is_open:
                continue
            if assignment.status is not AssignmentStatus.FAILED:
                break
            count += 1
        return count

    # ------------------------------------------------------------------
    # Quest queries
    # ------------------------------------------------------------------
    def remaining_objectives(self, agent_id: str, quest: Quest) -> List[Objective]:
        """Return valid objectives of ``quest`` never assigned to ``agent_id``."""

        _require_agent(agent_id)
        _require_quest(quest)
        assigned = {id(a.objective) for a in self.history(agent_id) if a.quest is quest}
        return [o for o in quest.valid_objectives if id(o) not in assigned]

    def last_objective_ending_time(self, agent_id: str, quest: Quest) -> float | None:
        """Return when the agent's most recent ended assignment under ``quest`` ended."""

        _require_quest(quest)
        for assignment in reversed(self.history(agent_id)):
            if assignment.quest is quest and assignment.ending_time is not None:
                return assignment.ending_time
        return None

    def time_since_last_objective_ended(self, agent_id: str, quest: Quest) -> float | None:
        ended = self.last_objective_ending_time(agent_id, quest)
        if ended is None:
            return None
        return self.clock.now() - ended

    def current_run_first_ending_time(self, agent_id: str, quest: Quest) -> float | None:
        """Return the first ending time in the agent's trailing run under ``quest``.

        The run is the unbroken sequence of latest assignments that all belong
        to ``quest``. ``None`` means the agent is not currently on the quest or
        nothing in the run has ended yet.
        """

        _require_quest(quest)
        first: float | None = None
        for assignment in reversed(self.history(agent_id)):
            if assignment.quest is not quest:
                break
            if assignment.ending_time is not None:
                first = assignment.ending_time
        return first

    def number_of_active_agents(self, quest: Quest) -> int:
        _require_quest(quest)
        with self._lock:
            return sum(
                1
                for history in self._assignments.values()
                if history and history[-1].is_open and history[-1].quest is quest
            )

    def number_of_active_agents_for_objective(self, objective: Objective) -> int:
        with self._lock:
            return sum(
                1
                for history in self._assignments.values()
                if history and history[-1].is_open and history[-1].objective is objective
            )

    def can_more_agents_do_quest(self, quest: Quest) -> bool:
        return self.number_of_active_agents(quest) < quest.max_agents

    # ------------------------------------------------------------------
    # Questing flags
    # ------------------------------------------------------------------
    def disable_agent(self, agent_id: str) -> None:
        _require_agent(agent_id)
        self._disabled.add(agent_id)

    def is_disabled(self, agent_id: str) -> bool:
        return agent_id in self._disabled

    def remove_agent(self, agent_id: str) -> None:
        """Forget everything about an agent that left the simulation."""

        with self._lock:
            self._assignments.pop(agent_id, None)
            self._disabled.discard(agent_id)

    def clear(self) -> None:
        with self._lock:
            self._assignments.clear()
            self._disabled.clear()

    @property
    def agent_ids(self) -> List[str]:
        with self._lock:
            return list(self._assignments.keys())


def _require_agent(agent_id: str | None) -> None:
    if agent_id is None:
        raise InvariantError("agent id must not be None")


def _require_quest(quest: Quest | None) -> None:
    if quest is None:
        raise InvariantError("quest must not be None")


__all__ = ["AssignmentStatus", "JobAssignment", "AssignmentLedger"]

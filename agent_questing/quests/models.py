"""Quest, objective and step data model."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, List, Optional, Sequence, Tuple

from ..config import QuestSettings
from ..core.geometry import Point, as_point


class QuestAction(Enum):
    """Action an agent performs once it reaches a step position."""

    UNDEFINED = "undefined"
    MOVE_TO_POSITION = "move_to_position"
    HOLD_AT_POSITION = "hold_at_position"
    PLANT_ITEM = "plant_item"


class LootAfterCompleting(Enum):
    DEFAULT = "default"
    FORCE = "force"
    INHIBIT = "inhibit"


@dataclass
class AgentSnapshot:
    """Attributes of an agent at the moment a decision is made."""

    agent_id: str
    position: Point
    level: int = 0
    category: str | None = None


@dataclass(eq=False)
class Step:
    """Single action at a world position."""

    position: Optional[Point]
    action: QuestAction = QuestAction.MOVE_TO_POSITION
    duration: Optional[Tuple[float, float]] = None
    chance_of_having_key: float = 0.0
    step_number: int | None = None

    def __post_init__(self) -> None:
        if self.position is not None:
            self.position = as_point(self.position)
        if self.duration is not None and self.duration[0] > self.duration[1]:
            raise ValueError(f"Invalid duration range {self.duration}")

    @property
    def is_valid(self) -> bool:
        return self.position is not None

    def __str__(self) -> str:
        number = "???" if self.step_number is None else str(self.step_number)
        return f"Step #{number} ({self.action.value})"


@dataclass(eq=False)
class Objective:
    """Ordered steps forming one unit of work inside a quest.

    Eligibility fields left as ``None`` defer to the owning quest.
    """

    name: str = ""
    steps: List[Step] = field(default_factory=list)
    loot_after_completing: LootAfterCompleting = LootAfterCompleting.DEFAULT
    min_level: int | None = None
    max_level: int | None = None
    allowed_categories: FrozenSet[str] | None = None
    max_agents: int | None = None
    max_run_distance: float = 10.0
    quest: Optional["Quest"] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        steps, self.steps = self.steps, []
        for step in steps:
            self.add_step(step)

    @classmethod
    def at_position(cls, position: Sequence[float], name: str = "") -> "Objective":
        return cls(name=name, steps=[Step(as_point(position))])

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------
    def add_step(self, step: Step) -> None:
        """Append ``step``; steps are never reordered once added."""

        step.step_number = len(self.steps) + 1
        self.steps.append(step)

    @property
    def step_count(self) -> int:
        return len(self.steps)

    @property
    def valid_steps(self) -> List[Step]:
        return [s for s in self.steps if s.is_valid]

    @property
    def is_valid(self) -> bool:
        return any(s.is_valid for s in self.steps)

    def first_step(self) -> Step | None:
        """Return the first step with a position."""

        for step in self.steps:
            if step.is_valid:
                return step
        return None

    def first_step_position(self) -> Point | None:
        step = self.first_step()
        return step.position if step is not None else None

    def next_step(self, step: Step) -> Step | None:
        """Return the next step with a position after ``step``, if any."""

        try:
            index = self.steps.index(step)
        except ValueError:
            return None
        for candidate in self.steps[index + 1:]:
            if candidate.is_valid:
                return candidate
        return None

    def __str__(self) -> str:
        return self.name or f"Objective at {self.first_step_position()}"


@dataclass(eq=False)
class Quest:
    """Named group of objectives with priority and repeatability rules."""

    name: str
    quest_id: str | None = None
    priority: int = 0
    chance_for_selecting: float = 50.0
    is_repeatable: bool = False
    max_agents: int = 2
    min_level: int = 0
    max_level: int = 99
    allowed_categories: FrozenSet[str] | None = None
    can_run_between_objectives: bool = True
    min_session_time: float | None = None
    max_session_time: float | None = None
    waypoints: List[Point] = field(default_factory=list)
    objectives: List[Objective] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.quest_id is None:
            self.quest_id = self.name
        self.waypoints = [as_point(w) for w in self.waypoints]
        objectives, self.objectives = self.objectives, []
        for objective in objectives:
            self.add_objective(objective)

    # ------------------------------------------------------------------
    # Objectives
    # ------------------------------------------------------------------
    def add_objective(self, objective: Objective) -> None:
        objective.quest = self
        self.objectives.append(objective)

    @property
    def valid_objectives(self) -> List[Objective]:
        return [o for o in self.objectives if o.is_valid]

    @property
    def number_of_valid_objectives(self) -> int:
        return len(self.valid_objectives)

    def apply_settings(self, settings: QuestSettings, session_time: float | None = None) -> None:
        """Copy generated-quest ``settings`` onto this quest and its objectives."""

        self.priority = settings.priority
        self.chance_for_selecting = settings.chance
        self.max_agents = settings.max_agents
        self.is_repeatable = settings.repeatable
        self.min_level = settings.min_level
        self.max_level = settings.max_level
        self.can_run_between_objectives = settings.can_run_between_objectives
        if settings.interest_time is not None and session_time is not None:
            self.max_session_time = session_time + settings.interest_time
        for objective in self.objectives:
            objective.max_run_distance = settings.max_run_distance

    def __str__(self) -> str:
        return self.name


__all__ = [
    "QuestAction",
    "LootAfterCompleting",
    "AgentSnapshot",
    "Step",
    "Objective",
    "Quest",
]

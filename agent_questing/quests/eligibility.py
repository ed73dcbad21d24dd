"""Eligibility predicates for quests and objectives.

Each predicate is a plain function taking the agent snapshot, the quest or
objective, and the current session time. It returns an :class:`Eligibility`
which is truthy when the check passes and otherwise carries a short reason
code for diagnostics.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Sequence

from .models import AgentSnapshot, Objective, Quest


@dataclass(frozen=True, slots=True)
class Eligibility:
    ok: bool
    reason: str | None = None

    def __bool__(self) -> bool:
        return self.ok


ELIGIBLE = Eligibility(True)

QuestPredicate = Callable[[AgentSnapshot, Quest, float], Eligibility]
ObjectivePredicate = Callable[[AgentSnapshot, Objective, float], Eligibility]


def _level_in_range(level: int, min_level: int, max_level: int) -> Eligibility:
    if level < min_level:
        return Eligibility(False, "level_too_low")
    if level > max_level:
        return Eligibility(False, "level_too_high")
    return ELIGIBLE


def _category_allowed(category: str | None, allowed: Iterable[str] | None) -> Eligibility:
    if allowed is None:
        return ELIGIBLE
    if category is None:
        return Eligibility(False, "category_undetermined")
    if category.lower() not in {a.lower() for a in allowed}:
        return Eligibility(False, "category_not_allowed")
    return ELIGIBLE


# ----------------------------------------------------------------------
# Quest predicates
# ----------------------------------------------------------------------
def quest_has_valid_objectives(agent: AgentSnapshot, quest: Quest, session_time: float) -> Eligibility:
    if quest.number_of_valid_objectives == 0:
        return Eligibility(False, "no_valid_objectives")
    return ELIGIBLE


def quest_level_in_range(agent: AgentSnapshot, quest: Quest, session_time: float) -> Eligibility:
    return _level_in_range(agent.level, quest.min_level, quest.max_level)


def quest_category_allowed(agent: AgentSnapshot, quest: Quest, session_time: float) -> Eligibility:
    return _category_allowed(agent.category, quest.allowed_categories)


def quest_in_session_window(agent: AgentSnapshot, quest: Quest, session_time: float) -> Eligibility:
    if quest.min_session_time is not None and session_time < quest.min_session_time:
        return Eligibility(False, "too_early")
    if quest.max_session_time is not None and session_time > quest.max_session_time:
        return Eligibility(False, "expired")
    return ELIGIBLE


QUEST_PREDICATES: Sequence[QuestPredicate] = (
    quest_has_valid_objectives,
    quest_level_in_range,
    quest_category_allowed,
    quest_in_session_window,
)


# ----------------------------------------------------------------------
# Objective predicates
# ----------------------------------------------------------------------
def objective_has_valid_steps(agent: AgentSnapshot, objective: Objective, session_time: float) -> Eligibility:
    if not objective.is_valid:
        return Eligibility(False, "no_valid_steps")
    return ELIGIBLE


def objective_level_in_range(agent: AgentSnapshot, objective: Objective, session_time: float) -> Eligibility:
    quest = objective.quest
    min_level = objective.min_level
    max_level = objective.max_level
    if min_level is None:
        min_level = quest.min_level if quest is not None else 0
    if max_level is None:
        max_level = quest.max_level if quest is not None else max(agent.level, 0)
    return _level_in_range(agent.level, min_level, max_level)


def objective_category_allowed(agent: AgentSnapshot, objective: Objective, session_time: float) -> Eligibility:
    return _category_allowed(agent.category, objective.allowed_categories)


OBJECTIVE_PREDICATES: Sequence[ObjectivePredicate] = (
    objective_has_valid_steps,
    objective_level_in_range,
    objective_category_allowed,
)


def _first_failure(results: Iterable[Eligibility]) -> Eligibility:
    for result in results:
        if not result:
            return result
    return ELIGIBLE


def quest_eligibility(
    agent: AgentSnapshot,
    quest: Quest,
    session_time: float,
    predicates: Sequence[QuestPredicate] = QUEST_PREDICATES,
) -> Eligibility:
    """Return the first failing quest check, or :data:`ELIGIBLE`."""

    return _first_failure(p(agent, quest, session_time) for p in predicates)


def objective_eligibility(
    agent: AgentSnapshot,
    objective: Objective,
    session_time: float,
    predicates: Sequence[ObjectivePredicate] = OBJECTIVE_PREDICATES,
) -> Eligibility:
    """Return the first failing objective check, or :data:`ELIGIBLE`."""

    return _first_failure(p(agent, objective, session_time) for p in predicates)


__all__ = [
    "Eligibility",
    "ELIGIBLE",
    "QUEST_PREDICATES",
    "OBJECTIVE_PREDICATES",
    "quest_eligibility",
    "objective_eligibility",
    "quest_has_valid_objectives",
    "quest_level_in_range",
    "quest_category_allowed",
    "quest_in_session_window",
    "objective_has_valid_steps",
    "objective_level_in_range",
    "objective_category_allowed",
]

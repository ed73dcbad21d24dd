"""Choose the next quest objective for an agent."""

from __future__ import annotations

import logging
import math
import random
from typing import Dict, Iterable, List, Tuple

from ..config import QuestingConfig
from ..core.geometry import distance
from ..core.time_manager import Clock
from ..quests.eligibility import (
    ELIGIBLE,
    Eligibility,
    objective_eligibility,
    quest_eligibility,
)
from ..quests.graph import ObjectiveGraph
from ..quests.models import AgentSnapshot, Objective, Quest
from .ledger import AssignmentLedger

logger = logging.getLogger(__name__)

Selection = Tuple[Quest, Objective]


class ObjectiveSelector:
    """Priority-grouped, distance-weighted random objective selection.

    Quests are grouped by priority (lower numbers first). Within a group the
    quests are ordered by their nearest objective with a random jitter
    proportional to the group's distance spread, and the first one is taken
    if it wins its ``chance_for_selecting`` roll. A lost roll moves on to the
    next priority group. ``rng`` is injectable so tie-breaks can be
    reproduced.
    """

    def __init__(
        self,
        graph: ObjectiveGraph,
        ledger: AssignmentLedger,
        config: QuestingConfig,
        clock: Clock,
        rng: random.Random | None = None,
        session_start: float | None = None,
    ) -> None:
        self.graph = graph
        self.ledger = ledger
        self.config = config
        self.clock = clock
        self.rng = rng if rng is not None else random.Random()
        self.session_start = session_start if session_start is not None else clock.now()

    @property
    def session_time(self) -> float:
        return self.clock.now() - self.session_start

    # ------------------------------------------------------------------
    # Eligibility
    # ------------------------------------------------------------------
    def can_agent_do_quest(self, agent: AgentSnapshot, quest: Quest) -> Eligibility:
        """Apply the quest filter for ``agent``; return the first failure."""

        session_time = self.session_time
        result = quest_eligibility(agent, quest, session_time)
        if not result:
            return result

        if not self.ledger.can_more_agents_do_quest(quest):
            return Eligibility(False, "quest_full")

        # Agents with no history may start any quest they pass the checks for
        if not self.ledger.has_history(agent.agent_id):
            return ELIGIBLE

        if not any(objective_eligibility(agent, o, session_time) for o in quest.valid_objectives):
            return Eligibility(False, "no_eligible_objectives")

        if quest.is_repeatable:
            run_start = self.ledger.current_run_first_ending_time(agent.agent_id, quest)
            if (
                run_start is not None
                and self.clock.now() - run_start >= self.config.requirements.max_time_per_quest
            ):
                return Eligibility(False, "max_time_per_quest")

        if self.ledger.remaining_objectives(agent.agent_id, quest):
            return ELIGIBLE

        if quest.is_repeatable:
            if self._repeat_delay_elapsed(agent, quest):
                return ELIGIBLE
            return Eligibility(False, "repeat_delay")

        return Eligibility(False, "all_objectives_assigned")

    def eligible_quests(self, agent: AgentSnapshot) -> List[Quest]:
        eligible: List[Quest] = []
        for quest in self.graph.quests:
            result = self.can_agent_do_quest(agent, quest)
            if result:
                eligible.append(quest)
            else:
                logger.debug("Quest %s rejected for agent %s: %s", quest, agent.agent_id, result.reason)
        return eligible

    def candidate_objectives(self, agent: AgentSnapshot, quest: Quest) -> List[Objective]:
        """Return objectives of ``quest`` the agent may be assigned right now."""

        remaining = self.ledger.remaining_objectives(agent.agent_id, quest)
        if not remaining and quest.is_repeatable and self._repeat_delay_elapsed(agent, quest):
            remaining = quest.valid_objectives

        session_time = self.session_time
        candidates: List[Objective] = []
        for objective in remaining:
            if not objective_eligibility(agent, objective, session_time):
                continue
            if (
                objective.max_agents is not None
                and self.ledger.number_of_active_agents_for_objective(objective) >= objective.max_agents
            ):
                continue
            candidates.append(objective)
        return candidates

    def _repeat_delay_elapsed(self, agent: AgentSnapshot, quest: Quest) -> bool:
        since = self.ledger.time_since_last_objective_ended(agent.agent_id, quest)
        return since is not None and since >= self.config.requirements.repeat_quest_delay

    # ------------------------------------------------------------------
    # Ranking
    # ------------------------------------------------------------------
    @staticmethod
    def nearest(objectives: Iterable[Objective], agent: AgentSnapshot) -> Objective | None:
        best: Objective | None = None
        best_distance = math.inf
        for objective in objectives:
            position = objective.first_step_position()
            if position is None:
                continue
            d = distance(agent.position, position)
            if d < best_distance:
                best, best_distance = objective, d
        return best

    def pick_quest(self, agent: AgentSnapshot, quests: Iterable[Quest]) -> Quest | None:
        """Rank ``quests`` by priority group and distance; return one or ``None``."""

        groups: Dict[int, List[Quest]] = {}
        for quest in quests:
            groups.setdefault(quest.priority, []).append(quest)
        if not groups:
            return None

        ordered_groups = [groups[p] for p in sorted(groups)]
        randomness = self.config.selection.distance_randomness

        for group in ordered_groups:
            distances: Dict[Quest, Tuple[float, float]] = {}
            for quest in group:
                positions = [o.first_step_position() for o in quest.valid_objectives]
                ds = [distance(agent.position, p) for p in positions if p is not None]
                if ds:
                    distances[quest] = (min(ds), max(ds))
            if not distances:
                continue

            spread = max(mx for _, mx in distances.values()) - min(mn for mn, _ in distances.values())
            jitter = math.ceil(spread * randomness / 100.0)
            ranked = sorted(
                distances, key=lambda q: distances[q][0] + self.rng.uniform(-jitter, jitter)
            )

            first = ranked[0]
            if self.rng.uniform(1, 100) < first.chance_for_selecting:
                return first

        # Every roll lost; fall back to any quest of the highest-precedence group
        return self.rng.choice(ordered_groups[0])

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------
    def select_next_objective(self, agent: AgentSnapshot) -> Selection | None:
        """Return the ``(quest, objective)`` the agent should pursue next.

        ``None`` is returned while the graph is still being built, for agents
        whose questing has been disabled, and when nothing is eligible.
        """

        if agent is None:
            raise ValueError("agent must not be None")
        if self.ledger.is_disabled(agent.agent_id):
            return None
        if not self.graph.is_built:
            return None

        known_quests = self.graph.quests
        eligible = self.eligible_quests(agent)
        excluded: set[int] = set()

        # Prefer finishing the quest the agent is already working on
        quest: Quest | None = None
        last = self.ledger.current(agent.agent_id)
        if last is not None and any(q is last.quest for q in known_quests):
            if self.can_agent_do_quest(agent, last.quest):
                quest = last.quest

        for _ in range(len(known_quests) + 1):
            if quest is not None:
                objective = self.nearest(self.candidate_objectives(agent, quest), agent)
                if objective is not None:
                    logger.info(
                        "Selected %s in quest %s for agent %s", objective, quest.name, agent.agent_id
                    )
                    return quest, objective
                excluded.add(id(quest))

            quest = self.pick_quest(agent, [q for q in eligible if id(q) not in excluded])
            if quest is None:
                break

        logger.debug("No eligible objective for agent %s", agent.agent_id)
        return None


__all__ = ["ObjectiveSelector", "Selection"]

"""Session-scoped store of quests and their objectives."""

from __future__ import annotations

import csv
import logging
import threading
from pathlib import Path
from typing import Callable, Iterable, List, Sequence

from ..config import QuestSettings
from ..core.geometry import Point, as_point, distance
from ..core.jobs import TimeSlicedJob
from ..core.time_manager import Clock
from .models import Objective, Quest, Step

logger = logging.getLogger(__name__)

QuestLoader = Callable[[], Iterable[Quest]]


class ObjectiveGraph:
    """Hold every quest available to agents during a session.

    The graph is read-mostly. Loaders fill it once per session and then call
    :meth:`notify_built`; afterwards only reactive quests (for example chaser
    quests) are appended.
    """

    def __init__(self) -> None:
        self._quests: List[Quest] = []
        self._built: bool = False
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Build state
    # ------------------------------------------------------------------
    @property
    def is_built(self) -> bool:
        return self._built

    def notify_built(self) -> None:
        self._built = True
        logger.info("Objective graph built with %d quests", len(self._quests))

    # ------------------------------------------------------------------
    # Quest access
    # ------------------------------------------------------------------
    def add_quest(self, quest: Quest) -> None:
        if quest is None:
            raise ValueError("quest must not be None")
        with self._lock:
            if quest not in self._quests:
                self._quests.append(quest)

    @property
    def quests(self) -> List[Quest]:
        """Return a snapshot of all quests in insertion order."""

        with self._lock:
            return list(self._quests)

    @property
    def quest_count(self) -> int:
        return len(self._quests)

    def find_quest(self, quest_id: str) -> Quest | None:
        for quest in self.quests:
            if quest.quest_id == quest_id:
                return quest
        return None

    def clear(self) -> None:
        """Drop every quest and mark the graph as not built."""

        with self._lock:
            self._quests.clear()
            self._built = False

    def objectives_near_position(self, position: Point, max_distance: float) -> List[Objective]:
        """Return valid objectives whose first step lies within ``max_distance``."""

        nearby: List[Objective] = []
        for quest in self.quests:
            for objective in quest.valid_objectives:
                first = objective.first_step_position()
                if first is not None and distance(first, position) <= max_distance:
                    nearby.append(objective)
        return nearby

    # ------------------------------------------------------------------
    # Reactive quests
    # ------------------------------------------------------------------
    def add_go_to_position_quest(
        self,
        position: Sequence[float],
        name: str,
        settings: QuestSettings,
        session_time: float | None = None,
    ) -> Quest:
        """Append a one-objective quest sending agents to ``position``."""

        quest = go_to_position_quest(position, name, settings, session_time)
        self.add_quest(quest)
        logger.info("Added quest %s at %s", name, quest.objectives[0].first_step_position())
        return quest

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------
    def write_quest_log(self, path: str | Path) -> Path:
        """Write one CSV row per objective of every quest to ``path``."""

        p = Path(path)
        if not p.parent.exists():
            p.parent.mkdir(parents=True, exist_ok=True)

        with p.open("w", encoding="utf-8", newline="") as fh:
            writer = csv.writer(fh)
            writer.writerow(
                [
                    "Quest Name",
                    "Objective",
                    "Steps",
                    "Min Level",
                    "Max Level",
                    "Loot After Completing",
                    "Key Chance",
                    "First Step Position",
                ]
            )
            for quest in self.quests:
                for objective in quest.objectives:
                    first = objective.first_step()
                    writer.writerow(
                        [
                            quest.name,
                            str(objective),
                            objective.step_count,
                            quest.min_level,
                            quest.max_level,
                            objective.loot_after_completing.value,
                            first.chance_of_having_key if first is not None else "N/A",
                            str(first.position) if first is not None else "N/A",
                        ]
                    )
        logger.info("Wrote quest log to %s", p)
        return p


def go_to_position_quest(
    position: Sequence[float],
    name: str,
    settings: QuestSettings,
    session_time: float | None = None,
) -> Quest:
    if not name:
        raise ValueError("quest name must not be empty")
    quest = Quest(name=name)
    objective = Objective(name=f"{name}: Objective #1", steps=[Step(as_point(position))])
    quest.add_objective(objective)
    quest.apply_settings(settings, session_time)
    return quest


def spawn_point_quest(
    positions: Iterable[Sequence[float]],
    name: str,
    settings: QuestSettings,
) -> Quest | None:
    """Return a quest with one objective per position, or ``None`` if empty."""

    points = [as_point(p) for p in positions]
    if not points:
        return None
    quest = Quest(name=name)
    for number, point in enumerate(points, start=1):
        quest.add_objective(Objective(name=f"{name}: Objective #{number}", steps=[Step(point)]))
    quest.apply_settings(settings)
    return quest


class GraphBuilder:
    """Run quest loaders as a time-sliced job and mark the graph built."""

    def __init__(
        self,
        graph: ObjectiveGraph,
        loaders: Iterable[QuestLoader],
        budget: float,
        clock: Clock | None = None,
    ) -> None:
        self.graph = graph
        self._job = TimeSlicedJob(
            loaders,
            self._run_loader,
            budget,
            clock=clock,
            name="quest loading",
            on_complete=graph.notify_built,
        )

    @property
    def done(self) -> bool:
        return self._job.done

    def step(self) -> bool:
        return self._job.step()

    def run_to_completion(self) -> None:
        self._job.run_to_completion()

    def _run_loader(self, loader: QuestLoader) -> None:
        for quest in loader():
            if quest.number_of_valid_objectives == 0:
                logger.error(
                    "Could not find any valid objectives for quest %s. Disabling quest.", quest.name
                )
                continue
            self.graph.add_quest(quest)


__all__ = [
    "ObjectiveGraph",
    "GraphBuilder",
    "QuestLoader",
    "go_to_position_quest",
    "spawn_point_quest",
]

# tests/conftest.py
import random
from typing import Dict, List, Tuple

import pytest

from agent_questing.config import QuestingConfig
from agent_questing.core.context import QuestingContext
from agent_questing.core.geometry import Point, as_point
from agent_questing.core.time_manager import ManualClock
from agent_questing.engine import QuestingEngine
from agent_questing.pathing.segments import RouteResult, RouteStatus
from agent_questing.quests.models import AgentSnapshot


class FakeNavigator:
    """Route table keyed by ``(start, end)``; unknown pairs come back partial."""

    def __init__(self) -> None:
        self.routes: Dict[Tuple[Point, Point], object] = {}
        self.calls: List[Tuple[Point, Point]] = []

    def add(self, start, end, status=RouteStatus.COMPLETE, corners=None, length=None) -> None:
        start, end = as_point(start), as_point(end)
        if corners is None:
            corners = (start, end)
        self.routes[(start, end)] = RouteResult(
            status, tuple(as_point(c) for c in corners), length
        )

    def fail(self, start, end, exc: Exception) -> None:
        self.routes[(as_point(start), as_point(end))] = exc

    def route_between(self, start, end) -> RouteResult:
        self.calls.append((start, end))
        result = self.routes.get((start, end))
        if result is None:
            return RouteResult(RouteStatus.PARTIAL, (start,), 0.0)
        if isinstance(result, Exception):
            raise result
        return result


class FakeWorld:
    def __init__(self) -> None:
        self.agents: Dict[str, AgentSnapshot] = {}

    def place(self, agent_id, position, level=10, category="pmc") -> AgentSnapshot:
        snapshot = AgentSnapshot(agent_id, as_point(position), level, category)
        self.agents[agent_id] = snapshot
        return snapshot

    def move(self, agent_id, position) -> None:
        self.agents[agent_id].position = as_point(position)

    def snapshot_of(self, agent_id):
        return self.agents.get(agent_id)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(1000.0)


@pytest.fixture
def config() -> QuestingConfig:
    return QuestingConfig()


@pytest.fixture
def world() -> FakeWorld:
    return FakeWorld()


@pytest.fixture
def navigator() -> FakeNavigator:
    return FakeNavigator()


@pytest.fixture
def event_log() -> list:
    return []


@pytest.fixture
def context(config, clock, world, navigator, event_log) -> QuestingContext:
    return QuestingContext(
        config=config,
        clock=clock,
        rng=random.Random(1234),
        navigator=navigator,
        world=world,
        event_log=event_log,
    )


@pytest.fixture
def engine(context) -> QuestingEngine:
    return QuestingEngine(context)

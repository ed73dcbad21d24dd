"""World system ticking every agent objective controller."""

from __future__ import annotations

import logging
from typing import Dict, List, Protocol

from ..engine import QuestingEngine
from .objective_controller import AgentObjectiveController, ControllerState

logger = logging.getLogger(__name__)


class BackgroundJob(Protocol):
    done: bool

    def step(self) -> bool: ...


class QuestingSystem:
    """Poll controllers and advance background jobs once per world tick."""

    def __init__(self, engine: QuestingEngine) -> None:
        self.engine = engine
        self._controllers: Dict[str, AgentObjectiveController] = {}
        self._jobs: List[BackgroundJob] = []

    # ------------------------------------------------------------------
    # Registration API
    # ------------------------------------------------------------------
    def register_agent(self, agent_id: str) -> AgentObjectiveController:
        """Create a controller for ``agent_id`` unless one already exists."""

        controller = self._controllers.get(agent_id)
        if controller is None:
            controller = AgentObjectiveController(agent_id, self.engine)
            self._controllers[agent_id] = controller
        return controller

    def remove_agent(self, agent_id: str) -> None:
        """Drop the controller and history of an agent leaving the simulation."""

        if self._controllers.pop(agent_id, None) is not None:
            self.engine.context.ledger.remove_agent(agent_id)

    def controller_for(self, agent_id: str) -> AgentObjectiveController | None:
        return self._controllers.get(agent_id)

    def add_job(self, job: BackgroundJob) -> None:
        if job not in self._jobs:
            self._jobs.append(job)

    @property
    def pending_jobs(self) -> int:
        return sum(1 for job in self._jobs if not job.done)

    @property
    def questing_agents(self) -> List[str]:
        return [
            agent_id
            for agent_id, c in self._controllers.items()
            if c.state is ControllerState.QUESTING_ACTIVE
        ]

    # ------------------------------------------------------------------
    # Tick dispatch
    # ------------------------------------------------------------------
    def update(self, tick: int) -> None:
        for job in list(self._jobs):
            if job.step():
                self._jobs.remove(job)

        for controller in list(self._controllers.values()):
            controller.update()
            if controller.is_questing_allowed:
                controller.update_path()

        logger.debug(
            "[Tick %s] QuestingSystem: %d controllers, %d questing, %d jobs pending",
            tick,
            len(self._controllers),
            len(self.questing_agents),
            self.pending_jobs,
        )

    def __len__(self) -> int:  # pragma: no cover - trivial
        return len(self._controllers)


__all__ = ["QuestingSystem"]

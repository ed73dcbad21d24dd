"""Questing bootstrap and minimal tick loop."""

from __future__ import annotations

import logging
import os
import random
from pathlib import Path
from typing import Iterable

from dotenv import load_dotenv

from .agents.questing_system import QuestingSystem
from .config import CONFIG_PATH, QuestingConfig, load_config
from .core.context import QuestingContext, WorldView
from .core.time_manager import TimeManager
from .engine import QuestingEngine
from .pathing.segments import Navigator
from .quests.graph import QuestLoader

logger = logging.getLogger(__name__)


def configure_logging(config: QuestingConfig) -> None:
    """Apply the global and per-module log levels from ``config``."""

    numeric_level = getattr(logging, config.logging.global_level, logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        force=True,
    )
    for module_name, level_str in config.logging.module_levels.items():
        module_level = getattr(logging, str(level_str).upper(), None)
        if module_level is not None:
            logging.getLogger(module_name).setLevel(module_level)
        else:
            logger.warning("Invalid log level '%s' for module '%s' in config.", level_str, module_name)


def bootstrap(
    world: WorldView,
    navigator: Navigator | None = None,
    loaders: Iterable[QuestLoader] = (),
    config_path: str | Path | None = None,
    seed: int | None = None,
) -> QuestingSystem:
    """Build a session context and a :class:`QuestingSystem` ready to tick.

    Quest loading and, when a navigator is supplied, static path discovery are
    queued as background jobs that advance a slice per tick.
    """

    env_path = Path(".env")
    if env_path.exists():
        load_dotenv(env_path)

    if config_path is None:
        config_path = os.getenv("AGENT_QUESTING_CONFIG", str(CONFIG_PATH))
    cfg = load_config(Path(config_path))
    configure_logging(cfg)

    context = QuestingContext(
        config=cfg,
        rng=random.Random(seed),
        navigator=navigator,
        world=world,
    )
    engine = QuestingEngine(context)
    system = QuestingSystem(engine)

    builder = engine.build_graph(loaders)
    system.add_job(builder)
    logger.info("[Bootstrap] Quest loading queued (%s s budget per tick)", cfg.questing.max_calc_time_per_frame)
    return system


def run(system: QuestingSystem, ticks: int, time_manager: TimeManager | None = None) -> None:
    """Tick ``system`` ``ticks`` times at the configured cadence."""

    config = system.engine.context.config
    tm = time_manager or TimeManager(
        tick_rate=1.0 / config.questing.update_interval, clock=system.engine.context.clock
    )
    graph_handled = False
    for _ in range(ticks):
        system.update(tm.tick_counter)
        if not graph_handled and system.engine.is_graph_built():
            if system.engine.context.navigator is not None:
                system.add_job(system.engine.discover_static_paths())
            system.engine.write_quest_log()
            graph_handled = True
        tm.sleep_until_next_tick()


__all__ = ["bootstrap", "configure_logging", "run"]

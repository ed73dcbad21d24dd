"""Configuration loader for agent_questing."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

import yaml


CONFIG_PATH = Path(__file__).resolve().parents[1] / "config.yaml"


@dataclass
class QuestingTimingConfig:
    """Cadence and cool-down values for the questing controllers."""

    update_interval: float = 0.2
    selection_interval: float = 1.0
    min_time_between_switching_objectives: float = 5.0
    assignment_end_cooldown: float = 2.0
    max_calc_time_per_frame: float = 0.005


@dataclass
class SearchDistancesConfig:
    objective_reached_ideal: float = 3.0
    max_run_distance: float = 10.0


@dataclass
class RequirementsConfig:
    """Repeat and per-quest time limits, in seconds."""

    repeat_quest_delay: float = 360.0
    max_time_per_quest: float = 300.0


@dataclass
class SelectionConfig:
    distance_randomness: float = 30.0


@dataclass
class StuckDetectionConfig:
    max_count: int = 8
    max_no_objective_count: int = 3


@dataclass
class PathingConfig:
    incomplete_path_retry_interval: float = 5.0


@dataclass
class QuestSettings:
    """Settings applied to quests that are generated at runtime."""

    priority: int = 0
    chance: float = 50.0
    max_agents: int = 2
    repeatable: bool = False
    min_level: int = 0
    max_level: int = 99
    can_run_between_objectives: bool = True
    max_run_distance: float = 10.0
    interest_time: float | None = None


@dataclass
class LoggingConfig:
    global_level: str = "INFO"
    module_levels: Dict[str, str] = field(default_factory=dict)


@dataclass
class DebugConfig:
    enabled: bool = False
    quest_log_dir: str = "logs"


@dataclass
class QuestingConfig:
    """Top level configuration dataclass."""

    questing: QuestingTimingConfig = field(default_factory=QuestingTimingConfig)
    search_distances: SearchDistancesConfig = field(default_factory=SearchDistancesConfig)
    requirements: RequirementsConfig = field(default_factory=RequirementsConfig)
    selection: SelectionConfig = field(default_factory=SelectionConfig)
    stuck_detection: StuckDetectionConfig = field(default_factory=StuckDetectionConfig)
    allowed_categories: Dict[str, bool] = field(
        default_factory=lambda: {"pmc": True, "scav": False, "boss": False}
    )
    pathing: PathingConfig = field(default_factory=PathingConfig)
    chaser_quest: QuestSettings = field(default_factory=QuestSettings)
    spawn_point_quest: QuestSettings = field(default_factory=QuestSettings)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    debug: DebugConfig = field(default_factory=DebugConfig)


def _section(cls: type, data: Any) -> Any:
    """Build dataclass ``cls`` from ``data`` ignoring unknown keys."""

    if not isinstance(data, dict):
        return cls()
    known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
    return cls(**known)


def _parse_config(data: dict[str, Any]) -> QuestingConfig:
    """Convert raw ``data`` into :class:`QuestingConfig`."""

    questing_data = data.get("questing", {}) or {}
    questing = QuestingTimingConfig(
        update_interval=float(questing_data.get("update_interval", 0.2)),
        selection_interval=float(questing_data.get("selection_interval", 1.0)),
        min_time_between_switching_objectives=float(
            questing_data.get("min_time_between_switching_objectives", 5.0)
        ),
        assignment_end_cooldown=float(questing_data.get("assignment_end_cooldown", 2.0)),
        max_calc_time_per_frame=float(questing_data.get("max_calc_time_per_frame", 0.005)),
    )

    allowed = data.get("allowed_categories")
    if isinstance(allowed, dict):
        allowed_categories = {str(k).lower(): bool(v) for k, v in allowed.items()}
    else:
        allowed_categories = QuestingConfig().allowed_categories

    logging_data = data.get("logging", {}) or {}
    logging_cfg = LoggingConfig(
        global_level=str(logging_data.get("global_level", "INFO")).upper(),
        module_levels=dict(logging_data.get("module_levels") or {}),
    )

    return QuestingConfig(
        questing=questing,
        search_distances=_section(SearchDistancesConfig, data.get("search_distances")),
        requirements=_section(RequirementsConfig, data.get("requirements")),
        selection=_section(SelectionConfig, data.get("selection")),
        stuck_detection=_section(StuckDetectionConfig, data.get("stuck_detection")),
        allowed_categories=allowed_categories,
        pathing=_section(PathingConfig, data.get("pathing")),
        chaser_quest=_section(QuestSettings, data.get("chaser_quest")),
        spawn_point_quest=_section(QuestSettings, data.get("spawn_point_quest")),
        logging=logging_cfg,
        debug=_section(DebugConfig, data.get("debug")),
    )


def load_config(path: Path = CONFIG_PATH) -> QuestingConfig:
    """Load configuration from ``path`` and return a :class:`QuestingConfig`."""

    path = Path(path)
    if path.is_file():
        raw = yaml.safe_load(path.read_text()) or {}
    else:
        raw = {}
    return _parse_config(raw)


# Load configuration at module import time.
CONFIG = load_config()


__all__ = [
    "CONFIG",
    "QuestingConfig",
    "QuestingTimingConfig",
    "SearchDistancesConfig",
    "RequirementsConfig",
    "SelectionConfig",
    "StuckDetectionConfig",
    "PathingConfig",
    "QuestSettings",
    "LoggingConfig",
    "DebugConfig",
    "load_config",
]

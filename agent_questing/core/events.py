"""Event records emitted by the questing core."""

from __future__ import annotations

from typing import Any, Dict, List

# Event type constants used by the ledger, controllers and path refresh
ASSIGNMENT_STARTED = "ASSIGNMENT_STARTED"
ASSIGNMENT_COMPLETED = "ASSIGNMENT_COMPLETED"
ASSIGNMENT_FAILED = "ASSIGNMENT_FAILED"
QUESTING_DISABLED = "QUESTING_DISABLED"
STATIC_PATH_USED = "STATIC_PATH_USED"


def append_event(
    dest: List[Dict[str, Any]] | None, time: float, event_type: str, data: Any
) -> None:
    """Append an event to the in-memory ``dest`` list if one is supplied."""

    if dest is None:
        return
    dest.append({"time": time, "event_type": event_type, "data": data})


__all__ = [
    "append_event",
    "ASSIGNMENT_STARTED",
    "ASSIGNMENT_COMPLETED",
    "ASSIGNMENT_FAILED",
    "QUESTING_DISABLED",
    "STATIC_PATH_USED",
]

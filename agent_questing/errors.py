"""Exception types raised for programming errors in the questing core."""

from __future__ import annotations


class QuestingError(Exception):
    """Base class for questing errors."""


class InvariantError(QuestingError, ValueError):
    """Raised when a caller breaks an assignment or graph invariant."""


__all__ = ["QuestingError", "InvariantError"]

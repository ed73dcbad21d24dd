"""Cooperative jobs that do a bounded amount of work per call."""

from __future__ import annotations

import logging
from typing import Callable, Generic, Iterable, Iterator, TypeVar

from .time_manager import Clock, MonotonicClock

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TimeSlicedJob(Generic[T]):
    """Apply ``action`` to ``items`` a slice at a time.

    Each :meth:`step` call processes at least one item and then keeps going
    until ``budget`` seconds of ``clock`` time have been spent, after which it
    yields control back to the caller. Callers poll :attr:`done` instead of
    blocking.
    """

    def __init__(
        self,
        items: Iterable[T],
        action: Callable[[T], None],
        budget: float,
        clock: Clock | None = None,
        name: str = "job",
        on_complete: Callable[[], None] | None = None,
    ) -> None:
        self.name = name
        self.budget = budget
        self._items = items
        self._action = action
        self._clock = clock if clock is not None else MonotonicClock()
        self._on_complete = on_complete
        self._iterator: Iterator[T] | None = None
        self.done: bool = False
        self.processed: int = 0
        self.slices: int = 0

    def step(self) -> bool:
        """Run one time slice. Return ``True`` once every item is processed."""

        if self.done:
            return True
        if self._iterator is None:
            # Snapshot so items appended by the action are not visited
            self._iterator = iter(list(self._items))

        self.slices += 1
        started = self._clock.now()
        for item in self._iterator:
            self._action(item)
            self.processed += 1
            if self._clock.now() - started >= self.budget:
                return False

        self.done = True
        logger.debug(
            "%s finished after %d items in %d slices", self.name, self.processed, self.slices
        )
        if self._on_complete is not None:
            self._on_complete()
        return True

    def run_to_completion(self) -> None:
        while not self.step():
            pass


__all__ = ["TimeSlicedJob"]

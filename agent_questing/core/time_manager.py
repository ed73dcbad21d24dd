"""Clocks, timers and tick cadence helpers."""

from __future__ import annotations

import time
from typing import Callable, Protocol


class Clock(Protocol):
    """Monotonic time source returning seconds."""

    def now(self) -> float: ...


class MonotonicClock:
    """Wall-independent clock backed by :func:`time.perf_counter`."""

    def now(self) -> float:
        return time.perf_counter()


class ManualClock:
    """Clock advanced explicitly, used by tests and replays."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = float(start)

    def now(self) -> float:
        return self._now

    def advance(self, seconds: float) -> None:
        if seconds < 0:
            raise ValueError("ManualClock cannot move backwards")
        self._now += seconds

    def set(self, value: float) -> None:
        if value < self._now:
            raise ValueError("ManualClock cannot move backwards")
        self._now = float(value)


class Stopwatch:
    """Accumulate elapsed time while running."""

    def __init__(self, clock: Clock) -> None:
        self._clock = clock
        self._started_at: float | None = None
        self._accumulated: float = 0.0

    @property
    def is_running(self) -> bool:
        return self._started_at is not None

    @property
    def elapsed(self) -> float:
        if self._started_at is None:
            return self._accumulated
        return self._accumulated + self._clock.now() - self._started_at

    def start(self) -> None:
        """Start timing; calling while already running has no effect."""

        if self._started_at is None:
            self._started_at = self._clock.now()

    def stop(self) -> None:
        if self._started_at is not None:
            self._accumulated += self._clock.now() - self._started_at
            self._started_at = None

    def reset(self) -> None:
        """Stop timing and clear the accumulated duration."""

        self._started_at = None
        self._accumulated = 0.0


class RateLimiter:
    """Allow an action at most once per ``interval`` seconds."""

    def __init__(self, clock: Clock, interval: float) -> None:
        self._clock = clock
        self.interval = interval
        self._last: float | None = None

    def ready(self) -> bool:
        """Return ``True`` and consume the slot if ``interval`` has elapsed."""

        now = self._clock.now()
        if self._last is not None and now - self._last < self.interval:
            return False
        self._last = now
        return True


class TimeManager:
    """Manage the questing tick cadence."""

    def __init__(
        self,
        tick_rate: float = 5.0,
        clock: Clock | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.tick_rate: float = tick_rate
        self.tick_counter: int = 0
        self.clock: Clock = clock if clock is not None else MonotonicClock()
        self._sleep = sleep
        self._last_tick: float = self.clock.now()

    # ------------------------------------------------------------------
    # Timing
    # ------------------------------------------------------------------
    def sleep_until_next_tick(self) -> None:
        """Block until the next tick should occur."""

        interval = 1.0 / self.tick_rate
        target = self._last_tick + interval
        now = self.clock.now()
        remaining = target - now
        if remaining > 0:
            self._sleep(remaining)
            self._last_tick = target
        else:
            # We're behind schedule; start from current time
            self._last_tick = now
        self.tick_counter += 1


__all__ = [
    "Clock",
    "MonotonicClock",
    "ManualClock",
    "Stopwatch",
    "RateLimiter",
    "TimeManager",
]

import pytest

from agent_questing.core.time_manager import (
    ManualClock,
    RateLimiter,
    Stopwatch,
    TimeManager,
)


def test_sleep_increments_counter():
    clock = ManualClock()
    slept: list[float] = []

    def fake_sleep(seconds: float) -> None:
        slept.append(seconds)
        clock.advance(seconds)

    tm = TimeManager(tick_rate=50.0, clock=clock, sleep=fake_sleep)
    tm.sleep_until_next_tick()

    assert tm.tick_counter == 1
    assert slept == [pytest.approx(0.02)]


def test_behind_schedule_does_not_sleep():
    clock = ManualClock()
    slept: list[float] = []
    tm = TimeManager(tick_rate=10.0, clock=clock, sleep=slept.append)
    clock.advance(1.0)
    tm.sleep_until_next_tick()
    assert slept == []
    assert tm.tick_counter == 1


def test_manual_clock_rejects_going_backwards():
    clock = ManualClock(5.0)
    with pytest.raises(ValueError):
        clock.advance(-1)
    with pytest.raises(ValueError):
        clock.set(4.0)


def test_stopwatch_accumulates_and_resets():
    clock = ManualClock()
    watch = Stopwatch(clock)
    assert watch.elapsed == 0.0

    watch.start()
    clock.advance(2.0)
    watch.start()  # already running
    clock.advance(1.0)
    assert watch.elapsed == pytest.approx(3.0)

    watch.stop()
    clock.advance(5.0)
    assert watch.elapsed == pytest.approx(3.0)

    watch.reset()
    assert watch.elapsed == 0.0
    assert not watch.is_running


def test_rate_limiter_allows_once_per_interval():
    clock = ManualClock()
    limiter = RateLimiter(clock, interval=1.0)
    assert limiter.ready()
    assert not limiter.ready()
    clock.advance(0.5)
    assert not limiter.ready()
    clock.advance(0.5)
    assert limiter.ready()

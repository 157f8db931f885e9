import pytest
from PyQt6.QtTest import QTest

from offscreen.core.loops import RepeatingLoop


def test_loop_ticks_on_interval(timers) -> None:
    calls = []
    loop = RepeatingLoop("test", 1_000, lambda: calls.append(timers.clock.now_ms()), timers)
    started_at = timers.clock.now_ms()

    loop.start()
    timers.advance(3_000)

    assert calls == [started_at + 1_000, started_at + 2_000, started_at + 3_000]


def test_fire_immediately(timers) -> None:
    calls = []
    loop = RepeatingLoop("test", 1_000, lambda: calls.append(1), timers)

    loop.start(fire_immediately=True)

    assert calls == [1]


def test_stop_is_idempotent(timers) -> None:
    loop = RepeatingLoop("test", 1_000, lambda: None, timers)
    loop.start()

    assert loop.stop() is True
    assert loop.stop() is False
    assert not loop.is_active


def test_stale_callback_is_dropped(timers) -> None:
    calls = []
    loop = RepeatingLoop("test", 1_000, lambda: calls.append(1), timers)
    loop.start()
    stale_timer = timers.timers[-1]
    generation = loop.generation

    loop.stop()
    stale_timer.timeout.emit()

    assert calls == []
    assert loop.generation > generation


def test_restart_drops_previous_timer(timers) -> None:
    calls = []
    loop = RepeatingLoop("test", 1_000, lambda: calls.append(1), timers)
    loop.start()
    first = timers.timers[-1]

    loop.start()
    first.timeout.emit()

    assert calls == []
    assert len(timers.active) == 1


def test_rejects_non_positive_interval(timers) -> None:
    with pytest.raises(ValueError):
        RepeatingLoop("test", 0, lambda: None, timers)
    loop = RepeatingLoop("test", 10, lambda: None, timers)
    with pytest.raises(ValueError):
        loop.interval_ms = -1


def test_runs_on_qt_event_loop(qapp) -> None:
    calls = []
    loop = RepeatingLoop("qt", 10, lambda: calls.append(1))

    loop.start()
    QTest.qWait(200)
    loop.stop()
    seen = len(calls)
    QTest.qWait(50)

    assert seen >= 2
    assert len(calls) == seen

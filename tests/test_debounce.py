from offscreen.core.debounce import Debouncer
from offscreen.core.errors import PersistenceError


def test_writes_at_most_once_per_window(clock) -> None:
    writes = []
    debouncer = Debouncer(lambda: writes.append(clock.now_ms()), 1_000, clock)

    debouncer.request()
    clock.advance(300)
    debouncer.request()
    clock.advance(300)
    debouncer.request()

    assert len(writes) == 1
    assert debouncer.pending is True

    clock.advance(400)
    debouncer.request()
    assert len(writes) == 2
    assert debouncer.pending is False


def test_flush_writes_pending_immediately(clock) -> None:
    writes = []
    debouncer = Debouncer(lambda: writes.append(1), 1_000, clock)
    debouncer.request()
    debouncer.request()

    assert debouncer.flush() is True
    assert len(writes) == 2
    assert debouncer.flush() is True
    assert len(writes) == 2


def test_forced_flush_writes_even_when_clean(clock) -> None:
    writes = []
    debouncer = Debouncer(lambda: writes.append(1), 1_000, clock)

    debouncer.flush(force=True)

    assert writes == [1]


def test_failed_write_is_retried_next_window(clock, caplog) -> None:
    attempts = []

    def write() -> None:
        attempts.append(clock.now_ms())
        if len(attempts) == 1:
            raise PersistenceError("database is locked")

    debouncer = Debouncer(write, 1_000, clock)

    assert debouncer.request() is False
    assert debouncer.pending is True
    assert "database is locked" in caplog.text

    clock.advance(500)
    debouncer.request()
    assert len(attempts) == 1

    clock.advance(500)
    assert debouncer.request() is True
    assert len(attempts) == 2

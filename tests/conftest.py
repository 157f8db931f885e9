from __future__ import annotations

import os

import pytest
from PyQt6.QtWidgets import QApplication

from offscreen.core.app_state import AppState
from offscreen.core.lifecycle import AppLifecycleMonitor
from offscreen.core.notifications import Notification, NotificationDispatcher, PermissionState
from offscreen.core.settings import Settings
from offscreen.core.timer import TimerEngine
from offscreen.data.storage import Storage


START_MS = 1_700_000_000_000


class ManualClock:
    def __init__(self, now_ms: int = START_MS) -> None:
        self._now_ms = now_ms

    def now_ms(self) -> int:
        return self._now_ms

    def advance(self, ms: int) -> None:
        self._now_ms += ms

    def set(self, ms: int) -> None:
        self._now_ms = ms


class FakeSignal:
    def __init__(self) -> None:
        self._slots = []

    def connect(self, slot) -> None:
        self._slots.append(slot)

    def emit(self) -> None:
        for slot in list(self._slots):
            slot()


class FakeTimer:
    """The slice of the QTimer API the loops use, driven by FakeTimerHub."""

    def __init__(self, hub: FakeTimerHub) -> None:
        self._hub = hub
        self._interval = 0
        self._active = False
        self.next_fire_ms: int | None = None
        self.timeout = FakeSignal()

    def setInterval(self, ms: int) -> None:  # noqa: N802
        self._interval = ms

    def interval(self) -> int:
        return self._interval

    def isActive(self) -> bool:  # noqa: N802
        return self._active

    def start(self) -> None:
        self._active = True
        self.next_fire_ms = self._hub.clock.now_ms() + self._interval

    def stop(self) -> None:
        self._active = False
        self.next_fire_ms = None


class FakeTimerHub:
    def __init__(self, clock: ManualClock) -> None:
        self.clock = clock
        self.timers: list[FakeTimer] = []

    def __call__(self) -> FakeTimer:
        timer = FakeTimer(self)
        self.timers.append(timer)
        return timer

    @property
    def active(self) -> list[FakeTimer]:
        return [timer for timer in self.timers if timer.isActive()]

    def advance(self, ms: int) -> None:
        """Move time forward firing every due timeout in order."""
        target = self.clock.now_ms() + ms
        while True:
            due = [t for t in self.timers if t.isActive() and t.next_fire_ms <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.next_fire_ms)
            self.clock.set(timer.next_fire_ms)
            self._fire(timer)
        self.clock.set(target)

    def jump(self, ms: int) -> None:
        """Move time forward in one step; each overdue timer fires once."""
        self.clock.advance(ms)
        for timer in list(self.timers):
            if timer.isActive() and timer.next_fire_ms <= self.clock.now_ms():
                self._fire(timer)

    def _fire(self, timer: FakeTimer) -> None:
        timer.next_fire_ms = self.clock.now_ms() + timer.interval()
        timer.timeout.emit()


class RecordingDispatcher(NotificationDispatcher):
    def __init__(self, permission: PermissionState = PermissionState.GRANTED) -> None:
        super().__init__()
        self.platform_permission = permission
        self.sent: list[Notification] = []
        self.fail = False

    def _query_permission(self) -> PermissionState:
        return self.platform_permission

    def _deliver(self, notification: Notification) -> None:
        if self.fail:
            raise RuntimeError("notification backend unavailable")
        self.sent.append(notification)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def timers(clock: ManualClock) -> FakeTimerHub:
    return FakeTimerHub(clock)


@pytest.fixture
def storage(tmp_path) -> Storage:
    storage = Storage(tmp_path / "app.db")
    storage.init_db()
    return storage


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def lifecycle() -> AppLifecycleMonitor:
    return AppLifecycleMonitor(is_foreground=True)


@pytest.fixture
def app_state(storage: Storage) -> AppState:
    state = AppState(Settings(notifications_enabled=True))
    state.load_from_storage(storage)
    return state


@pytest.fixture
def engine(storage, dispatcher, app_state, lifecycle, clock, timers):
    engine = TimerEngine(
        store=storage,
        session_log=storage,
        dispatcher=dispatcher,
        app_state=app_state,
        lifecycle=lifecycle,
        clock=clock,
        timer_factory=timers,
    )
    yield engine
    engine.dispose()


@pytest.fixture
def qapp() -> QApplication:
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
    return QApplication.instance() or QApplication([])

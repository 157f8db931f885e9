from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Protocol

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from offscreen.core.app_state import AppState, KeyValueStore
from offscreen.core.clock import Clock, SystemClock
from offscreen.core.config import COMPLETION_BODY, COMPLETION_TITLE, TIMER_STATE_KEY, TimerConfig
from offscreen.core.debounce import Debouncer
from offscreen.core.errors import CorruptStateError, DispatchError, LockedError, PersistenceError
from offscreen.core.lifecycle import AppLifecycleMonitor
from offscreen.core.loops import RepeatingLoop, TimerFactory
from offscreen.core.messages import phase_fraction
from offscreen.core.notifications import Notification, NotificationDispatcher
from offscreen.core.reminders import ReminderScheduler
from offscreen.data.storage import SessionRecord


logger = logging.getLogger(__name__)


# Stored epochs and durations must fit a signed 64-bit SQLite INTEGER.
SQLITE_INT_MIN = -(2**63)
SQLITE_INT_MAX = 2**63 - 1


class TimerPhase(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"


@dataclass(frozen=True)
class TimerSnapshot:
    """Persisted timer progress; remaining time is always derived from the origin."""

    is_running: bool = False
    is_paused: bool = False
    duration_seconds: int = 0
    start_epoch_ms: int | None = None
    pause_epoch_ms: int | None = None

    def __post_init__(self) -> None:
        if self.duration_seconds < 0:
            raise ValueError("Duration cannot be negative")
        if self.is_paused and not self.is_running:
            raise ValueError("A paused timer must be running")
        if (self.start_epoch_ms is None) == self.is_running:
            raise ValueError("Start time must be set exactly when running")
        if (self.pause_epoch_ms is None) == self.is_paused:
            raise ValueError("Pause time must be set exactly when paused")

    @property
    def phase(self) -> TimerPhase:
        if not self.is_running:
            return TimerPhase.IDLE
        return TimerPhase.PAUSED if self.is_paused else TimerPhase.RUNNING

    @property
    def duration_ms(self) -> int:
        return self.duration_seconds * 1000

    def elapsed_ms(self, now_ms: int) -> int:
        if self.start_epoch_ms is None:
            return 0
        reference = self.pause_epoch_ms if self.pause_epoch_ms is not None else now_ms
        return max(0, reference - self.start_epoch_ms)

    def remaining_ms(self, now_ms: int) -> int:
        if not self.is_running:
            return 0
        return max(0, self.duration_ms - self.elapsed_ms(now_ms))

    def remaining_seconds(self, now_ms: int) -> int:
        # Rounded up so the display never reads 0 while time is left.
        return -(-self.remaining_ms(now_ms) // 1000)

    def phase_fraction(self, now_ms: int) -> float:
        return phase_fraction(self.elapsed_ms(now_ms), self.duration_ms)

    def to_json(self, now_ms: int) -> str:
        return json.dumps(
            {
                "isRunning": self.is_running,
                "isPaused": self.is_paused,
                "duration": self.duration_seconds,
                "remainingTime": self.remaining_seconds(now_ms),
                "startTime": self.start_epoch_ms,
                "pauseTime": self.pause_epoch_ms,
            }
        )

    @classmethod
    def from_json(cls, raw: str) -> TimerSnapshot:
        """Parse a stored snapshot; `remainingTime` is only a hint and is ignored."""
        try:
            payload = json.loads(raw)
        except (TypeError, json.JSONDecodeError) as exc:
            raise CorruptStateError(f"Timer state is not valid JSON: {exc}") from exc
        if not isinstance(payload, dict):
            raise CorruptStateError("Timer state payload is not an object")

        is_running = payload.get("isRunning")
        is_paused = payload.get("isPaused", False)
        if not isinstance(is_running, bool) or not isinstance(is_paused, bool):
            raise CorruptStateError("Timer state flags are missing or not booleans")
        if not is_running:
            return cls()

        duration = _as_int(payload.get("duration"))
        start = _as_int(payload.get("startTime"))
        pause = _as_int(payload.get("pauseTime")) if is_paused else None
        if duration is None or duration < 0:
            raise CorruptStateError("Running timer without a valid duration")
        if start is None:
            raise CorruptStateError("Running timer without startTime")
        if is_paused and pause is None:
            raise CorruptStateError("Paused timer without pauseTime")
        return cls(
            is_running=True,
            is_paused=is_paused,
            duration_seconds=duration,
            start_epoch_ms=start,
            pause_epoch_ms=pause,
        )


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if not SQLITE_INT_MIN <= value <= SQLITE_INT_MAX:
        return None
    return int(value)


class SessionLog(Protocol):
    def append_session(self, record: SessionRecord) -> Any:
        ...


class TimerEngine(QObject):
    """Idle -> Running <-> Paused -> Completed -> Idle, with crash recovery.

    Remaining time is computed from `start_epoch_ms`; resuming shifts that
    origin forward by the paused span instead of keeping a separate counter.
    """

    phase_changed = pyqtSignal(str)
    remaining_changed = pyqtSignal(int)
    session_completed = pyqtSignal(object)
    blocked = pyqtSignal(str)

    def __init__(
        self,
        store: KeyValueStore,
        session_log: SessionLog,
        dispatcher: NotificationDispatcher,
        app_state: AppState,
        lifecycle: AppLifecycleMonitor,
        clock: Clock | None = None,
        config: TimerConfig | None = None,
        timer_factory: TimerFactory = QTimer,
    ) -> None:
        super().__init__()
        self._store = store
        self._session_log = session_log
        self._dispatcher = dispatcher
        self._app_state = app_state
        self._lifecycle = lifecycle
        self._clock = clock or SystemClock()
        self._config = config or TimerConfig()
        self._snapshot = TimerSnapshot()
        self._disposed = False

        self._countdown = RepeatingLoop("countdown", self._config.tick_interval_ms, self._on_tick, timer_factory)
        self.reminders = ReminderScheduler(
            dispatcher,
            app_state,
            lifecycle,
            lambda: self._snapshot,
            self._clock,
            self._config,
            timer_factory,
        )
        self._persistence = Debouncer(self._write_snapshot, self._config.persist_debounce_ms, self._clock)

        lifecycle.foreground.connect(self._on_foreground)
        lifecycle.background.connect(self._on_background)
        app_state.settings_changed.connect(self._on_settings_changed)

    @property
    def snapshot(self) -> TimerSnapshot:
        return self._snapshot

    @property
    def phase(self) -> TimerPhase:
        return self._snapshot.phase

    @property
    def is_running(self) -> bool:
        return self._snapshot.is_running

    @property
    def is_paused(self) -> bool:
        return self._snapshot.is_paused

    @property
    def countdown_active(self) -> bool:
        return self._countdown.is_active

    def remaining_seconds(self) -> int:
        return self._snapshot.remaining_seconds(self._clock.now_ms())

    def phase_fraction(self) -> float:
        return self._snapshot.phase_fraction(self._clock.now_ms())

    def start(self, duration_seconds: int, resume_from_epoch_ms: int | None = None) -> bool:
        if self._snapshot.is_running:
            logger.warning("Timer already running, ignoring start")
            return False
        if duration_seconds < 0 or (duration_seconds == 0 and resume_from_epoch_ms is None):
            raise ValueError("Duration must be positive")

        origin = resume_from_epoch_ms if resume_from_epoch_ms is not None else self._clock.now_ms()
        self._snapshot = TimerSnapshot(is_running=True, duration_seconds=duration_seconds, start_epoch_ms=origin)
        self._countdown.start()
        self._persistence.request()
        logger.info(
            "Timer %s: %ds from %d",
            "reattached" if resume_from_epoch_ms is not None else "started",
            duration_seconds,
            origin,
        )
        self._announce()
        if self._lifecycle.is_foreground:
            self.reminders.start_loop()
        return True

    def pause(self) -> bool:
        snapshot = self._snapshot
        if not snapshot.is_running or snapshot.is_paused:
            return False
        if self._refuse_when_locked("pause"):
            return False

        self._halt_loops()
        self._snapshot = replace(snapshot, is_paused=True, pause_epoch_ms=self._clock.now_ms())
        self._checkpoint()
        logger.info("Timer paused with %ds left", self.remaining_seconds())
        self._announce()
        return True

    def resume(self) -> bool:
        snapshot = self._snapshot
        if not snapshot.is_running or not snapshot.is_paused or snapshot.pause_epoch_ms is None:
            return False

        paused_for = max(0, self._clock.now_ms() - snapshot.pause_epoch_ms)
        self._snapshot = replace(
            snapshot,
            is_paused=False,
            pause_epoch_ms=None,
            start_epoch_ms=snapshot.start_epoch_ms + paused_for,
        )
        self._countdown.start()
        self._persistence.request()
        logger.info("Timer resumed after %d ms paused", paused_for)
        self._announce()
        if self._lifecycle.is_foreground:
            self.reminders.start_loop()
        return True

    def toggle_pause(self) -> bool:
        if self._snapshot.is_paused:
            return self.resume()
        return self.pause()

    def stop(self) -> bool:
        """User cancel; never recorded as a session."""
        if not self._snapshot.is_running:
            return False
        if self._refuse_when_locked("stop"):
            return False

        self._halt_loops()
        self._snapshot = TimerSnapshot()
        self._checkpoint()
        logger.info("Timer cancelled")
        self._announce()
        return True

    def complete(self) -> bool:
        snapshot = self._snapshot
        if not snapshot.is_running or snapshot.start_epoch_ms is None:
            return False

        self._halt_loops()
        end_ms = self._clock.now_ms()
        self._snapshot = TimerSnapshot()
        self._checkpoint()
        logger.info("Timer complete after %ds", snapshot.duration_seconds)
        self.phase_changed.emit(TimerPhase.COMPLETED.value)

        self._notify_completion()
        record = SessionRecord(
            start_epoch_ms=snapshot.start_epoch_ms,
            end_epoch_ms=end_ms,
            duration_seconds=snapshot.duration_seconds,
            completed=True,
        )
        try:
            self._session_log.append_session(record)
        except PersistenceError as exc:
            logger.error("Failed to save session history: %s", exc)
        self.session_completed.emit(record)
        self._announce()
        return True

    def restore(self) -> TimerPhase:
        """Rebuild progress from the persisted snapshot after a restart."""
        if self._snapshot.is_running:
            logger.warning("Timer already active, skipping restore")
            return self.phase
        try:
            raw = self._store.get(TIMER_STATE_KEY)
        except PersistenceError as exc:
            logger.error("Failed to load timer state: %s", exc)
            return self.phase
        if raw is None:
            return self.phase

        try:
            snapshot = TimerSnapshot.from_json(raw)
        except CorruptStateError as exc:
            logger.warning("Invalid timer state, resetting to idle: %s", exc)
            self._clear_stored_state()
            return self.phase

        if not snapshot.is_running:
            self._clear_stored_state()
            return self.phase

        if snapshot.is_paused:
            self._snapshot = snapshot
            logger.info("Restored paused timer with %ds left", self.remaining_seconds())
            self._announce()
            return self.phase

        if snapshot.remaining_ms(self._clock.now_ms()) <= 0:
            logger.info("Timer finished while the app was closed")
            self._snapshot = snapshot
            self.complete()
            return self.phase

        self.start(snapshot.duration_seconds, resume_from_epoch_ms=snapshot.start_epoch_ms)
        return self.phase

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self._halt_loops()
        self._persistence.flush()
        self._lifecycle.foreground.disconnect(self._on_foreground)
        self._lifecycle.background.disconnect(self._on_background)
        self._app_state.settings_changed.disconnect(self._on_settings_changed)

    def _on_tick(self) -> None:
        snapshot = self._snapshot
        if not snapshot.is_running or snapshot.is_paused:
            return
        remaining_ms = snapshot.remaining_ms(self._clock.now_ms())
        if remaining_ms <= 0:
            self.complete()
            return
        self.remaining_changed.emit(-(-remaining_ms // 1000))
        self._persistence.request()

    def _on_foreground(self) -> None:
        snapshot = self._snapshot
        if not snapshot.is_running or snapshot.is_paused:
            return
        if snapshot.remaining_ms(self._clock.now_ms()) <= 0:
            self.complete()
            return
        self.remaining_changed.emit(self.remaining_seconds())
        self.reminders.start_loop()

    def _on_background(self) -> None:
        if not self._snapshot.is_running:
            return
        self.reminders.stop_loop()
        self._checkpoint()

    def _on_settings_changed(self, key: str, _value: object) -> None:
        if key == "timer_lock_enabled":
            return
        snapshot = self._snapshot
        if snapshot.is_running and not snapshot.is_paused and self._lifecycle.is_foreground:
            self.reminders.restart()

    def _refuse_when_locked(self, operation: str) -> bool:
        if not self._app_state.settings.lock_active:
            return False
        logger.info("%s", LockedError(operation))
        self.blocked.emit(operation)
        return True

    def _notify_completion(self) -> None:
        if not self._app_state.settings.notifications_enabled:
            logger.debug("Notifications disabled, skipping completion alert")
            return
        try:
            self._dispatcher.dispatch(Notification(COMPLETION_TITLE, COMPLETION_BODY))
        except DispatchError as exc:
            logger.error("Failed to send completion notification: %s", exc)

    def _announce(self) -> None:
        self.phase_changed.emit(self.phase.value)
        self.remaining_changed.emit(self.remaining_seconds())

    def _halt_loops(self) -> None:
        self._countdown.stop()
        self.reminders.stop_loop()

    def _checkpoint(self) -> None:
        self._persistence.flush(force=True)

    def _write_snapshot(self) -> None:
        snapshot = self._snapshot
        if snapshot.is_running:
            self._store.set(TIMER_STATE_KEY, snapshot.to_json(self._clock.now_ms()))
        else:
            self._store.remove(TIMER_STATE_KEY)

    def _clear_stored_state(self) -> None:
        try:
            self._store.remove(TIMER_STATE_KEY)
        except PersistenceError as exc:
            logger.error("Failed to clear stored timer state: %s", exc)

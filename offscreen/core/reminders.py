from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from offscreen.core.app_state import AppState
from offscreen.core.clock import Clock
from offscreen.core.config import REMINDER_TITLE, TimerConfig
from offscreen.core.errors import DispatchError
from offscreen.core.lifecycle import AppLifecycleMonitor
from offscreen.core.loops import RepeatingLoop, TimerFactory
from offscreen.core.messages import select_message
from offscreen.core.notifications import Notification, NotificationDispatcher

if TYPE_CHECKING:
    from offscreen.core.timer import TimerSnapshot


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReminderTick:
    fired_at_ms: int
    phase_fraction: float
    message: str


class ReminderScheduler(QObject):
    """Recurring "stay off the screen" reminders while a timer runs.

    The engine decides when the loop runs; suppression is re-evaluated on
    every tick because tier and settings may change mid-session.
    """

    reminder_sent = pyqtSignal(object)

    def __init__(
        self,
        dispatcher: NotificationDispatcher,
        app_state: AppState,
        lifecycle: AppLifecycleMonitor,
        snapshot_source: Callable[[], TimerSnapshot],
        clock: Clock,
        config: TimerConfig | None = None,
        timer_factory: TimerFactory = QTimer,
        rng: random.Random | None = None,
    ) -> None:
        super().__init__()
        self._dispatcher = dispatcher
        self._app_state = app_state
        self._lifecycle = lifecycle
        self._snapshot_source = snapshot_source
        self._clock = clock
        self._config = config or TimerConfig()
        self._rng = rng or random.Random()
        self._loop = RepeatingLoop("reminder", self._period_ms(), self._on_tick, timer_factory)

    @property
    def is_active(self) -> bool:
        return self._loop.is_active

    @property
    def period_ms(self) -> int:
        return self._loop.interval_ms

    def start_loop(self) -> None:
        self._loop.interval_ms = self._period_ms()
        self._loop.start(fire_immediately=True)

    def stop_loop(self) -> bool:
        return self._loop.stop()

    def restart(self) -> None:
        self.stop_loop()
        self.start_loop()

    def _period_ms(self) -> int:
        return self._app_state.settings.reminder_frequency_seconds * 1000

    def _suppression_reason(self, snapshot: TimerSnapshot, now_ms: int) -> str | None:
        settings = self._app_state.settings
        if not snapshot.is_running or snapshot.is_paused:
            return "timer not running"
        if snapshot.remaining_ms(now_ms) <= 0:
            return "timer finished"
        if not settings.notifications_enabled:
            return "notifications disabled"
        if settings.smart_active:
            if not self._lifecycle.is_foreground:
                return "app not in foreground"
            if snapshot.start_epoch_ms is not None and now_ms - snapshot.start_epoch_ms < self._config.grace_period_ms:
                return "grace period"
        return None

    def _on_tick(self) -> ReminderTick | None:
        snapshot = self._snapshot_source()
        now = self._clock.now_ms()
        reason = self._suppression_reason(snapshot, now)
        if reason:
            logger.debug("Reminder suppressed: %s", reason)
            return None

        settings = self._app_state.settings
        fraction = snapshot.phase_fraction(now)
        message = select_message(
            fraction,
            settings.tier,
            settings.smart_notifications_enabled,
            settings.funny_mode,
            self._rng,
        )
        tick = ReminderTick(fired_at_ms=now, phase_fraction=fraction, message=message)
        try:
            delivered = self._dispatcher.dispatch(Notification(REMINDER_TITLE, message))
        except DispatchError as exc:
            logger.error("Failed to send reminder: %s", exc)
            return None
        if delivered:
            self.reminder_sent.emit(tick)
        return tick

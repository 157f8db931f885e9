from __future__ import annotations

from PyQt6.QtCore import QTimer
from PyQt6.QtGui import QAction
from PyQt6.QtWidgets import QMenu, QSystemTrayIcon

from offscreen.core.config import APP_NAME, DEFAULT_SESSION_SECONDS, LOCK_NOTICE_MS
from offscreen.core.timer import TimerEngine, TimerPhase


def format_remaining(seconds: int) -> str:
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


class TrayController:
    """Tray menu driving the engine: start, pause/resume, stop.

    A blocked pause or stop leaves the menu as it is and adds a lock notice to
    the countdown tooltip for `lock_notice_ms`.
    """

    def __init__(
        self,
        tray: QSystemTrayIcon,
        engine: TimerEngine,
        session_seconds: int = DEFAULT_SESSION_SECONDS,
        lock_notice_ms: int = LOCK_NOTICE_MS,
    ) -> None:
        self.tray = tray
        self.engine = engine
        self.session_seconds = session_seconds
        self.lock_notice: str | None = None

        self._notice_timer = QTimer()
        self._notice_timer.setSingleShot(True)
        self._notice_timer.setInterval(lock_notice_ms)
        self._notice_timer.timeout.connect(self._clear_lock_notice)

        self.menu = QMenu()
        self.start_action = QAction(f"Start {session_seconds // 60} min", self.menu)
        self.pause_action = QAction("Pause", self.menu)
        self.stop_action = QAction("Stop", self.menu)
        self.quit_action = QAction("Quit", self.menu)
        for action in (self.start_action, self.pause_action, self.stop_action):
            self.menu.addAction(action)
        self.menu.addSeparator()
        self.menu.addAction(self.quit_action)
        self.tray.setContextMenu(self.menu)

        self.start_action.triggered.connect(self.start_session)
        self.pause_action.triggered.connect(self.engine.toggle_pause)
        self.stop_action.triggered.connect(self.engine.stop)
        self.engine.phase_changed.connect(self._update_actions)
        self.engine.remaining_changed.connect(self._update_tooltip)
        self.engine.blocked.connect(self._show_locked)

        self._update_actions(self.engine.phase.value)
        self._update_tooltip(self.engine.remaining_seconds())

    def start_session(self) -> None:
        self.engine.start(self.session_seconds)

    def _update_actions(self, phase: str) -> None:
        state = TimerPhase(phase)
        self.start_action.setEnabled(state in {TimerPhase.IDLE, TimerPhase.COMPLETED})
        self.pause_action.setEnabled(state in {TimerPhase.RUNNING, TimerPhase.PAUSED})
        self.pause_action.setText("Resume" if state == TimerPhase.PAUSED else "Pause")
        self.stop_action.setEnabled(state in {TimerPhase.RUNNING, TimerPhase.PAUSED})

    def _update_tooltip(self, remaining_seconds: int) -> None:
        if self.engine.phase == TimerPhase.IDLE:
            text = APP_NAME
        else:
            text = f"{APP_NAME} · {format_remaining(remaining_seconds)}"
        if self.lock_notice:
            text = f"{text} · {self.lock_notice}"
        self.tray.setToolTip(text)

    def _show_locked(self, operation: str) -> None:
        self.lock_notice = f"Timer lock is on, {operation} unavailable"
        self._notice_timer.start()
        self._update_tooltip(self.engine.remaining_seconds())

    def _clear_lock_notice(self) -> None:
        self.lock_notice = None
        self._update_tooltip(self.engine.remaining_seconds())

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

from PyQt6.QtWidgets import QSystemTrayIcon

from offscreen.core.errors import DispatchError


logger = logging.getLogger(__name__)


class PermissionState(str, Enum):
    GRANTED = "granted"
    DENIED = "denied"
    UNDETERMINED = "undetermined"


@dataclass(frozen=True)
class Notification:
    title: str
    body: str


class NotificationDispatcher(ABC):
    """Immediate user-visible alerts, gated by the platform permission."""

    def __init__(self) -> None:
        self._permission: PermissionState | None = None

    def get_permission_state(self) -> PermissionState:
        if self._permission is None:
            return self._query_permission()
        return self._permission

    def request_permission(self) -> PermissionState:
        """Ask once; the answer is either granted or denied, never an error."""
        state = self._query_permission()
        if state is PermissionState.UNDETERMINED:
            state = self._prompt_permission()
        if state is not PermissionState.GRANTED:
            state = PermissionState.DENIED
        self._permission = state
        logger.info("Notification permission %s", state.value)
        return state

    def dispatch(self, notification: Notification) -> bool:
        if self.get_permission_state() is not PermissionState.GRANTED:
            logger.info("Notification permission not granted, skipping %r", notification.title)
            return False
        try:
            self._deliver(notification)
        except DispatchError:
            raise
        except Exception as exc:
            raise DispatchError(f"Failed to show {notification.title!r}: {exc}") from exc
        return True

    @abstractmethod
    def _query_permission(self) -> PermissionState:
        """Current platform answer without prompting."""

    def _prompt_permission(self) -> PermissionState:
        return self._query_permission()

    @abstractmethod
    def _deliver(self, notification: Notification) -> None:
        """Show the notification now."""


class TrayNotificationDispatcher(NotificationDispatcher):
    """Balloon messages through the system tray icon."""

    def __init__(self, tray: QSystemTrayIcon, timeout_ms: int = 5000) -> None:
        super().__init__()
        self._tray = tray
        self._timeout_ms = timeout_ms

    def _query_permission(self) -> PermissionState:
        if not QSystemTrayIcon.isSystemTrayAvailable() or not QSystemTrayIcon.supportsMessages():
            return PermissionState.DENIED
        if not self._tray.isVisible():
            return PermissionState.UNDETERMINED
        return PermissionState.GRANTED

    def _prompt_permission(self) -> PermissionState:
        self._tray.show()
        return self._query_permission()

    def _deliver(self, notification: Notification) -> None:
        self._tray.showMessage(
            notification.title,
            notification.body,
            QSystemTrayIcon.MessageIcon.Information,
            self._timeout_ms,
        )

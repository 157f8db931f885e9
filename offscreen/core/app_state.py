from __future__ import annotations

import logging
from typing import Any, Protocol

from PyQt6.QtCore import QObject, pyqtSignal

from offscreen.core.config import SETTINGS_KEY
from offscreen.core.errors import CorruptStateError, PersistenceError
from offscreen.core.notifications import NotificationDispatcher, PermissionState
from offscreen.core.settings import Settings


logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


class AppState(QObject):
    """Owns the user settings and persists them on every change."""

    settings_changed = pyqtSignal(str, object)

    def __init__(self, settings: Settings | None = None) -> None:
        super().__init__()
        self.settings = settings or Settings()
        self._store: KeyValueStore | None = None

    def load_from_storage(self, store: KeyValueStore) -> None:
        self._store = store
        try:
            raw = store.get(SETTINGS_KEY)
        except PersistenceError as exc:
            logger.error("Failed to load settings, using defaults: %s", exc)
            return
        if raw is None:
            return
        try:
            self.settings = Settings.from_json(raw)
        except CorruptStateError as exc:
            logger.warning("Invalid settings data, using defaults: %s", exc)
            try:
                store.remove(SETTINGS_KEY)
            except PersistenceError as clear_exc:
                logger.error("Failed to clear corrupted settings: %s", clear_exc)

    def update(self, **changes: Any) -> None:
        previous = self.settings
        self.settings = previous.with_changes(**changes)
        self._save()
        for key in changes:
            value = getattr(self.settings, key)
            if value != getattr(previous, key):
                self.settings_changed.emit(key, value)

    def sync_notification_permission(self, dispatcher: NotificationDispatcher) -> PermissionState:
        """Request permission and mirror the answer into `notifications_enabled`."""
        state = dispatcher.request_permission()
        self.update(notifications_enabled=state is PermissionState.GRANTED)
        return state

    def _save(self) -> None:
        if not self._store:
            return
        try:
            self._store.set(SETTINGS_KEY, self.settings.to_json())
        except PersistenceError as exc:
            logger.error("Failed to save settings: %s", exc)

from __future__ import annotations

import logging

from PyQt6.QtCore import QObject, Qt, pyqtSignal
from PyQt6.QtGui import QGuiApplication


logger = logging.getLogger(__name__)

# A tray-only app never owns the focused window and sits in ApplicationInactive
# for the whole session, so only these states count as background.
BACKGROUND_STATES = frozenset(
    {Qt.ApplicationState.ApplicationHidden, Qt.ApplicationState.ApplicationSuspended}
)


class AppLifecycleMonitor(QObject):
    """Reports foreground/background transitions of the application.

    The desktop session counts as foreground unless Qt reports the app as
    hidden or suspended.
    """

    foreground = pyqtSignal()
    background = pyqtSignal()

    def __init__(self, is_foreground: bool = True) -> None:
        super().__init__()
        self._is_foreground = is_foreground

    @property
    def is_foreground(self) -> bool:
        return self._is_foreground

    def attach(self, app: QGuiApplication) -> None:
        app.applicationStateChanged.connect(self._on_application_state)
        self._on_application_state(app.applicationState())

    def detach(self, app: QGuiApplication) -> None:
        app.applicationStateChanged.disconnect(self._on_application_state)

    def set_foreground(self, active: bool) -> None:
        if active == self._is_foreground:
            return
        self._is_foreground = active
        logger.info("App moved to %s", "foreground" if active else "background")
        if active:
            self.foreground.emit()
        else:
            self.background.emit()

    def _on_application_state(self, state: Qt.ApplicationState) -> None:
        self.set_foreground(state not in BACKGROUND_STATES)

from __future__ import annotations

"""Entry point for OffScreen Buddy.

Builds the Qt application, opens storage, loads settings, wires the timer
engine to the tray notifier and lifecycle monitor, then restores any timer
that was running when the process last exited.
"""

import logging
import sys
from dataclasses import dataclass

from PyQt6.QtWidgets import QApplication, QStyle, QSystemTrayIcon

from offscreen.core.app_state import AppState
from offscreen.core.clock import Clock
from offscreen.core.config import APP_NAME, TimerConfig, default_db_path, log_level
from offscreen.core.lifecycle import AppLifecycleMonitor
from offscreen.core.notifications import NotificationDispatcher, TrayNotificationDispatcher
from offscreen.core.timer import TimerEngine
from offscreen.data.storage import Storage
from offscreen.ui.tray import TrayController


logger = logging.getLogger(__name__)


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=level or log_level(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_engine(
    storage: Storage,
    app_state: AppState,
    dispatcher: NotificationDispatcher,
    lifecycle: AppLifecycleMonitor,
    clock: Clock | None = None,
    config: TimerConfig | None = None,
) -> TimerEngine:
    """Wire one engine per process; the storage doubles as the session log."""
    app_state.load_from_storage(storage)
    return TimerEngine(
        store=storage,
        session_log=storage,
        dispatcher=dispatcher,
        app_state=app_state,
        lifecycle=lifecycle,
        clock=clock,
        config=config,
    )


@dataclass
class TrayApp:
    tray: QSystemTrayIcon
    dispatcher: TrayNotificationDispatcher
    lifecycle: AppLifecycleMonitor
    app_state: AppState
    engine: TimerEngine
    controller: TrayController

    def shutdown(self, app: QApplication) -> None:
        self.engine.dispose()
        self.lifecycle.detach(app)
        self.tray.hide()


def create_tray_app(app: QApplication, storage: Storage) -> TrayApp:
    """Everything `main()` runs: tray notifier, lifecycle, settings, engine, menu."""
    tray = QSystemTrayIcon(app.style().standardIcon(QStyle.StandardPixmap.SP_ComputerIcon))
    dispatcher = TrayNotificationDispatcher(tray)
    lifecycle = AppLifecycleMonitor()
    lifecycle.attach(app)

    app_state = AppState()
    engine = build_engine(storage, app_state, dispatcher, lifecycle)
    app_state.sync_notification_permission(dispatcher)

    controller = TrayController(tray, engine)
    controller.quit_action.triggered.connect(app.quit)
    tray.show()
    return TrayApp(tray, dispatcher, lifecycle, app_state, engine, controller)


def main() -> int:
    """Creates the dependencies and runs the Qt event loop."""
    configure_logging()
    app = QApplication(sys.argv)
    app.setApplicationName(APP_NAME)
    app.setQuitOnLastWindowClosed(False)

    storage = Storage(default_db_path())
    storage.init_db()

    tray_app = create_tray_app(app, storage)
    tray_app.engine.restore()
    logger.info("%s ready, timer is %s", APP_NAME, tray_app.engine.phase.value)

    app.aboutToQuit.connect(lambda: tray_app.shutdown(app))
    return app.exec()


if __name__ == "__main__":
    raise SystemExit(main())

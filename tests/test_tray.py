from PyQt6.QtTest import QTest
from PyQt6.QtWidgets import QSystemTrayIcon

from offscreen.core.config import APP_NAME
from offscreen.core.timer import TimerPhase
from offscreen.ui.tray import TrayController, format_remaining


def test_format_remaining() -> None:
    assert format_remaining(25 * 60) == "25:00"
    assert format_remaining(61) == "01:01"
    assert format_remaining(0) == "00:00"


def test_menu_follows_phase(qapp, engine) -> None:
    tray = QSystemTrayIcon()
    controller = TrayController(tray, engine, session_seconds=600)
    assert tray.toolTip() == APP_NAME

    controller.start_action.trigger()
    assert not controller.start_action.isEnabled()
    assert tray.toolTip() == f"{APP_NAME} · 10:00"

    controller.pause_action.trigger()
    assert engine.phase == TimerPhase.PAUSED
    assert controller.pause_action.text() == "Resume"

    controller.stop_action.trigger()
    assert controller.start_action.isEnabled()
    assert not controller.pause_action.isEnabled()
    assert tray.toolTip() == APP_NAME


def test_lock_notice_survives_ticks_then_clears(qapp, engine, app_state, timers) -> None:
    tray = QSystemTrayIcon()
    controller = TrayController(tray, engine, session_seconds=600, lock_notice_ms=50)
    app_state.update(tier="pro", timer_lock_enabled=True)
    controller.start_session()

    controller.stop_action.trigger()
    timers.advance(1_000)

    assert engine.phase == TimerPhase.RUNNING
    assert controller.stop_action.isEnabled()
    assert tray.toolTip() == f"{APP_NAME} · 09:59 · Timer lock is on, stop unavailable"

    QTest.qWait(200)
    assert controller.lock_notice is None
    assert tray.toolTip() == f"{APP_NAME} · 09:59"

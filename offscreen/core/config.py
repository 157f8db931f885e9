from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


APP_NAME = "OffScreen Buddy"

SETTINGS_KEY = "timer_settings"
TIMER_STATE_KEY = "timer_state"

TICK_INTERVAL_MS = 1000
PERSIST_DEBOUNCE_MS = 1000
SMART_GRACE_PERIOD_MS = 5000
LOCK_NOTICE_MS = 4000

REMINDER_FREQUENCY_OPTIONS = (15, 30, 45, 60, 120, 180)
DEFAULT_REMINDER_FREQUENCY_SECONDS = 30

DEFAULT_SESSION_SECONDS = 25 * 60

REMINDER_TITLE = "OffScreen Buddy Reminder 🔒"
COMPLETION_TITLE = "🎉 Timer Complete!"
COMPLETION_BODY = "You did it! The phone missed you 😄"

DB_PATH_ENV = "OFFSCREEN_DB_PATH"
LOG_LEVEL_ENV = "OFFSCREEN_LOG_LEVEL"


@dataclass(frozen=True)
class TimerConfig:
    tick_interval_ms: int = TICK_INTERVAL_MS
    persist_debounce_ms: int = PERSIST_DEBOUNCE_MS
    grace_period_ms: int = SMART_GRACE_PERIOD_MS

    def __post_init__(self) -> None:
        if self.tick_interval_ms <= 0:
            raise ValueError("tick_interval_ms must be positive")
        if self.persist_debounce_ms < 0 or self.grace_period_ms < 0:
            raise ValueError("Intervals cannot be negative")


def default_db_path() -> Path:
    """SQLite file from the environment, else `app.db` in the working directory."""
    override = os.getenv(DB_PATH_ENV)
    if override:
        return Path(override).expanduser()
    return Path.cwd() / "app.db"


def log_level() -> str:
    return os.getenv(LOG_LEVEL_ENV, "INFO").upper()

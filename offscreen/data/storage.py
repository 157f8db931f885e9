from __future__ import annotations

"""SQLite persistence: key-value timer state/settings and the session log."""

import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Iterator

from offscreen.core.errors import PersistenceError


SCHEMA_VERSION = 1


@dataclass(frozen=True)
class SessionRecord:
    start_epoch_ms: int
    end_epoch_ms: int
    duration_seconds: int
    completed: bool = True


@dataclass(frozen=True)
class SessionRow:
    id: int
    start_epoch_ms: int
    end_epoch_ms: int
    duration_seconds: int
    completed: bool


class Storage:
    """Wraps the SQLite connection; every sqlite failure surfaces as `PersistenceError`."""
    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA journal_mode = WAL;")
        except sqlite3.DatabaseError:
            pass
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = self._connect()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Cannot open {self.db_path}: {exc}") from exc
        try:
            yield conn
            conn.commit()
        except (sqlite3.Error, OverflowError) as exc:
            conn.rollback()
            raise PersistenceError(str(exc)) from exc
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def init_db(self) -> None:
        """Creates the tables on first launch."""
        with self._transaction() as conn:
            conn.execute("CREATE TABLE IF NOT EXISTS schema_version (version INTEGER NOT NULL)")
            row = conn.execute("SELECT version FROM schema_version LIMIT 1").fetchone()
            if not row:
                conn.execute("INSERT INTO schema_version(version) VALUES (?)", (SCHEMA_VERSION,))
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS settings(
                    key TEXT PRIMARY KEY,
                    value TEXT
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS sessions(
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    start_ms INTEGER NOT NULL,
                    end_ms INTEGER NOT NULL,
                    duration_sec INTEGER NOT NULL,
                    completed INTEGER NOT NULL CHECK(completed IN (0, 1))
                )
                """
            )

    def get(self, key: str) -> str | None:
        with self._transaction() as conn:
            row = conn.execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()
        if not row:
            return None
        return row["value"]

    def set(self, key: str, value: str) -> None:
        with self._transaction() as conn:
            conn.execute(
                "INSERT INTO settings(key, value) VALUES(?, ?) ON CONFLICT(key) DO UPDATE SET value=excluded.value",
                (key, value),
            )

    def remove(self, key: str) -> None:
        with self._transaction() as conn:
            conn.execute("DELETE FROM settings WHERE key = ?", (key,))

    def append_session(self, record: SessionRecord) -> int:
        with self._transaction() as conn:
            cursor = conn.execute(
                "INSERT INTO sessions(start_ms, end_ms, duration_sec, completed) VALUES (?, ?, ?, ?)",
                (record.start_epoch_ms, record.end_epoch_ms, record.duration_seconds, int(record.completed)),
            )
            return int(cursor.lastrowid)

    def list_sessions(self, limit: int = 100) -> list[SessionRow]:
        """Latest sessions first."""
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT id, start_ms, end_ms, duration_sec, completed FROM sessions ORDER BY id DESC LIMIT ?",
                (limit,),
            ).fetchall()
        return [self._row(row) for row in rows]

    def sessions_between(self, start_ms: int, end_ms: int) -> list[SessionRow]:
        """Sessions whose start falls inside [start_ms, end_ms], oldest first."""
        with self._transaction() as conn:
            rows = conn.execute(
                """
                SELECT id, start_ms, end_ms, duration_sec, completed
                FROM sessions
                WHERE start_ms BETWEEN ? AND ?
                ORDER BY start_ms ASC
                """,
                (start_ms, end_ms),
            ).fetchall()
        return [self._row(row) for row in rows]

    def clear_sessions(self) -> None:
        with self._transaction() as conn:
            conn.execute("DELETE FROM sessions")

    def current_streak_days(self, today: date | None = None) -> int:
        with self._transaction() as conn:
            rows = conn.execute("SELECT start_ms FROM sessions WHERE completed = 1").fetchall()
        if not rows:
            return 0

        success_days = {datetime.fromtimestamp(row["start_ms"] / 1000).date() for row in rows}
        cursor = today or date.today()
        streak = 0
        while cursor in success_days:
            streak += 1
            cursor -= timedelta(days=1)
        return streak

    @staticmethod
    def _row(row: sqlite3.Row) -> SessionRow:
        return SessionRow(
            id=row["id"],
            start_epoch_ms=row["start_ms"],
            end_epoch_ms=row["end_ms"],
            duration_seconds=row["duration_sec"],
            completed=bool(row["completed"]),
        )

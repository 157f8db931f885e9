from __future__ import annotations

import logging
from typing import Callable

from offscreen.core.clock import Clock
from offscreen.core.errors import PersistenceError


logger = logging.getLogger(__name__)


class Debouncer:
    """Rate-limits a write to at most once per interval, with an explicit flush.

    `request()` marks the state dirty and writes only when the previous attempt
    is at least `interval_ms` old; otherwise the write waits for the next
    request after the window or for `flush()`. A failed write stays pending and
    is retried in the next window.
    """

    def __init__(self, action: Callable[[], None], interval_ms: int, clock: Clock) -> None:
        self._action = action
        self._interval_ms = interval_ms
        self._clock = clock
        self._pending = False
        self._last_attempt_ms: int | None = None

    @property
    def pending(self) -> bool:
        return self._pending

    def request(self) -> bool:
        self._pending = True
        now = self._clock.now_ms()
        if self._last_attempt_ms is not None and now - self._last_attempt_ms < self._interval_ms:
            return False
        return self.flush()

    def flush(self, force: bool = False) -> bool:
        if force:
            self._pending = True
        if not self._pending:
            return True
        self._last_attempt_ms = self._clock.now_ms()
        try:
            self._action()
        except PersistenceError as exc:
            logger.error("Failed to save timer state, will retry: %s", exc)
            return False
        self._pending = False
        return True

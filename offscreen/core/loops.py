from __future__ import annotations

import logging
from typing import Any, Callable

from PyQt6.QtCore import QTimer


logger = logging.getLogger(__name__)

TimerFactory = Callable[[], Any]


class RepeatingLoop:
    """Periodic callback on a `QTimer` with generation-guarded cancellation.

    Every start and every stop bumps the generation. A timeout carries the
    generation it was armed with and is dropped when that no longer matches,
    so a callback queued before `stop()` can never run after it.
    """

    def __init__(
        self,
        name: str,
        interval_ms: int,
        callback: Callable[[], None],
        timer_factory: TimerFactory = QTimer,
    ) -> None:
        if interval_ms <= 0:
            raise ValueError("Loop interval must be positive")
        self.name = name
        self._interval_ms = interval_ms
        self._callback = callback
        self._timer_factory = timer_factory
        self._timer: Any | None = None
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def interval_ms(self) -> int:
        return self._interval_ms

    @interval_ms.setter
    def interval_ms(self, value: int) -> None:
        if value <= 0:
            raise ValueError("Loop interval must be positive")
        self._interval_ms = value

    @property
    def is_active(self) -> bool:
        return self._timer is not None and self._timer.isActive()

    def start(self, fire_immediately: bool = False) -> None:
        self.stop()
        self._generation += 1
        generation = self._generation

        timer = self._timer_factory()
        timer.setInterval(self._interval_ms)
        timer.timeout.connect(lambda: self._fire(generation))
        self._timer = timer
        timer.start()
        logger.debug("%s loop started (generation %d, every %d ms)", self.name, generation, self._interval_ms)

        if fire_immediately:
            self._fire(generation)

    def stop(self) -> bool:
        if self._timer is None:
            return False
        self._timer.stop()
        self._timer = None
        self._generation += 1
        logger.debug("%s loop stopped", self.name)
        return True

    def _fire(self, generation: int) -> None:
        if generation != self._generation or self._timer is None:
            logger.debug("%s loop dropped stale tick (generation %d)", self.name, generation)
            return
        self._callback()

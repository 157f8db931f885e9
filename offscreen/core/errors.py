from __future__ import annotations


class TimerError(Exception):
    """Base class for failures reported by the timer core."""


class LockedError(TimerError):
    """Pause or cancel refused because lock mode is active."""

    def __init__(self, operation: str) -> None:
        super().__init__(f"{operation} blocked by timer lock mode")
        self.operation = operation


class PersistenceError(TimerError):
    """Reading or writing the persistence store failed."""


class DispatchError(TimerError):
    """A user-visible notification could not be delivered."""


class CorruptStateError(TimerError):
    """A persisted payload could not be turned back into valid state."""

"""Phase and timer state enums."""

from enum import Enum


class Phase(Enum):
    """Which duration table applies to the countdown."""

    WORK = "work"
    BREAK = "break"

    @property
    def next(self) -> "Phase":
        """The phase that follows this one on natural expiry."""
        return Phase.BREAK if self is Phase.WORK else Phase.WORK


class TimerState(Enum):
    """Derived state of a session at a given instant."""

    PAUSED = "paused"
    RUNNING = "running"
    EXPIRED = "expired"

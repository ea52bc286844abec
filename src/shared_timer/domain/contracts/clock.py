"""Protocol for reading the wall clock."""

from typing import Protocol


class ClockProtocol(Protocol):
    """Source of wall-clock time in epoch milliseconds."""

    def now_ms(self) -> int:
        """Return the current time in milliseconds since the epoch."""
        ...

"""Protocols for the periodic session tick."""

from typing import Protocol

from shared_timer.domain.models.timer_snapshot import TimerSnapshot


class TickableSessionProtocol(Protocol):
    """The part of a session engine a ticker drives."""

    def check_expiry(self) -> bool:
        """Advance the session if its countdown reached zero.

        Returns:
            True if this call detected an expiry.
        """
        ...

    def snapshot(self) -> TimerSnapshot:
        """Return the session as seen right now."""
        ...


class SessionTickerProtocol(Protocol):
    """Protocol for a cancellable periodic expiry check."""

    async def start(self) -> None:
        """Start ticking."""
        ...

    async def stop(self) -> None:
        """Stop ticking and release the task."""
        ...

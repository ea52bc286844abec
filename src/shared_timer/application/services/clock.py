"""Wall-clock helpers and end-instant arithmetic."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from shared_timer.domain.contracts.clock import ClockProtocol

if TYPE_CHECKING:
    from shared_timer.domain.models.session_record import SessionRecord
    from shared_timer.domain.ports.server_clock import ServerClockSource

logger = logging.getLogger(__name__)


class SystemClock(ClockProtocol):
    """Local wall clock.

    Remaining time is derived from an end instant shared between machines,
    so this must be wall time, not a monotonic counter.
    """

    def now_ms(self) -> int:
        return int(time.time() * 1000)


def estimate_offset_ms(sent_ms: int, server_ms: int, received_ms: int) -> int:
    """Estimate how far the server clock is ahead of the local one.

    Assumes the server read its clock halfway through the round trip.

    Args:
        sent_ms: Local time the request was sent.
        server_ms: Server time reported in the response.
        received_ms: Local time the response arrived.

    Returns:
        Offset to add to local time to get server time.
    """
    midpoint = sent_ms + (received_ms - sent_ms) // 2
    return server_ms - midpoint


class OffsetClock(ClockProtocol):
    """Clock corrected by a fixed offset, typically towards the server clock."""

    def __init__(self, base: ClockProtocol | None = None, offset_ms: int = 0) -> None:
        self._base = base or SystemClock()
        self.offset_ms = offset_ms

    def now_ms(self) -> int:
        return self._base.now_ms() + self.offset_ms

    async def calibrate(self, source: ServerClockSource) -> int:
        """Measure the offset against a server clock and adopt it.

        Args:
            source: Backend able to report its own time.

        Returns:
            The new offset in milliseconds.
        """
        sent = self._base.now_ms()
        server = await source.server_time_ms()
        received = self._base.now_ms()
        self.offset_ms = estimate_offset_ms(sent, server, received)
        logger.info(
            f"Calibrated clock offset: {self.offset_ms} ms (round trip {received - sent} ms)"
        )
        return self.offset_ms


def remaining_ms(record: SessionRecord, now_ms: int) -> int:
    """Remaining countdown of a record at ``now_ms``, never negative."""
    if record.end_instant_ms is None:
        return max(0, record.remaining_ms)
    return max(0, record.end_instant_ms - now_ms)

"""Periodic tick driving expiry detection of a session."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from shared_timer.domain.contracts.session_ticker import SessionTickerProtocol

if TYPE_CHECKING:
    from shared_timer.domain.contracts.session_ticker import TickableSessionProtocol
    from shared_timer.domain.models.timer_snapshot import TimerSnapshot

logger = logging.getLogger(__name__)

DEFAULT_TICK_INTERVAL_SECONDS = 0.5


class SessionTicker(SessionTickerProtocol):
    """Checks a session for expiry at a fixed interval.

    Use as an async context manager to tie the tick to a scope:

        async with SessionTicker(engine):
            ...
    """

    def __init__(
        self,
        session: TickableSessionProtocol,
        interval_seconds: float = DEFAULT_TICK_INTERVAL_SECONDS,
        on_tick: Callable[[TimerSnapshot], None] | None = None,
    ) -> None:
        """Initialize the ticker.

        Args:
            session: The session to check on every tick.
            interval_seconds: Time between ticks.
            on_tick: Called with the session snapshot after every tick.
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.session = session
        self.interval_seconds = interval_seconds
        self.on_tick = on_tick
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the tick task."""
        if self.running:
            logger.warning("Session ticker already running")
            return
        self._task = asyncio.create_task(self._tick_loop())
        logger.info(f"Started session ticker ({self.interval_seconds}s interval)")

    async def stop(self) -> None:
        """Cancel the tick task; it is not rescheduled."""
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Stopped session ticker")

    async def __aenter__(self) -> SessionTicker:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    def tick(self) -> None:
        """Run one tick. Failures are logged; the next tick still happens."""
        try:
            self.session.check_expiry()
            if self.on_tick is not None:
                self.on_tick(self.session.snapshot())
        except Exception as e:
            logger.error(f"Session tick failed: {e}", exc_info=True)

    async def _tick_loop(self) -> None:
        try:
            while True:
                self.tick()
                await asyncio.sleep(self.interval_seconds)
        except asyncio.CancelledError:
            logger.debug("Session ticker cancelled")
            raise

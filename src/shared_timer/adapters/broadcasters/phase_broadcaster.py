"""Broadcaster for phase completion events."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from shared_timer.domain.contracts.phase_event_broadcaster import PhaseEventBroadcasterProtocol
from shared_timer.domain.models.phase_completed import PhaseCompleted

logger = logging.getLogger(__name__)

PhaseSink = Callable[[PhaseCompleted], Awaitable[Any] | None]


class PhaseEventBroadcaster(PhaseEventBroadcasterProtocol):
    """Fans phase completions out to side-effect sinks.

    Sinks may be plain or async callables. A failing sink is logged and
    never affects the other sinks or the engine that broadcast the event.
    """

    def __init__(self) -> None:
        self._sinks: list[PhaseSink] = []
        self._pending: set[asyncio.Task[Any]] = set()

    def add_sink(self, sink: PhaseSink) -> Callable[[], None]:
        """Register a sink.

        Returns:
            A function that removes the sink again.
        """
        self._sinks.append(sink)

        def remove() -> None:
            if sink in self._sinks:
                self._sinks.remove(sink)

        return remove

    def broadcast_phase_completed(self, event: PhaseCompleted) -> None:
        """Deliver the event to every registered sink.

        Args:
            event: The completion observed by this client.
        """
        for sink in list(self._sinks):
            try:
                result = sink(event)
            except Exception as e:
                logger.error(f"Phase sink failed: {e}", exc_info=True)
                continue
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(self._await_sink(result))
                self._pending.add(task)
                task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for async sinks that are still running."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    @staticmethod
    async def _await_sink(result: Awaitable[Any]) -> None:
        try:
            await result
        except Exception as e:
            logger.error(f"Phase sink failed: {e}", exc_info=True)


class LoggingPhaseSink:
    """Sink that logs every completion."""

    def __init__(self, sink_logger: logging.Logger | None = None) -> None:
        self._logger = sink_logger or logger

    def __call__(self, event: PhaseCompleted) -> None:
        self._logger.info(
            f"Room '{event.room_id}': {event.completed_phase.value} phase completed, "
            f"{event.next_phase.value} phase next (cycle {event.cycle_count})"
        )

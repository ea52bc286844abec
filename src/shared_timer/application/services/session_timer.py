"""Session timer engine: the work/break state machine of one room.

States
------
PAUSED    ``end_instant`` is unset; ``remaining`` is frozen.
RUNNING   ``end_instant`` is set and still in the future.
EXPIRED   ``end_instant`` is set and has passed.

Transitions
-----------
PAUSED  -> RUNNING   start(phase), resume()
RUNNING -> PAUSED    pause(), switch_to_work(), switch_to_break()
RUNNING -> EXPIRED   wall clock passes ``end_instant`` (no write involved)
EXPIRED -> RUNNING   auto_advance() with auto start enabled
EXPIRED -> PAUSED    auto_advance() with auto start disabled

The whole state lives in one replicated ``SessionRecord``. Every command
reads the locally cached record, writes its successor, and leaves the
cache alone until the write comes back from the backend. Remaining time is
never stored while running; it is derived from the end instant and the
local clock on every read.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from functools import partial
from typing import TYPE_CHECKING, Any

from shared_timer.application.services.clock import SystemClock, remaining_ms
from shared_timer.application.services.time_formatting import format_time
from shared_timer.domain.models.phase import Phase, TimerState
from shared_timer.domain.models.phase_completed import PhaseCompleted
from shared_timer.domain.models.session_record import SessionRecord
from shared_timer.domain.models.timer_settings import TimerSettings
from shared_timer.domain.models.timer_snapshot import TimerSnapshot

if TYPE_CHECKING:
    import asyncio

    from shared_timer.application.services.shared_value_store import (
        SharedValue,
        SharedValueStore,
    )
    from shared_timer.domain.contracts.clock import ClockProtocol
    from shared_timer.domain.contracts.phase_event_broadcaster import (
        PhaseEventBroadcasterProtocol,
    )
    from shared_timer.domain.models.room_context import RoomContext

logger = logging.getLogger(__name__)

SESSION_VALUE_NAME = "session"

SnapshotListener = Callable[[TimerSnapshot], None]


class SessionTimerEngine:
    """Shared work/break countdown for one room."""

    def __init__(
        self,
        context: RoomContext,
        store: SharedValueStore,
        settings: TimerSettings | None = None,
        clock: ClockProtocol | None = None,
        broadcaster: PhaseEventBroadcasterProtocol | None = None,
    ) -> None:
        """Initialize the engine. Call ``open()`` before issuing commands.

        Args:
            context: Room joined by this client.
            store: Shared value store of this client.
            settings: Durations and auto-advance policy.
            clock: Wall clock; the system clock by default.
            broadcaster: Receives a ``PhaseCompleted`` on every natural expiry.
        """
        self.context = context
        self.settings = settings or TimerSettings()
        self._store = store
        self._clock = clock or SystemClock()
        self._broadcaster = broadcaster
        self._initial_record = SessionRecord.initial(self.settings)
        self._handle: SharedValue[SessionRecord] | None = None
        self._listeners: list[SnapshotListener] = []
        self._advanced_from: SessionRecord | None = None
        self._announced: SessionRecord | None = None
        self._last_revision = self._initial_record.revision

    async def open(self) -> None:
        """Subscribe to the room's session record."""
        if self._handle is not None:
            return
        self._handle = await self._store.open(
            self.context,
            SESSION_VALUE_NAME,
            self._initial_record,
            decode=SessionRecord.from_payload,
            encode=SessionRecord.to_payload,
        )
        self._handle.add_listener(self._on_record)
        logger.info(
            f"Session engine opened for room '{self.context.room_id}' "
            f"(client {self.context.client_id})"
        )

    async def close(self) -> None:
        """Drop the subscription. The room's state stays in the backend."""
        if self._handle is None:
            return
        handle, self._handle = self._handle, None
        await handle.close()
        logger.info(f"Session engine closed for room '{self.context.room_id}'")

    async def wait_synced(self, timeout: float | None = None) -> bool:
        """Wait until the room's current record (or its absence) is known.

        Commands issued before that are based on the initial record and
        would overwrite a running session of the room.
        """
        if self._handle is None:
            raise RuntimeError("Session engine is not open")
        return await self._handle.wait_synced(timeout)

    async def __aenter__(self) -> SessionTimerEngine:
        await self.open()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ── observables ───────────────────────────────────────────────────

    @property
    def record(self) -> SessionRecord:
        """Best-known session record of the room."""
        if self._handle is None:
            return self._initial_record
        return self._handle.value

    @property
    def phase(self) -> Phase:
        return self.record.phase

    @property
    def cycle_count(self) -> int:
        return self.record.cycle_count

    @property
    def is_paused(self) -> bool:
        return self.record.paused

    def remaining_time(self, now_ms: int | None = None) -> int:
        """Remaining milliseconds at ``now_ms`` (defaults to the clock)."""
        return remaining_ms(self.record, self._now(now_ms))

    def state(self, now_ms: int | None = None) -> TimerState:
        record = self.record
        if record.paused:
            return TimerState.PAUSED
        if remaining_ms(record, self._now(now_ms)) == 0:
            return TimerState.EXPIRED
        return TimerState.RUNNING

    def snapshot(self, now_ms: int | None = None) -> TimerSnapshot:
        """Consistent view of the session at one instant."""
        now = self._now(now_ms)
        record = self.record
        remaining = remaining_ms(record, now)
        return TimerSnapshot(
            state=self.state(now),
            phase=record.phase,
            remaining_ms=remaining,
            cycle_count=record.cycle_count,
            display=format_time(remaining),
        )

    def add_listener(self, listener: SnapshotListener) -> Callable[[], None]:
        """Call ``listener`` with a fresh snapshot after every replicated update.

        Returns:
            A function that removes the listener again.
        """
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    # ── commands ──────────────────────────────────────────────────────

    def start(self, phase: Phase) -> asyncio.Task[bool]:
        """Start a full countdown of ``phase`` right now."""
        duration = self.settings.duration_for(phase)
        end_instant = self._clock.now_ms() + duration
        logger.info(f"Room '{self.context.room_id}': starting {phase.value} phase")
        return self._write(phase=phase, end_instant_ms=end_instant, remaining_ms=duration)

    def pause(self) -> asyncio.Task[bool] | None:
        """Freeze the countdown at the exact remaining duration."""
        record = self.record
        if record.paused:
            logger.debug(f"Room '{self.context.room_id}': pause ignored, already paused")
            return None
        frozen = remaining_ms(record, self._clock.now_ms())
        logger.info(f"Room '{self.context.room_id}': pausing with {frozen} ms left")
        return self._write(end_instant_ms=None, remaining_ms=frozen)

    def resume(self) -> asyncio.Task[bool] | None:
        """Continue a paused countdown from its frozen remaining duration."""
        record = self.record
        if not record.paused:
            logger.debug(f"Room '{self.context.room_id}': resume ignored, not paused")
            return None
        end_instant = self._clock.now_ms() + record.remaining_ms
        logger.info(f"Room '{self.context.room_id}': resuming with {record.remaining_ms} ms left")
        return self._write(end_instant_ms=end_instant)

    def toggle_pause(self) -> asyncio.Task[bool] | None:
        """Pause when running, resume when paused."""
        if self.record.paused:
            return self.resume()
        return self.pause()

    def switch_to_work(self) -> asyncio.Task[bool]:
        """Hard reset to a paused, full-length work phase."""
        return self._reset_to(Phase.WORK)

    def switch_to_break(self) -> asyncio.Task[bool]:
        """Hard reset to a paused, full-length break phase."""
        return self._reset_to(Phase.BREAK)

    def increment_count(self) -> asyncio.Task[bool]:
        return self._write(cycle_count=self.record.cycle_count + 1)

    def decrement_count(self) -> asyncio.Task[bool] | None:
        """Lower the cycle count; a no-op at the floor of 1."""
        count = self.record.cycle_count
        if count <= 1:
            return None
        return self._write(cycle_count=count - 1)

    def auto_advance(self) -> asyncio.Task[bool]:
        """Move to the phase after the current one.

        Completing a work phase adds ``work_cycle_increment`` to the cycle
        count. With auto start, the next countdown is anchored at the end
        instant that just passed, so every client that detects the same
        expiry writes the same record; a client waking up long after that
        instant anchors at its own clock instead.
        """
        record = self.record
        now = self._clock.now_ms()
        next_phase = record.phase.next
        duration = self.settings.duration_for(next_phase)
        cycle_count = self._count_after(record)

        if not self.settings.auto_start_next_phase:
            end_instant = None
        else:
            anchor = record.end_instant_ms if record.end_instant_ms is not None else now
            if anchor + duration <= now:
                anchor = now
            end_instant = anchor + duration

        logger.info(
            f"Room '{self.context.room_id}': advancing from {record.phase.value} "
            f"to {next_phase.value} (cycle {cycle_count}, "
            f"{'running' if end_instant is not None else 'paused'})"
        )
        return self._write(
            phase=next_phase,
            end_instant_ms=end_instant,
            remaining_ms=duration,
            cycle_count=cycle_count,
        )

    def check_expiry(self, now_ms: int | None = None) -> bool:
        """Detect a countdown that reached zero and advance past it.

        Runs on every tick. A given record is advanced at most once by this
        client, however many ticks pass before the advanced record comes
        back from the backend. If that write is abandoned, the next tick
        advances the record again; its completion is announced only once.

        Returns:
            True if an expiry was detected by this call.
        """
        now = self._now(now_ms)
        record = self.record
        if self.state(now) is not TimerState.EXPIRED:
            return False
        if record == self._advanced_from:
            return False
        self._advanced_from = record

        if record != self._announced:
            self._announced = record
            logger.info(f"Room '{self.context.room_id}': {record.phase.value} phase completed")
            if self._broadcaster is not None:
                self._broadcaster.broadcast_phase_completed(
                    PhaseCompleted(
                        room_id=self.context.room_id,
                        completed_phase=record.phase,
                        next_phase=record.phase.next,
                        cycle_count=self._count_after(record),
                        completed_at_ms=(
                            record.end_instant_ms if record.end_instant_ms is not None else now
                        ),
                    )
                )

        task = self.auto_advance()
        task.add_done_callback(partial(self._on_advance_done, record))
        return True

    # ── internals ─────────────────────────────────────────────────────

    def _now(self, now_ms: int | None) -> int:
        return self._clock.now_ms() if now_ms is None else now_ms

    def _count_after(self, record: SessionRecord) -> int:
        """Cycle count once the phase of ``record`` has completed."""
        if record.phase is Phase.WORK:
            return record.cycle_count + self.settings.work_cycle_increment
        return record.cycle_count

    def _on_advance_done(self, record: SessionRecord, task: asyncio.Task[bool]) -> None:
        if not task.cancelled() and task.exception() is None and task.result():
            return
        # Let the next tick advance this record again
        if self._advanced_from == record:
            self._advanced_from = None
        logger.warning(
            f"Room '{self.context.room_id}': advancing past the {record.phase.value} "
            f"phase was not written; retrying on the next tick"
        )

    def _reset_to(self, phase: Phase) -> asyncio.Task[bool]:
        duration = self.settings.duration_for(phase)
        logger.info(f"Room '{self.context.room_id}': switching to paused {phase.value} phase")
        return self._write(phase=phase, end_instant_ms=None, remaining_ms=duration)

    def _write(self, **changes: Any) -> asyncio.Task[bool]:
        if self._handle is None:
            raise RuntimeError("Session engine is not open")
        successor = self.record.successor(self.context.client_id, **changes)
        return self._handle.set(successor)

    def _on_record(self, record: SessionRecord) -> None:
        if record.revision <= self._last_revision and record.updated_by != self.context.client_id:
            logger.info(
                f"Room '{self.context.room_id}': revision {record.revision} from "
                f"{record.updated_by} replaced revision {self._last_revision} (last write wins)"
            )
        self._last_revision = record.revision

        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.error(f"Session listener failed: {e}", exc_info=True)

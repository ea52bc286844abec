"""Shared test helpers for shared timer tests."""

import asyncio
from typing import Any

from shared_timer.adapters.backends import InMemoryKeyValueHub, InMemoryReplicationBackend
from shared_timer.application.services import SessionTimerEngine, SharedValueStore
from shared_timer.domain.contracts import PhaseEventBroadcasterProtocol
from shared_timer.domain.models import RoomContext, TimerSettings

T0 = 1_700_000_000_000


class FailingWritesBackend(InMemoryReplicationBackend):
    """In-memory connection whose next ``failures`` writes never reach the hub."""

    def __init__(self, hub: InMemoryKeyValueHub, failures: int = 0) -> None:
        super().__init__(hub)
        self.failures = failures

    async def write(self, key: str, value: Any) -> None:
        if self.failures > 0:
            self.failures -= 1
            raise ConnectionError("backend unreachable")
        await super().write(key, value)


class FakeClock:
    """Wall clock that only moves when told to."""

    def __init__(self, now_ms: int = T0) -> None:
        self.now = now_ms

    def now_ms(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


async def settle(iterations: int = 10) -> None:
    """Let queued writes and pushes run to completion."""
    for _ in range(iterations):
        await asyncio.sleep(0)


async def open_engine(
    hub: InMemoryKeyValueHub,
    clock: FakeClock,
    settings: TimerSettings | None = None,
    room_id: str = "room1",
    client_id: str = "client-a",
    broadcaster: PhaseEventBroadcasterProtocol | None = None,
    backend: InMemoryReplicationBackend | None = None,
) -> SessionTimerEngine:
    """Open an engine as its own client of ``hub`` and wait for the first snapshot."""
    store = SharedValueStore(
        backend or InMemoryReplicationBackend(hub), write_retry_base_delay_seconds=0
    )
    engine = SessionTimerEngine(
        RoomContext(room_id=room_id, client_id=client_id),
        store,
        settings or TimerSettings(),
        clock,
        broadcaster,
    )
    await engine.open()
    await settle()
    return engine

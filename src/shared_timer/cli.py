"""Command-line helpers for joining and controlling a shared timer room."""

from __future__ import annotations

import argparse
import asyncio
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from shared_timer.domain.models.phase import Phase

if TYPE_CHECKING:
    from shared_timer.application.services.session_timer import SessionTimerEngine
    from shared_timer.domain.models.timer_snapshot import TimerSnapshot

logger = logging.getLogger(__name__)

COMMANDS: dict[str, Callable[[SessionTimerEngine], asyncio.Task[bool] | None]] = {
    "start-work": lambda engine: engine.start(Phase.WORK),
    "start-break": lambda engine: engine.start(Phase.BREAK),
    "pause": lambda engine: engine.pause(),
    "resume": lambda engine: engine.resume(),
    "toggle": lambda engine: engine.toggle_pause(),
    "work": lambda engine: engine.switch_to_work(),
    "break": lambda engine: engine.switch_to_break(),
    "inc": lambda engine: engine.increment_count(),
    "dec": lambda engine: engine.decrement_count(),
}


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser of the ``shared-timer`` command."""
    parser = argparse.ArgumentParser(
        prog="shared-timer",
        description="Join a shared work/break timer room, control it, and watch the countdown.",
    )
    parser.add_argument(
        "--room",
        help="Room id to join; a new room is created when omitted",
    )
    parser.add_argument(
        "--backend",
        choices=["memory", "firebase"],
        help="Replication backend (overrides SHARED_TIMER_BACKEND)",
    )
    parser.add_argument(
        "--command",
        "-c",
        action="append",
        default=[],
        choices=sorted(COMMANDS),
        help="Command to apply after joining; may be given several times",
    )
    parser.add_argument(
        "--watch-seconds",
        type=float,
        default=None,
        help="Stop watching after this many seconds (default: until interrupted)",
    )
    return parser


async def apply_command(engine: SessionTimerEngine, name: str, timeout: float = 5.0) -> bool:
    """Apply a named command and wait for its write to come back.

    Updates written by other clients of the room in the meantime do not
    count as the echo.

    Returns:
        True if the command wrote an update that was echoed in time.
    """
    updated = asyncio.Event()

    def on_update(_snapshot: TimerSnapshot) -> None:
        if engine.record.updated_by == engine.context.client_id:
            updated.set()

    remove = engine.add_listener(on_update)
    try:
        task = COMMANDS[name](engine)
        if task is None:
            logger.info(f"Command '{name}' had no effect")
            return False
        await task
        try:
            await asyncio.wait_for(updated.wait(), timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Command '{name}' was not echoed within {timeout}s")
            return False
        return True
    finally:
        remove()


class CountdownLogger:
    """Tick callback that logs the countdown whenever its display changes."""

    def __init__(self, room_id: str) -> None:
        self.room_id = room_id
        self._last_line: str | None = None

    def __call__(self, snapshot: TimerSnapshot) -> None:
        line = format_status(snapshot)
        if line == self._last_line:
            return
        self._last_line = line
        logger.info(f"[{self.room_id}] {line}")


def format_status(snapshot: TimerSnapshot) -> str:
    """One-line status, e.g. ``№ 2: 24:59 work``."""
    status = f"№ {snapshot.cycle_count}: {snapshot.display} {snapshot.phase.value}"
    if snapshot.is_paused:
        status += " (paused)"
    return status

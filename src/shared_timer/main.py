"""Main entry point for the shared timer."""

import argparse
import asyncio
import contextlib
import logging
import sys

import aiohttp
from pydantic import ValidationError

from shared_timer.adapters.backends import (
    FirebaseReplicationBackend,
    InMemoryKeyValueHub,
    InMemoryReplicationBackend,
)
from shared_timer.adapters.broadcasters import LoggingPhaseSink, PhaseEventBroadcaster
from shared_timer.adapters.config import AppConfig
from shared_timer.adapters.tickers import SessionTicker
from shared_timer.application.services import (
    OffsetClock,
    SessionTimerEngine,
    SharedValueStore,
)
from shared_timer.cli import CountdownLogger, apply_command, build_parser
from shared_timer.domain.models import RoomContext
from shared_timer.domain.ports import ReplicationBackend, ServerClockSource

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stderr,
)

logger = logging.getLogger(__name__)

SYNC_TIMEOUT_SECONDS = 10.0


async def _create_backend(
    config: AppConfig, stack: contextlib.AsyncExitStack
) -> ReplicationBackend:
    """Create the configured backend; its cleanup is registered on ``stack``."""
    if config.backend == "firebase":
        session = await stack.enter_async_context(aiohttp.ClientSession())
        backend: ReplicationBackend = FirebaseReplicationBackend(
            config.firebase_database_url or "",
            session,
            config.firebase_auth_token,
            request_timeout_seconds=config.request_timeout_seconds,
            max_backoff_seconds=config.max_backoff_seconds,
        )
    else:
        logger.warning("Using the in-memory backend; the room is only shared inside this process")
        backend = InMemoryReplicationBackend(InMemoryKeyValueHub())
    stack.push_async_callback(backend.close)
    return backend


async def run(config: AppConfig, args: argparse.Namespace, context: RoomContext) -> None:
    """Join a room, apply the requested commands, and watch the countdown."""
    clock = OffsetClock()
    broadcaster = PhaseEventBroadcaster()
    broadcaster.add_sink(LoggingPhaseSink())

    async with contextlib.AsyncExitStack() as stack:
        backend = await _create_backend(config, stack)

        if config.sync_clock and isinstance(backend, ServerClockSource):
            try:
                await clock.calibrate(backend)
            except Exception as e:
                logger.warning(f"Clock calibration failed, using local clock: {e}")

        store = SharedValueStore(
            backend,
            write_retry_attempts=config.write_retry_attempts,
            write_retry_base_delay_seconds=config.write_retry_base_delay_seconds,
        )
        stack.push_async_callback(store.close)

        engine = SessionTimerEngine(context, store, config.timer_settings(), clock, broadcaster)
        await stack.enter_async_context(engine)
        if not await engine.wait_synced(SYNC_TIMEOUT_SECONDS):
            logger.warning("No snapshot from the backend yet; showing the initial state")

        for name in args.command:
            await apply_command(engine, name)

        ticker = SessionTicker(
            engine, config.tick_interval_seconds, on_tick=CountdownLogger(context.room_id)
        )
        async with ticker:
            if args.watch_seconds is None:
                await asyncio.Event().wait()
            else:
                await asyncio.sleep(args.watch_seconds)


def main(argv: list[str] | None = None) -> int:
    """Console entry point."""
    args = build_parser().parse_args(argv)

    overrides = {"backend": args.backend} if args.backend else {}
    try:
        config = AppConfig(**overrides)
    except ValidationError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1
    logging.getLogger().setLevel(config.log_level)

    try:
        context = RoomContext(room_id=args.room) if args.room else RoomContext.generate()
    except ValueError as e:
        logger.error(f"Invalid room id: {e}")
        return 1
    if not args.room:
        logger.info(f"Created room '{context.room_id}'; join it with --room {context.room_id}")

    try:
        asyncio.run(run(config, args, context))
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

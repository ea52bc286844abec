"""Shared value store: last-write-wins replication of named values per room."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from functools import partial
from typing import TYPE_CHECKING, Any, Generic, TypeVar

if TYPE_CHECKING:
    from shared_timer.domain.models.room_context import RoomContext
    from shared_timer.domain.ports.replication_backend import ReplicationBackend

logger = logging.getLogger(__name__)

T = TypeVar("T")

Decoder = Callable[[Any], T]
Encoder = Callable[[T], Any]
ValueListener = Callable[[T], None]


def _identity(value: Any) -> Any:
    return value


class SharedValue(Generic[T]):
    """Handle on one replicated value.

    ``value`` is the best-known local copy. It starts as the initial value
    and is replaced wholesale by every snapshot pushed by the backend,
    including the echo of this client's own writes.
    """

    def __init__(
        self,
        store: SharedValueStore,
        key: str,
        initial_value: T,
        decode: Decoder[T],
        encode: Encoder[T],
    ) -> None:
        self._store = store
        self._key = key
        self._value = initial_value
        self._decode = decode
        self._encode = encode
        self._listeners: list[ValueListener[T]] = []
        self._closed = False
        self._synced = asyncio.Event()

    @property
    def key(self) -> str:
        return self._key

    @property
    def value(self) -> T:
        return self._value

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def synced(self) -> bool:
        """True once the backend pushed its first snapshot, empty or not."""
        return self._synced.is_set()

    async def wait_synced(self, timeout: float | None = None) -> bool:
        """Wait for the first snapshot from the backend.

        Returns:
            False if the timeout passed first.
        """
        try:
            await asyncio.wait_for(self._synced.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return True

    def set(self, value: T) -> asyncio.Task[bool]:
        """Write ``value`` to the backend without waiting for it.

        The local copy is not touched; it changes when the write comes back
        through the subscription, exactly as on every other client.

        Returns:
            The background write task. It resolves to False if the write
            was abandoned after its last attempt.
        """
        if self._closed:
            raise RuntimeError(f"Shared value '{self._key}' is closed")
        return self._store.schedule_write(self._key, self._encode(value))

    def add_listener(self, listener: ValueListener[T]) -> Callable[[], None]:
        """Call ``listener`` with every accepted snapshot.

        Returns:
            A function that removes the listener again.
        """
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    async def close(self) -> None:
        """Stop receiving snapshots. The remote value is left in place."""
        if self._closed:
            return
        self._closed = True
        self._listeners.clear()
        await self._store.release(self)

    def apply_snapshot(self, raw: Any) -> None:
        """Replace the local copy with a snapshot pushed by the backend."""
        if self._closed:
            return
        self._synced.set()
        if raw is None:
            # An empty key is not a value; keep what we have
            logger.debug(f"Ignoring empty snapshot for '{self._key}'")
            return
        try:
            value = self._decode(raw)
        except (TypeError, ValueError) as e:
            logger.warning(f"Ignoring malformed snapshot for '{self._key}': {e}")
            return

        self._value = value
        for listener in list(self._listeners):
            try:
                listener(value)
            except Exception as e:
                logger.error(f"Listener for '{self._key}' failed: {e}", exc_info=True)


class SharedValueStore:
    """Opens shared values on a replication backend.

    Keeps one backend subscription per key and fans snapshots out to every
    open handle of that key. Writes are fire-and-forget with a bounded
    retry; a retry is dropped once a newer write to the same key exists.
    """

    def __init__(
        self,
        backend: ReplicationBackend,
        *,
        write_retry_attempts: int = 3,
        write_retry_base_delay_seconds: float = 0.5,
    ) -> None:
        """Initialize the store.

        Args:
            backend: The replication backend of this client.
            write_retry_attempts: Total attempts per write, at least 1.
            write_retry_base_delay_seconds: Delay before the first retry;
                doubles on every further retry.
        """
        self._backend = backend
        self._write_retry_attempts = max(1, write_retry_attempts)
        self._write_retry_base_delay_seconds = write_retry_base_delay_seconds
        self._handles: dict[str, list[SharedValue[Any]]] = {}
        self._last_snapshots: dict[str, Any] = {}
        self._synced_keys: set[str] = set()
        self._write_sequence: dict[str, int] = {}
        self._pending_writes: set[asyncio.Task[bool]] = set()

    async def open(
        self,
        context: RoomContext,
        name: str,
        initial_value: T,
        decode: Decoder[T] | None = None,
        encode: Encoder[T] | None = None,
    ) -> SharedValue[T]:
        """Register interest in the value ``name`` of a room.

        Args:
            context: The room to open the value in.
            name: Name of the value inside the room.
            initial_value: Value reported until a snapshot arrives.
            decode: Converts a JSON snapshot into a value; raising
                ``ValueError`` marks the snapshot as malformed.
            encode: Converts a value into JSON for writing.

        Returns:
            A handle whose ``value`` is readable immediately.
        """
        key = context.key_for(name)
        handle: SharedValue[T] = SharedValue(
            self, key, initial_value, decode or _identity, encode or _identity
        )

        handles = self._handles.get(key)
        if handles is not None:
            handles.append(handle)
            if key in self._synced_keys:
                handle.apply_snapshot(self._last_snapshots.get(key))
            return handle

        self._handles[key] = [handle]
        try:
            await self._backend.subscribe(key, partial(self._on_snapshot, key))
        except BaseException:
            del self._handles[key]
            raise
        logger.info(f"Subscribed to shared value '{key}'")
        return handle

    async def release(self, handle: SharedValue[Any]) -> None:
        """Detach a handle; unsubscribe when it was the last one on its key."""
        handles = self._handles.get(handle.key)
        if handles is None or handle not in handles:
            return
        handles.remove(handle)
        if handles:
            return

        del self._handles[handle.key]
        self._last_snapshots.pop(handle.key, None)
        self._synced_keys.discard(handle.key)
        try:
            await self._backend.unsubscribe(handle.key)
            logger.info(f"Unsubscribed from shared value '{handle.key}'")
        except Exception as e:
            logger.warning(f"Failed to unsubscribe from '{handle.key}': {e}")

    async def close(self) -> None:
        """Close every handle and wait for writes still in flight."""
        for handles in list(self._handles.values()):
            for handle in list(handles):
                await handle.close()
        await self.flush()

    async def flush(self) -> None:
        """Wait until every scheduled write has finished or given up."""
        while self._pending_writes:
            await asyncio.gather(*list(self._pending_writes), return_exceptions=True)

    def schedule_write(self, key: str, payload: Any) -> asyncio.Task[bool]:
        """Start a background write of ``payload`` to ``key``."""
        sequence = self._write_sequence.get(key, 0) + 1
        self._write_sequence[key] = sequence
        task = asyncio.create_task(self._write_with_retry(key, payload, sequence))
        self._pending_writes.add(task)
        task.add_done_callback(self._pending_writes.discard)
        return task

    async def _write_with_retry(self, key: str, payload: Any, sequence: int) -> bool:
        for attempt in range(1, self._write_retry_attempts + 1):
            try:
                await self._backend.write(key, payload)
                logger.debug(f"Wrote shared value '{key}' (attempt {attempt})")
                return True
            except asyncio.CancelledError:
                raise
            except Exception as e:
                if attempt == self._write_retry_attempts:
                    logger.error(
                        f"Giving up on write to '{key}' after {attempt} attempt(s): {e}"
                    )
                    return False
                delay = self._write_retry_base_delay_seconds * 2 ** (attempt - 1)
                logger.warning(f"Write to '{key}' failed: {e}; retrying in {delay:.2f}s")
                await asyncio.sleep(delay)

            if self._write_sequence.get(key) != sequence:
                logger.info(f"Dropping retry of superseded write to '{key}'")
                # The newer write reports its own outcome
                return True
        return False

    def _on_snapshot(self, key: str, raw: Any) -> None:
        handles = self._handles.get(key)
        if handles is None:
            return
        self._synced_keys.add(key)
        if raw is not None:
            self._last_snapshots[key] = raw
        for handle in list(handles):
            handle.apply_snapshot(raw)

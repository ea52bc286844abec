"""Firebase Realtime Database backend over the REST streaming API.

Writes are plain ``PUT {database}/{key}.json`` requests. Subscriptions
keep a ``text/event-stream`` GET open per key; the server answers with a
``put`` event carrying the current value and then sends ``put``/``patch``
events for every change, plus periodic ``keep-alive`` events.
API Documentation: https://firebase.google.com/docs/reference/rest/database
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import aiohttp

from shared_timer.adapters.backends.request_logger import log_backend_request
from shared_timer.domain.ports.replication_backend import ReplicationBackend
from shared_timer.domain.ports.server_clock import ServerClockSource

if TYPE_CHECKING:
    from shared_timer.domain.ports.replication_backend import SnapshotCallback

logger = logging.getLogger(__name__)

CLOCK_PROBE_PREFIX = "_clock_probes"


class FirebaseError(Exception):
    """Raised when the database rejects a request."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(f"Firebase request failed ({status}): {message}")
        self.status = status


class FirebaseStreamClosed(Exception):
    """Raised when the server ends a stream for good (cancel, auth_revoked)."""


class SseEventParser:
    """Incremental parser for ``text/event-stream`` lines."""

    def __init__(self) -> None:
        self._event: str | None = None
        self._data: list[str] = []

    def feed(self, line: str) -> tuple[str, str] | None:
        """Consume one line.

        Returns:
            ``(event, data)`` when the line completes an event, else None.
        """
        line = line.rstrip("\r\n")
        if not line:
            if self._event is None and not self._data:
                return None
            event = (self._event or "message", "\n".join(self._data))
            self._event = None
            self._data = []
            return event

        if line.startswith(":"):
            return None
        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if field == "event":
            self._event = value
        elif field == "data":
            self._data.append(value)
        return None


def _split_path(path: str) -> list[str]:
    return [part for part in path.split("/") if part]


def _set_path(root: Any, path: list[str], value: Any) -> Any:
    """Return ``root`` with ``value`` stored at ``path``; None deletes.

    Empty objects collapse to None, as the database does not store them.
    """
    if not path:
        return value
    node = dict(root) if isinstance(root, dict) else {}
    child = _set_path(node.get(path[0]), path[1:], value)
    if child is None:
        node.pop(path[0], None)
    else:
        node[path[0]] = child
    return node or None


class FirebaseSnapshot:
    """Local copy of one subscribed key, rebuilt from stream events."""

    def __init__(self) -> None:
        self.value: Any = None

    def apply_event(self, event: str, data: Any) -> bool:
        """Apply a stream event.

        Returns:
            True if the event carried data (the snapshot may have changed).

        Raises:
            FirebaseStreamClosed: On ``cancel`` or ``auth_revoked``.
            ValueError: On a malformed data event.
        """
        if event == "keep-alive":
            return False
        if event in ("cancel", "auth_revoked"):
            raise FirebaseStreamClosed(f"stream {event}: {data}")
        if event not in ("put", "patch"):
            logger.debug(f"Ignoring unknown stream event '{event}'")
            return False

        if not isinstance(data, dict) or not isinstance(data.get("path"), str):
            raise ValueError(f"malformed '{event}' event: {data!r}")
        path = _split_path(data["path"])

        if event == "put":
            self.value = _set_path(self.value, path, data.get("data"))
            return True

        updates = data.get("data")
        if not isinstance(updates, dict):
            raise ValueError(f"malformed 'patch' event: {data!r}")
        for relative_path, child in updates.items():
            self.value = _set_path(self.value, path + _split_path(relative_path), child)
        return True


class FirebaseReplicationBackend(ReplicationBackend, ServerClockSource):
    """Replication backend on a Firebase Realtime Database."""

    def __init__(
        self,
        database_url: str,
        session: aiohttp.ClientSession,
        auth_token: str | None = None,
        *,
        request_timeout_seconds: float = 10.0,
        stream_read_timeout_seconds: float = 90.0,
        initial_backoff_seconds: float = 1.0,
        max_backoff_seconds: float = 30.0,
    ) -> None:
        """Initialize the backend.

        Args:
            database_url: Root URL of the database.
            session: Shared aiohttp session; owned by the caller.
            auth_token: Database secret or ID token, sent as ``auth``.
            request_timeout_seconds: Total timeout of a write.
            stream_read_timeout_seconds: Silence after which a stream is
                considered dead; the server sends keep-alives every 30 s.
            initial_backoff_seconds: First reconnect delay.
            max_backoff_seconds: Upper bound of the reconnect delay.
        """
        self.database_url = database_url.rstrip("/")
        self._session = session
        self._auth_token = auth_token
        self._request_timeout = aiohttp.ClientTimeout(total=request_timeout_seconds)
        self._stream_timeout = aiohttp.ClientTimeout(
            total=None, sock_read=stream_read_timeout_seconds
        )
        self._initial_backoff_seconds = initial_backoff_seconds
        self._max_backoff_seconds = max_backoff_seconds
        self._streams: dict[str, asyncio.Task[None]] = {}
        self._probe_key = f"{CLOCK_PROBE_PREFIX}/{uuid.uuid4().hex}"

    def url_for(self, key: str) -> str:
        return f"{self.database_url}/{quote(key, safe='/')}.json"

    def _params(self) -> dict[str, str]:
        return {"auth": self._auth_token} if self._auth_token else {}

    async def write(self, key: str, value: Any) -> None:
        """Replace the value under ``key``.

        Raises:
            FirebaseError: If the database rejects the write.
            aiohttp.ClientError: On connection problems.
        """
        await self._put(key, value)

    async def _put(self, key: str, value: Any) -> Any:
        url = self.url_for(key)
        log_backend_request("PUT", url, self._params(), value)
        async with self._session.put(
            url, params=self._params(), json=value, timeout=self._request_timeout
        ) as response:
            if response.status >= 400:
                body = await response.text()
                raise FirebaseError(response.status, body[:200])
            return await response.json(content_type=None)

    async def subscribe(self, key: str, on_change: SnapshotCallback) -> None:
        if key in self._streams:
            logger.warning(f"Replacing existing stream for '{key}'")
            await self.unsubscribe(key)
        self._streams[key] = asyncio.create_task(
            self._stream_loop(key, on_change), name=f"firebase-stream:{key}"
        )

    async def unsubscribe(self, key: str) -> None:
        task = self._streams.pop(key, None)
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            logger.debug(f"Stream for '{key}' cancelled")

    async def close(self) -> None:
        for key in list(self._streams):
            await self.unsubscribe(key)

    async def server_time_ms(self) -> int:
        """Read the database clock by resolving a server timestamp.

        The probe node is removed again once the timestamp has been read.

        Raises:
            FirebaseError: If the probe write is rejected.
            ValueError: If the database does not return a timestamp.
        """
        try:
            resolved = await self._put(self._probe_key, {".sv": "timestamp"})
            if not isinstance(resolved, int | float) or isinstance(resolved, bool):
                resolved = await self._get(self._probe_key)
        finally:
            await self._discard_probe()
        if not isinstance(resolved, int | float) or isinstance(resolved, bool):
            raise ValueError(f"server timestamp probe returned {resolved!r}")
        return int(resolved)

    async def _discard_probe(self) -> None:
        try:
            await self._delete(self._probe_key)
        except (aiohttp.ClientError, asyncio.TimeoutError, FirebaseError) as e:
            logger.warning(f"Failed to remove clock probe '{self._probe_key}': {e}")

    async def _delete(self, key: str) -> None:
        url = self.url_for(key)
        log_backend_request("DELETE", url, self._params())
        async with self._session.delete(
            url, params=self._params(), timeout=self._request_timeout
        ) as response:
            if response.status >= 400:
                body = await response.text()
                raise FirebaseError(response.status, body[:200])

    async def _get(self, key: str) -> Any:
        url = self.url_for(key)
        log_backend_request("GET", url, self._params())
        async with self._session.get(
            url, params=self._params(), timeout=self._request_timeout
        ) as response:
            if response.status >= 400:
                body = await response.text()
                raise FirebaseError(response.status, body[:200])
            return await response.json(content_type=None)

    async def _stream_loop(self, key: str, on_change: SnapshotCallback) -> None:
        """Keep a stream open, reconnecting with exponential backoff."""
        backoff = self._initial_backoff_seconds
        while True:
            try:
                received = await self._consume_stream(key, on_change)
                if received:
                    backoff = self._initial_backoff_seconds
                logger.info(f"Stream for '{key}' ended by server, reconnecting")
            except asyncio.CancelledError:
                raise
            except FirebaseStreamClosed as e:
                logger.warning(f"Stream for '{key}' closed: {e}")
                return
            except (aiohttp.ClientError, asyncio.TimeoutError, FirebaseError, ValueError) as e:
                logger.warning(f"Stream for '{key}' failed: {e}; reconnecting in {backoff:.1f}s")
            await asyncio.sleep(backoff)
            backoff = min(backoff * 2, self._max_backoff_seconds)

    async def _consume_stream(self, key: str, on_change: SnapshotCallback) -> bool:
        """Read one stream connection until it ends.

        Returns:
            True if at least one data event was received.
        """
        url = self.url_for(key)
        log_backend_request("GET (stream)", url, self._params())
        snapshot = FirebaseSnapshot()
        parser = SseEventParser()
        received = False

        async with self._session.get(
            url,
            params=self._params(),
            headers={"Accept": "text/event-stream"},
            timeout=self._stream_timeout,
        ) as response:
            if response.status != 200:
                body = await response.text()
                raise FirebaseError(response.status, body[:200])
            logger.info(f"Stream for '{key}' connected")

            async for raw_line in response.content:
                parsed = parser.feed(raw_line.decode("utf-8"))
                if parsed is None:
                    continue
                event, data_text = parsed
                data = json.loads(data_text) if data_text else None
                if not snapshot.apply_event(event, data):
                    continue
                received = True
                try:
                    on_change(snapshot.value)
                except Exception as e:
                    logger.error(f"Snapshot callback for '{key}' failed: {e}", exc_info=True)

        return received

"""In-process replication backend."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import TYPE_CHECKING, Any

from shared_timer.domain.ports.replication_backend import ReplicationBackend
from shared_timer.domain.ports.server_clock import ServerClockSource

if TYPE_CHECKING:
    from shared_timer.domain.contracts.clock import ClockProtocol
    from shared_timer.domain.ports.replication_backend import SnapshotCallback

logger = logging.getLogger(__name__)


def _json_copy(value: Any) -> Any:
    """Copy a value the way a round trip through a JSON store would."""
    return json.loads(json.dumps(value))


class _Subscription:
    """One subscriber callback; inactive subscriptions drop queued pushes."""

    def __init__(self, callback: SnapshotCallback) -> None:
        self.callback = callback
        self.active = True

    def deliver(self, value: Any) -> None:
        if not self.active:
            return
        try:
            self.callback(value)
        except Exception as e:
            logger.error(f"Snapshot callback failed: {e}", exc_info=True)


class InMemoryKeyValueHub:
    """The shared store that several in-process clients replicate through.

    Pushes are queued on the running event loop, never delivered inside
    ``put``, so writers observe their own writes only after a round trip.
    """

    def __init__(self, clock: ClockProtocol | None = None) -> None:
        """Initialize the hub.

        Args:
            clock: Reported as the server clock; system time when omitted.
        """
        self._values: dict[str, Any] = {}
        self._subscriptions: dict[str, list[_Subscription]] = {}
        self._clock = clock

    def get(self, key: str) -> Any:
        """Return a copy of the stored value, or None."""
        value = self._values.get(key)
        return None if value is None else _json_copy(value)

    def put(self, key: str, value: Any) -> None:
        """Store ``value`` (None deletes) and queue a push to every subscriber."""
        stored = None if value is None else _json_copy(value)
        if stored is None:
            self._values.pop(key, None)
        else:
            self._values[key] = stored

        loop = asyncio.get_running_loop()
        for subscription in list(self._subscriptions.get(key, [])):
            loop.call_soon(subscription.deliver, None if stored is None else _json_copy(stored))

    def add_subscription(self, key: str, callback: SnapshotCallback) -> _Subscription:
        """Register ``callback`` and queue a push of the current value."""
        subscription = _Subscription(callback)
        self._subscriptions.setdefault(key, []).append(subscription)
        asyncio.get_running_loop().call_soon(subscription.deliver, self.get(key))
        return subscription

    def remove_subscription(self, key: str, subscription: _Subscription) -> None:
        subscription.active = False
        subscriptions = self._subscriptions.get(key, [])
        if subscription in subscriptions:
            subscriptions.remove(subscription)
        if not subscriptions:
            self._subscriptions.pop(key, None)

    def subscriber_count(self, key: str) -> int:
        return len(self._subscriptions.get(key, []))

    def server_time_ms(self) -> int:
        if self._clock is not None:
            return self._clock.now_ms()
        return int(time.time() * 1000)


class InMemoryReplicationBackend(ReplicationBackend, ServerClockSource):
    """One client's connection to an ``InMemoryKeyValueHub``."""

    def __init__(self, hub: InMemoryKeyValueHub) -> None:
        self.hub = hub
        self._subscriptions: dict[str, _Subscription] = {}

    async def write(self, key: str, value: Any) -> None:
        self.hub.put(key, value)

    async def subscribe(self, key: str, on_change: SnapshotCallback) -> None:
        if key in self._subscriptions:
            logger.warning(f"Replacing existing subscription for '{key}'")
            await self.unsubscribe(key)
        self._subscriptions[key] = self.hub.add_subscription(key, on_change)

    async def unsubscribe(self, key: str) -> None:
        subscription = self._subscriptions.pop(key, None)
        if subscription is not None:
            self.hub.remove_subscription(key, subscription)

    async def close(self) -> None:
        for key in list(self._subscriptions):
            await self.unsubscribe(key)

    async def server_time_ms(self) -> int:
        return self.hub.server_time_ms()

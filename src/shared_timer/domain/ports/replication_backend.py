"""Replication backend port."""

from collections.abc import Callable
from typing import Any, Protocol

# Receives the decoded JSON value, or None when the key is empty
SnapshotCallback = Callable[[Any], None]


class ReplicationBackend(Protocol):
    """Port for a remote key-value store with push notifications.

    The backend makes no ordering or conflict-resolution promises beyond
    last-write-wins per key.
    """

    async def write(self, key: str, value: Any) -> None:
        """Replace the JSON value stored under ``key``."""
        ...

    async def subscribe(self, key: str, on_change: SnapshotCallback) -> None:
        """Start pushing snapshots of ``key`` to ``on_change``.

        ``on_change`` receives the current value once the subscription is
        live and then every later value, including writes made by this
        client. ``None`` means the key holds no value.
        """
        ...

    async def unsubscribe(self, key: str) -> None:
        """Stop pushing snapshots of ``key``. The stored value is kept."""
        ...

    async def close(self) -> None:
        """Cancel all subscriptions and release connections."""
        ...

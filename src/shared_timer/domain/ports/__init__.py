"""Ports (interfaces) for the ports-and-adapters architecture."""

from shared_timer.domain.ports.replication_backend import ReplicationBackend, SnapshotCallback
from shared_timer.domain.ports.server_clock import ServerClockSource

__all__ = ["ReplicationBackend", "ServerClockSource", "SnapshotCallback"]

"""Replication backends."""

from shared_timer.adapters.backends.firebase_backend import (
    FirebaseError,
    FirebaseReplicationBackend,
)
from shared_timer.adapters.backends.in_memory_backend import (
    InMemoryKeyValueHub,
    InMemoryReplicationBackend,
)

__all__ = [
    "FirebaseError",
    "FirebaseReplicationBackend",
    "InMemoryKeyValueHub",
    "InMemoryReplicationBackend",
]

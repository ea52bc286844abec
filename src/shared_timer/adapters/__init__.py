"""Adapters layer - external system integrations."""

from shared_timer.adapters.backends import (
    FirebaseReplicationBackend,
    InMemoryKeyValueHub,
    InMemoryReplicationBackend,
)
from shared_timer.adapters.broadcasters import LoggingPhaseSink, PhaseEventBroadcaster
from shared_timer.adapters.config import AppConfig
from shared_timer.adapters.tickers import SessionTicker

__all__ = [
    "AppConfig",
    "FirebaseReplicationBackend",
    "InMemoryKeyValueHub",
    "InMemoryReplicationBackend",
    "LoggingPhaseSink",
    "PhaseEventBroadcaster",
    "SessionTicker",
]

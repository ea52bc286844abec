"""Application services."""

from shared_timer.application.services.clock import (
    OffsetClock,
    SystemClock,
    estimate_offset_ms,
    remaining_ms,
)
from shared_timer.application.services.session_timer import (
    SESSION_VALUE_NAME,
    SessionTimerEngine,
)
from shared_timer.application.services.shared_value_store import SharedValue, SharedValueStore
from shared_timer.application.services.time_formatting import format_time

__all__ = [
    "SESSION_VALUE_NAME",
    "OffsetClock",
    "SessionTimerEngine",
    "SharedValue",
    "SharedValueStore",
    "SystemClock",
    "estimate_offset_ms",
    "format_time",
    "remaining_ms",
]

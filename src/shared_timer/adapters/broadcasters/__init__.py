"""Broadcasters for session events."""

from shared_timer.adapters.broadcasters.phase_broadcaster import (
    LoggingPhaseSink,
    PhaseEventBroadcaster,
    PhaseSink,
)

__all__ = ["LoggingPhaseSink", "PhaseEventBroadcaster", "PhaseSink"]

"""Contracts (protocols) used across layers."""

from shared_timer.domain.contracts.clock import ClockProtocol
from shared_timer.domain.contracts.phase_event_broadcaster import PhaseEventBroadcasterProtocol
from shared_timer.domain.contracts.session_ticker import (
    SessionTickerProtocol,
    TickableSessionProtocol,
)

__all__ = [
    "ClockProtocol",
    "PhaseEventBroadcasterProtocol",
    "SessionTickerProtocol",
    "TickableSessionProtocol",
]

"""Domain models for the shared timer."""

from shared_timer.domain.models.phase import Phase, TimerState
from shared_timer.domain.models.phase_completed import PhaseCompleted
from shared_timer.domain.models.room_context import RoomContext
from shared_timer.domain.models.session_record import SCHEMA_VERSION, SessionRecord
from shared_timer.domain.models.timer_settings import MINUTE_MS, TimerSettings
from shared_timer.domain.models.timer_snapshot import TimerSnapshot

__all__ = [
    "MINUTE_MS",
    "SCHEMA_VERSION",
    "Phase",
    "PhaseCompleted",
    "RoomContext",
    "SessionRecord",
    "TimerSettings",
    "TimerSnapshot",
    "TimerState",
]

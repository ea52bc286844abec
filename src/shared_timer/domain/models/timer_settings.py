"""Timer settings domain model."""

from dataclasses import dataclass

from shared_timer.domain.models.phase import Phase

MINUTE_MS = 60 * 1000


@dataclass(frozen=True)
class TimerSettings:
    """Durations and auto-advance policy shared by every client of a room.

    ``work_cycle_increment`` is added to the cycle count each time a work
    phase expires naturally. ``auto_start_next_phase`` decides whether the
    next phase starts counting down immediately or waits paused.
    """

    work_duration_ms: int = 25 * MINUTE_MS
    break_duration_ms: int = 5 * MINUTE_MS
    work_cycle_increment: int = 1
    auto_start_next_phase: bool = True

    def __post_init__(self) -> None:
        if self.work_duration_ms <= 0 or self.break_duration_ms <= 0:
            raise ValueError("phase durations must be positive")
        if self.work_cycle_increment < 1:
            raise ValueError("work_cycle_increment must be at least 1")

    def duration_for(self, phase: Phase) -> int:
        """Full duration of a phase in milliseconds."""
        if phase is Phase.WORK:
            return self.work_duration_ms
        return self.break_duration_ms

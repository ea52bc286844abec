"""Timer snapshot domain model."""

from dataclasses import dataclass

from shared_timer.domain.models.phase import Phase, TimerState


@dataclass(frozen=True)
class TimerSnapshot:
    """Read-only view of a session at one instant, as handed to views."""

    state: TimerState
    phase: Phase
    remaining_ms: int
    cycle_count: int
    display: str  # remaining time as M:SS

    @property
    def is_paused(self) -> bool:
        return self.state is TimerState.PAUSED

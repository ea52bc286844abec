"""Phase completion event domain model."""

from dataclasses import dataclass

from shared_timer.domain.models.phase import Phase


@dataclass(frozen=True)
class PhaseCompleted:
    """Emitted by a client when it observes a running phase reach zero.

    Every client of a room observes the expiry independently, so sinks
    receive one event per client, not one per room.
    """

    room_id: str
    completed_phase: Phase
    next_phase: Phase
    cycle_count: int
    completed_at_ms: int

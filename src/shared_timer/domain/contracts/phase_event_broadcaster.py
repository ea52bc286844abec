"""Protocol for broadcasting phase completion events."""

from typing import Protocol

from shared_timer.domain.models.phase_completed import PhaseCompleted


class PhaseEventBroadcasterProtocol(Protocol):
    """Protocol for notifying external sinks that a phase completed."""

    def broadcast_phase_completed(self, event: PhaseCompleted) -> None:
        """Deliver the event to every registered sink.

        Args:
            event: The completion observed by this client.
        """
        ...

"""Session record domain model and its wire payload."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from shared_timer.domain.models.phase import Phase
from shared_timer.domain.models.timer_settings import TimerSettings

SCHEMA_VERSION = 1


def _as_int(payload: dict[str, Any], key: str) -> int:
    value = payload.get(key)
    # bool is an int subclass but never a valid number here
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise ValueError(f"session payload field '{key}' must be a number, got {value!r}")
    return int(value)


@dataclass(frozen=True)
class SessionRecord:
    """The complete replicated state of one room's timer.

    The record is written and replaced as a whole, so a client never sees
    the phase of one write combined with the end instant of another.

    ``end_instant_ms`` is the wall-clock instant the running countdown
    reaches zero; ``None`` means paused, in which case ``remaining_ms`` is
    the frozen remaining duration.
    """

    phase: Phase
    end_instant_ms: int | None
    remaining_ms: int
    cycle_count: int = 1
    revision: int = 0
    updated_by: str | None = None

    @property
    def paused(self) -> bool:
        return self.end_instant_ms is None

    @classmethod
    def initial(cls, settings: TimerSettings) -> SessionRecord:
        """Record used before any client has written to the room."""
        return cls(
            phase=Phase.WORK,
            end_instant_ms=None,
            remaining_ms=settings.duration_for(Phase.WORK),
        )

    def successor(self, writer: str | None, **changes: Any) -> SessionRecord:
        """Return the next revision of this record with ``changes`` applied."""
        return replace(self, revision=self.revision + 1, updated_by=writer, **changes)

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the JSON object stored in the backend."""
        return {
            "schema_version": SCHEMA_VERSION,
            "phase": self.phase.value,
            "end_instant": self.end_instant_ms,
            "remaining": self.remaining_ms,
            "paused": self.paused,
            "cycle_count": self.cycle_count,
            "revision": self.revision,
            "updated_by": self.updated_by,
        }

    @classmethod
    def from_payload(cls, payload: Any) -> SessionRecord:
        """Parse a backend snapshot.

        Raises:
            ValueError: If the payload is malformed or uses an unknown schema.
        """
        if not isinstance(payload, dict):
            raise ValueError(f"session payload must be an object, got {type(payload).__name__}")

        version = payload.get("schema_version")
        if version != SCHEMA_VERSION:
            raise ValueError(f"unsupported session schema version: {version!r}")

        try:
            phase = Phase(payload.get("phase"))
        except ValueError as e:
            raise ValueError(f"unknown phase: {payload.get('phase')!r}") from e

        end_instant = None if payload.get("end_instant") is None else _as_int(payload, "end_instant")
        updated_by = payload.get("updated_by")

        return cls(
            phase=phase,
            end_instant_ms=end_instant,
            remaining_ms=max(0, _as_int(payload, "remaining")),
            cycle_count=max(1, _as_int(payload, "cycle_count")),
            revision=_as_int(payload, "revision") if "revision" in payload else 0,
            updated_by=str(updated_by) if updated_by is not None else None,
        )

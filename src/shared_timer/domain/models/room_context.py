"""Room context domain model."""

from __future__ import annotations

import secrets
import string
from dataclasses import dataclass, field

_ID_ALPHABET = string.ascii_lowercase + string.digits
# Characters that are not allowed in backend key paths
_FORBIDDEN_ROOM_CHARS = frozenset("/.#$[]")


def _random_chunk(length: int = 11) -> str:
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(length))


@dataclass(frozen=True)
class RoomContext:
    """Identifies the room a client joined and the client itself.

    All shared values of a room live under the ``{room_id}/`` key prefix.
    The client id is only used to tag writes for diagnostics.
    """

    room_id: str
    client_id: str = field(default_factory=_random_chunk)

    def __post_init__(self) -> None:
        """Validate the room id against the backend key grammar."""
        if not self.room_id or not self.room_id.strip():
            raise ValueError("room_id must not be empty")
        forbidden = _FORBIDDEN_ROOM_CHARS.intersection(self.room_id)
        if forbidden:
            raise ValueError(
                f"room_id contains forbidden characters: {''.join(sorted(forbidden))}"
            )

    def key_for(self, name: str) -> str:
        """Return the backend key of a shared value in this room."""
        return f"{self.room_id}/{name}"

    @classmethod
    def generate(cls) -> RoomContext:
        """Create a context for a fresh, randomly named room."""
        return cls(room_id=_random_chunk() + _random_chunk())

"""Server clock port."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class ServerClockSource(Protocol):
    """Port for backends that can report their own wall-clock time."""

    async def server_time_ms(self) -> int:
        """Return the backend's current time in epoch milliseconds."""
        ...

"""Formatting of countdown durations."""

SECOND_MS = 1000
MINUTE_MS = 60 * SECOND_MS


def format_time(duration_ms: int) -> str:
    """Format a duration as ``M:SS``, truncating to whole seconds.

    >>> format_time(1500000)
    '25:00'
    >>> format_time(5999)
    '0:05'
    """
    duration_ms = max(0, int(duration_ms))
    minutes = duration_ms // MINUTE_MS
    seconds = (duration_ms % MINUTE_MS) // SECOND_MS
    return f"{minutes}:{seconds:02d}"

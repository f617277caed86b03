"""Timezone helpers – provide a single UTC-aware *now()* function.

Import :pyfunc:`utc_now` everywhere instead of calling the stdlib helpers
directly so every timestamp the backend produces is timezone-aware.
"""

from datetime import datetime
from datetime import timezone


def utc_now() -> datetime:  # noqa: D401 – simple utility
    """Return *aware* current time in UTC."""

    return datetime.now(timezone.utc)


def to_millis(moment: datetime) -> int:
    """Return *moment* as integer milliseconds since the epoch."""

    return int(moment.timestamp() * 1000)


__all__ = ["to_millis", "utc_now"]

"""Time helpers.

Timestamps are stored as naive UTC datetimes and exposed on the wire as
milliseconds since the epoch (0 when absent).
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_millis(value: Optional[datetime]) -> int:
    if value is None:
        return 0
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)


def minutes_ceil(delta: timedelta) -> int:
    """Whole minutes in ``delta``, rounded up, never less than one."""
    seconds = delta.total_seconds()
    return max(1, -(-int(seconds * 1000) // 60000))


def get_clock() -> Clock:
    """FastAPI dependency returning the clock used by the services."""
    return utcnow

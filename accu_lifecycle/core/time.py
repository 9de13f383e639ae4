import math
from datetime import UTC, datetime

SECONDS_PER_DAY = 60 * 60 * 24


def now_utc() -> datetime:
    """Naive UTC timestamp, matching the DateTime columns."""
    return datetime.now(UTC).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


def days_between(start: datetime, end: datetime | None = None) -> int:
    """Whole days between two instants, rounded up, in either direction."""
    end = end or now_utc()
    seconds = abs((to_naive_utc(end) - to_naive_utc(start)).total_seconds())
    return math.ceil(seconds / SECONDS_PER_DAY)

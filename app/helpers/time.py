from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    # Stored as naive UTC to match the DB columns
    return datetime.now(timezone.utc).replace(tzinfo=None)


def is_older_than(dt: Optional[datetime], minutes: Optional[int]) -> bool:
    """True if `dt` is more than `minutes` in the past. No limit -> never old."""
    if dt is None or minutes is None or minutes <= 0:
        return False

    # Treat aware values as UTC
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)

    return utcnow() - dt > timedelta(minutes=minutes)

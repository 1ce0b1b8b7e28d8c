# qrinspect/core/clock.py
from datetime import datetime, timezone


def utcnow() -> datetime:
    # tz-aware UTC, but stored as naive UTC (SQLite-friendly)
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: datetime) -> datetime:
    """Normalize an incoming datetime (aware or naive) to naive UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)

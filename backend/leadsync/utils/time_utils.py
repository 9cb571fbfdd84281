"""
Time Utilities
Shared helpers so naive and aware timestamps compare consistently
"""
from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def start_of_local_day(now: Optional[datetime] = None) -> datetime:
    """
    Midnight of the current local calendar day, as an aware datetime.

    "Today" follows the host's local timezone, matching how the dashboard
    buckets calls for the person looking at it.
    """
    local_now = ensure_aware(now or utc_now()).astimezone()
    return local_now.replace(hour=0, minute=0, second=0, microsecond=0)


def from_unix_seconds(seconds: Optional[float]) -> Optional[datetime]:
    if not seconds:
        return None
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def to_iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return ensure_aware(value).isoformat()

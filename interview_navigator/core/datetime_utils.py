from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from interview_navigator.core.errors import ValidationError
from interview_navigator.core.intervals import time_to_minutes


def resolve_zone(name: str | None) -> ZoneInfo:
    if not name or not name.strip():
        raise ValidationError("Timezone required")
    try:
        return ZoneInfo(name.strip())
    except (ZoneInfoNotFoundError, ValueError):
        raise ValidationError(f"Unknown timezone {name!r}")


def utcnow_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_naive(value: datetime) -> datetime:
    """Normalize to naive UTC for DATETIME columns. Naive input is taken as UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def to_local(value: datetime, zone: ZoneInfo) -> datetime:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(zone)


def local_to_utc_naive(on_date: date, time_str: str, zone: ZoneInfo) -> datetime:
    minutes = time_to_minutes(time_str)
    local = datetime.combine(on_date, datetime.min.time(), tzinfo=zone) + timedelta(minutes=minutes)
    return to_utc_naive(local)


def minute_of_day(value: datetime) -> int:
    return value.hour * 60 + value.minute

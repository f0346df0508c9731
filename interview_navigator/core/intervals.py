from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from typing import Iterator, TypeVar

from interview_navigator.core.errors import ValidationError

TIME_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")
MINUTES_PER_DAY = 24 * 60

T = TypeVar("T")


@dataclass(frozen=True)
class TimeSlot:
    start_time: str
    end_time: str


def is_valid_time(value: str | None) -> bool:
    return bool(value) and TIME_PATTERN.match(value) is not None


def time_to_minutes(value: str) -> int:
    """Parse an ``HH:MM`` wall-clock string into minutes since midnight."""
    if not isinstance(value, str) or not is_valid_time(value):
        raise ValidationError(f"Invalid time format {value!r} (use HH:MM)")
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def minutes_to_time(minutes: int) -> str:
    if minutes < 0 or minutes >= MINUTES_PER_DAY:
        raise ValidationError(f"Minute offset {minutes} is outside a single day")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def normalize_time(value: str) -> str:
    """``"9:05"`` -> ``"09:05"``."""
    return minutes_to_time(time_to_minutes(value))


def intervals_overlap(a_start: T, a_end: T, b_start: T, b_end: T) -> bool:
    # Half-open [start, end): touching endpoints do not overlap.
    return a_start < b_end and b_start < a_end


def interval_contains(outer_start: T, outer_end: T, inner_start: T, inner_end: T) -> bool:
    return inner_start >= outer_start and inner_end <= outer_end


def generate_sub_slots(start_time: str, end_time: str, duration_minutes: int) -> Iterator[TimeSlot]:
    """Yield contiguous ``duration_minutes`` slots from ``start_time``.

    A trailing remainder shorter than the duration is dropped. Ranges shorter
    than the duration yield nothing.
    """
    if duration_minutes <= 0:
        raise ValidationError("duration_minutes must be positive")
    current = time_to_minutes(start_time)
    end = time_to_minutes(end_time)
    while current + duration_minutes <= end:
        yield TimeSlot(start_time=minutes_to_time(current), end_time=minutes_to_time(current + duration_minutes))
        current += duration_minutes


def day_of_week(value: date) -> int:
    """Sunday = 0 ... Saturday = 6."""
    return value.isoweekday() % 7

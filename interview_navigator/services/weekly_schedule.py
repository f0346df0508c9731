from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Protocol, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from interview_navigator.core.datetime_utils import resolve_zone, utcnow_naive
from interview_navigator.core.errors import DependencyError, ValidationError
from interview_navigator.core.intervals import intervals_overlap, is_valid_time, normalize_time, time_to_minutes
from interview_navigator.models.availability_slot import NavAvailabilitySlot
from interview_navigator.models.user import USER_TYPE_INTERVIEWER
from interview_navigator.services.availability_store import AvailabilityStore, SlotSpec, build_slot_id
from interview_navigator.services.users import ensure_user

logger = logging.getLogger("nav.weekly_schedule")

DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


class _TimeRange(Protocol):
    start_time: str
    end_time: str


class _Day(Protocol):
    day_of_week: int
    enabled: bool
    slots: Sequence[_TimeRange]


@dataclass(frozen=True)
class CompiledSlot:
    day_of_week: int
    start_time: str
    end_time: str


def _day_name(day: int) -> str:
    return DAY_NAMES[day] if 0 <= day <= 6 else str(day)


def validate_weekly_schedule(days: Iterable[_Day], timezone: str) -> list[CompiledSlot]:
    """Validate a full-week submission and compile it into recurring slots.

    Nothing is written here; ``set_weekly_schedule`` only mutates once this
    returns.
    """
    resolve_zone(timezone)

    enabled = [day for day in days if day.enabled]
    if not enabled:
        raise ValidationError("no days enabled")

    seen_days: set[int] = set()
    compiled: list[CompiledSlot] = []
    for day in enabled:
        name = _day_name(day.day_of_week)
        if not 0 <= day.day_of_week <= 6:
            raise ValidationError(f"Invalid day of week {day.day_of_week}")
        if day.day_of_week in seen_days:
            raise ValidationError(f"{name} is listed more than once")
        seen_days.add(day.day_of_week)

        if not day.slots:
            raise ValidationError(f"{name} is enabled but has no time slots")

        ranges: list[tuple[int, int]] = []
        for index, slot in enumerate(day.slots, start=1):
            if not is_valid_time(slot.start_time) or not is_valid_time(slot.end_time):
                raise ValidationError(f"Invalid time format in {name}, slot {index} (use HH:MM)")
            start = time_to_minutes(slot.start_time)
            end = time_to_minutes(slot.end_time)
            if start >= end:
                raise ValidationError(f"Invalid time range in {name}, slot {index}: start must be before end")
            ranges.append((start, end))

        for i in range(len(ranges)):
            for j in range(i + 1, len(ranges)):
                a_start, a_end = ranges[i]
                b_start, b_end = ranges[j]
                if intervals_overlap(a_start, a_end, b_start, b_end) or intervals_overlap(b_start, b_end, a_start, a_end):
                    raise ValidationError(f"Overlapping time slots in {name}: slot {i + 1} and slot {j + 1}")

        for slot in day.slots:
            compiled.append(
                CompiledSlot(
                    day_of_week=day.day_of_week,
                    start_time=normalize_time(slot.start_time),
                    end_time=normalize_time(slot.end_time),
                )
            )
    return compiled


async def set_weekly_schedule(
    session: AsyncSession,
    interviewer_id: str,
    days: Iterable[_Day],
    timezone: str,
    *,
    email: str | None = None,
    display_name: str | None = None,
) -> list[NavAvailabilitySlot]:
    """Replace the interviewer's recurring availability in one transaction.

    Slots that survive keep their id and ``created_at``; only the difference is
    deleted or inserted, so readers never observe an empty calendar.
    """
    compiled = validate_weekly_schedule(days, timezone)
    timezone = timezone.strip()

    desired: dict[str, CompiledSlot] = {}
    for item in compiled:
        spec = SlotSpec(
            interviewer_id=interviewer_id,
            start_time=item.start_time,
            end_time=item.end_time,
            timezone=timezone,
            is_recurring=True,
            day_of_week=item.day_of_week,
        )
        desired[build_slot_id(spec)] = item

    now = utcnow_naive()
    try:
        await ensure_user(
            session,
            user_id=interviewer_id,
            email=email,
            display_name=display_name,
            user_type=USER_TYPE_INTERVIEWER,
            timezone=timezone,
        )
        existing_rows = (
            await session.execute(select(NavAvailabilitySlot).where(NavAvailabilitySlot.interviewer_id == interviewer_id))
        ).scalars().all()

        removed = 0
        kept: set[str] = set()
        for row in existing_rows:
            if not row.is_recurring:
                # One-off slots follow the interviewer's single timezone.
                row.timezone = timezone
                row.updated_at = now
                continue
            if row.slot_id in desired:
                row.timezone = timezone
                row.is_active = True
                row.updated_at = now
                kept.add(row.slot_id)
            else:
                await session.delete(row)
                removed += 1

        for slot_id, item in desired.items():
            if slot_id in kept:
                continue
            session.add(
                NavAvailabilitySlot(
                    slot_id=slot_id,
                    interviewer_id=interviewer_id,
                    day_of_week=item.day_of_week,
                    specific_date=None,
                    start_time=item.start_time,
                    end_time=item.end_time,
                    timezone=timezone,
                    is_recurring=True,
                    is_active=True,
                    created_at=now,
                    updated_at=now,
                )
            )
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.error("weekly_schedule_failed", extra={"interviewer_id": interviewer_id, "error": str(exc)})
        raise DependencyError("Failed to update weekly schedule") from exc

    logger.info(
        "weekly_schedule_updated",
        extra={
            "interviewer_id": interviewer_id,
            "slots": len(desired),
            "kept": len(kept),
            "removed": removed,
            "timezone": timezone,
        },
    )
    return await AvailabilityStore(session).list_slots(interviewer_id)

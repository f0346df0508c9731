from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from interview_navigator.core.datetime_utils import minute_of_day, resolve_zone, to_local, utcnow_naive
from interview_navigator.core.errors import DependencyError, NotFoundError, ValidationError
from interview_navigator.core.intervals import (
    TimeSlot,
    day_of_week,
    generate_sub_slots,
    interval_contains,
    intervals_overlap,
    normalize_time,
    time_to_minutes,
)
from interview_navigator.models.availability_slot import NavAvailabilitySlot

logger = logging.getLogger("nav.availability")


@dataclass(frozen=True)
class SlotSpec:
    interviewer_id: str
    start_time: str
    end_time: str
    timezone: str
    is_recurring: bool = True
    day_of_week: int | None = None
    specific_date: date | None = None
    is_active: bool = True


def build_slot_id(spec: SlotSpec) -> str:
    if spec.specific_date is not None and not spec.is_recurring:
        return f"{spec.interviewer_id}_{spec.specific_date.isoformat()}_{spec.start_time}_{spec.end_time}"
    return f"{spec.interviewer_id}_day{spec.day_of_week}_{spec.start_time}_{spec.end_time}"


def normalize_slot_spec(spec: SlotSpec) -> SlotSpec:
    if not spec.interviewer_id or not spec.interviewer_id.strip():
        raise ValidationError("interviewer_id required")
    start = normalize_time(spec.start_time)
    end = normalize_time(spec.end_time)
    if time_to_minutes(end) <= time_to_minutes(start):
        raise ValidationError("End time must be after start time")
    resolve_zone(spec.timezone)

    if spec.is_recurring:
        if spec.day_of_week is None or not 0 <= spec.day_of_week <= 6:
            raise ValidationError("Invalid day of week")
        if spec.specific_date is not None:
            raise ValidationError("Recurring slots cannot carry a specific date")
    else:
        if spec.specific_date is None:
            raise ValidationError("One-off slots require a specific date")
        return replace(spec, start_time=start, end_time=end, day_of_week=None, timezone=spec.timezone.strip())
    return replace(spec, start_time=start, end_time=end, timezone=spec.timezone.strip())


def slot_applies_to(slot: NavAvailabilitySlot, on_date: date) -> bool:
    if slot.is_recurring:
        return slot.day_of_week == day_of_week(on_date)
    return slot.specific_date == on_date


class AvailabilityStore:
    """Declared availability of interviewers.

    Slots are keyed by a deterministic id so re-submitting the same slot is an
    update, never a duplicate. An interviewer with no slots is simply
    unavailable; lookups for unknown interviewers return empty results.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _active_slots(self, interviewer_id: str) -> list[NavAvailabilitySlot]:
        try:
            result = await self.session.execute(
                select(NavAvailabilitySlot)
                .where(
                    NavAvailabilitySlot.interviewer_id == interviewer_id,
                    NavAvailabilitySlot.is_active.is_(True),
                )
                .order_by(
                    NavAvailabilitySlot.created_at.asc(),
                    NavAvailabilitySlot.day_of_week.asc(),
                    NavAvailabilitySlot.start_time.asc(),
                )
            )
        except SQLAlchemyError as exc:
            logger.error("availability_read_failed", extra={"interviewer_id": interviewer_id, "error": str(exc)})
            raise DependencyError("Availability store unavailable") from exc
        return list(result.scalars().all())

    async def list_slots(self, interviewer_id: str) -> list[NavAvailabilitySlot]:
        return await self._active_slots(interviewer_id)

    async def interviewer_timezone(self, interviewer_id: str) -> str | None:
        slots = await self._active_slots(interviewer_id)
        return slots[0].timezone if slots else None

    async def upsert_slot(self, spec: SlotSpec, *, commit: bool = True) -> str:
        spec = normalize_slot_spec(spec)
        slot_id = build_slot_id(spec)

        others = [s for s in await self._active_slots(spec.interviewer_id) if s.slot_id != slot_id]
        if spec.is_active:
            if any(s.timezone != spec.timezone for s in others):
                raise ValidationError("All availability slots of an interviewer must share one timezone")
            if spec.is_recurring:
                start, end = time_to_minutes(spec.start_time), time_to_minutes(spec.end_time)
                for other in others:
                    if not other.is_recurring or other.day_of_week != spec.day_of_week:
                        continue
                    if intervals_overlap(start, end, time_to_minutes(other.start_time), time_to_minutes(other.end_time)):
                        raise ValidationError(f"Slot overlaps existing slot {other.start_time}-{other.end_time}")

        now = utcnow_naive()
        existing = await self.session.get(NavAvailabilitySlot, slot_id)
        if existing is None:
            self.session.add(
                NavAvailabilitySlot(
                    slot_id=slot_id,
                    interviewer_id=spec.interviewer_id,
                    day_of_week=spec.day_of_week,
                    specific_date=spec.specific_date,
                    start_time=spec.start_time,
                    end_time=spec.end_time,
                    timezone=spec.timezone,
                    is_recurring=spec.is_recurring,
                    is_active=spec.is_active,
                    created_at=now,
                    updated_at=now,
                )
            )
        else:
            existing.timezone = spec.timezone
            existing.is_active = spec.is_active
            existing.updated_at = now

        if commit:
            await self._commit()
        logger.info("availability_slot_saved", extra={"slot_id": slot_id, "interviewer_id": spec.interviewer_id})
        return slot_id

    async def delete_slot(self, slot_id: str, *, commit: bool = True) -> None:
        slot = await self.session.get(NavAvailabilitySlot, slot_id)
        if slot is None:
            raise NotFoundError("Availability slot not found")
        await self.session.delete(slot)
        if commit:
            await self._commit()
        logger.info("availability_slot_deleted", extra={"slot_id": slot_id})

    async def get_slot(self, slot_id: str) -> NavAvailabilitySlot:
        slot = await self.session.get(NavAvailabilitySlot, slot_id)
        if slot is None:
            raise NotFoundError("Availability slot not found")
        return slot

    async def is_available_at(self, interviewer_id: str, instant: datetime, duration_minutes: int) -> bool:
        slots = await self._active_slots(interviewer_id)
        if not slots:
            return False
        zone = resolve_zone(slots[0].timezone)
        local_start = to_local(instant, zone)
        request_start = minute_of_day(local_start)
        # May run past 1440; slots never cross midnight so such requests never fit.
        request_end = request_start + duration_minutes
        if local_start.second or local_start.microsecond:
            # Part of the last minute is still inside the request.
            request_end += 1

        for slot in slots:
            if not slot_applies_to(slot, local_start.date()):
                continue
            if interval_contains(
                time_to_minutes(slot.start_time),
                time_to_minutes(slot.end_time),
                request_start,
                request_end,
            ):
                return True
        return False

    async def available_sub_slots(self, interviewer_id: str, on_date: date, duration_minutes: int) -> list[TimeSlot]:
        slots = await self._active_slots(interviewer_id)
        found: set[TimeSlot] = set()
        for slot in slots:
            if slot_applies_to(slot, on_date):
                found.update(generate_sub_slots(slot.start_time, slot.end_time, duration_minutes))
        result = sorted(found, key=lambda item: (item.start_time, item.end_time))
        logger.info(
            "availability_sub_slots_generated",
            extra={"interviewer_id": interviewer_id, "date": on_date.isoformat(), "count": len(result)},
        )
        return result

    async def _commit(self) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise DependencyError("Availability store unavailable") from exc

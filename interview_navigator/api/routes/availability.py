from __future__ import annotations

from datetime import date, timedelta

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from interview_navigator.api import deps
from interview_navigator.core.config import settings
from interview_navigator.core.datetime_utils import local_to_utc_naive, resolve_zone, to_utc_naive
from interview_navigator.core.errors import AuthorizationError, ValidationError
from interview_navigator.core.intervals import intervals_overlap
from interview_navigator.models.user import USER_TYPE_INTERVIEWER
from interview_navigator.schemas.availability import (
    AvailabilitySlotIn,
    AvailabilitySlotOut,
    ConflictCheckIn,
    ConflictCheckOut,
    ConflictItem,
    ScheduleValidationOut,
    TimeSlotOut,
    WeeklyScheduleIn,
)
from interview_navigator.schemas.user import UserContext
from interview_navigator.services.availability_store import AvailabilityStore, SlotSpec
from interview_navigator.services.booking_conflicts import find_conflicts
from interview_navigator.services.users import ensure_user
from interview_navigator.services.weekly_schedule import set_weekly_schedule, validate_weekly_schedule

router = APIRouter(prefix="/availability", tags=["availability"])

# Local days are at most 25 hours long across DST changes.
_DAY_SPAN_MINUTES = 25 * 60


def _require_self(user: UserContext, interviewer_id: str) -> None:
    if user.user_id != interviewer_id:
        raise AuthorizationError("You can only manage your own availability")


@router.post("/validate", response_model=ScheduleValidationOut)
async def validate_schedule(
    payload: WeeklyScheduleIn,
    _user: UserContext = Depends(deps.get_user),
):
    compiled = validate_weekly_schedule(payload.days, payload.timezone)
    return ScheduleValidationOut(valid=True, message=f"{len(compiled)} slots across the week")


@router.put("/{interviewer_id}/weekly", response_model=list[AvailabilitySlotOut])
async def put_weekly_schedule(
    interviewer_id: str,
    payload: WeeklyScheduleIn,
    session: AsyncSession = Depends(deps.get_db_session),
    user: UserContext = Depends(deps.get_user),
):
    _require_self(user, interviewer_id)
    return await set_weekly_schedule(
        session,
        interviewer_id,
        payload.days,
        payload.timezone,
        email=str(user.email) if user.email else None,
        display_name=user.full_name,
    )


@router.get("/{interviewer_id}/slots", response_model=list[AvailabilitySlotOut])
async def list_slots(
    interviewer_id: str,
    session: AsyncSession = Depends(deps.get_db_session),
    _user: UserContext = Depends(deps.get_user),
):
    return await AvailabilityStore(session).list_slots(interviewer_id)


@router.post("/{interviewer_id}/slots", response_model=AvailabilitySlotOut, status_code=status.HTTP_201_CREATED)
async def upsert_slot(
    interviewer_id: str,
    payload: AvailabilitySlotIn,
    session: AsyncSession = Depends(deps.get_db_session),
    user: UserContext = Depends(deps.get_user),
):
    _require_self(user, interviewer_id)
    store = AvailabilityStore(session)
    await ensure_user(
        session,
        user_id=interviewer_id,
        email=str(user.email) if user.email else None,
        display_name=user.full_name,
        user_type=USER_TYPE_INTERVIEWER,
        timezone=payload.timezone.strip(),
    )
    slot_id = await store.upsert_slot(
        SlotSpec(
            interviewer_id=interviewer_id,
            start_time=payload.start_time,
            end_time=payload.end_time,
            timezone=payload.timezone,
            is_recurring=payload.is_recurring,
            day_of_week=payload.day_of_week if payload.is_recurring else None,
            specific_date=None if payload.is_recurring else payload.specific_date,
            is_active=payload.is_active,
        )
    )
    return await store.get_slot(slot_id)


@router.delete("/slots/{slot_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_slot(
    slot_id: str,
    session: AsyncSession = Depends(deps.get_db_session),
    user: UserContext = Depends(deps.get_user),
):
    store = AvailabilityStore(session)
    slot = await store.get_slot(slot_id)
    _require_self(user, slot.interviewer_id)
    await store.delete_slot(slot_id)


@router.get("/{interviewer_id}/open-slots", response_model=list[TimeSlotOut])
async def open_slots(
    interviewer_id: str,
    on_date: date = Query(alias="date"),
    duration_minutes: int = Query(default=settings.default_duration_minutes, ge=1, le=24 * 60),
    session: AsyncSession = Depends(deps.get_db_session),
    _user: UserContext = Depends(deps.get_user),
):
    store = AvailabilityStore(session)
    timezone = await store.interviewer_timezone(interviewer_id)
    if timezone is None:
        return []
    zone = resolve_zone(timezone)
    sub_slots = await store.available_sub_slots(interviewer_id, on_date, duration_minutes)
    if not sub_slots:
        return []

    day_start = local_to_utc_naive(on_date, "00:00", zone)
    booked = await find_conflicts(session, interviewer_id, day_start, _DAY_SPAN_MINUTES)
    out: list[TimeSlotOut] = []
    for slot in sub_slots:
        starts_at = local_to_utc_naive(on_date, slot.start_time, zone)
        ends_at = starts_at + timedelta(minutes=duration_minutes)
        if any(intervals_overlap(starts_at, ends_at, b.scheduled_start_at, b.scheduled_end_at) for b in booked):
            continue
        out.append(TimeSlotOut(start_time=slot.start_time, end_time=slot.end_time, starts_at_utc=starts_at))
    return out


@router.post("/check-conflicts", response_model=ConflictCheckOut)
async def check_conflicts(
    payload: ConflictCheckIn,
    session: AsyncSession = Depends(deps.get_db_session),
    _user: UserContext = Depends(deps.get_user),
):
    start = to_utc_naive(payload.start_at)
    end = to_utc_naive(payload.end_at)
    if end <= start:
        raise ValidationError("end_at must be after start_at")
    duration = int((end - start).total_seconds() // 60)
    conflicts = await find_conflicts(session, payload.interviewer_id, start, duration)
    return ConflictCheckOut(
        has_conflicts=bool(conflicts),
        conflict_count=len(conflicts),
        conflicts=[
            ConflictItem(
                booking_id=row.booking_id,
                scheduled_start_at=row.scheduled_start_at,
                duration_minutes=row.duration_minutes,
            )
            for row in conflicts
        ],
    )

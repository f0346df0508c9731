from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from interview_navigator.api import deps
from interview_navigator.schemas.booking import (
    BookingAvailabilityOut,
    BookingCreate,
    BookingOut,
    BookingReschedule,
    BookingStatusUpdate,
    BookingValidateIn,
)
from interview_navigator.schemas.user import UserContext
from interview_navigator.services.bookings import BookingService

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("/validate", response_model=BookingAvailabilityOut)
async def validate_booking(
    payload: BookingValidateIn,
    service: BookingService = Depends(deps.get_booking_service),
    _user: UserContext = Depends(deps.get_user),
):
    await service.validate_booking_time(payload.interviewer_id, payload.scheduled_start_at, payload.duration_minutes)
    return BookingAvailabilityOut(available=True, message="Time slot is available")


@router.post("", response_model=BookingOut, status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: BookingCreate,
    service: BookingService = Depends(deps.get_booking_service),
    user: UserContext = Depends(deps.get_user),
):
    return await service.create_booking(user, payload)


@router.get("", response_model=list[BookingOut])
async def list_bookings(
    status_filter: Optional[list[str]] = Query(default=None, alias="status"),
    booking_type: Optional[str] = Query(default=None, alias="type"),
    start: Optional[datetime] = Query(default=None),
    end: Optional[datetime] = Query(default=None),
    service: BookingService = Depends(deps.get_booking_service),
    user: UserContext = Depends(deps.get_user),
):
    return await service.list_user_bookings(
        user.user_id,
        statuses=status_filter,
        booking_type=booking_type,
        start=start,
        end=end,
    )


@router.get("/{booking_id}", response_model=BookingOut)
async def get_booking(
    booking_id: str,
    service: BookingService = Depends(deps.get_booking_service),
    user: UserContext = Depends(deps.get_user),
):
    return await service.get_booking(booking_id, user)


@router.patch("/{booking_id}/status", response_model=BookingOut)
async def update_booking_status(
    booking_id: str,
    payload: BookingStatusUpdate,
    service: BookingService = Depends(deps.get_booking_service),
    user: UserContext = Depends(deps.get_user),
):
    return await service.transition(booking_id, payload.status, user, reason=payload.reason)


@router.post("/{booking_id}/reschedule", response_model=BookingOut)
async def reschedule_booking(
    booking_id: str,
    payload: BookingReschedule,
    service: BookingService = Depends(deps.get_booking_service),
    user: UserContext = Depends(deps.get_user),
):
    return await service.reschedule(
        booking_id,
        payload.scheduled_start_at,
        user,
        duration_minutes=payload.duration_minutes,
    )

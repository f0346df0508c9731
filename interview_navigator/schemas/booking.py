from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field, conint, field_validator, model_validator

from interview_navigator.core.booking_machine import ALL_STATUSES, BOOKING_TYPE_LIVE, normalize_status

BookingType = Literal["ai", "live"]
Difficulty = Literal["beginner", "intermediate", "advanced"]
Duration = conint(ge=15, le=180)


class BookingValidateIn(BaseModel):
    interviewer_id: str = Field(min_length=1, max_length=128)
    scheduled_start_at: datetime
    duration_minutes: Duration


class BookingCreate(BaseModel):
    interviewer_id: Optional[str] = Field(default=None, min_length=1, max_length=128)
    candidate_name: Optional[str] = Field(default=None, max_length=255)
    candidate_email: Optional[EmailStr] = None
    scheduled_start_at: datetime
    duration_minutes: Duration
    timezone: str = Field(default="UTC", min_length=1, max_length=64)
    booking_type: BookingType = "live"
    role: Optional[str] = Field(default=None, max_length=200)
    skills: list[str] = Field(default_factory=list)
    difficulty: Difficulty = "intermediate"

    @model_validator(mode="after")
    def _live_needs_interviewer(self) -> "BookingCreate":
        if self.booking_type == BOOKING_TYPE_LIVE and not self.interviewer_id:
            raise ValueError("interviewer_id is required for live bookings")
        return self


class BookingStatusUpdate(BaseModel):
    status: str
    reason: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("status")
    @classmethod
    def validate_status(cls, value: str) -> str:
        normalized = normalize_status(value)
        if normalized not in ALL_STATUSES:
            raise ValueError("invalid_status")
        return normalized


class BookingReschedule(BaseModel):
    scheduled_start_at: datetime
    duration_minutes: Optional[Duration] = None


class BookingOut(BaseModel):
    booking_id: str
    candidate_id: str
    candidate_name: Optional[str] = None
    candidate_email: Optional[str] = None
    interviewer_id: Optional[str] = None
    interviewer_name: Optional[str] = None
    interviewer_email: Optional[str] = None
    booking_type: str
    status: str
    scheduled_start_at: datetime
    scheduled_end_at: datetime
    duration_minutes: int
    timezone: str
    role: Optional[str] = None
    skills: Optional[list[str]] = None
    difficulty: Optional[str] = None
    meeting_link: Optional[str] = None
    meeting_id: Optional[str] = None
    meeting_password: Optional[str] = None
    meeting_provider: Optional[str] = None
    cancelled_by: Optional[str] = None
    cancellation_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class BookingAvailabilityOut(BaseModel):
    available: bool
    message: str

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class TimeRange(BaseModel):
    start_time: str = Field(min_length=1, max_length=5)
    end_time: str = Field(min_length=1, max_length=5)


class DayAvailability(BaseModel):
    day_of_week: int = Field(ge=0, le=6)
    enabled: bool = True
    slots: list[TimeRange] = Field(default_factory=list)


class WeeklyScheduleIn(BaseModel):
    timezone: str = Field(min_length=1, max_length=64)
    days: list[DayAvailability]


class AvailabilitySlotIn(BaseModel):
    start_time: str = Field(min_length=1, max_length=5)
    end_time: str = Field(min_length=1, max_length=5)
    timezone: str = Field(min_length=1, max_length=64)
    is_recurring: bool = True
    day_of_week: Optional[int] = Field(default=None, ge=0, le=6)
    specific_date: Optional[date] = None
    is_active: bool = True

    @model_validator(mode="after")
    def _recurring_or_dated(self) -> "AvailabilitySlotIn":
        if self.is_recurring and self.day_of_week is None:
            raise ValueError("day_of_week is required for recurring slots")
        if not self.is_recurring and self.specific_date is None:
            raise ValueError("specific_date is required for one-off slots")
        return self


class AvailabilitySlotOut(BaseModel):
    slot_id: str
    interviewer_id: str
    day_of_week: Optional[int] = None
    specific_date: Optional[date] = None
    start_time: str
    end_time: str
    timezone: str
    is_recurring: bool
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TimeSlotOut(BaseModel):
    start_time: str
    end_time: str
    starts_at_utc: Optional[datetime] = None


class ScheduleValidationOut(BaseModel):
    valid: bool
    message: str


class ConflictCheckIn(BaseModel):
    interviewer_id: str = Field(min_length=1, max_length=128)
    start_at: datetime
    end_at: datetime


class ConflictItem(BaseModel):
    booking_id: str
    scheduled_start_at: datetime
    duration_minutes: int


class ConflictCheckOut(BaseModel):
    has_conflicts: bool
    conflict_count: int
    conflicts: list[ConflictItem]

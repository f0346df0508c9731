from interview_navigator.db.base import Base
from interview_navigator.models.availability_slot import NavAvailabilitySlot
from interview_navigator.models.booking import NavInterviewBooking
from interview_navigator.models.booking_guard import NavInterviewerBookingGuard
from interview_navigator.models.event import NavBookingEvent
from interview_navigator.models.user import NavUser

__all__ = [
    "Base",
    "NavAvailabilitySlot",
    "NavBookingEvent",
    "NavInterviewBooking",
    "NavInterviewerBookingGuard",
    "NavUser",
]

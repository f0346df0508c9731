from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from interview_navigator.models import NavInterviewBooking, NavUser
from interview_navigator.models.user import USER_TYPE_INTERVIEWER
from interview_navigator.services.meetings import MeetingLink

# 2030-01-07 is a Monday.
MONDAY = datetime(2030, 1, 7)


class FakeNotifier:
    def __init__(self) -> None:
        self.sent: list[tuple[str, str, dict]] = []

    async def notify(self, user_id, template_type, payload=None) -> bool:
        if not user_id:
            return False
        self.sent.append((user_id, template_type, payload or {}))
        return True

    def templates_for(self, user_id: str) -> list[str]:
        return [template for uid, template, _ in self.sent if uid == user_id]


class FakeMeetings:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[str] = []

    async def create_meeting(self, booking_id, start, duration_minutes, participants) -> MeetingLink:
        self.calls.append(booking_id)
        if self.fail:
            raise RuntimeError("meeting provider down")
        return MeetingLink(
            url=f"https://meet.navigator.io/{booking_id}",
            meeting_id=booking_id,
            password="secret12",
            provider="fake",
        )


async def add_user(
    session: AsyncSession,
    user_id: str,
    user_type: str = USER_TYPE_INTERVIEWER,
    timezone: str | None = "UTC",
) -> NavUser:
    user = NavUser(
        user_id=user_id,
        email=f"{user_id}@navigator.io",
        display_name=user_id.title(),
        user_type=user_type,
        timezone=timezone,
    )
    session.add(user)
    await session.commit()
    return user


async def add_booking(
    session: AsyncSession,
    booking_id: str,
    interviewer_id: str | None,
    start: datetime,
    duration_minutes: int = 45,
    status: str = "pending",
    candidate_id: str = "cand-1",
    booking_type: str = "live",
) -> NavInterviewBooking:
    booking = NavInterviewBooking(
        booking_id=booking_id,
        candidate_id=candidate_id,
        interviewer_id=interviewer_id,
        booking_type=booking_type,
        status=status,
        scheduled_start_at=start,
        scheduled_end_at=start + timedelta(minutes=duration_minutes),
        duration_minutes=duration_minutes,
        timezone="UTC",
    )
    session.add(booking)
    await session.commit()
    return booking

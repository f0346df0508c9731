from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from interview_navigator.core.booking_machine import CONFIRMED
from interview_navigator.core.datetime_utils import utcnow_naive
from interview_navigator.db.session import SessionLocal
from interview_navigator.models.booking import NavInterviewBooking
from interview_navigator.services import notifications
from interview_navigator.services.notifications import Notifier

logger = logging.getLogger("nav.jobs")

DAY_AHEAD = timedelta(hours=24)
HOUR_AHEAD = timedelta(hours=1)
WINDOW = timedelta(hours=1)
REMINDER_COOLDOWN = timedelta(hours=2)


def reminder_kind(start: datetime, now: datetime, reminder_sent_at: datetime | None) -> str | None:
    """Which reminder, if any, a confirmed booking starting at ``start`` is due for."""
    if now + DAY_AHEAD <= start <= now + DAY_AHEAD + WINDOW and reminder_sent_at is None:
        return notifications.REMINDER_24H
    if now + HOUR_AHEAD <= start <= now + HOUR_AHEAD + WINDOW:
        if reminder_sent_at is None or reminder_sent_at < now - REMINDER_COOLDOWN:
            return notifications.REMINDER_1H
    return None


async def send_booking_reminders(session: AsyncSession, notifier: Notifier, now: datetime | None = None) -> int:
    now = now or utcnow_naive()
    rows = (
        await session.execute(
            select(NavInterviewBooking).where(
                NavInterviewBooking.status == CONFIRMED,
                or_(
                    and_(
                        NavInterviewBooking.scheduled_start_at >= now + DAY_AHEAD,
                        NavInterviewBooking.scheduled_start_at <= now + DAY_AHEAD + WINDOW,
                    ),
                    and_(
                        NavInterviewBooking.scheduled_start_at >= now + HOUR_AHEAD,
                        NavInterviewBooking.scheduled_start_at <= now + HOUR_AHEAD + WINDOW,
                    ),
                ),
            )
        )
    ).scalars().all()

    sent = 0
    for booking in rows:
        kind = reminder_kind(booking.scheduled_start_at, now, booking.reminder_sent_at)
        if kind is None:
            continue
        payload = {
            "booking_id": booking.booking_id,
            "scheduled_start_at": booking.scheduled_start_at.isoformat(),
            "duration_minutes": booking.duration_minutes,
            "meeting_link": booking.meeting_link,
        }
        for user_id in (booking.candidate_id, booking.interviewer_id):
            await notifier.notify(user_id, kind, payload)
        booking.reminder_sent_at = now
        sent += 1

    await session.commit()
    if sent:
        logger.info("booking_reminders_sent", extra={"count": sent})
    return sent


async def run_booking_reminders() -> None:
    async with SessionLocal() as session:
        await send_booking_reminders(session, Notifier())

from __future__ import annotations

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from interview_navigator.core.config import settings
from interview_navigator.jobs.tasks import run_booking_reminders


def start_scheduler() -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler(timezone="UTC")
    scheduler.add_job(
        run_booking_reminders,
        IntervalTrigger(minutes=settings.reminder_interval_minutes),
        id="booking_reminders",
        replace_existing=True,
    )
    scheduler.start()
    return scheduler

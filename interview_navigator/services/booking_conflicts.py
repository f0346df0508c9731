from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import AsyncIterator

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from interview_navigator.core.booking_machine import ACTIVE_STATUSES
from interview_navigator.core.datetime_utils import to_utc_naive, utcnow_naive
from interview_navigator.core.errors import DependencyError
from interview_navigator.core.intervals import intervals_overlap
from interview_navigator.models.booking import NavInterviewBooking
from interview_navigator.models.booking_guard import NavInterviewerBookingGuard

logger = logging.getLogger("nav.booking_conflicts")


async def find_conflicts(
    session: AsyncSession,
    interviewer_id: str,
    start: datetime,
    duration_minutes: int,
    exclude_booking_id: str | None = None,
) -> list[NavInterviewBooking]:
    """Active bookings of the interviewer whose span overlaps ``[start, start + duration)``."""
    start = to_utc_naive(start)
    end = start + timedelta(minutes=duration_minutes)

    query = select(NavInterviewBooking).where(
        NavInterviewBooking.interviewer_id == interviewer_id,
        NavInterviewBooking.status.in_(sorted(ACTIVE_STATUSES)),
    )
    if exclude_booking_id:
        query = query.where(NavInterviewBooking.booking_id != exclude_booking_id)
    try:
        rows = (await session.execute(query.order_by(NavInterviewBooking.scheduled_start_at.asc()))).scalars().all()
    except SQLAlchemyError as exc:
        logger.error("conflict_read_failed", extra={"interviewer_id": interviewer_id, "error": str(exc)})
        raise DependencyError("Booking store unavailable") from exc

    return [
        row
        for row in rows
        if intervals_overlap(start, end, row.scheduled_start_at, row.scheduled_end_at)
    ]


async def has_conflict(
    session: AsyncSession,
    interviewer_id: str,
    start: datetime,
    duration_minutes: int,
    exclude_booking_id: str | None = None,
) -> bool:
    return bool(await find_conflicts(session, interviewer_id, start, duration_minutes, exclude_booking_id))


class BookingGuard:
    """Per-interviewer critical section for check-then-write within one process."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._holders: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, interviewer_id: str) -> AsyncIterator[None]:
        lock = self._locks.get(interviewer_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[interviewer_id] = lock
        self._holders[interviewer_id] = self._holders.get(interviewer_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[interviewer_id] -= 1
            if not self._holders[interviewer_id]:
                del self._holders[interviewer_id]
                del self._locks[interviewer_id]

    def is_held(self, interviewer_id: str) -> bool:
        lock = self._locks.get(interviewer_id)
        return bool(lock and lock.locked())


booking_guard = BookingGuard()


async def read_guard_version(session: AsyncSession, interviewer_id: str) -> int | None:
    result = await session.execute(
        select(NavInterviewerBookingGuard.version).where(NavInterviewerBookingGuard.interviewer_id == interviewer_id)
    )
    return result.scalar_one_or_none()


async def claim_guard_version(session: AsyncSession, interviewer_id: str, seen: int | None) -> bool:
    """Bump the interviewer's version if nobody else has since ``seen`` was read.

    Returns False when another writer got there first; the caller rolls back and
    retries. A concurrent first insert of the guard row surfaces as an
    ``IntegrityError`` on flush, which callers treat the same way.
    """
    now = utcnow_naive()
    if seen is None:
        session.add(NavInterviewerBookingGuard(interviewer_id=interviewer_id, version=1, updated_at=now))
        await session.flush()
        return True

    result = await session.execute(
        update(NavInterviewerBookingGuard)
        .where(
            NavInterviewerBookingGuard.interviewer_id == interviewer_id,
            NavInterviewerBookingGuard.version == seen,
        )
        .values(version=seen + 1, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1

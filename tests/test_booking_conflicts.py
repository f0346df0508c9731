import asyncio
from datetime import timedelta

import pytest

from helpers import MONDAY, add_booking
from interview_navigator.models import NavInterviewerBookingGuard
from interview_navigator.services.booking_conflicts import (
    BookingGuard,
    claim_guard_version,
    find_conflicts,
    has_conflict,
    read_guard_version,
)

TEN = MONDAY.replace(hour=10)


@pytest.mark.asyncio
async def test_touching_bookings_do_not_conflict(db_session):
    await add_booking(db_session, "b-1", "iv-1", TEN, 45)

    assert not await has_conflict(db_session, "iv-1", TEN + timedelta(minutes=45), 45)
    assert not await has_conflict(db_session, "iv-1", TEN - timedelta(minutes=45), 45)
    assert await has_conflict(db_session, "iv-1", TEN + timedelta(minutes=30), 45)
    assert await has_conflict(db_session, "iv-1", TEN - timedelta(minutes=30), 45)


@pytest.mark.asyncio
async def test_containing_and_contained_requests_conflict(db_session):
    await add_booking(db_session, "b-1", "iv-1", TEN, 45)

    assert await has_conflict(db_session, "iv-1", TEN + timedelta(minutes=15), 15)
    assert await has_conflict(db_session, "iv-1", TEN - timedelta(minutes=30), 120)


@pytest.mark.asyncio
async def test_terminal_bookings_free_their_interval(db_session):
    await add_booking(db_session, "b-cancelled", "iv-1", TEN, 45, status="cancelled")
    await add_booking(db_session, "b-completed", "iv-1", TEN, 45, status="completed")
    await add_booking(db_session, "b-no-show", "iv-1", TEN, 45, status="no-show")

    assert await find_conflicts(db_session, "iv-1", TEN, 45) == []


@pytest.mark.asyncio
async def test_every_active_status_blocks(db_session):
    for index, value in enumerate(("pending", "accepted", "confirmed")):
        start = TEN + timedelta(hours=index)
        await add_booking(db_session, f"b-{value}", "iv-1", start, 45, status=value)
        assert await has_conflict(db_session, "iv-1", start, 30)


@pytest.mark.asyncio
async def test_conflicts_are_scoped_to_interviewer_and_exclusion(db_session):
    await add_booking(db_session, "b-1", "iv-1", TEN, 45)

    assert not await has_conflict(db_session, "iv-2", TEN, 45)
    assert not await has_conflict(db_session, "iv-1", TEN, 45, exclude_booking_id="b-1")
    conflicts = await find_conflicts(db_session, "iv-1", TEN, 45)
    assert [row.booking_id for row in conflicts] == ["b-1"]


@pytest.mark.asyncio
async def test_guard_version_compare_and_set(db_session):
    assert await read_guard_version(db_session, "iv-1") is None

    assert await claim_guard_version(db_session, "iv-1", None)
    await db_session.commit()
    assert await read_guard_version(db_session, "iv-1") == 1

    assert await claim_guard_version(db_session, "iv-1", 1)
    await db_session.commit()
    # A writer still holding the old version loses.
    assert not await claim_guard_version(db_session, "iv-1", 1)
    await db_session.rollback()

    guard = await db_session.get(NavInterviewerBookingGuard, "iv-1", populate_existing=True)
    assert guard.version == 2


@pytest.mark.asyncio
async def test_booking_guard_serializes_per_interviewer():
    guard = BookingGuard()
    order: list[str] = []

    async def worker(name: str, key: str) -> None:
        async with guard.hold(key):
            order.append(f"{name}-in")
            await asyncio.sleep(0.01)
            order.append(f"{name}-out")

    await asyncio.gather(worker("a", "iv-1"), worker("b", "iv-1"))
    assert order == ["a-in", "a-out", "b-in", "b-out"]
    assert not guard.is_held("iv-1")
    assert guard._locks == {}


@pytest.mark.asyncio
async def test_booking_guard_does_not_block_other_interviewers():
    guard = BookingGuard()
    order: list[str] = []

    async def worker(name: str, key: str) -> None:
        async with guard.hold(key):
            order.append(f"{name}-in")
            await asyncio.sleep(0.01)
            order.append(f"{name}-out")

    await asyncio.gather(worker("a", "iv-1"), worker("b", "iv-2"))
    assert order[:2] == ["a-in", "b-in"]

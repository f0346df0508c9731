from datetime import date, datetime

import pytest

from interview_navigator.core.errors import NotFoundError, ValidationError
from interview_navigator.core.intervals import TimeSlot
from interview_navigator.services.availability_store import AvailabilityStore, SlotSpec, build_slot_id


def monday_slot(start: str, end: str, timezone: str = "UTC", interviewer_id: str = "iv-1") -> SlotSpec:
    return SlotSpec(interviewer_id=interviewer_id, start_time=start, end_time=end, timezone=timezone, day_of_week=1)


def test_slot_ids_are_deterministic():
    assert build_slot_id(monday_slot("09:00", "12:00")) == "iv-1_day1_09:00_12:00"
    one_off = SlotSpec(
        interviewer_id="iv-1",
        start_time="14:00",
        end_time="15:00",
        timezone="UTC",
        is_recurring=False,
        specific_date=date(2030, 1, 9),
    )
    assert build_slot_id(one_off) == "iv-1_2030-01-09_14:00_15:00"


@pytest.mark.asyncio
async def test_upsert_is_idempotent_and_keeps_created_at(db_session):
    store = AvailabilityStore(db_session)
    first_id = await store.upsert_slot(monday_slot("9:00", "12:00"))
    created_at = (await store.get_slot(first_id)).created_at

    second_id = await store.upsert_slot(monday_slot("09:00", "12:00"))

    assert first_id == second_id == "iv-1_day1_09:00_12:00"
    slots = await store.list_slots("iv-1")
    assert len(slots) == 1
    assert slots[0].created_at == created_at


@pytest.mark.asyncio
async def test_upsert_rejects_bad_ranges_and_mixed_timezones(db_session):
    store = AvailabilityStore(db_session)
    with pytest.raises(ValidationError):
        await store.upsert_slot(monday_slot("12:00", "09:00"))
    with pytest.raises(ValidationError):
        await store.upsert_slot(monday_slot("09:00", "09:00"))
    with pytest.raises(ValidationError):
        await store.upsert_slot(monday_slot("09:00", "10:00", timezone="Mars/Olympus"))

    await store.upsert_slot(monday_slot("09:00", "10:00", timezone="Asia/Kolkata"))
    with pytest.raises(ValidationError):
        await store.upsert_slot(
            SlotSpec(interviewer_id="iv-1", start_time="11:00", end_time="12:00", timezone="UTC", day_of_week=2)
        )


@pytest.mark.asyncio
async def test_upsert_rejects_overlapping_recurring_slot(db_session):
    store = AvailabilityStore(db_session)
    await store.upsert_slot(monday_slot("09:00", "12:00"))
    with pytest.raises(ValidationError):
        await store.upsert_slot(monday_slot("11:00", "13:00"))
    await store.upsert_slot(monday_slot("12:00", "13:00"))
    assert len(await store.list_slots("iv-1")) == 2


@pytest.mark.asyncio
async def test_delete_slot(db_session):
    store = AvailabilityStore(db_session)
    slot_id = await store.upsert_slot(monday_slot("09:00", "12:00"))
    await store.delete_slot(slot_id)
    assert await store.list_slots("iv-1") == []
    with pytest.raises(NotFoundError):
        await store.delete_slot(slot_id)


@pytest.mark.asyncio
async def test_is_available_at_uses_interviewer_timezone(db_session):
    store = AvailabilityStore(db_session)
    await store.upsert_slot(monday_slot("09:00", "12:00", timezone="Asia/Kolkata"))

    # 09:00 IST on Monday 2030-01-07 is 03:30 UTC.
    assert await store.is_available_at("iv-1", datetime(2030, 1, 7, 3, 30), 60)
    assert await store.is_available_at("iv-1", datetime(2030, 1, 7, 5, 30), 30)
    assert not await store.is_available_at("iv-1", datetime(2030, 1, 7, 5, 30), 90)
    assert not await store.is_available_at("iv-1", datetime(2030, 1, 7, 3, 0), 30)
    # Same wall-clock time on a Tuesday.
    assert not await store.is_available_at("iv-1", datetime(2030, 1, 8, 3, 30), 30)


@pytest.mark.asyncio
async def test_one_off_slot_matches_only_its_date(db_session):
    store = AvailabilityStore(db_session)
    await store.upsert_slot(
        SlotSpec(
            interviewer_id="iv-1",
            start_time="14:00",
            end_time="16:00",
            timezone="UTC",
            is_recurring=False,
            specific_date=date(2030, 1, 9),
        )
    )
    assert await store.is_available_at("iv-1", datetime(2030, 1, 9, 14, 0), 45)
    assert not await store.is_available_at("iv-1", datetime(2030, 1, 16, 14, 0), 45)


@pytest.mark.asyncio
async def test_available_sub_slots_are_sorted_union(db_session):
    store = AvailabilityStore(db_session)
    await store.upsert_slot(monday_slot("14:00", "15:00"))
    await store.upsert_slot(monday_slot("09:00", "10:00"))

    slots = await store.available_sub_slots("iv-1", date(2030, 1, 7), 30)

    assert slots == [
        TimeSlot("09:00", "09:30"),
        TimeSlot("09:30", "10:00"),
        TimeSlot("14:00", "14:30"),
        TimeSlot("14:30", "15:00"),
    ]
    assert await store.available_sub_slots("iv-1", date(2030, 1, 8), 30) == []


@pytest.mark.asyncio
async def test_unknown_interviewer_has_no_availability(db_session):
    store = AvailabilityStore(db_session)
    assert await store.list_slots("nobody") == []
    assert await store.available_sub_slots("nobody", date(2030, 1, 7), 30) == []
    assert not await store.is_available_at("nobody", datetime(2030, 1, 7, 9, 0), 30)


@pytest.mark.asyncio
async def test_is_available_at_counts_trailing_seconds(db_session):
    store = AvailabilityStore(db_session)
    await store.upsert_slot(monday_slot("09:00", "17:00"))

    assert await store.is_available_at("iv-1", datetime(2030, 1, 7, 16, 15), 45)
    # Ends at 17:00:30, past the end of the slot.
    assert not await store.is_available_at("iv-1", datetime(2030, 1, 7, 16, 15, 30), 45)
    assert await store.is_available_at("iv-1", datetime(2030, 1, 7, 16, 14, 30), 45)

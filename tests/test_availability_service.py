import asyncio
from datetime import date

import pytest

from app.core.errors import BookingError, ErrorKind
from app.services.availability_service import compute_month_availability
from app.services.slot_service import compute_slots
from tests.conftest import NOW, FakeCalendarClient, event_at

# Weekdays in June 2030 that are at least a day after NOW
BOOKABLE_JUNE_DAYS = [11, 12, 13, 14, 17, 18, 19, 20, 21, 24, 25, 26, 27, 28]


def test_month_has_one_entry_per_day_in_order():
    days = asyncio.run(compute_month_availability(FakeCalendarClient(), 2030, 6, NOW))

    assert [d.day for d in days] == list(range(1, 31))
    assert [d.day for d in days if d.has_time_slots] == BOOKABLE_JUNE_DAYS
    assert all(d.error is None for d in days)


def test_days_in_month_follows_calendar():
    feb = asyncio.run(compute_month_availability(FakeCalendarClient(), 2032, 2, NOW))
    assert len(feb) == 29
    feb = asyncio.run(compute_month_availability(FakeCalendarClient(), 2031, 2, NOW))
    assert len(feb) == 28


def test_only_bookable_days_are_looked_up():
    calendar = FakeCalendarClient()
    asyncio.run(compute_month_availability(calendar, 2030, 6, NOW))

    looked_up = sorted(call[1].day for call in calendar.list_calls)
    assert looked_up == BOOKABLE_JUNE_DAYS


def test_fully_booked_day_has_no_time_slots():
    full_day = [event_at(s.start_time) for s in compute_slots(2030, 6, 18, NOW)]
    days = asyncio.run(compute_month_availability(FakeCalendarClient(events=full_day), 2030, 6, NOW))

    assert days[17].day == 18
    assert days[17].has_time_slots is False
    assert days[16].has_time_slots is True


def test_failed_day_is_reported_without_failing_the_month():
    calendar = FakeCalendarClient(failing_days=[date(2030, 6, 19)])
    days = asyncio.run(compute_month_availability(calendar, 2030, 6, NOW))

    failed = days[18]
    assert failed.day == 19
    assert failed.has_time_slots is False
    assert "503" in failed.error
    assert [d.day for d in days if d.has_time_slots] == [d for d in BOOKABLE_JUNE_DAYS if d != 19]


def test_month_fails_when_every_lookup_fails():
    calendar = FakeCalendarClient(failing_days=[date(2030, 6, d) for d in BOOKABLE_JUNE_DAYS])
    with pytest.raises(BookingError) as exc:
        asyncio.run(compute_month_availability(calendar, 2030, 6, NOW))
    assert exc.value.kind == ErrorKind.EXTERNAL_SERVICE_FAILURE


def test_past_month_needs_no_lookups():
    calendar = FakeCalendarClient(failing_days=[date(2030, 5, d) for d in range(1, 32)])
    days = asyncio.run(compute_month_availability(calendar, 2030, 5, NOW))

    assert len(days) == 31
    assert not any(d.has_time_slots for d in days)
    assert calendar.list_calls == []


@pytest.mark.parametrize("year, month, missing", [(None, 6, "year"), (2030, None, "month")])
def test_missing_parameter(year, month, missing):
    with pytest.raises(BookingError) as exc:
        asyncio.run(compute_month_availability(FakeCalendarClient(), year, month, NOW))
    assert exc.value.kind == ErrorKind.MISSING_PARAMETER
    assert missing in exc.value.message


@pytest.mark.parametrize("month", [0, 13])
def test_invalid_month(month):
    with pytest.raises(BookingError) as exc:
        asyncio.run(compute_month_availability(FakeCalendarClient(), 2030, month, NOW))
    assert exc.value.kind == ErrorKind.INVALID_PARAMETER

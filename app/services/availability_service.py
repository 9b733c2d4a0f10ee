import asyncio
import calendar
import logging
from datetime import datetime

from app.core.config import settings
from app.core.errors import BookingError, ErrorKind
from app.models.slot import DayAvailability
from app.services.calendar_client import CalendarClient
from app.services.slot_service import compute_slots, get_available_time_slots, require_params

logger = logging.getLogger(__name__)


async def compute_month_availability(
    client: CalendarClient,
    year: int | None,
    month: int | None,
    now: datetime,
    calendar_id: str | None = None,
) -> list[DayAvailability]:
    """
    One entry per day of the month saying whether any slot is still free.

    Days are looked up concurrently. A day whose lookup fails is reported with
    `error` set instead of failing the month, unless every looked-up day failed.
    """
    require_params(year=year, month=month)
    if not 1 <= month <= 12:
        raise BookingError(ErrorKind.INVALID_PARAMETER, f"Invalid month: {month}")
    _, days_in_month = calendar.monthrange(year, month)
    semaphore = asyncio.Semaphore(max(1, settings.max_concurrent_lookups))

    async def check_day(day: int) -> bool:
        async with semaphore:
            slots = await get_available_time_slots(client, year, month, day, now, calendar_id)
        return bool(slots)

    # Days with no candidate slot are answered without touching the calendar
    needs_lookup = [day for day in range(1, days_in_month + 1) if compute_slots(year, month, day, now)]
    results = await asyncio.gather(
        *(check_day(day) for day in needs_lookup), return_exceptions=True
    )
    looked_up = dict(zip(needs_lookup, results))

    failures: list[BookingError] = []
    days: list[DayAvailability] = []
    for day in range(1, days_in_month + 1):
        if day not in looked_up:
            days.append(DayAvailability(day=day, has_time_slots=False))
            continue
        result = looked_up[day]
        if isinstance(result, BookingError):
            logger.warning("Availability lookup failed for %04d-%02d-%02d: %s", year, month, day, result.message)
            failures.append(result)
            days.append(DayAvailability(day=day, has_time_slots=False, error=result.message))
        elif isinstance(result, BaseException):
            raise result
        else:
            days.append(DayAvailability(day=day, has_time_slots=result))

    if needs_lookup and len(failures) == len(needs_lookup):
        raise failures[0]
    return days

import asyncio
import logging
import weakref
from datetime import UTC, datetime, timedelta

from app.core.config import settings
from app.core.errors import BookingError, ErrorKind
from app.models.booking import BookingRequest, BookingResult
from app.services.calendar_client import CalendarClient
from app.services.slot_service import (
    business_hours,
    get_available_time_slots,
    has_min_notice,
    is_weekend,
    require_params,
)

logger = logging.getLogger(__name__)

# Serializes check-then-insert for the same slot within this process
_slot_locks: "weakref.WeakValueDictionary[tuple[str, datetime], asyncio.Lock]" = weakref.WeakValueDictionary()


def _slot_lock(calendar_id: str, start: datetime) -> asyncio.Lock:
    key = (calendar_id, start)
    lock = _slot_locks.get(key)
    if lock is None:
        lock = asyncio.Lock()
        _slot_locks[key] = lock
    return lock


def _requested_bounds(req: BookingRequest) -> tuple[datetime, datetime]:
    require_params(year=req.year, month=req.month, day=req.day, hour=req.hour, minute=req.minute)
    try:
        start = datetime(req.year, req.month, req.day, req.hour, req.minute, tzinfo=UTC)
        return start, start + timedelta(minutes=settings.appointment_minutes)
    except (ValueError, OverflowError) as e:
        raise BookingError(
            ErrorKind.INVALID_PARAMETER,
            f"Invalid date or time: {req.year}-{req.month}-{req.day} {req.hour}:{req.minute}",
        ) from e


def validate_booking_time(req: BookingRequest, now: datetime) -> tuple[datetime, datetime]:
    """Check the request against the booking rules that need no calendar lookup."""
    start, end = _requested_bounds(req)
    if start < now:
        raise BookingError(ErrorKind.PAST_TIME, "Cannot book time in the past")
    if not has_min_notice(start, now):
        raise BookingError(
            ErrorKind.INSUFFICIENT_NOTICE,
            f"Cannot book with less than {settings.min_notice_hours} hours in advance",
        )
    day_start, day_end = business_hours(start.date())
    if is_weekend(start.date()) or start < day_start or end > day_end:
        raise BookingError(ErrorKind.OUTSIDE_BOOKABLE_WINDOW, "Cannot book outside bookable timeframe")
    return start, end


async def create_booking(
    client: CalendarClient,
    req: BookingRequest,
    now: datetime,
    calendar_id: str | None = None,
) -> BookingResult:
    """Validate the requested start against the rules and the live slot grid, then create the event."""
    calendar_id = calendar_id or settings.google_calendar_id
    start, end = validate_booking_time(req, now)
    lock = _slot_lock(calendar_id, start)
    async with lock:
        slots = await get_available_time_slots(client, req.year, req.month, req.day, now, calendar_id)
        if not any(slot.start_time == start for slot in slots):
            raise BookingError(ErrorKind.INVALID_SLOT, "Invalid time slot")
        event = await client.insert_event(calendar_id, start, end, summary=settings.event_summary)
    logger.info("Booked %s - %s (event id=%s)", event.start.isoformat(), event.end.isoformat(), event.id)
    return BookingResult(start_time=event.start, end_time=event.end)

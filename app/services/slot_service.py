import logging
from collections.abc import Sequence
from datetime import UTC, date, datetime, timedelta

from app.core.config import settings
from app.core.errors import BookingError, ErrorKind
from app.models.calendar_event import CalendarEvent
from app.models.slot import TimeSlot
from app.services.calendar_client import CalendarClient

logger = logging.getLogger(__name__)


def require_params(**params: int | None) -> None:
    """Raise MissingParameter for the first absent value, in the order given."""
    for name, value in params.items():
        if value is None:
            raise BookingError.missing(name)


def require_date(year: int | None, month: int | None, day: int | None) -> date:
    require_params(year=year, month=month, day=day)
    try:
        return date(year, month, day)
    except (ValueError, OverflowError) as e:
        raise BookingError(
            ErrorKind.INVALID_PARAMETER, f"Invalid date: {year}-{month}-{day}"
        ) from e


def is_weekend(d: date) -> bool:
    return d.weekday() >= 5


def business_hours(d: date) -> tuple[datetime, datetime]:
    """Opening and closing instants (aware UTC) for the given date."""
    day_start = datetime(d.year, d.month, d.day, settings.business_start_hour, tzinfo=UTC)
    day_end = datetime(d.year, d.month, d.day, settings.business_end_hour, tzinfo=UTC)
    return day_start, day_end


def has_min_notice(start: datetime, now: datetime) -> bool:
    """Booking rule: at least the minimum notice ahead of now."""
    return start - now >= timedelta(hours=settings.min_notice_hours)


def is_listable(start: datetime, now: datetime) -> bool:
    """Slot listing rule: strictly more than the minimum notice ahead of now."""
    return start - now > timedelta(hours=settings.min_notice_hours)


def _slot_grid(d: date) -> list[TimeSlot]:
    """Fixed grid of slots for the date: appointment length plus gap, ending before closing."""
    day_start, day_end = business_hours(d)
    if is_weekend(day_end.date()):
        return []
    duration = timedelta(minutes=settings.appointment_minutes)
    stride = timedelta(minutes=settings.slot_stride_minutes)
    slots: list[TimeSlot] = []
    slot_start, slot_end = day_start, day_start + duration
    while slot_end < day_end:
        slots.append(TimeSlot(start_time=slot_start, end_time=slot_end))
        slot_start += stride
        slot_end += stride
    return slots


def compute_slots(
    year: int | None,
    month: int | None,
    day: int | None,
    now: datetime,
    events: Sequence[CalendarEvent] = (),
) -> list[TimeSlot]:
    """
    Free slots of a day, ascending by start.

    A slot is dropped when an event starts exactly at its start, or when it starts no more
    than the minimum notice after `now`. Events must be sorted by start; they are walked
    with a single cursor alongside the grid.
    """
    d = require_date(year, month, day)
    slots: list[TimeSlot] = []
    i = 0
    for slot in _slot_grid(d):
        while i < len(events) and events[i].start < slot.start_time:
            i += 1
        if i < len(events) and events[i].start == slot.start_time:
            i += 1
            continue
        if not is_listable(slot.start_time, now):
            continue
        slots.append(slot)
    return slots


async def get_available_time_slots(
    client: CalendarClient,
    year: int | None,
    month: int | None,
    day: int | None,
    now: datetime,
    calendar_id: str | None = None,
) -> list[TimeSlot]:
    """Free slots of a day, checked against the events currently in the calendar."""
    # Weekend and past days need no calendar lookup
    if not compute_slots(year, month, day, now):
        return []
    d = date(year, month, day)
    day_start, day_end = business_hours(d)
    events = await client.list_events(calendar_id or settings.google_calendar_id, day_start, day_end)
    slots = compute_slots(year, month, day, now, events)
    logger.debug("%s: %d event(s), %d free slot(s)", d.isoformat(), len(events), len(slots))
    return slots

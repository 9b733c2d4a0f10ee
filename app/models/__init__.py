from app.models.booking import BookingRequest, BookingResult
from app.models.calendar_event import CalendarEvent
from app.models.slot import DayAvailability, TimeSlot

__all__ = [
    "BookingRequest",
    "BookingResult",
    "CalendarEvent",
    "DayAvailability",
    "TimeSlot",
]

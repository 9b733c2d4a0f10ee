from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from app.models.slot import DayAvailability, TimeSlot


class _Envelope(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True


class DaysResponse(_Envelope):
    days: list[DayAvailability]


class TimeSlotsResponse(_Envelope):
    time_slots: list[TimeSlot]


class BookingResponse(_Envelope):
    start_time: datetime
    end_time: datetime


class ErrorResponse(_Envelope):
    success: bool = False
    message: str
    error: str

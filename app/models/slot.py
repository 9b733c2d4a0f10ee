from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class TimeSlot(BaseModel):
    """A bookable interval; both bounds are aware UTC datetimes."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    start_time: datetime
    end_time: datetime


class DayAvailability(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    day: int
    has_time_slots: bool
    # Set only when this day's calendar lookup failed
    error: str | None = None

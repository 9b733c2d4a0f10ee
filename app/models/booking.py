from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BookingRequest(BaseModel):
    """Requested start of a booking. A field is None when absent or not a number."""

    year: int | None = None
    month: int | None = None
    day: int | None = None
    hour: int | None = None
    minute: int | None = None


class BookingResult(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    start_time: datetime
    end_time: datetime

from datetime import UTC, datetime

from pydantic import BaseModel


def parse_event_time(value: dict) -> datetime:
    """
    Parse a Google Calendar event time ({"dateTime": ...} or {"date": ...}) into aware UTC.
    All-day events only carry a date and are read as starting at 00:00 UTC.
    """
    if value.get("dateTime"):
        raw = value["dateTime"].replace("Z", "+00:00")
        parsed = datetime.fromisoformat(raw)
    elif value.get("date"):
        parsed = datetime.fromisoformat(value["date"])
    else:
        raise ValueError(f"Event time has neither dateTime nor date: {value!r}")
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


class CalendarEvent(BaseModel):
    """Read-only view of an event in the external calendar."""

    id: str | None = None
    start: datetime
    end: datetime

    @classmethod
    def from_api(cls, item: dict) -> "CalendarEvent":
        return cls(
            id=item.get("id"),
            start=parse_event_time(item.get("start") or {}),
            end=parse_event_time(item.get("end") or {}),
        )

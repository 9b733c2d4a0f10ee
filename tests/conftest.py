import asyncio
from datetime import UTC, date, datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from app.api.deps import get_calendar_client, get_now
from app.core.errors import BookingError
from app.main import app
from app.models.calendar_event import CalendarEvent

# Monday 10 June 2030, 08:00 UTC
NOW = datetime(2030, 6, 10, 8, 0, tzinfo=UTC)


def utc(year, month, day, hour=0, minute=0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=UTC)


def event_at(start: datetime, minutes: int = 40) -> CalendarEvent:
    return CalendarEvent(id=f"evt-{start:%Y%m%d%H%M}", start=start, end=start + timedelta(minutes=minutes))


class FakeCalendarClient:
    """In-memory calendar recording every call."""

    def __init__(self, events=None, failing_days=(), insert_error: BookingError | None = None):
        self.events: list[CalendarEvent] = list(events or [])
        self.failing_days: set[date] = set(failing_days)
        self.insert_error = insert_error
        self.list_calls: list[tuple[str, datetime, datetime]] = []
        self.inserted: list[dict] = []

    async def list_events(self, calendar_id, time_min, time_max):
        self.list_calls.append((calendar_id, time_min, time_max))
        await asyncio.sleep(0)
        if time_min.date() in self.failing_days:
            raise BookingError.external("Calendar service error (503): backend unavailable")
        return sorted(
            (e for e in self.events if time_min <= e.start < time_max),
            key=lambda e: e.start,
        )

    async def insert_event(self, calendar_id, start, end, summary=None):
        await asyncio.sleep(0)
        if self.insert_error is not None:
            raise self.insert_error
        event = CalendarEvent(id=f"created-{len(self.inserted) + 1}", start=start, end=end)
        self.inserted.append({"calendar_id": calendar_id, "summary": summary, "event": event})
        self.events.append(event)
        return event


@pytest.fixture
def calendar():
    return FakeCalendarClient()


@pytest.fixture
def client(calendar):
    app.dependency_overrides[get_calendar_client] = lambda: calendar
    app.dependency_overrides[get_now] = lambda: NOW
    yield TestClient(app)
    app.dependency_overrides.clear()

import re
from datetime import UTC, datetime

from fastapi import Request

from app.services.calendar_client import CalendarClient

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def parse_int(value: str | None) -> int | None:
    """Lenient integer parse: leading digits are used, anything else counts as absent."""
    if value is None:
        return None
    match = _LEADING_INT.match(value)
    return int(match.group(1)) if match else None


def get_calendar_client(request: Request) -> CalendarClient:
    """Calendar client created in the app lifespan."""
    return request.app.state.calendar_client


def get_now() -> datetime:
    return datetime.now(UTC)

from datetime import datetime

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_calendar_client, get_now, parse_int
from app.api.schemas.booking import BookingResponse, ErrorResponse
from app.models.booking import BookingRequest
from app.services.booking_service import create_booking
from app.services.calendar_client import CalendarClient

router = APIRouter(
    tags=["bookings"],
    responses={
        400: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
)


@router.post("/book", response_model=BookingResponse)
async def book(
    year: str | None = Query(None),
    month: str | None = Query(None),
    day: str | None = Query(None),
    hour: str | None = Query(None),
    minute: str | None = Query(None),
    client: CalendarClient = Depends(get_calendar_client),
    now: datetime = Depends(get_now),
) -> BookingResponse:
    req = BookingRequest(
        year=parse_int(year),
        month=parse_int(month),
        day=parse_int(day),
        hour=parse_int(hour),
        minute=parse_int(minute),
    )
    result = await create_booking(client, req, now)
    return BookingResponse(start_time=result.start_time, end_time=result.end_time)

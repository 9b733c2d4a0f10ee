from datetime import datetime

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_calendar_client, get_now, parse_int
from app.api.schemas.booking import DaysResponse, ErrorResponse, TimeSlotsResponse
from app.services.availability_service import compute_month_availability
from app.services.calendar_client import CalendarClient
from app.services.slot_service import get_available_time_slots

router = APIRouter(tags=["slots"], responses={400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}})


@router.get("/days", response_model=DaysResponse, response_model_exclude_none=True)
async def bookable_days(
    year: str | None = Query(None),
    month: str | None = Query(None),
    client: CalendarClient = Depends(get_calendar_client),
    now: datetime = Depends(get_now),
) -> DaysResponse:
    """Whether each day of the month still has a free slot."""
    days = await compute_month_availability(client, parse_int(year), parse_int(month), now)
    return DaysResponse(days=days)


@router.get("/timeslots", response_model=TimeSlotsResponse)
async def available_time_slots(
    year: str | None = Query(None),
    month: str | None = Query(None),
    day: str | None = Query(None),
    client: CalendarClient = Depends(get_calendar_client),
    now: datetime = Depends(get_now),
) -> TimeSlotsResponse:
    """Free slots of the given date (UTC), each with startTime and endTime."""
    slots = await get_available_time_slots(
        client, parse_int(year), parse_int(month), parse_int(day), now
    )
    return TimeSlotsResponse(time_slots=slots)

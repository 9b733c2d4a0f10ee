import logging
import os
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse

from app.api.routes import bookings, slots
from app.api.schemas.booking import ErrorResponse
from app.core.config import _ENV_FILE, settings
from app.core.errors import BookingError
from app.services.calendar_client import GoogleCalendarClient
from app.services.credentials import StoredTokenProvider, build_credential_provider

if os.getenv("ENV") != "production":
    logging.basicConfig(level=logging.DEBUG)
else:
    logging.basicConfig(
        level=logging.INFO,
        format='{"time": "%(asctime)s", "level": "%(levelname)s", "message": "%(message)s"}',
    )
logger = logging.getLogger(__name__)

WELCOME_BODY = "<h1>Welcome!</h1>"


@asynccontextmanager
async def lifespan(app: FastAPI):
    http_client = httpx.AsyncClient(timeout=settings.http_timeout_seconds)
    credentials = build_credential_provider(settings, http_client)
    if isinstance(credentials, StoredTokenProvider) and not credentials.token_path.exists():
        logger.warning(
            "Google Calendar: token file %s not found; calendar calls will fail until it exists",
            credentials.token_path,
        )
    app.state.calendar_client = GoogleCalendarClient(
        http_client, credentials, base_url=settings.google_calendar_base_url
    )
    logger.info("Loading .env from: %s (exists: %s)", _ENV_FILE, _ENV_FILE.exists())
    logger.info(
        "Calendar %r: %d-min appointments every %d min, %02d:00-%02d:00 UTC, %dh notice",
        settings.google_calendar_id,
        settings.appointment_minutes,
        settings.slot_stride_minutes,
        settings.business_start_hour,
        settings.business_end_hour,
        settings.min_notice_hours,
    )
    yield
    await http_client.aclose()


app = FastAPI(
    title="Appointment Booking API",
    description="Bookable days, free time slots and bookings on a Google Calendar",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)

app.include_router(slots.router)
app.include_router(bookings.router)


def _failure(status_code: int, message: str, error: str) -> JSONResponse:
    body = ErrorResponse(message=message, error=error)
    return JSONResponse(status_code=status_code, content=body.model_dump(by_alias=True))


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    logger.info("%s %s rejected: %s (%s)", request.method, request.url.path, exc.message, exc.kind.value)
    return _failure(exc.status_code, exc.message, exc.kind.value)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return the failure envelope for anything unexpected."""
    logger.exception("Unhandled exception: %s", exc)
    return _failure(500, f"{type(exc).__name__}: {str(exc)}", "InternalError")


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@app.api_route(
    "/{path:path}",
    methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    response_class=HTMLResponse,
    include_in_schema=False,
)
async def welcome(path: str) -> str:
    return WELCOME_BODY

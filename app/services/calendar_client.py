import logging
from datetime import UTC, datetime
from typing import Protocol
from urllib.parse import quote

import httpx

from app.core.errors import BookingError
from app.models.calendar_event import CalendarEvent
from app.services.credentials import CredentialProvider

logger = logging.getLogger(__name__)


def to_rfc3339(dt: datetime) -> str:
    """Aware datetime -> RFC 3339 UTC string as Google expects (e.g. 2030-06-17T09:00:00Z)."""
    return dt.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


class CalendarClient(Protocol):
    async def list_events(
        self, calendar_id: str, time_min: datetime, time_max: datetime
    ) -> list[CalendarEvent]: ...

    async def insert_event(
        self, calendar_id: str, start: datetime, end: datetime, summary: str | None = None
    ) -> CalendarEvent: ...


class GoogleCalendarClient:
    """Async client for the two Google Calendar v3 calls the booking flow needs."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        credentials: CredentialProvider,
        base_url: str = "https://www.googleapis.com/calendar/v3",
    ):
        self._http = http_client
        self._credentials = credentials
        self._base_url = base_url.rstrip("/")

    def _events_url(self, calendar_id: str) -> str:
        return f"{self._base_url}/calendars/{quote(calendar_id, safe='')}/events"

    async def _request(self, method: str, url: str, **kwargs) -> dict:
        token = await self._credentials.get_access_token()
        headers = {"Authorization": f"Bearer {token}"}
        try:
            resp = await self._http.request(method, url, headers=headers, **kwargs)
        except httpx.TimeoutException as e:
            logger.warning("Google Calendar %s %s timed out", method, url)
            raise BookingError.external("Calendar service timed out") from e
        except httpx.HTTPError as e:
            logger.warning("Google Calendar %s %s failed: %s", method, url, e)
            raise BookingError.external(f"Calendar service unreachable: {e}") from e
        if resp.status_code >= 300:
            logger.warning(
                "Google Calendar %s %s failed: status=%s body=%s",
                method,
                url,
                resp.status_code,
                resp.text[:500],
            )
            raise BookingError.external(
                f"Calendar service error ({resp.status_code}): {_error_message(resp)}"
            )
        try:
            data = resp.json()
        except ValueError as e:
            logger.warning("Google Calendar %s %s returned non-JSON body: %s", method, url, resp.text[:500])
            raise BookingError.external("Calendar service returned an unreadable response") from e
        if not isinstance(data, dict):
            raise BookingError.external("Calendar service returned an unreadable response")
        return data

    async def list_events(
        self, calendar_id: str, time_min: datetime, time_max: datetime
    ) -> list[CalendarEvent]:
        """Events overlapping [time_min, time_max), expanded and ordered by start time."""
        params = {
            "timeMin": to_rfc3339(time_min),
            "timeMax": to_rfc3339(time_max),
            "timeZone": "UTC",
            "singleEvents": "true",
            "orderBy": "startTime",
        }
        events: list[CalendarEvent] = []
        while True:
            data = await self._request("GET", self._events_url(calendar_id), params=params)
            items = data.get("items") or []
            if not isinstance(items, list):
                raise BookingError.external("Calendar service returned an unreadable response")
            for item in items:
                if not isinstance(item, dict) or item.get("status") == "cancelled":
                    continue
                try:
                    events.append(CalendarEvent.from_api(item))
                except (ValueError, TypeError, AttributeError) as e:
                    logger.warning("Skipping unreadable calendar event %s: %s", item.get("id"), e)
            page_token = data.get("nextPageToken")
            if not page_token:
                break
            params = {**params, "pageToken": page_token}
        return events

    async def insert_event(
        self, calendar_id: str, start: datetime, end: datetime, summary: str | None = None
    ) -> CalendarEvent:
        body: dict = {
            "start": {"dateTime": to_rfc3339(start), "timeZone": "UTC"},
            "end": {"dateTime": to_rfc3339(end), "timeZone": "UTC"},
        }
        if summary:
            body["summary"] = summary
        data = await self._request("POST", self._events_url(calendar_id), json=body)
        try:
            return CalendarEvent.from_api(data)
        except (ValueError, TypeError, AttributeError) as e:
            raise BookingError.external("Calendar service returned an unreadable event") from e


def _error_message(resp: httpx.Response) -> str:
    try:
        return resp.json()["error"]["message"]
    except (ValueError, KeyError, TypeError):
        return resp.reason_phrase or "unknown error"

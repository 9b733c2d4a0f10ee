import asyncio
import json
import logging
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Protocol

import httpx

from app.core.config import Settings
from app.core.errors import BookingError

logger = logging.getLogger(__name__)

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"

# Tokens this close to expiry are refreshed early
_EXPIRY_SKEW = timedelta(seconds=60)


class CredentialProvider(Protocol):
    async def get_access_token(self) -> str: ...


class StaticTokenProvider:
    """Serves a fixed bearer token. No refresh."""

    def __init__(self, access_token: str):
        self._access_token = access_token

    async def get_access_token(self) -> str:
        return self._access_token


def _parse_expiry(data: dict) -> datetime | None:
    """Read expiry from either google-auth's `expiry` (ISO) or googleapis' `expiry_date` (ms)."""
    if data.get("expiry"):
        parsed = datetime.fromisoformat(data["expiry"].replace("Z", "+00:00"))
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    if data.get("expiry_date"):
        return datetime.fromtimestamp(int(data["expiry_date"]) / 1000, tz=UTC)
    return None


class StoredTokenProvider:
    """
    Authorized-user token kept in a JSON file (as written by an OAuth installed-app flow).

    The access token is refreshed with the stored refresh token once it is missing or
    about to expire, and the refreshed token is written back to the same file.
    """

    def __init__(
        self,
        token_path: Path,
        http_client: httpx.AsyncClient,
        client_id: str = "",
        client_secret: str = "",
    ):
        self.token_path = token_path
        self._http = http_client
        self._client_id = client_id
        self._client_secret = client_secret
        self._data: dict | None = None
        self._lock = asyncio.Lock()

    async def _load(self) -> dict:
        if self._data is not None:
            return self._data
        try:
            raw = await asyncio.to_thread(self.token_path.read_text, encoding="utf-8")
            self._data = json.loads(raw)
        except (OSError, ValueError) as e:
            logger.error("Could not load OAuth token from %s: %s", self.token_path, e)
            raise BookingError.external("Calendar credentials are not available") from e
        logger.info("Loaded OAuth token from %s", self.token_path)
        return self._data

    async def _save(self, data: dict) -> None:
        try:
            await asyncio.to_thread(
                self.token_path.write_text, json.dumps(data, indent=2), encoding="utf-8"
            )
        except OSError as e:
            # The refreshed token still works for this process
            logger.warning("Could not persist refreshed token to %s: %s", self.token_path, e)

    @staticmethod
    def _is_fresh(data: dict, now: datetime) -> bool:
        token = data.get("token") or data.get("access_token")
        if not token:
            return False
        expiry = _parse_expiry(data)
        return expiry is None or expiry - _EXPIRY_SKEW > now

    async def _refresh(self, data: dict) -> dict:
        refresh_token = data.get("refresh_token")
        client_id = data.get("client_id") or self._client_id
        client_secret = data.get("client_secret") or self._client_secret
        if not refresh_token or not client_id or not client_secret:
            logger.warning("OAuth token expired and cannot be refreshed (missing refresh_token or client credentials)")
            raise BookingError.external("Calendar credentials have expired")
        try:
            resp = await self._http.post(
                data.get("token_uri") or GOOGLE_TOKEN_URL,
                data={
                    "client_id": client_id,
                    "client_secret": client_secret,
                    "refresh_token": refresh_token,
                    "grant_type": "refresh_token",
                },
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
        except httpx.HTTPError as e:
            logger.warning("Google token refresh failed: %s", e)
            raise BookingError.external("Could not refresh calendar credentials") from e
        if resp.status_code != 200:
            logger.warning(
                "Google token refresh failed: status=%s body=%s",
                resp.status_code,
                resp.text[:500],
            )
            raise BookingError.external("Could not refresh calendar credentials")
        try:
            payload = resp.json()
            access_token = payload["access_token"]
            expires_in = int(payload.get("expires_in", 3600))
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning("Google token refresh returned an unreadable body: %s", resp.text[:500])
            raise BookingError.external("Could not refresh calendar credentials") from e
        refreshed = dict(data)
        refreshed["token"] = access_token
        refreshed.pop("access_token", None)
        refreshed.pop("expiry_date", None)
        refreshed["expiry"] = (datetime.now(UTC) + timedelta(seconds=expires_in)).isoformat()
        # Google only sometimes rotates the refresh token
        if payload.get("refresh_token"):
            refreshed["refresh_token"] = payload["refresh_token"]
        logger.info("Refreshed Google OAuth access token (expires in %ds)", expires_in)
        return refreshed

    async def get_access_token(self) -> str:
        async with self._lock:
            data = await self._load()
            if not self._is_fresh(data, datetime.now(UTC)):
                data = await self._refresh(data)
                self._data = data
                await self._save(data)
            return data.get("token") or data["access_token"]


def build_credential_provider(settings: Settings, http_client: httpx.AsyncClient) -> CredentialProvider:
    if settings.google_access_token:
        logger.info("Google Calendar: using static access token from settings")
        return StaticTokenProvider(settings.google_access_token)
    return StoredTokenProvider(
        settings.token_file_path,
        http_client,
        client_id=settings.google_client_id,
        client_secret=settings.google_client_secret,
    )

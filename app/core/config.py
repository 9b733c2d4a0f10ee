from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve .env from project root so it loads regardless of cwd
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(str(_ENV_FILE), ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # CORS
    cors_origins: str = "http://localhost:3000"

    # Google OAuth (authorized-user token, created out of band)
    google_client_id: str = ""
    google_client_secret: str = ""
    google_token_file: str = "token.json"
    # Static access token; skips the token file when set
    google_access_token: str = ""

    # Google Calendar
    google_calendar_id: str = "primary"
    google_calendar_base_url: str = "https://www.googleapis.com/calendar/v3"
    http_timeout_seconds: float = 30.0
    max_concurrent_lookups: int = 10
    event_summary: str = "Appointment"

    # Slot/booking business rules (all UTC)
    appointment_minutes: int = 40
    gap_minutes: int = 5
    business_start_hour: int = 9
    business_end_hour: int = 18  # exclusive, no appointment ends after 18:00
    min_notice_hours: int = 24

    # Env
    env: str = "development"

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def slot_stride_minutes(self) -> int:
        return self.appointment_minutes + self.gap_minutes

    @property
    def token_file_path(self) -> Path:
        path = Path(self.google_token_file)
        return path if path.is_absolute() else _PROJECT_ROOT / path


settings = Settings()

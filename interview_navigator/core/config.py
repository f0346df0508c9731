import os
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from interview_navigator.core.paths import resolve_repo_path


def _env_files() -> list[str]:
    base = resolve_repo_path(".env")
    env = os.getenv("NAV_ENVIRONMENT", "").strip().lower()
    files = [str(base)]
    if env and env != "development":
        files.append(str(resolve_repo_path(f".env.{env}")))
    else:
        files.append(str(resolve_repo_path(".env.local")))
    return files


class Settings(BaseSettings):
    app_name: str = "Interview Navigator"
    environment: str = "development"

    database_url: str

    auth_mode: Literal["dev", "firebase"] = "dev"
    firebase_project_id: str = ""
    google_clock_skew_seconds: int = 60
    google_application_credentials: str = Field(
        default="secrets/google-service-account.json",
        validation_alias=AliasChoices("NAV_GOOGLE_APPLICATION_CREDENTIALS", "GOOGLE_APPLICATION_CREDENTIALS"),
    )

    enable_calendar: bool = False
    calendar_id: str = "primary"
    calendar_timezone: str = "UTC"
    calendar_subject_email: str = ""
    meeting_fallback_base_url: str = "https://interview-navigator.daily.co"

    enforce_availability: bool = True
    booking_max_attempts: int = 3
    min_duration_minutes: int = 15
    max_duration_minutes: int = 180
    default_duration_minutes: int = 45

    enable_scheduler: bool = False
    reminder_interval_minutes: int = 5
    redis_url: str = Field(default="", validation_alias=AliasChoices("NAV_REDIS_URL", "REDIS_URL"))

    model_config = SettingsConfigDict(env_prefix="NAV_", env_file=_env_files(), extra="ignore")


settings = Settings()

"""Application configuration management."""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Centralised engine settings derived from environment variables."""

    database_url: str = Field(
        default="sqlite:///./data/loadwatch.db",
        description="SQLAlchemy-compatible database URL for training history.",
    )
    debug: bool = Field(default=False)

    log_level: str = Field(default="INFO")
    log_dir: Path = Field(default=Path("logs"))

    timezone: str = Field(
        default="Asia/Tokyo",
        description="IANA zone defining 'today' and the evening reminder cut-off.",
    )
    alert_rules_path: Path | None = Field(
        default=None,
        description="Optional YAML file overriding the built-in alert rules.",
    )
    acwr_maturity_days: int = Field(default=21, ge=1, le=365)
    notification_cooldown_hours: int = Field(default=6, ge=0, le=168)

    api_host: str = Field(default="127.0.0.1")
    api_port: int = Field(default=8000, ge=1, le=65535)

    scheduler_enabled: bool = Field(
        default=True,
        description="Run the interval pipeline and daily summary inside the API process.",
    )
    scheduler_interval_minutes: int = Field(default=30, ge=1, le=1440)
    scheduler_role: str = Field(default="admin")
    scheduler_lock_file: Path = Field(default=Path(".scheduler.lock"))
    summary_hour: int = Field(default=7, ge=0, le=23)
    summary_minute: int = Field(default=0, ge=0, le=59)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        valid = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}
        upper = value.upper()
        if upper not in valid:
            raise ValueError(f"LOG_LEVEL must be one of {', '.join(sorted(valid))}")
        return upper

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Reject zone names the tz database does not know."""

        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"TIMEZONE '{value}' is not a known IANA zone") from exc
        return value

    @field_validator("scheduler_role")
    @classmethod
    def validate_scheduler_role(cls, value: str) -> str:
        lower = value.lower()
        if lower not in {"athlete", "staff", "admin"}:
            raise ValueError("SCHEDULER_ROLE must be one of admin, athlete, staff")
        return lower

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings instance so it can be reused across the app."""

    settings = Settings()
    settings.log_dir.mkdir(parents=True, exist_ok=True)
    return settings

"""Application configuration settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = ".env"
ENV_FILE_ENCODING = "utf-8"


class Settings(BaseSettings):
    """Application configuration values loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE, env_file_encoding=ENV_FILE_ENCODING, extra="ignore"
    )

    database_url: str = Field(
        description="Database connection URL used by SQLAlchemy to connect to the DB",
        min_length=1,
    )
    secret_key: str = Field(
        description="Secret key used to verify bearer tokens", min_length=1
    )
    app_timezone: str = Field(
        default="UTC",
        description="IANA timezone (or UTC+HH:MM offset) used for stored datetimes",
    )

    cors_allow_origins: list[str] = Field(
        default_factory=lambda: ["*"],
        description="Origins allowed to call the API (JSON list in the environment)",
    )

    firebase_credentials_file: str | None = Field(
        default=None,
        description="Path to the Firebase service account JSON used for push delivery",
    )
    firebase_credentials_base64: str | None = Field(
        default=None,
        description="Base64 encoded Firebase service account JSON (takes precedence over the file)",
    )
    sendgrid_api_key: str | None = Field(
        default=None,
        description="SendGrid API key used for sending notification emails via the REST API",
    )
    sendgrid_sender: str | None = Field(
        default=None,
        description="Email address that will appear as the sender of notification emails",
        min_length=3,
    )

    dispatcher_enabled: bool = Field(
        default=True,
        description="Start the notification dispatcher together with the application",
    )
    dispatcher_workers: int = Field(default=5, gt=0)
    dispatcher_queue_size: int = Field(default=100, gt=0)
    dispatcher_enqueue_timeout_seconds: float = Field(default=5.0, ge=0)
    dispatcher_processing_timeout_seconds: float = Field(default=10.0, gt=0)
    dispatcher_scheduled_interval_seconds: float = Field(default=60.0, gt=0)
    dispatcher_cleanup_interval_seconds: float = Field(default=24 * 60 * 60, gt=0)
    dispatcher_scheduled_batch_size: int = Field(default=100, gt=0)
    dispatcher_retry_delay_seconds: float = Field(default=5 * 60, ge=0)
    dispatcher_max_retries: int = Field(default=3, ge=0)
    notification_read_retention_days: int = Field(default=90, gt=0)

    @model_validator(mode="after")
    def _validate_sendgrid_pair(self) -> "Settings":
        if bool(self.sendgrid_api_key) ^ bool(self.sendgrid_sender):
            raise ValueError(
                "SENDGRID_API_KEY and SENDGRID_SENDER must both be provided to enable email"
            )
        if self.sendgrid_sender and "@" not in self.sendgrid_sender:
            raise ValueError("SENDGRID_SENDER must be a valid email address")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()


def reset_settings_cache() -> None:
    """Clear the settings cache to force reloading from the environment."""

    get_settings.cache_clear()


__all__ = ["Settings", "get_settings", "reset_settings_cache"]

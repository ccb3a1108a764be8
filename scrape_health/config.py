from functools import lru_cache
from typing import ClassVar, Self

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    # Record store API
    record_store_url: str
    record_store_api_token: str = ""  # Optional bearer token
    record_store_table: str = "scrape_job_runs"
    record_store_max_pages: int = Field(default=1000, ge=1)

    # Prometheus Pushgateway (monitoring sink)
    pushgateway_url: str
    metrics_namespace: str = "scrape_pipeline"

    # Time windows. The alert window is filtered in-memory from the analysis window
    analysis_window_hours: int = Field(default=168, ge=1, le=24 * 90)
    alert_window_hours: int = Field(default=24, ge=1)

    # Per-run deadline (0 = no deadline)
    pipeline_timeout_seconds: float = Field(default=0, ge=0)

    # Schedule (optional, empty = scheduler disabled)
    pipeline_schedule_cron: str = ""  # e.g. "0 * * * *" (hourly)

    # Self-metrics HTTP endpoint for schedule mode (0 = disabled)
    metrics_port: int = Field(default=0, ge=0, le=65535)

    # SMTP / Email operator channel (optional, empty recipient = notifications disabled)
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    alert_recipient_email: str = ""
    alert_sender_email: str = ""

    log_level: str = "INFO"

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @model_validator(mode="after")
    def _check_window_order(self) -> Self:
        if self.alert_window_hours > self.analysis_window_hours:
            raise ValueError(
                f"alert_window_hours ({self.alert_window_hours}) must not exceed "
                f"analysis_window_hours ({self.analysis_window_hours})"
            )
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Lazily load and cache settings. Fails at first call, not at import time."""
    return Settings()  # type: ignore[call-arg]  # pyright: ignore[reportCallIssue]

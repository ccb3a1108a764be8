"""Shared pytest configuration and fixtures."""

from collections.abc import Generator
from typing import Any
from unittest.mock import patch

import pytest

from scrape_health.config import Settings, get_settings


@pytest.fixture(autouse=True)
def _no_dotenv() -> Generator[None]:
    """Block .env loading so tests that forget mock_settings fail locally, not just in CI.

    Tests that use mock_settings bypass Settings() entirely, so this is transparent.
    Tests that forget mock_settings will hit a validation error on required fields.
    """
    get_settings.cache_clear()
    original = Settings.model_config.get("env_file")
    Settings.model_config["env_file"] = None

    try:
        yield
    finally:
        Settings.model_config["env_file"] = original
        get_settings.cache_clear()


@pytest.fixture
def mock_settings() -> Generator[Any]:
    """Provide fake settings so tests don't need a .env file.

    Patches get_settings at every import site so cached references are overridden.
    """
    fake_settings = type(
        "FakeSettings",
        (),
        {
            "record_store_url": "http://store.test",
            "record_store_api_token": "store-test-token",
            "record_store_table": "scrape_job_runs",
            "record_store_max_pages": 10,
            "pushgateway_url": "http://pushgateway.test:9091",
            "metrics_namespace": "scrape_pipeline",
            "analysis_window_hours": 168,
            "alert_window_hours": 24,
            "pipeline_timeout_seconds": 0,
            "pipeline_schedule_cron": "",
            "metrics_port": 0,
            # SMTP / Email
            "smtp_host": "smtp.test.com",
            "smtp_port": 587,
            "smtp_username": "test@test.com",
            "smtp_password": "test-password",
            "alert_recipient_email": "oncall@test.com",
            "alert_sender_email": "",
            "log_level": "INFO",
        },
    )()
    with (
        patch("scrape_health.config.get_settings", return_value=fake_settings),
        patch("scrape_health.cli.get_settings", return_value=fake_settings),
        patch("scrape_health.pipeline.store.get_settings", return_value=fake_settings),
        patch("scrape_health.pipeline.publisher.get_settings", return_value=fake_settings),
        patch("scrape_health.pipeline.notifier.get_settings", return_value=fake_settings),
        patch("scrape_health.pipeline.orchestrator.get_settings", return_value=fake_settings),
        patch("scrape_health.pipeline.scheduler.get_settings", return_value=fake_settings),
    ):
        yield fake_settings

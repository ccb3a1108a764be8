"""Tests for operator notifications: SMTP is mocked."""

import smtplib
from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from scrape_health.errors import NotifyFailed
from scrape_health.models import AlertReport, MetricsSnapshot
from scrape_health.pipeline.notifier import (
    ALERT_SUBJECT,
    ERROR_SUBJECT,
    format_alert_message,
    format_error_message,
    is_notification_configured,
    notify,
    notify_error,
    send_notification,
)
from tests.factories import NOW


def _report() -> AlertReport:
    snapshot = MetricsSnapshot(
        total_runs=6,
        successful_runs=1,
        failed_runs=5,
        success_rate=16.666666666666664,
        unique_owners=2,
        total_records=9,
        avg_records_per_run=9.0,
        recent_runs=4,
        recent_success_rate=0.0,
    )
    return AlertReport(
        lines=("Low success rate in the last 24h: 0.0%", "Overall success rate is critically low: 16.7%"),
        snapshot=snapshot,
    )


def _mock_smtp(mock_smtp_cls: MagicMock) -> MagicMock:
    mock_server = MagicMock()
    mock_smtp_cls.return_value.__enter__ = MagicMock(return_value=mock_server)
    mock_smtp_cls.return_value.__exit__ = MagicMock(return_value=False)
    return mock_server


class TestFormatting:
    def test_alert_message_layout(self) -> None:
        subject, body = format_alert_message(_report())

        assert subject == ALERT_SUBJECT
        assert body == (
            "Scrape Pipeline Alert\n\n"
            "Low success rate in the last 24h: 0.0%\n"
            "Overall success rate is critically low: 16.7%\n\n"
            "Metrics:\n"
            "- Recent runs (24h): 4\n"
            "- Recent success rate: 0.0%\n"
            "- Overall success rate: 16.7%\n"
            "- Distinct owners: 2\n"
            "- Total records: 9"
        )

    def test_error_message_is_distinct(self) -> None:
        subject, body = format_error_message(RuntimeError("store exploded"), now=NOW)

        assert subject == ERROR_SUBJECT
        assert subject != ALERT_SUBJECT
        assert "Error: store exploded" in body
        assert "Timestamp: 2026-03-10T12:00:00+00:00" in body

    def test_error_message_without_text_uses_type_name(self) -> None:
        _, body = format_error_message(TimeoutError(), now=NOW)
        assert "Error: TimeoutError" in body


class TestConfiguration:
    def test_configured(self, mock_settings: Any) -> None:
        assert is_notification_configured()

    def test_missing_recipient(self, mock_settings: Any) -> None:
        mock_settings.alert_recipient_email = ""
        assert not is_notification_configured()

    def test_missing_host(self, mock_settings: Any) -> None:
        mock_settings.smtp_host = ""
        assert not is_notification_configured()


@pytest.mark.integration
class TestSendNotification:
    def test_send_success(self, mock_settings: Any) -> None:
        with patch("scrape_health.pipeline.notifier.smtplib.SMTP") as mock_smtp_cls:
            mock_server = _mock_smtp(mock_smtp_cls)
            send_notification("Subject", "Body")

        mock_smtp_cls.assert_called_once_with("smtp.test.com", 587, timeout=30)
        mock_server.starttls.assert_called_once()
        mock_server.login.assert_called_once_with("test@test.com", "test-password")
        msg = mock_server.send_message.call_args.args[0]
        assert msg["Subject"] == "Subject"
        assert msg["To"] == "oncall@test.com"
        assert msg["From"] == "test@test.com"

    def test_sender_override_and_no_login(self, mock_settings: Any) -> None:
        mock_settings.alert_sender_email = "pipeline@test.com"
        mock_settings.smtp_password = ""
        with patch("scrape_health.pipeline.notifier.smtplib.SMTP") as mock_smtp_cls:
            mock_server = _mock_smtp(mock_smtp_cls)
            send_notification("Subject", "Body")

        mock_server.login.assert_not_called()
        assert mock_server.send_message.call_args.args[0]["From"] == "pipeline@test.com"

    def test_smtp_failure_raises(self, mock_settings: Any) -> None:
        with patch("scrape_health.pipeline.notifier.smtplib.SMTP") as mock_smtp_cls:
            mock_server = _mock_smtp(mock_smtp_cls)
            mock_server.send_message.side_effect = smtplib.SMTPRecipientsRefused({})

            with pytest.raises(NotifyFailed, match="oncall@test.com"):
                send_notification("Subject", "Body")

    def test_connection_failure_raises(self, mock_settings: Any) -> None:
        with patch("scrape_health.pipeline.notifier.smtplib.SMTP") as mock_smtp_cls:
            mock_smtp_cls.side_effect = ConnectionRefusedError("SMTP down")

            with pytest.raises(NotifyFailed):
                send_notification("Subject", "Body")

    def test_not_configured_raises(self, mock_settings: Any) -> None:
        mock_settings.alert_recipient_email = ""
        with pytest.raises(NotifyFailed, match="not configured"):
            send_notification("Subject", "Body")

    def test_notify_sends_one_message(self, mock_settings: Any) -> None:
        with patch("scrape_health.pipeline.notifier.smtplib.SMTP") as mock_smtp_cls:
            mock_server = _mock_smtp(mock_smtp_cls)
            notify(_report())

        mock_server.send_message.assert_called_once()
        assert mock_server.send_message.call_args.args[0]["Subject"] == ALERT_SUBJECT

    def test_notify_error_subject(self, mock_settings: Any) -> None:
        with patch("scrape_health.pipeline.notifier.smtplib.SMTP") as mock_smtp_cls:
            mock_server = _mock_smtp(mock_smtp_cls)
            notify_error(RuntimeError("boom"))

        assert mock_server.send_message.call_args.args[0]["Subject"] == ERROR_SUBJECT

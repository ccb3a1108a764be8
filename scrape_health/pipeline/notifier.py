"""Operator notifications over SMTP email.

Uses stdlib smtplib with STARTTLS.  The operator channel is optional: when no
SMTP host or recipient is configured, callers skip notification entirely.
Delivery failures raise NotifyFailed; the orchestrator logs them and keeps
the run successful.
"""

import logging
import smtplib
from datetime import UTC, datetime
from email.mime.text import MIMEText

from scrape_health.config import get_settings
from scrape_health.errors import NotifyFailed
from scrape_health.models import AlertReport

logger = logging.getLogger(__name__)

ALERT_SUBJECT = "Scrape Pipeline Alert"
ERROR_SUBJECT = "Scrape Pipeline Analytics Error"
SMTP_TIMEOUT_SECONDS = 30


def is_notification_configured() -> bool:
    """Check whether an SMTP host and an operator recipient are present."""
    settings = get_settings()
    return bool(settings.smtp_host and settings.alert_recipient_email)


def format_alert_message(report: AlertReport) -> tuple[str, str]:
    """Build the (subject, body) of the composite alert notification."""
    snapshot = report.snapshot
    body = (
        f"{ALERT_SUBJECT}\n\n"
        + "\n".join(report.lines)
        + "\n\nMetrics:\n"
        + f"- Recent runs ({report.recent_window_hours}h): {snapshot.recent_runs}\n"
        + f"- Recent success rate: {snapshot.recent_success_rate:.1f}%\n"
        + f"- Overall success rate: {snapshot.success_rate:.1f}%\n"
        + f"- Distinct owners: {snapshot.unique_owners}\n"
        + f"- Total records: {snapshot.total_records}"
    )
    return ALERT_SUBJECT, body


def format_error_message(error: BaseException, now: datetime | None = None) -> tuple[str, str]:
    """Build the (subject, body) of the run-failure notification."""
    when = (now or datetime.now(tz=UTC)).isoformat()
    detail = str(error) or type(error).__name__
    body = f"Scrape pipeline analytics run failed\n\nError: {detail}\n\nTimestamp: {when}"
    return ERROR_SUBJECT, body


def send_notification(subject: str, body: str) -> None:
    """Send one plain-text email to the operator recipient.

    Raises:
        NotifyFailed: If notification is not configured or delivery fails.
    """
    settings = get_settings()

    if not is_notification_configured():
        raise NotifyFailed("Operator notification channel is not configured")

    msg = MIMEText(body, "plain", "utf-8")
    msg["Subject"] = subject
    msg["From"] = settings.alert_sender_email or settings.smtp_username
    msg["To"] = settings.alert_recipient_email

    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=SMTP_TIMEOUT_SECONDS) as server:
            _ = server.starttls()
            if settings.smtp_username and settings.smtp_password:
                server.login(settings.smtp_username, settings.smtp_password)
            server.send_message(msg)
    except (smtplib.SMTPException, OSError) as exc:
        raise NotifyFailed(f"Failed to send '{subject}' to {settings.alert_recipient_email}: {exc}") from exc

    logger.info("Sent '%s' to %s", subject, settings.alert_recipient_email)


def notify(report: AlertReport) -> None:
    """Send the single alert notification for a run."""
    subject, body = format_alert_message(report)
    send_notification(subject, body)


def notify_error(error: BaseException) -> None:
    """Send the run-failure notification."""
    subject, body = format_error_message(error)
    send_notification(subject, body)

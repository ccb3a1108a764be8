"""Run the job-health pipeline: read, aggregate, publish, evaluate, notify.

Each invocation gets a fresh ``PipelineRun`` that walks a linear state
machine.  Any failure moves it to ``failed``, triggers one best-effort error
notification, and re-raises the original exception.  A failing alert
notification is logged and does not fail an otherwise complete run.  The
optional run deadline covers reading through publishing only.
"""

import asyncio
import logging
import time
from datetime import UTC, datetime
from enum import StrEnum

import httpx

from scrape_health.config import get_settings
from scrape_health.errors import NotifyFailed
from scrape_health.models import AlertReport, MetricsSnapshot
from scrape_health.observability.metrics import (
    ALERTS_FIRED_TOTAL,
    NOTIFICATIONS_TOTAL,
    PIPELINE_DURATION,
    PIPELINE_RUNS_TOTAL,
    PIPELINE_STAGE_FAILURES_TOTAL,
)
from scrape_health.pipeline.aggregator import aggregate
from scrape_health.pipeline.alerts import evaluate
from scrape_health.pipeline.notifier import is_notification_configured, notify, notify_error
from scrape_health.pipeline.publisher import publish
from scrape_health.pipeline.store import fetch_recent

logger = logging.getLogger(__name__)


class PipelineState(StrEnum):
    IDLE = "idle"
    READING = "reading"
    AGGREGATING = "aggregating"
    PUBLISHING = "publishing"
    EVALUATING = "evaluating"
    NOTIFYING = "notifying"
    DONE = "done"
    FAILED = "failed"


TERMINAL_STATES = frozenset({PipelineState.DONE, PipelineState.FAILED})


class PipelineRun:
    """A single, single-use pipeline execution."""

    def __init__(self, now: datetime | None = None) -> None:
        self.now = now
        self.state = PipelineState.IDLE
        self.history: list[PipelineState] = [PipelineState.IDLE]
        self.snapshot: MetricsSnapshot | None = None
        self.report: AlertReport | None = None

    def _enter(self, state: PipelineState) -> None:
        logger.debug("Pipeline %s -> %s", self.state, state)
        self.state = state
        self.history.append(state)

    async def execute(self) -> AlertReport:
        """Run every stage in order.

        Returns:
            The alert report of the run (possibly without alert lines).

        Raises:
            Exception: Whatever stopped the run, unchanged, after the error
                notification attempt.
        """
        if self.state is not PipelineState.IDLE:
            raise RuntimeError(f"PipelineRun already used (state={self.state})")

        settings = get_settings()
        start = time.monotonic()
        try:
            async with asyncio.timeout(settings.pipeline_timeout_seconds or None):
                snapshot = await self._collect()
            report = await self._evaluate_and_notify(snapshot)
        except Exception as exc:
            failed_stage = self.state
            self._enter(PipelineState.FAILED)
            PIPELINE_STAGE_FAILURES_TOTAL.labels(stage=failed_stage.value).inc()
            PIPELINE_RUNS_TOTAL.labels(status="error").inc()
            PIPELINE_DURATION.observe(time.monotonic() - start)
            logger.exception("Pipeline run failed while %s", failed_stage)
            await self._send_error_notification(exc)
            raise

        self._enter(PipelineState.DONE)
        PIPELINE_RUNS_TOTAL.labels(status="success").inc()
        PIPELINE_DURATION.observe(time.monotonic() - start)
        logger.info("Pipeline run completed with %d alert(s)", len(report.lines))
        return report

    async def _collect(self) -> MetricsSnapshot:
        """Read, aggregate and publish.  The run deadline covers only these stages."""
        settings = get_settings()
        now = self.now or datetime.now(tz=UTC)

        async with httpx.AsyncClient() as client:
            self._enter(PipelineState.READING)
            records = await fetch_recent(client, settings.analysis_window_hours, now=now)

            self._enter(PipelineState.AGGREGATING)
            self.snapshot = aggregate(records, now=now, recent_window_hours=settings.alert_window_hours)
            logger.info("Calculated metrics: %s", self.snapshot.model_dump())

            self._enter(PipelineState.PUBLISHING)
            _ = await publish(client, self.snapshot, now=now)
        return self.snapshot

    async def _evaluate_and_notify(self, snapshot: MetricsSnapshot) -> AlertReport:
        settings = get_settings()
        self._enter(PipelineState.EVALUATING)
        self.report = evaluate(snapshot, recent_window_hours=settings.alert_window_hours)
        ALERTS_FIRED_TOTAL.inc(len(self.report.lines))

        if not self.report.has_alerts:
            return self.report
        if not is_notification_configured():
            logger.warning("%d alert(s) fired but no operator channel is configured", len(self.report.lines))
            return self.report

        self._enter(PipelineState.NOTIFYING)
        try:
            await asyncio.to_thread(notify, self.report)
            NOTIFICATIONS_TOTAL.labels(kind="alert", status="success").inc()
        except NotifyFailed:
            NOTIFICATIONS_TOTAL.labels(kind="alert", status="error").inc()
            logger.exception("Alert notification failed; metrics were already published")
        return self.report

    async def _send_error_notification(self, error: Exception) -> None:
        if not is_notification_configured():
            return
        try:
            await asyncio.to_thread(notify_error, error)
            NOTIFICATIONS_TOTAL.labels(kind="error", status="success").inc()
        except Exception:
            NOTIFICATIONS_TOTAL.labels(kind="error", status="error").inc()
            logger.exception("Failed to send error notification")


async def run_pipeline() -> None:
    """Scheduler entry point: one fresh run, errors propagate to the caller."""
    _ = await PipelineRun().execute()

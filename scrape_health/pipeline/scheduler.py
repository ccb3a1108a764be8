"""APScheduler integration for scheduled pipeline runs.

Uses AsyncIOScheduler with CronTrigger to run the pipeline on a configurable
schedule.  No-ops gracefully if no cron expression is configured.
"""

import contextlib
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler  # type: ignore[import-untyped]
from apscheduler.triggers.cron import CronTrigger  # type: ignore[import-untyped]

from scrape_health.config import get_settings
from scrape_health.pipeline.orchestrator import run_pipeline

logger = logging.getLogger(__name__)

_scheduler: AsyncIOScheduler | None = None


async def _scheduled_pipeline_job() -> None:
    """Async job executed by the scheduler.

    Failures were already counted and reported by the run itself; here they
    are only logged so the scheduler keeps firing.
    """
    try:
        await run_pipeline()
    except Exception:
        logger.exception("Scheduled pipeline run failed")


def start_scheduler() -> bool:
    """Start the APScheduler if a cron expression is configured.

    Returns:
        True if the scheduler was started.
    """
    global _scheduler  # noqa: PLW0603

    settings = get_settings()
    if not settings.pipeline_schedule_cron:
        logger.info("Pipeline scheduler disabled (PIPELINE_SCHEDULE_CRON not set)")
        return False

    trigger = CronTrigger.from_crontab(settings.pipeline_schedule_cron)
    _scheduler = AsyncIOScheduler()
    _scheduler.add_job(
        _scheduled_pipeline_job,
        trigger=trigger,
        id="scrape_health_pipeline",
        name="Scrape Job Health Pipeline",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    _scheduler.start()
    logger.info("Pipeline scheduler started with cron: %s", settings.pipeline_schedule_cron)
    return True


def stop_scheduler() -> None:
    """Gracefully shut down the scheduler if it is running."""
    global _scheduler  # noqa: PLW0603

    if _scheduler is not None:
        with contextlib.suppress(Exception):
            _scheduler.shutdown(wait=False)
        logger.info("Pipeline scheduler stopped")
        _scheduler = None

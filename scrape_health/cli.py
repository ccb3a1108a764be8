"""Command-line entry points for the scrape job health pipeline.

Usage:
    python -m scrape_health.cli run        # one pipeline run, exit 1 on failure
    python -m scrape_health.cli preview    # print metrics and alerts, publish nothing
    python -m scrape_health.cli schedule   # run on PIPELINE_SCHEDULE_CRON until interrupted
"""

import argparse
import asyncio
import logging
import sys

import httpx
from prometheus_client import start_http_server

from scrape_health.config import get_settings
from scrape_health.models import AlertReport
from scrape_health.pipeline.aggregator import aggregate
from scrape_health.pipeline.alerts import evaluate
from scrape_health.pipeline.orchestrator import run_pipeline
from scrape_health.pipeline.scheduler import start_scheduler, stop_scheduler
from scrape_health.pipeline.store import fetch_recent

logger = logging.getLogger(__name__)


def _configure_logging() -> None:
    logging.basicConfig(
        level=get_settings().log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


async def _preview() -> AlertReport:
    """Fetch, aggregate and evaluate without touching the sink or the operator channel."""
    settings = get_settings()
    async with httpx.AsyncClient() as client:
        records = await fetch_recent(client, settings.analysis_window_hours)
    snapshot = aggregate(records, recent_window_hours=settings.alert_window_hours)
    return evaluate(snapshot, recent_window_hours=settings.alert_window_hours)


def format_preview(report: AlertReport) -> str:
    """Render a report as plain text for the terminal."""
    lines = ["Metrics:"]
    for name, value in report.snapshot.model_dump().items():
        rendered = f"{value:.1f}" if isinstance(value, float) else str(value)
        lines.append(f"  {name}: {rendered}")
    lines.append("")
    if report.has_alerts:
        lines.append("Alerts:")
        lines.extend(f"  - {line}" for line in report.lines)
    else:
        lines.append("No alerts.")
    return "\n".join(lines)


async def _schedule() -> int:
    settings = get_settings()
    if settings.metrics_port:
        _ = start_http_server(settings.metrics_port)
        logger.info("Serving self-metrics on port %d", settings.metrics_port)

    if not start_scheduler():
        print("PIPELINE_SCHEDULE_CRON is not set; nothing to schedule.", file=sys.stderr)
        return 1
    try:
        await asyncio.Event().wait()
    finally:
        stop_scheduler()
    return 0


def main(argv: list[str] | None = None) -> int:
    """Parse args and dispatch to a command."""
    parser = argparse.ArgumentParser(description="Scrape job health pipeline")
    subcommands = parser.add_subparsers(dest="command", required=True)
    subcommands.add_parser("run", help="Run the pipeline once")
    subcommands.add_parser("preview", help="Print metrics and alerts without publishing or notifying")
    subcommands.add_parser("schedule", help="Run the pipeline on the configured cron schedule")
    args = parser.parse_args(argv)

    try:
        _configure_logging()
    except Exception as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    if args.command == "run":
        try:
            asyncio.run(run_pipeline())
        except Exception as e:
            print(f"Pipeline run failed: {e}", file=sys.stderr)
            return 1
        return 0

    if args.command == "preview":
        try:
            report = asyncio.run(_preview())
        except Exception as e:
            print(f"Preview failed: {e}", file=sys.stderr)
            return 1
        print(format_preview(report))
        return 0

    try:
        return asyncio.run(_schedule())
    except KeyboardInterrupt:
        print("\nStopped.")
        return 0


if __name__ == "__main__":
    sys.exit(main())

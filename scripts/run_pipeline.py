"""Run the job health pipeline once, for external schedulers (cron, k8s CronJob).

Usage:
    python -m scripts.run_pipeline
"""

import asyncio
import logging
import sys

from scrape_health.pipeline.orchestrator import run_pipeline

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


async def main() -> None:
    """Run the pipeline and exit non-zero on failure."""
    try:
        await run_pipeline()
    except Exception as e:
        print(f"Pipeline run failed: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())

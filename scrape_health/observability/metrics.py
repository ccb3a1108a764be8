"""Prometheus metric definitions for pipeline self-instrumentation.

All metrics are module-level singletons registered with the default
prometheus_client registry.  They describe the pipeline process itself and
are separate from the job-health gauges pushed to the Pushgateway.
"""

from prometheus_client import Counter, Histogram

# ---------------------------------------------------------------------------
# Histogram bucket definitions
# ---------------------------------------------------------------------------

PIPELINE_DURATION_BUCKETS = (0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0)

# ---------------------------------------------------------------------------
# Run-level metrics
# ---------------------------------------------------------------------------

PIPELINE_RUNS_TOTAL = Counter(
    "scrape_health_pipeline_runs_total",
    "Total number of pipeline runs",
    labelnames=["status"],
)

PIPELINE_DURATION = Histogram(
    "scrape_health_pipeline_duration_seconds",
    "End-to-end pipeline run duration in seconds",
    buckets=PIPELINE_DURATION_BUCKETS,
)

PIPELINE_STAGE_FAILURES_TOTAL = Counter(
    "scrape_health_pipeline_stage_failures_total",
    "Pipeline runs that failed, by the stage that was active",
    labelnames=["stage"],
)

# ---------------------------------------------------------------------------
# Stage metrics
# ---------------------------------------------------------------------------

STORE_PAGES_FETCHED_TOTAL = Counter(
    "scrape_health_store_pages_fetched_total",
    "Total number of record store pages fetched",
)

ALERTS_FIRED_TOTAL = Counter(
    "scrape_health_alerts_fired_total",
    "Total number of alert lines produced by the evaluator",
)

NOTIFICATIONS_TOTAL = Counter(
    "scrape_health_notifications_total",
    "Total number of operator notifications attempted",
    labelnames=["kind", "status"],
)

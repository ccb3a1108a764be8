"""Publish a MetricsSnapshot to a Prometheus Pushgateway.

Every snapshot field becomes one gauge.  The whole batch is rendered into a
throwaway registry and sent in a single PUT, which the Pushgateway applies
atomically to the ``job=<namespace>`` group: it is accepted or rejected as a
whole.
"""

import logging
from collections.abc import Iterator
from datetime import UTC, datetime

import httpx
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest
from prometheus_client.core import GaugeMetricFamily
from prometheus_client.registry import Collector

from scrape_health.config import get_settings
from scrape_health.errors import PublishFailed
from scrape_health.models import MetricDatum, MetricsSnapshot

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 15

PERCENT_FIELDS = frozenset({"success_rate", "recent_success_rate"})

METRIC_DESCRIPTIONS: dict[str, str] = {
    "total_runs": "Job runs in the analysis window",
    "successful_runs": "Successful job runs in the analysis window",
    "failed_runs": "Failed job runs in the analysis window",
    "success_rate": "Share of successful runs in the analysis window",
    "unique_owners": "Distinct record owners in the analysis window",
    "total_records": "Records produced by successful runs in the analysis window",
    "avg_records_per_run": "Average records produced per successful run",
    "recent_runs": "Job runs in the alerting sub-window",
    "recent_success_rate": "Share of successful runs in the alerting sub-window",
}

# Counts carry no unit suffix in Prometheus naming; percentages get "_percent".
_PROMETHEUS_UNITS: dict[str, str] = {"count": "", "percent": "percent"}


def build_metric_data(snapshot: MetricsSnapshot, now: datetime | None = None) -> list[MetricDatum]:
    """Translate a snapshot into one data point per field, in field order.

    All data points share the same capture timestamp: the publish time, not
    the time of any underlying record.  Values are not rounded.
    """
    captured_at = now or datetime.now(tz=UTC)
    values = snapshot.model_dump()
    return [
        MetricDatum(
            name=field,
            value=float(values[field]),
            unit="percent" if field in PERCENT_FIELDS else "count",
            timestamp=captured_at,
        )
        for field in MetricsSnapshot.model_fields
    ]


class _BatchCollector(Collector):
    """Expose a fixed batch of data points as gauges."""

    def __init__(self, namespace: str, batch: list[MetricDatum]) -> None:
        self._namespace = namespace
        self._batch = batch

    def collect(self) -> Iterator[GaugeMetricFamily]:
        for datum in self._batch:
            yield GaugeMetricFamily(
                f"{self._namespace}_{datum['name']}",
                METRIC_DESCRIPTIONS.get(datum["name"], datum["name"]),
                value=datum["value"],
                unit=_PROMETHEUS_UNITS[datum["unit"]],
            )


def render_exposition(namespace: str, batch: list[MetricDatum]) -> bytes:
    """Render a batch of data points in Prometheus text exposition format."""
    registry = CollectorRegistry(auto_describe=False)
    registry.register(_BatchCollector(namespace, batch))
    return generate_latest(registry)


async def publish(
    client: httpx.AsyncClient,
    snapshot: MetricsSnapshot,
    now: datetime | None = None,
) -> list[MetricDatum]:
    """Push every snapshot field to the Pushgateway in one batch.

    Returns:
        The data points that were sent.

    Raises:
        PublishFailed: If the gateway is unreachable or rejects the batch.
    """
    settings = get_settings()
    namespace = settings.metrics_namespace
    batch = build_metric_data(snapshot, now)
    body = render_exposition(namespace, batch)
    url = f"{settings.pushgateway_url}/metrics/job/{namespace}"

    try:
        response = await client.put(
            url,
            content=body,
            headers={"Content-Type": CONTENT_TYPE_LATEST},
            timeout=DEFAULT_TIMEOUT_SECONDS,
        )
        _ = response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise PublishFailed(
            f"Pushgateway rejected metric batch: HTTP {exc.response.status_code} {exc.response.text[:200]}"
        ) from exc
    except httpx.HTTPError as exc:
        raise PublishFailed(f"Cannot reach Pushgateway at {settings.pushgateway_url}: {exc}") from exc

    logger.info("Published %d metrics to %s under job=%s", len(batch), settings.pushgateway_url, namespace)
    return batch

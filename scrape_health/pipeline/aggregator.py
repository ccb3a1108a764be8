"""Aggregate job records into a MetricsSnapshot.  Pure, no I/O."""

from collections.abc import Iterable
from datetime import UTC, datetime, timedelta

from scrape_health.models import JobRecord, MetricsSnapshot

DEFAULT_RECENT_WINDOW_HOURS = 24


def _rate(numerator: int, denominator: int) -> float:
    """Percentage of numerator over denominator, 0 when the denominator is 0."""
    return numerator / denominator * 100 if denominator > 0 else 0.0


def aggregate(
    records: Iterable[JobRecord],
    now: datetime | None = None,
    recent_window_hours: int = DEFAULT_RECENT_WINDOW_HOURS,
) -> MetricsSnapshot:
    """Compute health metrics over a set of job records.

    The recent sub-window is applied in memory on top of whatever window the
    records were fetched with.  A record is recent when its effective time
    (timestamp, else run date) is at or after ``now - recent_window_hours``.
    A naive ``now`` is taken as UTC.  The result does not depend on the order
    of ``records``.
    """
    records = list(records)
    now = now or datetime.now(tz=UTC)
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    recent_since = now - timedelta(hours=recent_window_hours)

    total = len(records)
    successful = [r for r in records if r.succeeded]
    total_records = sum(r.record_count for r in successful)

    recent: list[JobRecord] = []
    for record in records:
        event_time = record.effective_time()
        if event_time is not None and event_time >= recent_since:
            recent.append(record)
    recent_successful = sum(1 for r in recent if r.succeeded)

    return MetricsSnapshot(
        total_runs=total,
        successful_runs=len(successful),
        failed_runs=total - len(successful),
        success_rate=_rate(len(successful), total),
        unique_owners=len({r.owner_id for r in records}),
        total_records=total_records,
        avg_records_per_run=total_records / len(successful) if successful else 0.0,
        recent_runs=len(recent),
        recent_success_rate=_rate(recent_successful, len(recent)),
    )

"""Threshold rules that turn a MetricsSnapshot into alert lines."""

from scrape_health.models import AlertReport, MetricsSnapshot

RECENT_SUCCESS_RATE_THRESHOLD = 50.0
OVERALL_SUCCESS_RATE_THRESHOLD = 30.0


def evaluate(snapshot: MetricsSnapshot, recent_window_hours: int = 24) -> AlertReport:
    """Apply the alert rules in order and collect the lines that fire.

    The two recency rules are mutually exclusive; the overall-rate rule can
    fire alongside either of them.
    """
    lines: list[str] = []

    if snapshot.recent_runs == 0:
        lines.append(f"No runs detected in the last {recent_window_hours} hours")
    elif snapshot.recent_success_rate < RECENT_SUCCESS_RATE_THRESHOLD:
        lines.append(f"Low success rate in the last {recent_window_hours}h: {snapshot.recent_success_rate:.1f}%")

    if snapshot.total_runs > 0 and snapshot.success_rate < OVERALL_SUCCESS_RATE_THRESHOLD:
        lines.append(f"Overall success rate is critically low: {snapshot.success_rate:.1f}%")

    return AlertReport(lines=tuple(lines), snapshot=snapshot, recent_window_hours=recent_window_hours)

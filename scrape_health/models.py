"""Data models for job records, metric snapshots and alert reports."""

from datetime import UTC, datetime
from typing import Any, Literal, TypedDict

from pydantic import BaseModel, ConfigDict, Field, field_validator

JobStatus = Literal["success", "failure"]


class JobRecord(BaseModel):
    """One outcome of a scheduled scrape job, as stored by the job producer.

    Field aliases are the record store's wire names.  Missing or malformed
    optional fields fall back to neutral values instead of failing validation.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    owner_id: str = Field(default="", alias="userId")
    run_date: str = Field(default="", alias="scrapeDate")
    record_count: int = Field(default=0, alias="totalRecords")
    summary: str = ""
    status: JobStatus = "failure"
    payload: Any = Field(default=None, alias="data")
    error: str | None = None
    timestamp: str | None = None

    @field_validator("owner_id", "run_date", "summary", mode="before")
    @classmethod
    def _none_to_empty(cls, value: object) -> object:
        return "" if value is None else str(value)

    @field_validator("record_count", mode="before")
    @classmethod
    def _coerce_record_count(cls, value: object) -> int:
        if isinstance(value, bool):
            return 0
        try:
            count = int(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return 0
        return max(count, 0)

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value: object) -> str:
        # Anything that is not an explicit success counts against the pipeline.
        return "success" if str(value).strip().lower() == "success" else "failure"

    @field_validator("error", mode="before")
    @classmethod
    def _stringify_error(cls, value: object) -> str | None:
        # Producers sometimes store a structured error object.
        return None if value is None else str(value)

    @field_validator("timestamp", mode="before")
    @classmethod
    def _drop_non_string_timestamp(cls, value: object) -> str | None:
        return value if isinstance(value, str) else None

    @property
    def succeeded(self) -> bool:
        return self.status == "success"

    def effective_time(self) -> datetime | None:
        """Return the record's event time, falling back to the run date.

        Naive values are taken as UTC.  Returns None if neither field parses.
        """
        for raw in (self.timestamp, self.run_date):
            if not raw:
                continue
            try:
                dt = datetime.fromisoformat(raw.replace("Z", "+00:00"))
            except ValueError:
                continue
            return dt.replace(tzinfo=UTC) if dt.tzinfo is None else dt
        return None


class MetricsSnapshot(BaseModel):
    """Derived health metrics for one pipeline run.  Rates are percentages."""

    model_config = ConfigDict(frozen=True)

    total_runs: int = 0
    successful_runs: int = 0
    failed_runs: int = 0
    success_rate: float = 0.0
    unique_owners: int = 0
    total_records: int = 0
    avg_records_per_run: float = 0.0
    recent_runs: int = 0
    recent_success_rate: float = 0.0


class AlertReport(BaseModel):
    """Alert lines produced by one evaluation, with the snapshot behind them."""

    model_config = ConfigDict(frozen=True)

    lines: tuple[str, ...]
    snapshot: MetricsSnapshot
    recent_window_hours: int = 24

    @property
    def has_alerts(self) -> bool:
        return bool(self.lines)


class MetricDatum(TypedDict):
    name: str
    value: float
    unit: Literal["count", "percent"]
    timestamp: datetime

"""Pydantic models for aggregation results, alerts, policies and snapshots."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

from loginsight.types import LogLevel, Period, TimeUnit

# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


class AggregationResult(BaseModel):
    """Statistics computed over one metric stream at one point in time.

    Only the kinds that were requested are populated; the rest stay None.
    """

    average: float | None = None
    sum: float | None = None
    count: int | None = None
    min: float | None = None
    max: float | None = None
    median: float | None = None
    mode: list[float] | None = None
    standard_deviation: float | None = Field(default=None, serialization_alias="standardDeviation")
    percentile: float | None = None
    range: float | None = None
    rolling_window: list[list[float]] | None = Field(
        default=None, serialization_alias="rollingWindow"
    )
    variance: float | None = None
    sum_of_squares: float | None = Field(default=None, serialization_alias="sumOfSquares")

    skipped: list[str] = Field(
        default_factory=list,
        description="Requested aggregation kinds that are not supported",
    )

    def as_dict(self) -> dict[str, Any]:
        """Computed kinds keyed by their camelCase name."""
        return self.model_dump(by_alias=True, exclude_none=True, exclude={"skipped"})


# ---------------------------------------------------------------------------
# Thresholds and alerts
# ---------------------------------------------------------------------------


class ThresholdConfig(BaseModel):
    """Rate thresholds compared against a stream's average."""

    error_rate: float = Field(
        default=0.05, ge=0.0, le=1.0, description="Alert when the error rate exceeds this"
    )
    warning_rate: float = Field(
        default=0.05, ge=0.0, le=1.0, description="Alert when the warning rate exceeds this"
    )


class AlertEvent(BaseModel):
    metric: str
    observed_average: float
    threshold: float


# ---------------------------------------------------------------------------
# Scheduling policies
# ---------------------------------------------------------------------------


class EveryUnit(BaseModel):
    """Fire once `amount` units have elapsed since the last generation.

    `unit` is kept as written when it is not a TimeUnit so that the
    evaluation can report it instead of the parser rejecting the config.
    """

    kind: Literal["everyUnit"] = "everyUnit"
    amount: int = Field(ge=0)
    unit: TimeUnit | str


class Periodically(BaseModel):
    kind: Literal["periodically"] = "periodically"
    period: Period | str


class AfterTotalLogs(BaseModel):
    kind: Literal["afterTotalLogs"] = "afterTotalLogs"
    threshold: int = Field(ge=0)


SchedulingPolicy = EveryUnit | Periodically | AfterTotalLogs


# ---------------------------------------------------------------------------
# Coordinator outputs
# ---------------------------------------------------------------------------


class LogEventOutcome(BaseModel):
    """What happened while ingesting a single log event."""

    tracked_metrics: list[str] = Field(default_factory=list)
    alerts: list[AlertEvent] = Field(default_factory=list)
    snapshot_ready: bool = False
    rejected: bool = False


class InsightsSnapshot(BaseModel):
    """The aggregate view handed to sinks when a snapshot is due."""

    generated_at: str
    total_logs: int
    level_counts: dict[LogLevel, int] = Field(default_factory=dict)
    metrics: dict[str, AggregationResult] = Field(default_factory=dict)
    alerts: list[AlertEvent] = Field(default_factory=list)

"""Insights coordinator - the façade fed by the logging pipeline.

Per log event, in order:
    1. no-op when insights are disabled
    2. reject unknown levels (reported, never raised)
    3. count the level (logLevels)
    4. record the response time (responseTimes)
    5. record 1.0/0.0 into the errorRate / warningRate streams
    6. bump the persisted cumulative log count
    7. aggregate the touched streams and check thresholds
    8. ask the scheduler whether a snapshot is due

The whole sequence runs under one lock: stream mutation and the scheduler's
read-then-write are not safe to interleave.
"""

from __future__ import annotations

import logging
import threading
from collections import Counter
from collections.abc import Callable

from whenever import Instant, TimeDelta

from loginsight.aggregation import aggregate
from loginsight.config import InsightsConfig
from loginsight.errors import EmptyDatasetError, InvalidFrequencyError, StoreUnavailableError
from loginsight.models import AggregationResult, AlertEvent, InsightsSnapshot, LogEventOutcome
from loginsight.scheduler import InsightScheduler, SchedulerState, parse_policy
from loginsight.store import InMemoryKeyValueStore, JsonFileKeyValueStore, KeyValueStore
from loginsight.streams import MetricStream, validate_sample
from loginsight.thresholds import check_thresholds
from loginsight.types import FailurePolicy, InsightType, LogLevel, parse_log_level

logger = logging.getLogger("loginsight.coordinator")

# Level that counts as a "hit" for each rate stream
_RATE_LEVELS: dict[InsightType, LogLevel] = {
    InsightType.ERROR_RATE: LogLevel.ERROR,
    InsightType.WARNING_RATE: LogLevel.WARN,
}


class InsightsCoordinator:
    """Ties metric streams, aggregation, thresholds and scheduling together."""

    def __init__(
        self,
        config: InsightsConfig | None = None,
        store: KeyValueStore | None = None,
        *,
        clock: Callable[[], Instant] = Instant.now,
    ) -> None:
        self.config = config or InsightsConfig()
        self._clock = clock
        self._lock = threading.Lock()
        self._streams: dict[str, MetricStream] = {}
        self._level_counts: Counter[LogLevel] = Counter()
        self._last_alerts: list[AlertEvent] = []

        if store is None:
            store = (
                JsonFileKeyValueStore(self.config.store_path)
                if self.config.store_path
                else InMemoryKeyValueStore()
            )
        self.store = store
        self.state = SchedulerState(store)
        self.scheduler = self._build_scheduler()

    def _build_scheduler(self) -> InsightScheduler | None:
        try:
            policy = parse_policy(
                self.config.insight_frequency_type, self.config.insight_frequency
            )
        except InvalidFrequencyError as e:
            logger.error("Insight scheduling disabled: %s", e)
            return None
        return InsightScheduler(policy, self.store, clock=self._clock)

    @property
    def enabled(self) -> bool:
        return self.config.insights_enabled

    def _tracks(self, insight_type: InsightType) -> bool:
        return insight_type in self.config.insight_types

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def record(self, metric: str, value: float, recorded_at: Instant | None = None) -> None:
        """Append a sample to `metric`, creating the stream on first use.

        Raises:
            InvalidSampleError: `value` is not a finite number.
        """
        with self._lock:
            self._record(metric, value, recorded_at or self._clock())

    def _record(self, metric: str, value: float, recorded_at: Instant) -> None:
        stream = self._streams.get(metric)
        if stream is None:
            validate_sample(metric, value)
            stream = self._streams[metric] = MetricStream(metric)
        stream.record(value, recorded_at)

    def on_log_event(
        self, level: LogLevel | str | None, response_time: float | None = None
    ) -> LogEventOutcome:
        """Feed one classified log event through the engine.

        Raises:
            InvalidSampleError: `response_time` is given but not a finite number.
                Nothing is recorded in that case.
            StoreUnavailableError: Only with scheduler_failure_policy=raise.
        """
        if not self.enabled:
            return LogEventOutcome()

        parsed = parse_log_level(level)
        if parsed is None:
            logger.warning("Invalid log level: %r", level)
            return LogEventOutcome(rejected=True)

        if response_time is not None and self._tracks(InsightType.RESPONSE_TIMES):
            validate_sample(InsightType.RESPONSE_TIMES.value, response_time)

        with self._lock:
            now = self._clock()
            self._apply_retention(now)
            touched = self._ingest(parsed, response_time, now)
            logger.debug("Ingested %s event, touched=%s", parsed, touched)

            results = self._aggregate(touched)
            alerts: list[AlertEvent] = []
            if self.config.insight_alerting:
                alerts = check_thresholds(results, self.config.insight_thresholds)
            self._last_alerts = alerts

            self._guard_store(self._count_log)
            snapshot_ready = bool(self._guard_store(self._snapshot_due))

        return LogEventOutcome(
            tracked_metrics=touched, alerts=alerts, snapshot_ready=snapshot_ready
        )

    def _ingest(self, level: LogLevel, response_time: float | None, now: Instant) -> list[str]:
        touched: list[str] = []

        if self._tracks(InsightType.LOG_LEVELS):
            self._level_counts[level] += 1

        if response_time is not None and self._tracks(InsightType.RESPONSE_TIMES):
            self._record(InsightType.RESPONSE_TIMES.value, response_time, now)
            touched.append(InsightType.RESPONSE_TIMES.value)

        for insight_type, hit_level in _RATE_LEVELS.items():
            if self._tracks(insight_type):
                self._record(insight_type.value, 1.0 if level == hit_level else 0.0, now)
                touched.append(insight_type.value)

        return touched

    def _aggregate(self, metrics: list[str]) -> dict[str, AggregationResult]:
        results: dict[str, AggregationResult] = {}
        for metric in metrics:
            stream = self._streams.get(metric)
            if stream is None:
                continue
            try:
                results[metric] = aggregate(
                    stream,
                    self.config.insight_aggregations,
                    percentile=self.config.percentile,
                    window_size=self.config.rolling_window_size,
                )
            except EmptyDatasetError as e:
                logger.warning("Skipping aggregation for %s: %s", metric, e)
        return results

    def _apply_retention(self, now: Instant) -> None:
        days = self.config.insight_retention_period
        if days <= 0:
            return
        cutoff = now - TimeDelta(hours=24 * days)
        for stream in self._streams.values():
            stream.prune_before(cutoff)

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def _count_log(self) -> int:
        return self.state.increment_total_logs()

    def _snapshot_due(self) -> bool:
        if self.scheduler is None:
            return False
        return self.scheduler.should_generate()

    def _guard_store(self, operation: Callable[[], object]) -> object:
        """Run a store-backed operation under the configured failure policy."""
        try:
            return operation()
        except StoreUnavailableError as e:
            if self.config.scheduler_failure_policy == FailurePolicy.RAISE:
                raise
            logger.warning("Scheduler store unavailable, skipping: %s", e)
            return None

    # ------------------------------------------------------------------
    # Sink-facing views
    # ------------------------------------------------------------------

    def get_insights(self) -> dict[str, AggregationResult]:
        """Aggregations for every non-empty stream, recomputed from current samples."""
        with self._lock:
            return self._current_insights()

    def _current_insights(self) -> dict[str, AggregationResult]:
        return self._aggregate([name for name, s in self._streams.items() if len(s)])

    def snapshot(self) -> InsightsSnapshot:
        """Metrics, totals and level counts taken together, as of one event boundary."""
        with self._lock:
            total_logs = self._guard_store(lambda: self.state.total_logs) or 0
            return InsightsSnapshot(
                generated_at=self._clock().format_iso(),
                total_logs=total_logs,
                level_counts=dict(self._level_counts),
                metrics=self._current_insights(),
                alerts=list(self._last_alerts),
            )

    def stream(self, metric: str) -> MetricStream | None:
        return self._streams.get(metric)

    @property
    def level_counts(self) -> dict[LogLevel, int]:
        return dict(self._level_counts)

    def reset(self) -> None:
        """Clear every in-memory stream and level count. Persisted bookkeeping is kept."""
        with self._lock:
            for stream in self._streams.values():
                stream.reset()
            self._level_counts.clear()
            self._last_alerts = []

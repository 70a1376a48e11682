"""loginsight - metric aggregation and insight scheduling for log pipelines.

Quick Start:
    from loginsight import InsightsCoordinator, load_config

    config = load_config(
        insights_enabled=True,
        insight_frequency_type="afterTotalLogs",
        insight_frequency="1000",
    )
    coordinator = InsightsCoordinator(config)

    outcome = coordinator.on_log_event("error", response_time=120.0)
    for alert in outcome.alerts:
        print(alert.metric, alert.observed_average)
    if outcome.snapshot_ready:
        snapshot = coordinator.snapshot()  # hand to a sink
"""

from .aggregation import aggregate, rolling_window
from .config import AnalyticsServiceConfig, InsightsConfig, load_config
from .coordinator import InsightsCoordinator
from .errors import (
    ConfigFileError,
    EmptyDatasetError,
    InsightsError,
    InvalidFrequencyError,
    InvalidSampleError,
    SinkDeliveryError,
    StoreUnavailableError,
)
from .models import (
    AfterTotalLogs,
    AggregationResult,
    AlertEvent,
    EveryUnit,
    InsightsSnapshot,
    LogEventOutcome,
    Periodically,
    SchedulingPolicy,
    ThresholdConfig,
)
from .scheduler import InsightScheduler, SchedulerState, parse_policy, should_generate
from .sinks import AnalyticsServiceSink, FileInsightSink, build_sinks
from .store import InMemoryKeyValueStore, JsonFileKeyValueStore, KeyValueStore
from .streams import MetricStream
from .thresholds import check_thresholds
from .types import (
    AggregationKind,
    FailurePolicy,
    FrequencyType,
    InsightDestination,
    InsightType,
    LogLevel,
    Period,
    TimeUnit,
)

__version__ = "0.1.0"

__all__ = [
    # Engine
    "InsightsCoordinator",
    "MetricStream",
    "aggregate",
    "rolling_window",
    "check_thresholds",
    "InsightScheduler",
    "SchedulerState",
    "parse_policy",
    "should_generate",
    # Config
    "InsightsConfig",
    "AnalyticsServiceConfig",
    "load_config",
    # Models
    "AggregationResult",
    "AlertEvent",
    "ThresholdConfig",
    "EveryUnit",
    "Periodically",
    "AfterTotalLogs",
    "SchedulingPolicy",
    "LogEventOutcome",
    "InsightsSnapshot",
    # Stores and sinks
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "FileInsightSink",
    "AnalyticsServiceSink",
    "build_sinks",
    # Vocabularies
    "AggregationKind",
    "FailurePolicy",
    "FrequencyType",
    "InsightDestination",
    "InsightType",
    "LogLevel",
    "Period",
    "TimeUnit",
    # Errors
    "InsightsError",
    "InvalidSampleError",
    "EmptyDatasetError",
    "InvalidFrequencyError",
    "StoreUnavailableError",
    "ConfigFileError",
    "SinkDeliveryError",
]

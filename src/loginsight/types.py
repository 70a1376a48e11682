"""Closed vocabularies for log levels, insight types, aggregations and scheduling.

Values are the camelCase names used in configuration files and snapshots.
"""

from enum import StrEnum


class LogLevel(StrEnum):
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class InsightType(StrEnum):
    ERROR_RATE = "errorRate"
    LOG_LEVELS = "logLevels"
    RESPONSE_TIMES = "responseTimes"
    WARNING_RATE = "warningRate"


class AggregationKind(StrEnum):
    AVERAGE = "average"
    SUM = "sum"
    COUNT = "count"
    MIN = "min"
    MAX = "max"
    MEDIAN = "median"
    MODE = "mode"
    STANDARD_DEVIATION = "standardDeviation"
    PERCENTILE = "percentile"
    RANGE = "range"
    ROLLING_WINDOW = "rollingWindow"
    VARIANCE = "variance"
    SUM_OF_SQUARES = "sumOfSquares"


class FrequencyType(StrEnum):
    EVERY_UNIT = "everyUnit"
    PERIODICALLY = "periodically"
    AFTER_TOTAL_LOGS = "afterTotalLogs"


class TimeUnit(StrEnum):
    SECONDS = "seconds"
    MINUTES = "minutes"
    HOURS = "hours"
    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"
    YEARS = "years"


class Period(StrEnum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class InsightDestination(StrEnum):
    ANALYTICS_SERVICE = "analyticsService"
    FILE = "file"
    DATABASE = "database"


class FailurePolicy(StrEnum):
    """What the coordinator does when the scheduler's store is unavailable."""

    SKIP = "skip"  # log and treat the snapshot as not due
    RAISE = "raise"  # propagate StoreUnavailableError to the caller


def parse_log_level(value: object) -> LogLevel | None:
    """Return the matching LogLevel, or None for anything unrecognised."""
    if isinstance(value, LogLevel):
        return value
    if not isinstance(value, str):
        return None
    try:
        return LogLevel(value.lower())
    except ValueError:
        return None


def parse_aggregation_kind(value: object) -> AggregationKind | None:
    if isinstance(value, AggregationKind):
        return value
    try:
        return AggregationKind(value)
    except ValueError:
        return None


def parse_insight_type(value: object) -> InsightType | None:
    if isinstance(value, InsightType):
        return value
    try:
        return InsightType(value)
    except ValueError:
        return None

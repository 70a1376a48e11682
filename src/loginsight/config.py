"""Configuration for the insights engine.

One validated settings object is built once per coordinator. Every field is
resolved with the same precedence rule:

    call-time overrides > config file (JSON) > environment > defaults

Environment variables use the ``LOGINSIGHT_`` prefix and ``__`` for nested
fields, e.g. ``LOGINSIGHT_INSIGHT_THRESHOLDS__ERROR_RATE=0.1``.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Annotated, Any

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_snake
from pydantic_settings import BaseSettings, NoDecode

from loginsight.errors import ConfigFileError
from loginsight.models import ThresholdConfig
from loginsight.types import (
    AggregationKind,
    FailurePolicy,
    FrequencyType,
    InsightDestination,
    InsightType,
    parse_aggregation_kind,
    parse_insight_type,
)

logger = logging.getLogger("loginsight.config")


class AnalyticsServiceConfig(BaseModel):
    enabled: bool = False
    url: str = ""
    api_key: str = ""
    timeout_sec: float = Field(default=10.0, gt=0)


class InsightsConfig(BaseSettings):
    """Main configuration for insight collection and scheduling."""

    insights_enabled: bool = Field(default=False, description="Master switch for insights")
    insight_types: Annotated[list[InsightType], NoDecode] = Field(
        default_factory=lambda: list(InsightType),
        description="Which metric streams to maintain",
    )

    # Scheduling
    insight_frequency_type: FrequencyType = Field(
        default=FrequencyType.EVERY_UNIT, description="Which scheduling policy to use"
    )
    insight_frequency: str = Field(
        default="every 7 days",
        description="'<amount> <unit>', a period name, or a log count depending on the type",
    )
    scheduler_failure_policy: FailurePolicy = Field(
        default=FailurePolicy.SKIP,
        description="Behaviour when the scheduler's key-value store is unavailable",
    )

    # Evaluation
    insight_thresholds: ThresholdConfig = Field(default_factory=ThresholdConfig)
    insight_alerting: bool = Field(default=True, description="Evaluate thresholds per event")
    insight_aggregations: Annotated[list[AggregationKind], NoDecode] = Field(
        default_factory=lambda: [AggregationKind.AVERAGE, AggregationKind.MAX]
    )
    percentile: float = Field(default=90.0, ge=0.0, le=100.0)
    rolling_window_size: int = Field(default=2, ge=1)

    # Retention: 0 keeps samples indefinitely
    insight_retention_period: int = Field(
        default=30, ge=0, le=36_500, description="Retention in days"
    )

    # Destinations (used by callers and the CLI, never by the coordinator itself)
    insight_destinations: list[InsightDestination] = Field(
        default_factory=lambda: [InsightDestination.FILE]
    )
    insight_file: Path = Field(default=Path("insights/insights.json"))
    analytics_service: AnalyticsServiceConfig = Field(default_factory=AnalyticsServiceConfig)

    # Scheduler bookkeeping file; None keeps it in memory
    store_path: Path | None = None

    model_config = {"env_prefix": "LOGINSIGHT_", "env_nested_delimiter": "__"}

    @field_validator("insight_types", mode="before")
    @classmethod
    def _drop_unknown_types(cls, value: Any) -> Any:
        return _drop_unknown(value, parse_insight_type, "insight type")

    @field_validator("insight_aggregations", mode="before")
    @classmethod
    def _drop_unknown_aggregations(cls, value: Any) -> Any:
        return _drop_unknown(value, parse_aggregation_kind, "aggregation kind")


def _drop_unknown(value: Any, parse, label: str) -> Any:
    """Filter unrecognised enum entries out of a list, logging each one."""
    if isinstance(value, str):
        value = _split_list(value)
    if not isinstance(value, list | tuple | set):
        return value
    kept = []
    for item in value:
        parsed = parse(item)
        if parsed is None:
            logger.warning("Ignoring unsupported %s: %r", label, item)
            continue
        kept.append(parsed)
    return kept


def _split_list(raw: str) -> Any:
    """Accept a JSON array or a comma-separated string (environment variables)."""
    if raw.lstrip().startswith("["):
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            msg = f"expected a JSON array or a comma-separated list, got {raw!r}"
            raise ValueError(msg) from e
    return [v.strip() for v in raw.split(",") if v.strip()]


def load_config(config_file: Path | str | None = None, **overrides: Any) -> InsightsConfig:
    """Build an InsightsConfig from defaults, environment, a JSON file and overrides.

    Args:
        config_file: Optional JSON file. camelCase keys are accepted.
        **overrides: Field values that win over every other source.

    Raises:
        ConfigFileError: The file is missing, unreadable or not a JSON object.
    """
    values: dict[str, Any] = {}
    if config_file is not None:
        values = _read_config_file(Path(config_file))
    values = _deep_merge(values, overrides)
    return InsightsConfig(**values)


def _deep_merge(base: dict[str, Any], updates: dict[str, Any]) -> dict[str, Any]:
    """Merge `updates` into a copy of `base`; nested dicts merge key by key."""
    merged = dict(base)
    for key, value in updates.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _read_config_file(path: Path) -> dict[str, Any]:
    try:
        raw = json.loads(path.read_text())
    except FileNotFoundError:
        raise ConfigFileError(str(path), "file not found") from None
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigFileError(str(path), str(e)) from e

    if not isinstance(raw, dict):
        raise ConfigFileError(str(path), "top-level value must be an object")

    logger.debug("Loaded config file %s (%d keys)", path, len(raw))
    return _snake_keys(raw)


def _snake_keys(data: dict[str, Any]) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for key, value in data.items():
        result[to_snake(key)] = _snake_keys(value) if isinstance(value, dict) else value
    return result

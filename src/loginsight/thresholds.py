"""Threshold evaluation - deterministic rate checks over aggregation results.

Thresholds are rates (0.0-1.0) compared against a metric's `average`. A metric
whose average was not computed is treated as 0 and can never alert. Crossing a
threshold produces an AlertEvent; it is never raised.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from loginsight.models import AggregationResult, AlertEvent, ThresholdConfig
from loginsight.types import InsightType

logger = logging.getLogger("loginsight.thresholds")

# Metric name -> ThresholdConfig field holding its limit
RATE_THRESHOLDS: dict[str, str] = {
    InsightType.ERROR_RATE.value: "error_rate",
    InsightType.WARNING_RATE.value: "warning_rate",
}


def check_thresholds(
    results_by_metric: Mapping[str, AggregationResult],
    config: ThresholdConfig,
) -> list[AlertEvent]:
    """Return one AlertEvent per rate metric whose average exceeds its threshold.

    The comparison is strict: an average equal to the threshold does not alert.
    """
    alerts: list[AlertEvent] = []
    for metric, field_name in RATE_THRESHOLDS.items():
        result = results_by_metric.get(metric)
        if result is None:
            continue

        observed = result.average if result.average is not None else 0.0
        threshold = getattr(config, field_name)
        if observed > threshold:
            logger.warning(
                "%s exceeded threshold: %.4f > %.4f", metric, observed, threshold
            )
            alerts.append(
                AlertEvent(metric=metric, observed_average=observed, threshold=threshold)
            )
    return alerts

"""Statistical aggregations over a metric stream.

Every aggregation is a pure function of a snapshot of the stream's values.
Anything that needs ordering (median, percentile) sorts its own copy, so the
arrival order seen by rolling windows is never disturbed.

Numeric conventions:
- standard deviation and variance are population statistics (divide by N)
- percentile uses index = floor(p / 100 * N) on the sorted copy, no interpolation
- mode returns every value tied for the highest frequency
"""

from __future__ import annotations

import logging
import math
import statistics
from collections.abc import Callable, Iterable, Iterator, Sequence
from typing import Any

from loginsight.errors import EmptyDatasetError
from loginsight.models import AggregationResult
from loginsight.streams import MetricStream
from loginsight.types import AggregationKind, parse_aggregation_kind

logger = logging.getLogger("loginsight.aggregation")

DEFAULT_PERCENTILE = 90.0
DEFAULT_WINDOW_SIZE = 2


def _require_data(values: Sequence[float], kind: AggregationKind) -> None:
    if not values:
        raise EmptyDatasetError(kind.value)


def average(values: Sequence[float]) -> float:
    _require_data(values, AggregationKind.AVERAGE)
    return statistics.mean(values)


def total(values: Sequence[float]) -> float:
    return math.fsum(values)


def count(values: Sequence[float]) -> int:
    return len(values)


def minimum(values: Sequence[float]) -> float:
    _require_data(values, AggregationKind.MIN)
    return min(values)


def maximum(values: Sequence[float]) -> float:
    _require_data(values, AggregationKind.MAX)
    return max(values)


def median(values: Sequence[float]) -> float:
    _require_data(values, AggregationKind.MEDIAN)
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[mid - 1] + ordered[mid]) / 2
    return ordered[mid]


def mode(values: Sequence[float]) -> list[float]:
    """All values tied for the highest frequency, in first-occurrence order."""
    _require_data(values, AggregationKind.MODE)
    return statistics.multimode(values)


def standard_deviation(values: Sequence[float]) -> float:
    _require_data(values, AggregationKind.STANDARD_DEVIATION)
    return statistics.pstdev(values)


def variance(values: Sequence[float]) -> float:
    _require_data(values, AggregationKind.VARIANCE)
    return statistics.pvariance(values)


def percentile(values: Sequence[float], p: float = DEFAULT_PERCENTILE) -> float:
    _require_data(values, AggregationKind.PERCENTILE)
    ordered = sorted(values)
    index = math.floor((p / 100) * len(ordered))
    return ordered[min(index, len(ordered) - 1)]


def value_range(values: Sequence[float]) -> float:
    _require_data(values, AggregationKind.RANGE)
    return max(values) - min(values)


def rolling_window(
    values: Sequence[float], size: int = DEFAULT_WINDOW_SIZE
) -> Iterator[list[float]]:
    """Yield every contiguous run of `size` values in arrival order.

    Yields nothing when there are fewer than `size` values.
    """
    if size < 1:
        msg = f"Rolling window size must be positive, got {size}"
        raise ValueError(msg)
    for start in range(len(values) - size + 1):
        yield list(values[start : start + size])


def sum_of_squares(values: Sequence[float]) -> float:
    return math.fsum(v * v for v in values)


# Field on AggregationResult for each kind; every AggregationKind must appear here.
_RESULT_FIELDS: dict[AggregationKind, str] = {
    AggregationKind.AVERAGE: "average",
    AggregationKind.SUM: "sum",
    AggregationKind.COUNT: "count",
    AggregationKind.MIN: "min",
    AggregationKind.MAX: "max",
    AggregationKind.MEDIAN: "median",
    AggregationKind.MODE: "mode",
    AggregationKind.STANDARD_DEVIATION: "standard_deviation",
    AggregationKind.PERCENTILE: "percentile",
    AggregationKind.RANGE: "range",
    AggregationKind.ROLLING_WINDOW: "rolling_window",
    AggregationKind.VARIANCE: "variance",
    AggregationKind.SUM_OF_SQUARES: "sum_of_squares",
}


def _calculators(
    p: float, window_size: int
) -> dict[AggregationKind, Callable[[list[float]], Any]]:
    return {
        AggregationKind.AVERAGE: average,
        AggregationKind.SUM: total,
        AggregationKind.COUNT: count,
        AggregationKind.MIN: minimum,
        AggregationKind.MAX: maximum,
        AggregationKind.MEDIAN: median,
        AggregationKind.MODE: mode,
        AggregationKind.STANDARD_DEVIATION: standard_deviation,
        AggregationKind.PERCENTILE: lambda values: percentile(values, p),
        AggregationKind.RANGE: value_range,
        AggregationKind.ROLLING_WINDOW: lambda values: list(rolling_window(values, window_size)),
        AggregationKind.VARIANCE: variance,
        AggregationKind.SUM_OF_SQUARES: sum_of_squares,
    }


def aggregate(
    stream: MetricStream | Sequence[float],
    kinds: Iterable[AggregationKind | str],
    *,
    percentile: float = DEFAULT_PERCENTILE,
    window_size: int = DEFAULT_WINDOW_SIZE,
) -> AggregationResult:
    """Compute the requested aggregations over a snapshot of `stream`.

    Unsupported kinds are logged and listed in `AggregationResult.skipped`.

    Raises:
        EmptyDatasetError: A requested kind is undefined for an empty stream.
            The stream itself is left untouched.
    """
    values = stream.values() if isinstance(stream, MetricStream) else list(stream)
    calculators = _calculators(percentile, window_size)

    computed: dict[str, Any] = {}
    skipped: list[str] = []
    for raw_kind in kinds:
        kind = parse_aggregation_kind(raw_kind)
        if kind is None:
            logger.warning("Aggregation type not handled: %s", raw_kind)
            skipped.append(str(raw_kind))
            continue
        computed[_RESULT_FIELDS[kind]] = calculators[kind](values)

    return AggregationResult(**computed, skipped=skipped)

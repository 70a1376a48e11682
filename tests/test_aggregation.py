"""Unit tests for the aggregation engine."""

import math

import pytest
from whenever import Instant

from loginsight.aggregation import (
    aggregate,
    median,
    mode,
    percentile,
    rolling_window,
    standard_deviation,
    variance,
)
from loginsight.errors import EmptyDatasetError
from loginsight.streams import MetricStream
from loginsight.types import AggregationKind

ALL_KINDS = list(AggregationKind)


def _stream(*values):
    stream = MetricStream("responseTimes")
    at = Instant.from_timestamp(1_700_000_000)
    for value in values:
        stream.record(value, at)
    return stream


class TestArithmetic:
    def test_average_sum_count(self):
        result = aggregate(
            [1.0, 2.0, 3.0, 4.0],
            [AggregationKind.AVERAGE, AggregationKind.SUM, AggregationKind.COUNT],
        )
        assert result.average == 2.5
        assert result.sum == 10.0
        assert result.count == 4

    def test_min_max_range(self):
        result = aggregate(
            [5.0, -2.0, 9.5],
            [AggregationKind.MIN, AggregationKind.MAX, AggregationKind.RANGE],
        )
        assert result.min == -2.0
        assert result.max == 9.5
        assert result.range == 11.5

    def test_sum_of_squares(self):
        result = aggregate([1.0, 2.0, 3.0], [AggregationKind.SUM_OF_SQUARES])
        assert result.sum_of_squares == 14.0


class TestOrderStatistics:
    def test_median_odd_length(self):
        assert median([3.0, 1.0, 2.0]) == 2.0

    def test_median_even_length_averages_middle_pair(self):
        assert median([4.0, 1.0, 3.0, 2.0]) == 2.5

    def test_percentile_uses_floor_index_without_interpolation(self):
        values = [float(v) for v in range(1, 11)]
        assert percentile(values, 90) == 10.0
        assert percentile(values, 50) == 6.0
        assert percentile(values, 0) == 1.0

    def test_percentile_100_clamps_to_last_element(self):
        assert percentile([1.0, 2.0, 3.0], 100) == 3.0

    def test_percentile_configured_on_aggregate(self):
        values = [float(v) for v in range(1, 11)]
        result = aggregate(values, [AggregationKind.PERCENTILE], percentile=50)
        assert result.percentile == 6.0

    def test_sorting_does_not_disturb_stream_order(self):
        stream = _stream(3.0, 1.0, 2.0)
        aggregate(stream, [AggregationKind.MEDIAN, AggregationKind.PERCENTILE])
        assert stream.values() == [3.0, 1.0, 2.0]


class TestMode:
    def test_returns_every_tied_value(self):
        assert sorted(mode([1.0, 2.0, 2.0, 3.0, 3.0])) == [2.0, 3.0]

    def test_single_mode_is_still_a_list(self):
        assert mode([1.0, 1.0, 2.0]) == [1.0]

    def test_all_distinct_values_are_all_modes(self):
        assert mode([3.0, 1.0, 2.0]) == [3.0, 1.0, 2.0]


class TestDispersion:
    def test_population_statistics(self):
        values = [2.0, 4.0, 4.0, 4.0, 5.0, 5.0, 7.0, 9.0]
        assert variance(values) == 4.0
        assert standard_deviation(values) == 2.0

    def test_single_sample_has_zero_spread(self):
        assert variance([7.0]) == 0.0
        assert standard_deviation([7.0]) == 0.0


class TestRollingWindow:
    def test_contiguous_windows_in_arrival_order(self):
        assert list(rolling_window([1.0, 2.0, 3.0, 4.0], 2)) == [
            [1.0, 2.0],
            [2.0, 3.0],
            [3.0, 4.0],
        ]

    def test_shorter_than_window_is_empty(self):
        assert list(rolling_window([1.0, 2.0], 3)) == []

    def test_is_lazy(self):
        windows = rolling_window([1.0, 2.0, 3.0], 2)
        assert next(windows) == [1.0, 2.0]

    def test_rejects_non_positive_size(self):
        with pytest.raises(ValueError, match="must be positive"):
            list(rolling_window([1.0], 0))

    def test_window_size_on_aggregate(self):
        result = aggregate([1.0, 2.0, 3.0], [AggregationKind.ROLLING_WINDOW], window_size=3)
        assert result.rolling_window == [[1.0, 2.0, 3.0]]


class TestEmptyStream:
    @pytest.mark.parametrize(
        "kind",
        [
            AggregationKind.AVERAGE,
            AggregationKind.MIN,
            AggregationKind.MAX,
            AggregationKind.MEDIAN,
            AggregationKind.MODE,
            AggregationKind.STANDARD_DEVIATION,
            AggregationKind.VARIANCE,
            AggregationKind.PERCENTILE,
            AggregationKind.RANGE,
        ],
    )
    def test_undefined_kinds_raise(self, kind):
        with pytest.raises(EmptyDatasetError) as exc:
            aggregate([], [kind])
        assert exc.value.kind == kind.value

    def test_totals_are_zero(self):
        result = aggregate(
            [],
            [
                AggregationKind.COUNT,
                AggregationKind.SUM,
                AggregationKind.SUM_OF_SQUARES,
                AggregationKind.ROLLING_WINDOW,
            ],
        )
        assert result.count == 0
        assert result.sum == 0.0
        assert result.sum_of_squares == 0.0
        assert result.rolling_window == []

    def test_failed_aggregation_leaves_stream_untouched(self):
        stream = MetricStream("errorRate")
        with pytest.raises(EmptyDatasetError):
            aggregate(stream, [AggregationKind.AVERAGE])
        assert len(stream) == 0


class TestAggregateDispatch:
    def test_only_requested_kinds_are_populated(self):
        result = aggregate([1.0, 2.0], [AggregationKind.MAX])
        assert result.max == 2.0
        assert result.average is None
        assert result.as_dict() == {"max": 2.0}

    def test_unknown_kind_is_skipped_and_reported(self, caplog):
        with caplog.at_level("WARNING", logger="loginsight.aggregation"):
            result = aggregate([1.0, 2.0], ["average", "geometricMean"])
        assert result.average == 1.5
        assert result.skipped == ["geometricMean"]
        assert "geometricMean" in caplog.text

    def test_string_kinds_are_accepted(self):
        result = aggregate([1.0, 3.0], ["standardDeviation", "sumOfSquares"])
        assert result.standard_deviation == 1.0
        assert result.sum_of_squares == 10.0

    def test_as_dict_uses_camel_case_names(self):
        result = aggregate([1.0, 2.0, 3.0], ALL_KINDS)
        keys = set(result.as_dict())
        assert keys == {kind.value for kind in AggregationKind}
        assert "skipped" not in keys

    def test_every_kind_on_realistic_response_times(self):
        stream = _stream(120.0, 80.0, 200.0, 80.0, 95.0)
        result = aggregate(stream, ALL_KINDS)
        assert result.count == 5
        assert result.mode == [80.0]
        assert result.median == 95.0
        assert math.isclose(result.average, 115.0)
        assert result.percentile == 200.0
        assert len(result.rolling_window) == 4

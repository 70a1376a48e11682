"""Unit tests for rate threshold evaluation."""

import pytest
from pydantic import ValidationError

from loginsight.models import AggregationResult, ThresholdConfig
from loginsight.thresholds import check_thresholds


class TestErrorRateBoundary:
    def test_above_threshold_alerts_once(self):
        alerts = check_thresholds(
            {"errorRate": AggregationResult(average=0.10)},
            ThresholdConfig(error_rate=0.05),
        )
        assert len(alerts) == 1
        assert alerts[0].metric == "errorRate"
        assert alerts[0].observed_average == 0.10
        assert alerts[0].threshold == 0.05

    def test_equal_to_threshold_does_not_alert(self):
        alerts = check_thresholds(
            {"errorRate": AggregationResult(average=0.05)},
            ThresholdConfig(error_rate=0.05),
        )
        assert alerts == []


class TestMetricSelection:
    def test_warning_rate_uses_its_own_threshold(self):
        alerts = check_thresholds(
            {
                "errorRate": AggregationResult(average=0.2),
                "warningRate": AggregationResult(average=0.2),
            },
            ThresholdConfig(error_rate=0.5, warning_rate=0.1),
        )
        assert [a.metric for a in alerts] == ["warningRate"]

    def test_missing_average_is_treated_as_zero(self):
        alerts = check_thresholds(
            {"errorRate": AggregationResult(max=1.0)},
            ThresholdConfig(error_rate=0.0),
        )
        assert alerts == []

    def test_non_rate_metrics_are_ignored(self):
        alerts = check_thresholds(
            {"responseTimes": AggregationResult(average=500.0)},
            ThresholdConfig(),
        )
        assert alerts == []

    def test_absent_metrics_are_ignored(self):
        assert check_thresholds({}, ThresholdConfig(error_rate=0.0)) == []

    def test_alert_is_logged(self, caplog):
        with caplog.at_level("WARNING", logger="loginsight.thresholds"):
            check_thresholds(
                {"errorRate": AggregationResult(average=0.9)}, ThresholdConfig()
            )
        assert "errorRate exceeded threshold" in caplog.text


class TestThresholdConfig:
    def test_defaults(self):
        config = ThresholdConfig()
        assert config.error_rate == 0.05
        assert config.warning_rate == 0.05

    @pytest.mark.parametrize("value", [-0.1, 1.5])
    def test_rates_bounded_to_unit_interval(self, value):
        with pytest.raises(ValidationError):
            ThresholdConfig(error_rate=value)

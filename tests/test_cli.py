"""Tests for the loginsight command line."""

import json

import pytest
from typer.testing import CliRunner

from loginsight.cli import app

runner = CliRunner()


@pytest.fixture
def log_file(tmp_path):
    path = tmp_path / "app.log"
    lines = [
        {"level": "info", "response_time": 100},
        {"level": "error", "responseTime": 300},
    ]
    path.write_text("\n".join(json.dumps(line) for line in lines) + "\n")
    return path


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "loginsight.json"
    path.write_text(
        json.dumps(
            {
                "insightFrequencyType": "afterTotalLogs",
                "insightFrequency": "2",
                "insightAlerting": False,
                "insightRetentionPeriod": 0,
                "insightFile": str(tmp_path / "out" / "insights.json"),
            }
        )
    )
    return path


class TestReplay:
    def test_json_output_and_snapshot_delivery(self, tmp_path, log_file, config_file):
        result = runner.invoke(
            app, ["replay", str(log_file), "--config", str(config_file), "--format", "json"]
        )

        assert result.exit_code == 0, result.output
        snapshot = json.loads(result.stdout)
        assert snapshot["total_logs"] == 2
        assert snapshot["level_counts"] == {"info": 1, "error": 1}
        assert snapshot["metrics"]["responseTimes"]["average"] == 200.0

        delivered = json.loads((tmp_path / "out" / "insights.json").read_text())
        assert delivered["total_logs"] == 2

    def test_text_output_reports_skipped_lines(self, tmp_path, log_file, config_file):
        with log_file.open("a") as fh:
            fh.write('{"level": "fatal"}\n')
            fh.write("not json\n")
            fh.write("\n")

        result = runner.invoke(app, ["replay", str(log_file), "-c", str(config_file)])

        assert result.exit_code == 0, result.output
        assert "unknown level 'fatal'" in result.output
        assert "line 4: skipped" in result.output
        assert "Events: 2" in result.output
        assert "Skipped: 2" in result.output
        assert "Snapshots: 1" in result.output

    def test_store_file_is_created(self, tmp_path, log_file, config_file):
        store = tmp_path / "state" / "scheduler.json"
        result = runner.invoke(
            app, ["replay", str(log_file), "-c", str(config_file), "--store", str(store)]
        )
        assert result.exit_code == 0, result.output
        assert json.loads(store.read_text())["totalLogs"] == "2"

    def test_missing_log_file(self, tmp_path, config_file):
        result = runner.invoke(app, ["replay", str(tmp_path / "nope.log"), "-c", str(config_file)])
        assert result.exit_code == 1
        assert "Log file not found" in result.output

    def test_bad_config_file(self, tmp_path, log_file):
        bad = tmp_path / "bad.json"
        bad.write_text("[]")
        result = runner.invoke(app, ["replay", str(log_file), "-c", str(bad)])
        assert result.exit_code == 1
        assert "Cannot load config file" in result.output


class TestShowConfig:
    def test_prints_resolved_config(self, config_file, monkeypatch):
        monkeypatch.setenv("LOGINSIGHT_PERCENTILE", "95")
        result = runner.invoke(app, ["show-config", "--config", str(config_file)])

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["insight_frequency_type"] == "afterTotalLogs"
        assert data["insight_frequency"] == "2"
        assert data["percentile"] == 95.0

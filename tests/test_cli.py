"""Tests for the command-line interface."""

from datetime import datetime, timedelta, timezone

import pandas as pd
import pytest
from click.testing import CliRunner

from health_analytics.cli import cli
from health_analytics.loaders import load_labels
from health_analytics.models import ActivityIntent, LabelSource


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def workouts_csv(tmp_path):
    today = datetime.now().replace(hour=7, minute=0, second=0, microsecond=0)
    rows = [
        {"id": f"r{i}", "start_date": today - timedelta(days=2 * i), "duration": 1800,
         "activity_type": "Run", "average_heart_rate": 150}
        for i in range(12)
    ]
    rows.append({"id": "s1", "start_date": today - timedelta(days=1), "duration": 2700,
                 "activity_type": "WeightTraining", "average_heart_rate": None})
    path = tmp_path / "workouts.csv"
    pd.DataFrame(rows).to_csv(path, index=False)
    return path


class TestCli:
    """Test CLI commands end to end."""

    def test_rules(self, runner):
        result = runner.invoke(cli, ["rules"])
        assert result.exit_code == 0
        assert "Race/PR Attempt" in result.output

    def test_power(self, runner):
        result = runner.invoke(cli, ["power", "--effect-size", "0.5", "--sample-size", "64"])
        assert result.exit_code == 0
        assert "Power at n=64" in result.output
        assert "80.7%" in result.output

    def test_classify_writes_labels(self, runner, workouts_csv, tmp_path):
        output = tmp_path / "labels.csv"

        result = runner.invoke(cli, ["classify", "--workouts", str(workouts_csv), "--output", str(output)])

        assert result.exit_code == 0
        store = load_labels(output)
        assert len(store) == 13
        assert store.get("r0").intent == ActivityIntent.TEMPO
        assert store.get("s1").intent == ActivityIntent.STRENGTH
        assert store.get("s1").source == LabelSource.HEURISTIC

    def test_classify_skips_labeled(self, runner, workouts_csv, tmp_path):
        labels = tmp_path / "labels.csv"
        labels.write_text("workout_id,intent\nr0,race\n")

        result = runner.invoke(cli, [
            "classify", "--workouts", str(workouts_csv), "--labels", str(labels), "--output", str(labels),
        ])

        assert result.exit_code == 0
        store = load_labels(labels)
        assert store.get("r0").intent == ActivityIntent.RACE
        assert store.get("r0").source == LabelSource.MANUAL
        assert len(store) == 13

    def test_train_needs_more_labels(self, runner, workouts_csv, tmp_path):
        labels = tmp_path / "labels.csv"
        labels.write_text("workout_id,intent\nr0,race\nr1,tempo\n")

        result = runner.invoke(cli, ["train", "--workouts", str(workouts_csv), "--labels", str(labels)])

        assert result.exit_code == 0
        assert "Need at least 10 labeled examples (have 2)" in result.output

    def test_readiness(self, runner, workouts_csv, tmp_path):
        labels = tmp_path / "labels.csv"
        labels.write_text("workout_id,intent\n" + "".join(f"r{i},tempo\n" for i in range(12)))

        result = runner.invoke(cli, [
            "readiness", "--workouts", str(workouts_csv), "--labels", str(labels),
            "--iterations", "200", "--seed", "1",
        ])

        assert result.exit_code == 0
        assert "ACWR" in result.output
        assert "Readiness by Intent" in result.output

    def test_readiness_with_utc_timestamps(self, runner, tmp_path):
        now = datetime.now(timezone.utc).replace(microsecond=0)
        rows = [
            {"id": f"r{i}", "start_date": (now - timedelta(days=2 * i, hours=1)).strftime("%Y-%m-%dT%H:%M:%SZ"),
             "duration": 1800, "activity_type": "Run", "average_heart_rate": 150}
            for i in range(12)
        ]
        workouts = tmp_path / "workouts.csv"
        pd.DataFrame(rows).to_csv(workouts, index=False)
        labels = tmp_path / "labels.csv"
        labels.write_text("workout_id,intent\n" + "".join(f"r{i},tempo\n" for i in range(12)))

        result = runner.invoke(cli, [
            "readiness", "--workouts", str(workouts), "--labels", str(labels),
            "--iterations", "200", "--seed", "1",
        ])

        assert result.exit_code == 0
        assert "ACWR" in result.output

    def test_temporal_insufficient(self, runner, workouts_csv):
        result = runner.invoke(cli, ["temporal", "--workouts", str(workouts_csv), "--sport", "ride"])
        assert result.exit_code == 0
        assert "Not enough workouts" in result.output

"""Shared fixtures for the analysis tests."""

from datetime import datetime, timedelta

import pytest

from health_analytics.models import ActivityType, HealthMetricSample, WorkoutRecord

NOW = datetime(2024, 7, 15, 12, 0, 0)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_workout():
    """Factory for workouts; duration in minutes, start given as days before NOW."""
    counter = {"n": 0}

    def _make(
        minutes=45.0,
        activity_type=ActivityType.RUN,
        heart_rate=None,
        power=None,
        distance=None,
        days_ago=0.0,
        start_date=None,
        workout_id=None,
    ):
        counter["n"] += 1
        return WorkoutRecord(
            id=workout_id or f"w{counter['n']}",
            start_date=start_date or NOW - timedelta(days=days_ago),
            duration=minutes * 60.0,
            activity_type=activity_type,
            distance=distance,
            average_heart_rate=heart_rate,
            average_power=power,
            source="test",
        )

    return _make


@pytest.fixture
def make_series():
    """Factory for a daily metric series ending at NOW."""

    def _make(values, metric="Sleep"):
        count = len(values)
        return [
            HealthMetricSample(date=NOW - timedelta(days=count - 1 - i), value=v, metric=metric)
            for i, v in enumerate(values)
        ]

    return _make

"""Tests for statistically validated sleep patterns."""

from datetime import datetime, timedelta

import pytest

from health_analytics.analysis.patterns import PerformancePatternValidator
from health_analytics.analysis.statistics import EffectSize
from health_analytics.models import ActivityType, ConfidenceLevel, HealthMetricSample

START = datetime(2024, 5, 1, 7, 0, 0)


def _history(make_workout, days, good_power=250.0, poor_power=200.0):
    """Alternate 8h and 6h nights, each followed by a ride."""
    workouts, sleep = [], []
    for i in range(days):
        night = START + timedelta(days=i)
        good = i % 2 == 0
        sleep.append(HealthMetricSample(night.replace(hour=0), 8.0 if good else 6.0, "Sleep"))
        workouts.append(make_workout(
            activity_type=ActivityType.RIDE,
            power=(good_power if good else poor_power) + 2 * ((i // 2) % 2),
            start_date=night + timedelta(days=1),
        ))
    return workouts, sleep


class TestSleepGroups:
    """Test splitting workouts by the previous night's sleep."""

    def test_split(self, make_workout):
        workouts, sleep = _history(make_workout, 8)

        good, poor = PerformancePatternValidator.sleep_groups(workouts, sleep, 7.0)

        assert len(good) == 4
        assert len(poor) == 4
        assert min(good) > max(poor)

    def test_small_group(self, make_workout):
        workouts, sleep = _history(make_workout, 5)
        # Two 6h nights only
        assert PerformancePatternValidator.sleep_groups(workouts, sleep, 7.0) is None

    def test_first_sample_per_day_wins(self, make_workout):
        workouts, sleep = _history(make_workout, 8)
        duplicates = [HealthMetricSample(s.date + timedelta(hours=9), 12.0, "Sleep") for s in sleep]

        good, poor = PerformancePatternValidator.sleep_groups(workouts, sleep + duplicates, 7.0)

        assert len(good) == 4
        assert len(poor) == 4

    def test_workouts_without_sleep_skipped(self, make_workout):
        workouts, sleep = _history(make_workout, 8)
        extra = make_workout(activity_type=ActivityType.RIDE, power=400, start_date=datetime(2023, 1, 1))

        good, poor = PerformancePatternValidator.sleep_groups(workouts + [extra], sleep, 7.0)

        assert 400 not in good + poor


class TestValidateSleepPattern:
    """Test significance and sample-size gating."""

    def setup_method(self):
        self.validator = PerformancePatternValidator(iterations=1000)

    def test_clear_pattern(self, make_workout):
        workouts, sleep = _history(make_workout, 24)

        pattern = self.validator.validate_sleep_pattern(workouts, sleep, 7.0, rng=4)

        assert pattern.trigger == "Sleep >= 7h"
        assert pattern.sample_size == 24
        assert pattern.is_significant
        assert pattern.p_value < 0.01
        assert pattern.effect_size > 0.8
        assert pattern.effect_size_interpretation == EffectSize.LARGE
        assert pattern.confidence == ConfidenceLevel.MEDIUM
        assert pattern.percent_difference == pytest.approx((251.0 - 201.0) / 201.0 * 100)
        assert pattern.readable_description.startswith("Sleep >= 7h: +24.9% performance (significant")

    def test_requires_twenty_observations(self, make_workout):
        workouts, sleep = _history(make_workout, 18)
        assert self.validator.validate_sleep_pattern(workouts, sleep, 7.0, rng=4) is None

    def test_no_difference(self, make_workout):
        workouts, sleep = _history(make_workout, 24, good_power=200.0, poor_power=200.0)

        pattern = self.validator.validate_sleep_pattern(workouts, sleep, 7.0, rng=4)

        assert not pattern.is_significant
        assert pattern.effect_size_interpretation == EffectSize.NEGLIGIBLE

    def test_discover_sorts_significant_first(self, make_workout):
        workouts, sleep = _history(make_workout, 24)

        patterns = self.validator.discover_validated_patterns(workouts, sleep, thresholds=(7.0, 9.0), rng=4)

        # Nobody slept 9h, so only one candidate survives
        assert [p.threshold for p in patterns] == [7.0]

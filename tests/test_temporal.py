"""Tests for temporal performance modeling."""

from datetime import datetime, timedelta

import pytest

from health_analytics.analysis.temporal import (
    LongTermTrend,
    LongitudinalAnalysis,
    RecencyAnalysis,
    RecencyTrend,
    Season,
    SeasonalAnalysis,
    SeasonMetrics,
    TemporalModelingService,
    workout_performance,
)
from health_analytics.models import ActivityType, ConfidenceLevel

MILE = 1609.34


def _rides(make_workout, start, count, step_days, power):
    """Evenly spaced rides; power may be a constant or a function of the index."""
    return [
        make_workout(
            minutes=60,
            activity_type=ActivityType.RIDE,
            power=power(i) if callable(power) else power,
            start_date=start + timedelta(days=i * step_days),
        )
        for i in range(count)
    ]


class TestPerformanceMetric:
    """Test the per-workout performance metric."""

    def test_power_preferred(self, make_workout):
        workout = make_workout(activity_type=ActivityType.RIDE, power=210, distance=30000)
        assert workout_performance(workout) == 210.0

    def test_speed_fallback(self, make_workout):
        workout = make_workout(minutes=60, activity_type=ActivityType.RIDE, distance=20 * MILE)
        assert workout_performance(workout) == pytest.approx(20.0, rel=1e-4)

    def test_nothing_measurable(self, make_workout):
        assert workout_performance(make_workout(power=0)) is None


class TestAnalyze:
    """Test the full temporal analysis."""

    def setup_method(self):
        self.service = TemporalModelingService()

    def test_empty_history(self, now):
        assert self.service.analyze([], ActivityType.RIDE, now) is None

    def test_too_few_workouts(self, make_workout, now):
        rides = _rides(make_workout, now - timedelta(days=50), 9, 5, 200)
        runs = [make_workout(activity_type=ActivityType.RUN, power=300, days_ago=i) for i in range(5)]

        assert self.service.analyze(rides + runs, ActivityType.RIDE, now) is None

    def test_unsupported_activity(self, make_workout, now):
        walks = [
            make_workout(minutes=50, activity_type=ActivityType.WALK, distance=4000, days_ago=3 * i)
            for i in range(12)
        ]

        assert self.service.analyze(walks, ActivityType.WALK, now) is None
        assert self.service.analyze(walks, ActivityType.STRENGTH, now) is None

    def test_long_term_doubling(self, make_workout, now):
        """Test power doubling over 18 months reads as strong long-term growth."""
        start = datetime(2023, 1, 5)
        rides = _rides(make_workout, start, 56, 10, lambda i: 100 if i < 28 else 200)
        runs = [make_workout(activity_type=ActivityType.RUN, power=50, days_ago=i) for i in range(5)]

        analysis = self.service.analyze(rides + runs, ActivityType.RIDE, now)

        assert analysis.activity_type == ActivityType.RIDE

        longitudinal = analysis.longitudinal
        assert longitudinal.metric_type == "Power (W)"
        assert longitudinal.overall_trend == LongTermTrend.STRENGTHENING
        assert longitudinal.percent_change == pytest.approx(100.0)
        # Spans one whole calendar year
        assert longitudinal.growth_rate == pytest.approx(100.0)
        assert longitudinal.timespan == "2023-01-05 - 2024-07-08"
        assert longitudinal.description == "Long-term growth: +100.0%"
        assert len(longitudinal.peak_periods) == 3
        assert all(p.average_performance == pytest.approx(200.0) for p in longitudinal.peak_periods)

        assert analysis.recency.trend == RecencyTrend.STABLE
        assert analysis.recency.percent_change == pytest.approx(0.0)
        assert analysis.recency.training_load == 3.0
        assert analysis.recency.consistency == pytest.approx(1.0)

        seasonal = analysis.seasonal
        assert seasonal.current_season_performance.season == Season.SUMMER
        assert seasonal.current_season_performance.sample_size == 13
        assert seasonal.year_over_year_change == pytest.approx(100.0)

        synthesis = analysis.synthesis
        assert synthesis.headline == "Sustaining Long-term Progress"
        assert synthesis.recommendation == "Gradually increase load to progress"
        assert synthesis.insights[0] == "Recent form is stable"
        assert "Year-over-year: +100.0%" in synthesis.insights
        assert synthesis.insights[-1] == "Long-term growth: +100.0%"
        assert synthesis.confidence == ConfidenceLevel.MEDIUM


class TestRecency:
    """Test the 30-day recency comparison."""

    def setup_method(self):
        self.service = TemporalModelingService()

    @pytest.mark.parametrize("recent_power,trend,description", [
        (220, RecencyTrend.IMPROVING, "Improving +10.0%"),
        (180, RecencyTrend.DECLINING, "Declining -10.0%"),
        (205, RecencyTrend.STABLE, "Stable"),
    ])
    def test_trend(self, make_workout, now, recent_power, trend, description):
        previous = _rides(make_workout, now - timedelta(days=55), 5, 5, 200)
        recent = _rides(make_workout, now - timedelta(days=25), 5, 5, recent_power)

        recency = self.service.analyze_recency(previous + recent, now)

        assert recency.trend == trend
        assert recency.description == description
        assert recency.average_power == pytest.approx(recent_power)
        assert recency.training_load == 5.0

    def test_no_previous_window(self, make_workout, now):
        recent = _rides(make_workout, now - timedelta(days=20), 4, 5, 200)

        recency = self.service.analyze_recency(recent, now)

        assert recency.trend == RecencyTrend.STABLE
        assert recency.percent_change is None

    def test_volatility(self, make_workout, now):
        recent = _rides(make_workout, now - timedelta(days=20), 4, 5, lambda i: (100, 200, 100, 200)[i])

        recency = self.service.analyze_recency(recent, now)

        # sample std of [100, 200, 100, 200] is 57.735, mean 150
        assert recency.volatility == pytest.approx(57.735 / 150, rel=1e-3)
        assert recency.consistency == pytest.approx(1 - 57.735 / 150, rel=1e-3)


class TestSeasonal:
    """Test seasonal grouping and year-over-year change."""

    def setup_method(self):
        self.service = TemporalModelingService()

    def test_season_boundaries(self):
        assert Season.from_date(datetime(2024, 12, 1)) == Season.WINTER
        assert Season.from_date(datetime(2024, 2, 29)) == Season.WINTER
        assert Season.from_date(datetime(2024, 3, 1)) == Season.SPRING
        assert Season.from_date(datetime(2024, 8, 31)) == Season.SUMMER
        assert Season.from_date(datetime(2024, 11, 30)) == Season.FALL
        assert Season.season_year(datetime(2023, 12, 15)) == 2024

    def test_best_and_current_season(self, make_workout, now):
        winter = _rides(make_workout, datetime(2024, 1, 5), 5, 3, 150)
        summer = _rides(make_workout, datetime(2024, 6, 20), 5, 3, 250)

        seasonal = self.service.analyze_seasonal(winter + summer, now)

        assert seasonal.best_season == Season.SUMMER
        assert set(seasonal.seasonal_pattern) == {Season.WINTER, Season.SUMMER}
        assert seasonal.seasonal_pattern[Season.WINTER].average_performance == pytest.approx(150.0)
        assert seasonal.current_season_performance.average_performance == pytest.approx(250.0)
        assert seasonal.current_season_performance.confidence == ConfidenceLevel.LOW
        # No summer a year earlier
        assert seasonal.year_over_year_change is None

    def test_current_season_without_data(self, make_workout):
        rides = _rides(make_workout, datetime(2024, 6, 1), 10, 3, 200)

        seasonal = self.service.analyze_seasonal(rides, datetime(2024, 10, 15))

        current = seasonal.current_season_performance
        assert current.season == Season.FALL
        assert current.sample_size == 0
        assert current.average_performance == 0.0
        assert current.confidence == ConfidenceLevel.INSUFFICIENT

    def test_year_over_year_compares_season_instances(self, make_workout):
        """Test December rides count towards the following winter."""
        last_winter = _rides(make_workout, datetime(2023, 1, 2), 5, 5, 200)
        this_winter = _rides(make_workout, datetime(2023, 12, 2), 5, 5, 220)

        seasonal = self.service.analyze_seasonal(last_winter + this_winter, datetime(2024, 1, 15))

        assert seasonal.year_over_year_change == pytest.approx(10.0)
        assert seasonal.current_season_performance.sample_size == 10


class TestLongitudinal:
    """Test multi-year growth."""

    def setup_method(self):
        self.service = TemporalModelingService()

    def test_decline(self, make_workout):
        rides = _rides(make_workout, datetime(2021, 3, 1), 30, 30, lambda i: 200 if i < 15 else 100)

        longitudinal = self.service.analyze_longitudinal(rides)

        # 2021-03-01 to 2023-07-19 spans two whole years
        assert longitudinal.overall_trend == LongTermTrend.WEAKENING
        assert longitudinal.percent_change == pytest.approx(-50.0)
        assert longitudinal.growth_rate == pytest.approx(-25.0)
        assert longitudinal.description == "Long-term decline: -50.0%"

    def test_change_is_capped(self, make_workout):
        rides = _rides(make_workout, datetime(2022, 1, 1), 20, 30, lambda i: 100 if i < 10 else 400)

        longitudinal = self.service.analyze_longitudinal(rides)

        assert longitudinal.percent_change == pytest.approx(200.0)

    def test_under_one_year_is_plateaued(self, make_workout):
        rides = _rides(make_workout, datetime(2024, 1, 1), 20, 10, lambda i: 100 if i < 10 else 200)

        longitudinal = self.service.analyze_longitudinal(rides)

        assert longitudinal.overall_trend == LongTermTrend.PLATEAUED
        assert longitudinal.percent_change is None
        assert longitudinal.growth_rate == 0.0
        assert longitudinal.description == "Maintaining baseline"

    def test_speed_mode_without_power(self, make_workout):
        rides = [
            make_workout(
                minutes=60,
                activity_type=ActivityType.RIDE,
                distance=(15 if i < 10 else 18) * MILE,
                start_date=datetime(2022, 1, 1) + timedelta(days=40 * i),
            )
            for i in range(20)
        ]

        longitudinal = self.service.analyze_longitudinal(rides)

        assert longitudinal.metric_type == "Speed (mph)"
        assert longitudinal.percent_change == pytest.approx(20.0, rel=1e-3)
        assert longitudinal.overall_trend == LongTermTrend.STRENGTHENING

    def test_hard_efforts_only(self, make_workout):
        rides = [
            make_workout(
                activity_type=ActivityType.RIDE,
                power=200,
                heart_rate=130 + i,
                start_date=datetime(2024, 1, 1) + timedelta(days=i),
            )
            for i in range(10)
        ]

        relevant, metric_type = TemporalModelingService._relevant_workouts(rides)

        assert metric_type == "Power (W)"
        assert sorted(w.average_heart_rate for w in relevant) == [136, 137, 138, 139]

    def test_empty(self):
        longitudinal = self.service.analyze_longitudinal([])
        assert longitudinal.timespan == "Insufficient data"
        assert longitudinal.peak_periods == []

    def test_peak_windows_need_five_workouts(self, make_workout):
        sparse = _rides(make_workout, datetime(2024, 1, 1), 4, 60, 200)
        assert TemporalModelingService.find_peak_periods(sparse) == []


class TestSynthesis:
    """Test headline and recommendation selection."""

    def _recency(self, trend, change=None):
        return RecencyAnalysis(None, None, 0.0, 1.0, trend, change, 0.0)

    def _seasonal(self, best=Season.SUMMER):
        current = SeasonMetrics(Season.SUMMER, 200.0, 12, ConfidenceLevel.MEDIUM)
        return SeasonalAnalysis(current, best, {Season.SUMMER: current}, None)

    def _longitudinal(self, trend):
        return LongitudinalAnalysis(trend, 15.0, [], 5.0, "", "Power (W)")

    @pytest.mark.parametrize("recency,long_term,headline,recommendation", [
        (RecencyTrend.IMPROVING, LongTermTrend.STRENGTHENING, "Building on Strong Foundation",
         "Maintain current training approach"),
        (RecencyTrend.IMPROVING, LongTermTrend.PLATEAUED, "Current Form is Rising",
         "Maintain current training approach"),
        (RecencyTrend.DECLINING, LongTermTrend.STRENGTHENING, "Recent Dip in Long-term Growth",
         "Consider a recovery week to restore form"),
        (RecencyTrend.DECLINING, LongTermTrend.WEAKENING, "Managing Current Decline",
         "Consider a recovery week to restore form"),
        (RecencyTrend.STABLE, LongTermTrend.STRENGTHENING, "Sustaining Long-term Progress",
         "Gradually increase load to progress"),
        (RecencyTrend.STABLE, LongTermTrend.PLATEAUED, "Maintaining Current Form",
         "Gradually increase load to progress"),
    ])
    def test_headlines(self, recency, long_term, headline, recommendation):
        change = {RecencyTrend.IMPROVING: 5.0, RecencyTrend.DECLINING: -5.0}.get(recency)

        synthesis = TemporalModelingService.synthesize(
            self._recency(recency, change), self._seasonal(), self._longitudinal(long_term)
        )

        assert synthesis.headline == headline
        assert synthesis.recommendation == recommendation
        assert synthesis.confidence == ConfidenceLevel.MEDIUM

    def test_best_season_insight(self):
        synthesis = TemporalModelingService.synthesize(
            self._recency(RecencyTrend.IMPROVING, 4.2),
            self._seasonal(best=Season.FALL),
            self._longitudinal(LongTermTrend.PLATEAUED),
        )

        assert synthesis.insights[0] == "Recent form is improving (+4.2% over last 30 days)"
        assert "Historically strongest in Fall" in synthesis.insights

"""
Temporal performance modeling.

Three independent views of a single performance metric (power when available,
otherwise speed in mph):
1. Recency: last 30 days against the preceding 30
2. Seasonal: per calendar season averages and year-over-year change
3. Longitudinal: early vs late period growth and rolling peak windows
These are combined into a headline, insights and a recommendation.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from ..models import ActivityType, ConfidenceLevel, WorkoutRecord

logger = logging.getLogger(__name__)

MIN_WORKOUTS = 10
RECENCY_WINDOW_DAYS = 30
PEAK_WINDOW_DAYS = 90
PEAK_STEP_DAYS = 30
PEAK_MIN_WORKOUTS = 5
HR_PERCENTILE = 0.60

SUPPORTED_ACTIVITIES = (ActivityType.RUN, ActivityType.RIDE, ActivityType.SWIM)


class RecencyTrend(Enum):
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


class Season(Enum):
    WINTER = "Winter"
    SPRING = "Spring"
    SUMMER = "Summer"
    FALL = "Fall"

    @classmethod
    def from_date(cls, date: datetime) -> "Season":
        month = date.month
        if month in (12, 1, 2):
            return cls.WINTER
        elif month in (3, 4, 5):
            return cls.SPRING
        elif month in (6, 7, 8):
            return cls.SUMMER
        return cls.FALL

    @staticmethod
    def season_year(date: datetime) -> int:
        """Year a season instance belongs to; December counts towards next winter."""
        return date.year + 1 if date.month == 12 else date.year


class LongTermTrend(Enum):
    STRENGTHENING = "strengthening"
    PLATEAUED = "plateaued"
    WEAKENING = "weakening"


@dataclass(frozen=True)
class RecencyAnalysis:
    average_power: Optional[float]
    average_speed: Optional[float]
    training_load: float  # workouts in the window
    consistency: float
    trend: RecencyTrend
    percent_change: Optional[float]
    volatility: float
    time_window: str = "Last 30 days"

    @property
    def description(self) -> str:
        if self.trend == RecencyTrend.IMPROVING:
            return f"Improving {self.percent_change:+.1f}%"
        if self.trend == RecencyTrend.DECLINING:
            return f"Declining {self.percent_change:.1f}%"
        return "Stable"


@dataclass(frozen=True)
class SeasonMetrics:
    season: Season
    average_performance: float
    sample_size: int
    confidence: ConfidenceLevel


@dataclass(frozen=True)
class SeasonalAnalysis:
    current_season_performance: SeasonMetrics
    best_season: Season
    seasonal_pattern: Dict[Season, SeasonMetrics]
    year_over_year_change: Optional[float]


@dataclass(frozen=True)
class PeakPeriod:
    start_date: datetime
    end_date: datetime
    average_performance: float
    reason: str = "High performance period"


@dataclass(frozen=True)
class LongitudinalAnalysis:
    overall_trend: LongTermTrend
    percent_change: Optional[float]
    peak_periods: List[PeakPeriod]
    growth_rate: float  # % per year
    timespan: str
    metric_type: str

    @property
    def description(self) -> str:
        if self.overall_trend == LongTermTrend.STRENGTHENING:
            return f"Long-term growth: {self.percent_change:+.1f}%"
        if self.overall_trend == LongTermTrend.WEAKENING:
            return f"Long-term decline: {self.percent_change:.1f}%"
        return "Maintaining baseline"


@dataclass(frozen=True)
class TemporalSynthesis:
    headline: str
    insights: List[str]
    recommendation: str
    confidence: ConfidenceLevel


@dataclass(frozen=True)
class TemporalAnalysis:
    recency: RecencyAnalysis
    seasonal: SeasonalAnalysis
    longitudinal: LongitudinalAnalysis
    synthesis: TemporalSynthesis
    activity_type: ActivityType = ActivityType.RIDE


@dataclass(frozen=True)
class _PerformanceMetrics:
    power: Optional[float]
    speed: Optional[float]

    @property
    def primary(self) -> Optional[float]:
        return self.power if self.power is not None else self.speed


def workout_performance(workout: WorkoutRecord) -> Optional[float]:
    """Power when positive, else speed in mph."""
    if workout.has_power:
        return float(workout.average_power)
    return workout.speed_mph


def _performance_metrics(workouts: Sequence[WorkoutRecord]) -> _PerformanceMetrics:
    powers = [w.average_power for w in workouts if w.has_power]
    speeds = [w.speed_mph for w in workouts if w.speed_mph is not None]
    return _PerformanceMetrics(
        power=float(np.mean(powers)) if powers else None,
        speed=float(np.mean(speeds)) if speeds else None,
    )


def _volatility(values: Sequence[float]) -> float:
    """Coefficient of variation using the sample standard deviation."""
    if len(values) < 2:
        return 0.0
    mean = float(np.mean(values))
    if mean <= 0:
        return 0.0
    return float(np.std(values, ddof=1)) / mean


def _whole_years_between(start: datetime, end: datetime) -> int:
    years = end.year - start.year
    if (end.month, end.day, end.time()) < (start.month, start.day, start.time()):
        years -= 1
    return max(0, years)


def _season_confidence(sample_size: int) -> ConfidenceLevel:
    if sample_size >= 30:
        return ConfidenceLevel.HIGH
    elif sample_size >= 10:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW


class TemporalModelingService:
    """Recency, seasonal and longitudinal analysis for one activity type."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def analyze(
        self,
        workouts: Sequence[WorkoutRecord],
        activity_type: ActivityType,
        now: Optional[datetime] = None,
    ) -> Optional[TemporalAnalysis]:
        """Analyze temporal patterns for an activity type.

        Args:
            workouts: Workout history of any sport
            activity_type: RUN, RIDE or SWIM
            now: Reference time, defaults to the current time

        Returns:
            TemporalAnalysis, or None with fewer than 10 matching workouts
            or an activity type other than run, ride or swim
        """
        if not workouts:
            return None
        if activity_type not in SUPPORTED_ACTIVITIES:
            self.logger.info(f"No temporal analysis for {activity_type.value}: only run, ride and swim are supported")
            return None

        now = now or datetime.now()
        filtered = [w for w in workouts if w.activity_type == activity_type]
        if len(filtered) < MIN_WORKOUTS:
            self.logger.info(f"Insufficient {activity_type.value} data for temporal analysis ({len(filtered)} workouts)")
            return None

        recency = self.analyze_recency(filtered, now)
        seasonal = self.analyze_seasonal(filtered, now)
        longitudinal = self.analyze_longitudinal(filtered)
        synthesis = self.synthesize(recency, seasonal, longitudinal)

        self.logger.info(f"Temporal analysis for {activity_type.value}: {synthesis.headline}")
        return TemporalAnalysis(
            recency=recency,
            seasonal=seasonal,
            longitudinal=longitudinal,
            synthesis=synthesis,
            activity_type=activity_type,
        )

    def analyze_recency(self, workouts: Sequence[WorkoutRecord], now: datetime) -> RecencyAnalysis:
        """Compare the last 30 days to the 30 before."""
        recent_start = now - timedelta(days=RECENCY_WINDOW_DAYS)
        previous_start = now - timedelta(days=2 * RECENCY_WINDOW_DAYS)

        recent = [w for w in workouts if w.start_date >= recent_start]
        previous = [w for w in workouts if previous_start <= w.start_date < recent_start]

        recent_perf = _performance_metrics(recent)
        previous_perf = _performance_metrics(previous)

        trend = RecencyTrend.STABLE
        change = None
        if recent_perf.primary is not None and previous_perf.primary:
            change = (recent_perf.primary - previous_perf.primary) / previous_perf.primary * 100
            if change > 3:
                trend = RecencyTrend.IMPROVING
            elif change < -3:
                trend = RecencyTrend.DECLINING

        performances = [p for p in (workout_performance(w) for w in recent) if p is not None]
        volatility = _volatility(performances)

        self.logger.debug(f"Recency: {len(recent)} recent vs {len(previous)} previous workouts, {trend.value}")
        return RecencyAnalysis(
            average_power=recent_perf.power,
            average_speed=recent_perf.speed,
            training_load=float(len(recent)),
            consistency=max(0.0, 1.0 - volatility),
            trend=trend,
            percent_change=change,
            volatility=volatility,
        )

    def analyze_seasonal(self, workouts: Sequence[WorkoutRecord], now: datetime) -> SeasonalAnalysis:
        """Average performance per calendar season plus year-over-year change."""
        records = []
        for w in workouts:
            perf = workout_performance(w)
            if perf is not None:
                records.append({
                    "season": Season.from_date(w.start_date).value,
                    "season_year": Season.season_year(w.start_date),
                    "performance": perf,
                })
        df = pd.DataFrame(records, columns=["season", "season_year", "performance"])

        pattern: Dict[Season, SeasonMetrics] = {}
        if not df.empty:
            grouped = df.groupby("season", sort=False)["performance"].agg(["mean", "count"])
            for season in Season:
                if season.value in grouped.index:
                    count = int(grouped.loc[season.value, "count"])
                    pattern[season] = SeasonMetrics(
                        season=season,
                        average_performance=float(grouped.loc[season.value, "mean"]),
                        sample_size=count,
                        confidence=_season_confidence(count),
                    )

        best_season = (
            max(pattern.values(), key=lambda m: m.average_performance).season if pattern else Season.SUMMER
        )

        current_season = Season.from_date(now)
        current_metrics = pattern.get(current_season) or SeasonMetrics(
            season=current_season,
            average_performance=0.0,
            sample_size=0,
            confidence=ConfidenceLevel.INSUFFICIENT,
        )

        year_over_year = None
        if not df.empty:
            current_year = Season.season_year(now)
            in_season = df[df["season"] == current_season.value]
            this_year = in_season.loc[in_season["season_year"] == current_year, "performance"]
            last_year = in_season.loc[in_season["season_year"] == current_year - 1, "performance"]
            if not this_year.empty and not last_year.empty and last_year.mean() > 0:
                year_over_year = float((this_year.mean() - last_year.mean()) / last_year.mean() * 100)

        return SeasonalAnalysis(
            current_season_performance=current_metrics,
            best_season=best_season,
            seasonal_pattern=pattern,
            year_over_year_change=year_over_year,
        )

    def analyze_longitudinal(self, workouts: Sequence[WorkoutRecord]) -> LongitudinalAnalysis:
        """Early vs late period growth restricted to harder efforts."""
        relevant, metric_type = self._relevant_workouts(workouts)
        ordered = sorted(relevant, key=lambda w: w.start_date)

        if not ordered:
            return LongitudinalAnalysis(
                overall_trend=LongTermTrend.PLATEAUED,
                percent_change=None,
                peak_periods=[],
                growth_rate=0.0,
                timespan="Insufficient data",
                metric_type=metric_type,
            )

        first_date = ordered[0].start_date
        last_date = ordered[-1].start_date
        years = _whole_years_between(first_date, last_date)
        midpoint = first_date + (last_date - first_date) / 2

        early = _performance_metrics([w for w in ordered if w.start_date < midpoint])
        late = _performance_metrics([w for w in ordered if w.start_date >= midpoint])

        same_mode = (early.power is None) == (late.power is None)

        trend = LongTermTrend.PLATEAUED
        growth_rate = 0.0
        capped_change = None
        if same_mode and early.primary and late.primary is not None and years > 0:
            total_change = (late.primary - early.primary) / early.primary * 100
            capped_change = min(max(total_change, -90.0), 200.0)
            growth_rate = capped_change / years

            if capped_change > 10:
                trend = LongTermTrend.STRENGTHENING
            elif capped_change < -10:
                trend = LongTermTrend.WEAKENING
            self.logger.debug(
                f"Longitudinal: early {early.primary:.1f}, late {late.primary:.1f}, "
                f"change {total_change:+.1f}% (capped {capped_change:+.1f}%), {years} years"
            )
        elif not same_mode:
            self.logger.debug("Cannot compare longitudinal periods: metric type changed over time")

        return LongitudinalAnalysis(
            overall_trend=trend,
            percent_change=capped_change,
            peak_periods=self.find_peak_periods(ordered),
            growth_rate=growth_rate,
            timespan=f"{first_date:%Y-%m-%d} - {last_date:%Y-%m-%d}",
            metric_type=metric_type,
        )

    @staticmethod
    def _relevant_workouts(workouts: Sequence[WorkoutRecord]) -> Tuple[List[WorkoutRecord], str]:
        """Pick the metric mode and keep efforts at or above the 60th percentile HR."""
        if any(w.has_power for w in workouts):
            metric_type = "Power (W)"
            with_metric = [w for w in workouts if w.has_power]
        else:
            metric_type = "Speed (mph)"
            with_metric = [w for w in workouts if w.speed_mph is not None]

        with_hr = [w for w in with_metric if w.has_heart_rate]
        if not with_hr:
            return with_metric, metric_type

        heart_rates = sorted(w.average_heart_rate for w in with_hr)
        threshold = heart_rates[int(len(heart_rates) * HR_PERCENTILE)]
        return [w for w in with_hr if w.average_heart_rate >= threshold], metric_type

    @staticmethod
    def find_peak_periods(workouts: Sequence[WorkoutRecord], top_n: int = 3) -> List[PeakPeriod]:
        """Best rolling 90-day windows stepped by 30 days."""
        ordered = sorted(workouts, key=lambda w: w.start_date)
        if not ordered:
            return []

        last_date = ordered[-1].start_date
        current = ordered[0].start_date
        windows = []

        while current < last_date:
            window_end = current + timedelta(days=PEAK_WINDOW_DAYS)
            in_window = [w for w in ordered if current <= w.start_date < window_end]
            if len(in_window) >= PEAK_MIN_WORKOUTS:
                primary = _performance_metrics(in_window).primary
                if primary is not None:
                    windows.append(PeakPeriod(current, window_end, primary))
            current += timedelta(days=PEAK_STEP_DAYS)

        return sorted(windows, key=lambda p: p.average_performance, reverse=True)[:top_n]

    @staticmethod
    def synthesize(
        recency: RecencyAnalysis,
        seasonal: SeasonalAnalysis,
        longitudinal: LongitudinalAnalysis,
    ) -> TemporalSynthesis:
        insights = []

        if recency.trend == RecencyTrend.IMPROVING:
            insights.append(f"Recent form is improving ({recency.percent_change:+.1f}% over last 30 days)")
        elif recency.trend == RecencyTrend.DECLINING:
            insights.append(f"Recent form is declining ({recency.percent_change:.1f}% over last 30 days)")
        else:
            insights.append("Recent form is stable")

        if seasonal.year_over_year_change is not None:
            insights.append(f"Year-over-year: {seasonal.year_over_year_change:+.1f}%")

        if seasonal.best_season != seasonal.current_season_performance.season:
            insights.append(f"Historically strongest in {seasonal.best_season.value}")

        insights.append(longitudinal.description)

        strengthening = longitudinal.overall_trend == LongTermTrend.STRENGTHENING
        if recency.trend == RecencyTrend.IMPROVING:
            headline = "Building on Strong Foundation" if strengthening else "Current Form is Rising"
        elif recency.trend == RecencyTrend.DECLINING:
            headline = "Recent Dip in Long-term Growth" if strengthening else "Managing Current Decline"
        else:
            headline = "Sustaining Long-term Progress" if strengthening else "Maintaining Current Form"

        if recency.trend == RecencyTrend.DECLINING:
            recommendation = "Consider a recovery week to restore form"
        elif recency.trend == RecencyTrend.IMPROVING:
            recommendation = "Maintain current training approach"
        else:
            recommendation = "Gradually increase load to progress"

        return TemporalSynthesis(
            headline=headline,
            insights=insights,
            recommendation=recommendation,
            confidence=seasonal.current_season_performance.confidence,
        )

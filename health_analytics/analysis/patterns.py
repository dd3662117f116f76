"""
Statistically validated performance patterns.

A candidate pattern ("performance is better after sleeping at least N hours")
is only reported when both groups are large enough, and it carries a
permutation-test p-value and Cohen's d so weak patterns can be filtered out.
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

from ..models import ConfidenceLevel, HealthMetricSample, WorkoutRecord, confidence_for_sample_size
from .sample_size import AnalysisType, SampleSizeValidator
from .statistics import EffectSize, RandomState, StatisticalValidator
from .temporal import workout_performance

logger = logging.getLogger(__name__)

DEFAULT_SLEEP_THRESHOLDS = (6.5, 7.0, 7.5, 8.0)
MIN_GROUP_SIZE = 3


@dataclass(frozen=True)
class ValidatedPattern:
    """A sleep-threshold pattern with its significance and effect size."""
    trigger: str
    threshold: float
    trigger_mean: float
    control_mean: float
    sample_size: int
    p_value: float
    effect_size: float
    effect_size_interpretation: EffectSize
    is_significant: bool
    confidence: ConfidenceLevel

    @property
    def percent_difference(self) -> float:
        if self.control_mean == 0:
            return 0.0
        return (self.trigger_mean - self.control_mean) / self.control_mean * 100

    @property
    def readable_description(self) -> str:
        significance = "significant" if self.is_significant else "not significant"
        return (
            f"{self.trigger}: {self.percent_difference:+.1f}% performance "
            f"({significance}, p={self.p_value:.3f}, {self.effect_size_interpretation.value} effect)"
        )


class PerformancePatternValidator:
    """Finds and validates recovery-to-performance patterns."""

    def __init__(self, iterations: Optional[int] = None):
        self.iterations = iterations
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def sleep_groups(
        workouts: Sequence[WorkoutRecord],
        sleep: Sequence[HealthMetricSample],
        hours_threshold: float,
    ) -> Optional[Tuple[List[float], List[float]]]:
        """Split workout performance by the previous night's sleep.

        Returns:
            (met threshold, below threshold) or None if either group has fewer than 3
        """
        sleep_by_day: Dict[date, float] = {}
        for sample in sorted(sleep, key=lambda s: s.date):
            sleep_by_day.setdefault(sample.date.date(), sample.value)

        good_sleep, poor_sleep = [], []
        for workout in workouts:
            performance = workout_performance(workout)
            if performance is None:
                continue
            previous_day = workout.start_date.date() - timedelta(days=1)
            hours = sleep_by_day.get(previous_day)
            if hours is None:
                continue
            if hours >= hours_threshold:
                good_sleep.append(performance)
            else:
                poor_sleep.append(performance)

        if len(good_sleep) < MIN_GROUP_SIZE or len(poor_sleep) < MIN_GROUP_SIZE:
            return None
        return good_sleep, poor_sleep

    def validate_sleep_pattern(
        self,
        workouts: Sequence[WorkoutRecord],
        sleep: Sequence[HealthMetricSample],
        hours_threshold: float = 7.0,
        rng: RandomState = None,
    ) -> Optional[ValidatedPattern]:
        """Test whether sleeping at least ``hours_threshold`` changes performance."""
        groups = self.sleep_groups(workouts, sleep, hours_threshold)
        if groups is None:
            return None
        trigger_group, control_group = groups
        sample_size = len(trigger_group) + len(control_group)

        validation = SampleSizeValidator.validate(sample_size, AnalysisType.PATTERN_DISCOVERY)
        if not validation.is_valid:
            self.logger.info(
                f"Skipping {hours_threshold}h sleep pattern - insufficient sample size "
                f"({sample_size} < {validation.required})"
            )
            return None

        test = StatisticalValidator.permutation_test(
            trigger_group, control_group, iterations=self.iterations, rng=rng
        )
        effect = StatisticalValidator.cohens_d(trigger_group, control_group)
        if test is None or effect is None:
            return None

        return ValidatedPattern(
            trigger=f"Sleep >= {hours_threshold:g}h",
            threshold=hours_threshold,
            trigger_mean=sum(trigger_group) / len(trigger_group),
            control_mean=sum(control_group) / len(control_group),
            sample_size=sample_size,
            p_value=test.p_value,
            effect_size=effect,
            effect_size_interpretation=StatisticalValidator.interpret_effect_size(effect),
            is_significant=test.is_significant,
            confidence=confidence_for_sample_size(sample_size),
        )

    def discover_validated_patterns(
        self,
        workouts: Sequence[WorkoutRecord],
        sleep: Sequence[HealthMetricSample],
        thresholds: Sequence[float] = DEFAULT_SLEEP_THRESHOLDS,
        rng: RandomState = None,
    ) -> List[ValidatedPattern]:
        """Validate every sleep threshold, best evidence first."""
        validated = []
        for threshold in thresholds:
            pattern = self.validate_sleep_pattern(workouts, sleep, threshold, rng=rng)
            if pattern is not None:
                validated.append(pattern)

        significant = sum(1 for p in validated if p.is_significant)
        self.logger.info(f"Found {significant} significant patterns from {len(thresholds)} candidates")

        return sorted(validated, key=lambda p: (not p.is_significant, p.p_value, -abs(p.effect_size)))

"""
Intent-aware training readiness.

Combines the acute:chronic workload ratio (with a bootstrap confidence
interval), recent recovery metrics and workout intent labels into a per-intent
go/no-go assessment. Every call is a pure computation over its inputs.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np

from ..config import config
from ..models import (
    ActivityIntent,
    ConfidenceLevel,
    HealthMetricSample,
    IntentLabel,
    StatisticalResult,
    WorkoutRecord,
    confidence_for_sample_size,
)
from .sample_size import AnalysisType, SampleSizeResult, SampleSizeValidator
from .statistics import RandomState, StatisticalValidator

logger = logging.getLogger(__name__)

DEFAULT_SLEEP_HOURS = 7.0
DEFAULT_HRV_MS = 50.0
DEFAULT_DAYS_SINCE_HARD_EFFORT = 7


class ReadinessLevel(Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"

    @property
    def priority(self) -> int:
        return {"excellent": 4, "good": 3, "fair": 2, "poor": 1}[self.value]


class LoadTrend(Enum):
    """Direction of training load implied by the ACWR."""
    BUILDING = "building"
    OPTIMAL = "optimal"
    DETRAINING = "detraining"

    @classmethod
    def from_acwr(cls, acwr: float) -> "LoadTrend":
        if acwr > 1.3:
            return cls.BUILDING
        elif acwr < 0.8:
            return cls.DETRAINING
        else:
            return cls.OPTIMAL


class DataQualityLevel(Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


@dataclass(frozen=True)
class IntentReadiness:
    level: ReadinessLevel
    confidence: ConfidenceLevel
    sample_size: int


@dataclass(frozen=True)
class DataQuality:
    has_adequate_sleep: bool
    has_adequate_hrv: bool
    has_adequate_workouts: bool
    overall_quality: DataQualityLevel


@dataclass(frozen=True)
class RecoveryInputs:
    """Recovery state feeding the per-intent rules."""
    avg_sleep: float
    avg_hrv: float
    days_since_hard_effort: int


@dataclass
class ReadinessAssessment:
    """Full readiness picture for today."""
    acwr: StatisticalResult
    chronic_load: float
    acute_load: float
    trend: LoadTrend
    performance_readiness: Dict[ActivityIntent, IntentReadiness]
    recommended_intents: List[ActivityIntent]
    avoid_intents: List[ActivityIntent]
    sample_validation: SampleSizeResult
    data_quality: DataQuality
    recovery: RecoveryInputs

    def readiness_for(self, intent: ActivityIntent) -> IntentReadiness:
        return self.performance_readiness[intent]


class IntentAwareReadinessService:
    """Calculates readiness from load history, recovery and intent labels."""

    def __init__(
        self,
        acute_days: Optional[int] = None,
        chronic_days: Optional[int] = None,
        bootstrap_iterations: Optional[int] = None,
    ):
        self.acute_days = acute_days or config.ACUTE_WINDOW_DAYS
        self.chronic_days = chronic_days or config.CHRONIC_WINDOW_DAYS
        self.bootstrap_iterations = bootstrap_iterations or config.BOOTSTRAP_ITERATIONS
        self.logger = logging.getLogger(__name__)

    def calculate_readiness(
        self,
        workouts: Sequence[WorkoutRecord],
        labels: Iterable[IntentLabel],
        sleep: Sequence[HealthMetricSample] = (),
        hrv: Sequence[HealthMetricSample] = (),
        now: Optional[datetime] = None,
        rng: RandomState = None,
    ) -> ReadinessAssessment:
        """Calculate an intent-aware readiness assessment.

        Args:
            workouts: Workout history
            labels: Current intent labels, one per workout id
            sleep: Nightly sleep hours
            hrv: Daily HRV readings in ms
            now: Reference time for the load windows, defaults to the current time
            rng: Generator or seed for the ACWR bootstrap

        Returns:
            ReadinessAssessment; missing inputs degrade to documented defaults
        """
        now = now or datetime.now()
        labels = list(labels)
        intent_by_id = {label.workout_id: label.intent for label in labels}

        labeled_workouts = [w for w in workouts if w.id in intent_by_id]
        performance_workouts = [w for w in labeled_workouts if intent_by_id[w.id].is_performance]

        chronic_start = now - timedelta(days=self.chronic_days)
        acute_start = now - timedelta(days=self.acute_days)
        chronic_loads = [
            self.workout_load(w) for w in performance_workouts if chronic_start <= w.start_date <= now
        ]
        acute_loads = [
            self.workout_load(w) for w in performance_workouts if acute_start <= w.start_date <= now
        ]

        chronic_load = float(np.mean(chronic_loads)) if chronic_loads else 0.0
        acute_load = float(np.mean(acute_loads)) if acute_loads else 0.0
        ratio = acute_load / chronic_load if chronic_load > 0 else 1.0

        sample_validation = SampleSizeValidator.validate(
            len(performance_workouts), AnalysisType.INTENT_CLASSIFICATION
        )

        interval = StatisticalValidator.acwr_confidence_interval(
            acute_loads, chronic_loads, iterations=self.bootstrap_iterations, rng=rng
        )
        acwr = StatisticalResult(
            value=interval.acwr if interval is not None else ratio,
            confidence_interval=(interval.lower, interval.upper) if interval is not None else None,
            sample_size=len(performance_workouts),
            confidence=sample_validation.confidence,
        )

        trend = LoadTrend.from_acwr(acwr.value)
        recovery = self.recovery_inputs(sleep, hrv, labeled_workouts, intent_by_id, now)
        readiness = self._intent_readiness(acwr.value, recovery, labels)

        assessment = ReadinessAssessment(
            acwr=acwr,
            chronic_load=chronic_load,
            acute_load=acute_load,
            trend=trend,
            performance_readiness=readiness,
            recommended_intents=self.recommend_intents(readiness),
            avoid_intents=self.avoid_intents(readiness),
            sample_validation=sample_validation,
            data_quality=self.assess_data_quality(len(sleep), len(hrv), len(performance_workouts)),
            recovery=recovery,
        )

        self.logger.info(
            f"Readiness: ACWR {acwr.formatted_with_ci()} ({trend.value}), "
            f"{len(performance_workouts)} performance workouts, confidence {acwr.confidence.value}"
        )
        return assessment

    @staticmethod
    def workout_load(workout: WorkoutRecord) -> float:
        """Duration in hours scaled by the sport multiplier."""
        return workout.duration_hours * config.get_sport_load_multiplier(workout.activity_type.value)

    @staticmethod
    def recovery_inputs(
        sleep: Sequence[HealthMetricSample],
        hrv: Sequence[HealthMetricSample],
        labeled_workouts: Sequence[WorkoutRecord],
        intent_by_id: Dict[str, ActivityIntent],
        now: datetime,
    ) -> RecoveryInputs:
        recent_sleep = sorted(sleep, key=lambda s: s.date)[-3:]
        recent_hrv = sorted(hrv, key=lambda s: s.date)[-7:]

        avg_sleep = float(np.mean([s.value for s in recent_sleep])) if recent_sleep else DEFAULT_SLEEP_HOURS
        avg_hrv = float(np.mean([s.value for s in recent_hrv])) if recent_hrv else DEFAULT_HRV_MS

        hard_dates = [w.start_date for w in labeled_workouts if intent_by_id[w.id].is_hard_effort]
        if hard_dates:
            days_since = max(0, (now - max(hard_dates)).days)
        else:
            days_since = DEFAULT_DAYS_SINCE_HARD_EFFORT

        return RecoveryInputs(avg_sleep=avg_sleep, avg_hrv=avg_hrv, days_since_hard_effort=days_since)

    def _intent_readiness(
        self,
        acwr: float,
        recovery: RecoveryInputs,
        labels: Sequence[IntentLabel],
    ) -> Dict[ActivityIntent, IntentReadiness]:
        readiness = {}
        for intent in ActivityIntent:
            sample_size = sum(1 for label in labels if label.intent == intent)
            readiness[intent] = IntentReadiness(
                level=self.readiness_level(intent, acwr, recovery),
                confidence=confidence_for_sample_size(sample_size),
                sample_size=sample_size,
            )
        return readiness

    @staticmethod
    def readiness_level(intent: ActivityIntent, acwr: float, recovery: RecoveryInputs) -> ReadinessLevel:
        """Fixed per-intent threshold ladder."""
        sleep = recovery.avg_sleep
        hrv = recovery.avg_hrv
        rest = recovery.days_since_hard_effort

        if intent == ActivityIntent.RACE:
            if acwr <= 1.2 and sleep >= 7.5 and hrv >= 50 and rest >= 2:
                return ReadinessLevel.EXCELLENT
            elif acwr <= 1.4 and sleep >= 7.0:
                return ReadinessLevel.GOOD
            elif acwr <= 1.5:
                return ReadinessLevel.FAIR
            return ReadinessLevel.POOR

        if intent == ActivityIntent.TEMPO:
            if acwr <= 1.3 and sleep >= 7.0:
                return ReadinessLevel.EXCELLENT
            elif acwr <= 1.5:
                return ReadinessLevel.GOOD
            return ReadinessLevel.FAIR

        if intent == ActivityIntent.INTERVALS:
            if acwr <= 1.2 and sleep >= 7.0 and rest >= 1:
                return ReadinessLevel.EXCELLENT
            elif acwr <= 1.4 and sleep >= 6.5:
                return ReadinessLevel.GOOD
            elif acwr <= 1.5:
                return ReadinessLevel.FAIR
            return ReadinessLevel.POOR

        if intent == ActivityIntent.EASY:
            if acwr <= 1.6:
                return ReadinessLevel.EXCELLENT
            elif acwr <= 1.8:
                return ReadinessLevel.GOOD
            return ReadinessLevel.FAIR

        if intent == ActivityIntent.LONG:
            if 0.9 <= acwr <= 1.3 and sleep >= 7.0:
                return ReadinessLevel.EXCELLENT
            elif 0.8 <= acwr <= 1.4:
                return ReadinessLevel.GOOD
            return ReadinessLevel.FAIR

        if intent == ActivityIntent.STRENGTH:
            if rest >= 1 and acwr <= 1.4:
                return ReadinessLevel.EXCELLENT
            elif acwr <= 1.5:
                return ReadinessLevel.GOOD
            return ReadinessLevel.FAIR

        if intent == ActivityIntent.CASUAL_WALK:
            return ReadinessLevel.EXCELLENT

        # other
        return ReadinessLevel.GOOD if acwr <= 1.4 else ReadinessLevel.FAIR

    @staticmethod
    def recommend_intents(readiness: Dict[ActivityIntent, IntentReadiness]) -> List[ActivityIntent]:
        """Excellent/good intents backed by enough labels, best first."""
        candidates = [
            intent for intent, r in readiness.items()
            if r.level in (ReadinessLevel.EXCELLENT, ReadinessLevel.GOOD)
            and r.confidence != ConfidenceLevel.INSUFFICIENT
        ]
        return sorted(candidates, key=lambda intent: readiness[intent].level.priority, reverse=True)

    @staticmethod
    def avoid_intents(readiness: Dict[ActivityIntent, IntentReadiness]) -> List[ActivityIntent]:
        return [intent for intent, r in readiness.items() if r.level == ReadinessLevel.POOR]

    @staticmethod
    def assess_data_quality(sleep_count: int, hrv_count: int, workout_count: int) -> DataQuality:
        has_sleep = sleep_count >= 7
        has_hrv = hrv_count >= 7
        has_workouts = workout_count >= 5

        if sleep_count >= 30 and hrv_count >= 30 and workout_count >= 30:
            quality = DataQualityLevel.EXCELLENT
        elif sleep_count >= 15 and hrv_count >= 15 and workout_count >= 15:
            quality = DataQualityLevel.GOOD
        elif has_sleep and has_hrv and has_workouts:
            quality = DataQualityLevel.FAIR
        else:
            quality = DataQualityLevel.POOR

        return DataQuality(
            has_adequate_sleep=has_sleep,
            has_adequate_hrv=has_hrv,
            has_adequate_workouts=has_workouts,
            overall_quality=quality,
        )

"""Rule-based workout intent classification from heart rate, duration and pace."""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Set, Tuple

from ..config import config
from ..models import ActivityIntent, ActivityType, WorkoutRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClassifiedWorkout:
    """A (workout id, intent, confidence) triple from batch classification."""
    workout_id: str
    intent: ActivityIntent
    confidence: float


CLASSIFICATION_RULES = """\
Automatic Workout Intent Classification Rules:

Based on Heart Rate Zones (% of estimated max HR):
- 85%+ sustained (15+ min) -> Race/PR Attempt
- 85%+ short duration -> Intervals
- 78-85% sustained -> Tempo/Threshold
- 78-85% short -> Intervals
- 68-78% + 90+ min -> Long Run/Endurance
- 68-78% + 45-90 min -> Long Run or Easy
- 68-78% + <45 min -> Easy/Recovery
- <68% + 90+ min -> Long Easy Run
- <68% -> Easy/Recovery

Special Cases:
- Strength Training -> Always classified as Strength
- Walking (short/low HR) -> Casual Walk
- Walking (long/high HR) -> Easy
- No HR data -> Uses duration + pace as proxy (lower confidence)

All classifications include a confidence score (0.0-1.0).
Lower confidence means the label could be manually reviewed.
"""


class HeuristicIntentClassifier:
    """Classifies workouts without any training data."""

    def __init__(self, max_heart_rate: Optional[float] = None):
        self.max_heart_rate = max_heart_rate or config.ESTIMATED_MAX_HR
        self.logger = logging.getLogger(__name__)

    def classify(self, workout: WorkoutRecord) -> Tuple[ActivityIntent, float]:
        """Classify a single workout.

        Returns:
            (intent, confidence) where confidence is in [0, 1]
        """
        duration_min = workout.duration_minutes

        if workout.activity_type == ActivityType.STRENGTH:
            return ActivityIntent.STRENGTH, 0.9

        if workout.activity_type == ActivityType.WALK:
            hr = workout.average_heart_rate
            if duration_min < 45 or hr is None or hr < 100:
                return ActivityIntent.CASUAL_WALK, 0.85
            return ActivityIntent.EASY, 0.7

        if not workout.has_heart_rate:
            return self._classify_without_heart_rate(workout, duration_min)

        hr_percent = workout.average_heart_rate / self.max_heart_rate

        if hr_percent >= 0.85:
            if duration_min >= 15:
                return ActivityIntent.RACE, 0.85
            return ActivityIntent.INTERVALS, 0.80

        if hr_percent >= 0.78:
            if 20 <= duration_min <= 60:
                return ActivityIntent.TEMPO, 0.85
            elif duration_min < 20:
                return ActivityIntent.INTERVALS, 0.75
            return ActivityIntent.TEMPO, 0.80

        if hr_percent >= 0.68:
            if duration_min >= 90:
                return ActivityIntent.LONG, 0.90
            elif duration_min >= 45:
                return ActivityIntent.LONG, 0.75
            return ActivityIntent.EASY, 0.75

        if duration_min >= 90:
            return ActivityIntent.LONG, 0.80
        return ActivityIntent.EASY, 0.85

    def _classify_without_heart_rate(
        self, workout: WorkoutRecord, duration_min: float
    ) -> Tuple[ActivityIntent, float]:
        """Fallback using duration and pace only, at lower confidence."""
        if duration_min >= 90:
            return ActivityIntent.LONG, 0.60

        pace = workout.pace_min_per_mile
        if workout.activity_type == ActivityType.RUN and pace is not None:
            if pace < 7.5:
                if 20 <= duration_min <= 60:
                    return ActivityIntent.TEMPO, 0.50
                elif duration_min < 20:
                    return ActivityIntent.INTERVALS, 0.45
                return ActivityIntent.RACE, 0.40
            if pace > 9.0:
                return ActivityIntent.EASY, 0.60

        if workout.activity_type in (ActivityType.RUN, ActivityType.RIDE, ActivityType.SWIM):
            return ActivityIntent.EASY, 0.40

        return ActivityIntent.OTHER, 0.30

    def classify_all(
        self,
        workouts: Iterable[WorkoutRecord],
        existing_labels: Optional[Set[str]] = None,
    ) -> List[ClassifiedWorkout]:
        """Classify every workout whose id is not already labeled."""
        existing_labels = existing_labels or set()
        results = []
        skipped = 0

        for workout in workouts:
            if workout.id in existing_labels:
                skipped += 1
                continue
            intent, confidence = self.classify(workout)
            results.append(ClassifiedWorkout(workout.id, intent, confidence))

        self.logger.info(f"Classified {len(results)} workouts ({skipped} already labeled)")
        return results

    @staticmethod
    def classification_rules() -> str:
        """Human-readable summary of the decision rules."""
        return CLASSIFICATION_RULES

"""Core value types shared by the analysis modules."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple


class ActivityType(Enum):
    """Sport type of a recorded workout."""
    RUN = "run"
    RIDE = "ride"
    SWIM = "swim"
    WALK = "walk"
    HIKE = "hike"
    STRENGTH = "strength"
    OTHER = "other"

    @classmethod
    def from_string(cls, value: Optional[str]) -> "ActivityType":
        """Map a free-text sport name (e.g. 'VirtualRide', 'WeightTraining') to a type."""
        if not value:
            return cls.OTHER
        lowered = value.strip().lower()
        for member in cls:
            if lowered == member.value:
                return member
        if "run" in lowered:
            return cls.RUN
        if "walk" in lowered:
            return cls.WALK
        if "hike" in lowered:
            return cls.HIKE
        if "ride" in lowered or "bike" in lowered or "cycl" in lowered:
            return cls.RIDE
        if "strength" in lowered or "weight" in lowered:
            return cls.STRENGTH
        if "swim" in lowered:
            return cls.SWIM
        return cls.OTHER


class ActivityIntent(Enum):
    """Training purpose of a workout."""
    RACE = "race"
    TEMPO = "tempo"
    INTERVALS = "intervals"
    EASY = "easy"
    LONG = "long"
    CASUAL_WALK = "casual_walk"
    STRENGTH = "strength"
    OTHER = "other"

    @property
    def display_name(self) -> str:
        return _INTENT_DISPLAY_NAMES[self]

    @property
    def is_performance(self) -> bool:
        """Whether workouts with this intent count towards training load."""
        return self in PERFORMANCE_INTENTS

    @property
    def is_hard_effort(self) -> bool:
        return self in HARD_EFFORT_INTENTS

    @classmethod
    def from_string(cls, value: str) -> "ActivityIntent":
        """Parse an intent from its value, member name or display name."""
        cleaned = value.strip()
        for member in cls:
            if cleaned.lower() in (member.value, member.name.lower(), member.display_name.lower()):
                return member
        if cleaned.lower() == "casualwalk":
            return cls.CASUAL_WALK
        raise ValueError(f"Unknown activity intent: {value}")


_INTENT_DISPLAY_NAMES = {
    ActivityIntent.RACE: "Race/PR Attempt",
    ActivityIntent.TEMPO: "Tempo/Threshold",
    ActivityIntent.INTERVALS: "Intervals/Speed Work",
    ActivityIntent.EASY: "Easy/Recovery",
    ActivityIntent.LONG: "Long Run/Endurance",
    ActivityIntent.CASUAL_WALK: "Casual Walk",
    ActivityIntent.STRENGTH: "Strength Training",
    ActivityIntent.OTHER: "Other/Unclassified",
}

PERFORMANCE_INTENTS = frozenset({
    ActivityIntent.RACE,
    ActivityIntent.TEMPO,
    ActivityIntent.INTERVALS,
    ActivityIntent.LONG,
})

HARD_EFFORT_INTENTS = frozenset({
    ActivityIntent.RACE,
    ActivityIntent.TEMPO,
    ActivityIntent.INTERVALS,
})


class LabelSource(Enum):
    """Who produced an intent label."""
    MANUAL = "manual"
    HEURISTIC = "heuristic"
    TRAINED_MODEL = "trained_model"


class ConfidenceLevel(Enum):
    """Coarse trust bucket for an estimate, driven by sample size."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INSUFFICIENT = "insufficient"

    @property
    def rank(self) -> int:
        return {"insufficient": 0, "low": 1, "medium": 2, "high": 3}[self.value]

    @property
    def description(self) -> str:
        return {
            "high": "High confidence (n≥30)",
            "medium": "Moderate confidence (n=10-29)",
            "low": "Low confidence (n=5-9)",
            "insufficient": "Insufficient data (n<5)",
        }[self.value]


def confidence_for_sample_size(sample_size: int) -> ConfidenceLevel:
    """Tier an estimate by how many observations back it."""
    if sample_size >= 30:
        return ConfidenceLevel.HIGH
    elif sample_size >= 10:
        return ConfidenceLevel.MEDIUM
    elif sample_size >= 5:
        return ConfidenceLevel.LOW
    else:
        return ConfidenceLevel.INSUFFICIENT


@dataclass(frozen=True)
class WorkoutRecord:
    """A single recorded workout. Duration in seconds, distance in meters."""
    id: str
    start_date: datetime
    duration: float
    activity_type: ActivityType
    distance: Optional[float] = None
    average_heart_rate: Optional[float] = None
    average_power: Optional[float] = None
    source: str = "unknown"

    @property
    def duration_minutes(self) -> float:
        return self.duration / 60.0

    @property
    def duration_hours(self) -> float:
        return self.duration / 3600.0

    @property
    def has_heart_rate(self) -> bool:
        return self.average_heart_rate is not None and self.average_heart_rate > 0

    @property
    def has_power(self) -> bool:
        return self.average_power is not None and self.average_power > 0

    @property
    def pace_min_per_mile(self) -> Optional[float]:
        """Pace in minutes per mile, or None without a usable distance."""
        if self.distance is None or self.distance <= 0 or self.duration <= 0:
            return None
        miles = self.distance / 1609.34
        return self.duration_minutes / miles

    @property
    def speed_mph(self) -> Optional[float]:
        if self.distance is None or self.distance <= 0 or self.duration <= 0:
            return None
        return (self.distance / self.duration) * 2.23694


@dataclass(frozen=True)
class HealthMetricSample:
    """A dated value of a named physiological series (Sleep, HRV, RHR, Steps, Weight)."""
    date: datetime
    value: float
    metric: str = ""


@dataclass(frozen=True)
class IntentLabel:
    """The authoritative intent of a workout."""
    workout_id: str
    intent: ActivityIntent
    confidence: float
    source: LabelSource
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)


@dataclass
class StatisticalResult:
    """A point estimate with an optional interval and its confidence tier."""
    value: float
    confidence_interval: Optional[Tuple[float, float]]
    sample_size: int
    confidence: ConfidenceLevel

    @property
    def is_reliable(self) -> bool:
        return self.confidence in (ConfidenceLevel.HIGH, ConfidenceLevel.MEDIUM)

    def formatted_with_ci(self) -> str:
        if self.confidence_interval is None:
            return f"{self.value:.2f}"
        lower, upper = self.confidence_interval
        return f"{self.value:.2f} (95% CI: {lower:.2f}-{upper:.2f})"

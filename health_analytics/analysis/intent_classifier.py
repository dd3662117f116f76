"""
Trainable workout intent classifier.

Learns from manually labeled workouts and auto-classifies the rest of the
history. Feature engineering (seven named features) lives here; the model
itself sits behind the IntentTrainer interface, with a scikit-learn random
forest pipeline as the default.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Protocol, Sequence, Set, Tuple, Union

import joblib
import numpy as np
import pandas as pd
from sklearn.compose import ColumnTransformer
from sklearn.ensemble import RandomForestClassifier
from sklearn.model_selection import KFold, cross_val_score
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import OneHotEncoder

from ..config import config
from ..models import ActivityIntent, ActivityType, IntentLabel, WorkoutRecord
from .heuristic_classifier import ClassifiedWorkout

logger = logging.getLogger(__name__)

CATEGORICAL_FEATURE = "activity_type"
NUMERIC_FEATURES = ["duration_min", "avg_pace", "avg_hr", "avg_power", "effort_score", "is_long"]
FEATURE_COLUMNS = [CATEGORICAL_FEATURE] + NUMERIC_FEATURES

ACTIVITY_CATEGORIES = ("Run", "Ride", "Swim", "Walk", "Hike", "Strength", "Other")

# Illustrative weights, not a measured permutation importance
APPROXIMATE_FEATURE_IMPORTANCE = {
    "effort_score": 0.25,
    "avg_hr": 0.20,
    "duration_min": 0.18,
    "avg_power": 0.15,
    "avg_pace": 0.12,
    "is_long": 0.06,
    "activity_type": 0.04,
}


class InsufficientDataError(ValueError):
    """Not enough labeled examples to train."""

    def __init__(self, count: int, required: int):
        self.count = count
        self.required = required
        super().__init__(f"Need at least {required} labeled examples (have {count})")


class PredictionError(Exception):
    """The underlying model failed or returned an unknown intent."""
    pass


def normalize_activity_type(activity_type: str, allowed_categories: Optional[Iterable[str]] = None) -> str:
    """Map a free-text activity type onto the closed category set.

    Categories not present in ``allowed_categories`` fold into "Other" so the
    model never sees an out-of-vocabulary value.
    """
    category = ActivityType.from_string(activity_type).value.capitalize()
    if allowed_categories is not None and category not in set(allowed_categories):
        return "Other"
    return category


@dataclass(frozen=True)
class WorkoutFeatures:
    """Engineered features of a single workout."""
    workout_id: str
    activity_type: str
    duration_min: float
    avg_pace: Optional[float] = None  # min/mile
    avg_hr: Optional[float] = None
    avg_power: Optional[float] = None

    @property
    def effort_score(self) -> float:
        """Rough effort estimate mapping 60-160 bpm onto 0-1."""
        if self.avg_hr is None:
            return 0.0
        return max(0.0, min(1.0, (self.avg_hr - 60) / 100.0))

    @property
    def is_long(self) -> bool:
        return self.duration_min >= 90

    @classmethod
    def from_workout(cls, workout: WorkoutRecord) -> "WorkoutFeatures":
        return cls(
            workout_id=workout.id,
            activity_type=workout.activity_type.value,
            duration_min=workout.duration_minutes,
            avg_pace=workout.pace_min_per_mile,
            avg_hr=workout.average_heart_rate,
            avg_power=workout.average_power,
        )

    def to_row(self, allowed_categories: Optional[Iterable[str]] = None) -> Dict[str, Any]:
        """Feature row with missing values filled by zero."""
        return {
            "activity_type": normalize_activity_type(self.activity_type, allowed_categories),
            "duration_min": float(self.duration_min),
            "avg_pace": float(self.avg_pace or 0.0),
            "avg_hr": float(self.avg_hr or 0.0),
            "avg_power": float(self.avg_power or 0.0),
            "effort_score": self.effort_score,
            "is_long": 1.0 if self.is_long else 0.0,
        }


class IntentTrainer(Protocol):
    """Minimal categorical-model capability used by the classifier."""

    def fit(self, rows: pd.DataFrame, labels: Sequence[str]) -> Tuple[Any, Dict[str, float]]:
        """Train on feature rows; return (model, metrics) with accuracy keys."""
        ...

    def predict(self, model: Any, row: pd.DataFrame) -> Tuple[str, Dict[str, float]]:
        """Predict one row; return (label, class probabilities)."""
        ...


class RandomForestIntentTrainer:
    """Random forest over one-hot activity type plus numeric features."""

    def __init__(self, n_estimators: int = 100, cv_folds: int = 5, random_state: int = 42):
        self.n_estimators = n_estimators
        self.cv_folds = cv_folds
        self.random_state = random_state
        self.logger = logging.getLogger(__name__)

    def build_pipeline(self) -> Pipeline:
        preprocessor = ColumnTransformer(
            [("activity", OneHotEncoder(handle_unknown="ignore"), [CATEGORICAL_FEATURE])],
            remainder="passthrough",
        )
        return Pipeline([
            ("features", preprocessor),
            ("classifier", RandomForestClassifier(
                n_estimators=self.n_estimators,
                random_state=self.random_state,
            )),
        ])

    def fit(self, rows: pd.DataFrame, labels: Sequence[str]) -> Tuple[Pipeline, Dict[str, float]]:
        y = np.asarray(labels)

        # KFold rather than stratified: rare intents may have a single example
        folds = max(2, min(self.cv_folds, len(y)))
        cv = KFold(n_splits=folds, shuffle=True, random_state=self.random_state)
        cv_scores = cross_val_score(self.build_pipeline(), rows, y, cv=cv, scoring="accuracy")

        model = self.build_pipeline()
        model.fit(rows, y)
        training_accuracy = float(model.score(rows, y))

        metrics = {
            "training_accuracy": training_accuracy * 100.0,
            "validation_accuracy": float(cv_scores.mean()) * 100.0,
            "validation_accuracy_std": float(cv_scores.std()) * 100.0,
        }
        self.logger.info(
            f"Random forest trained: train {metrics['training_accuracy']:.1f}%, "
            f"validation {metrics['validation_accuracy']:.1f}% ± {metrics['validation_accuracy_std']:.1f}%"
        )
        return model, metrics

    def predict(self, model: Pipeline, row: pd.DataFrame) -> Tuple[str, Dict[str, float]]:
        probabilities = model.predict_proba(row)[0]
        classes = [str(c) for c in model.classes_]
        label = classes[int(np.argmax(probabilities))]
        return label, {cls: float(p) for cls, p in zip(classes, probabilities)}


@dataclass
class TrainingResult:
    """A trained model together with its training metadata."""
    model: Any
    training_accuracy: float
    validation_accuracy: float
    feature_importance: Dict[str, float]
    sample_count: int
    allowed_categories: FrozenSet[str]
    trained_at: datetime = field(default_factory=datetime.now)

    @property
    def accuracy(self) -> float:
        return self.validation_accuracy

    def top_features(self, n: int = 3) -> List[Tuple[str, float]]:
        return sorted(self.feature_importance.items(), key=lambda item: item[1], reverse=True)[:n]


@dataclass(frozen=True)
class PredictionResult:
    intent: ActivityIntent
    confidence: float
    probabilities: Dict[ActivityIntent, float]


class IntentClassifier:
    """Trains on labeled workouts and predicts intents for the rest."""

    def __init__(self, trainer: Optional[IntentTrainer] = None, min_examples: Optional[int] = None):
        self.trainer = trainer or RandomForestIntentTrainer()
        self.min_examples = min_examples or config.MIN_TRAINING_EXAMPLES
        self.logger = logging.getLogger(__name__)

    def train(self, labeled: Sequence[Tuple[WorkoutFeatures, ActivityIntent]]) -> TrainingResult:
        """Train a classifier from labeled examples.

        Args:
            labeled: (features, intent) pairs

        Returns:
            TrainingResult with the fitted model and its accuracy

        Raises:
            InsufficientDataError: fewer than the minimum number of examples
        """
        if len(labeled) < self.min_examples:
            raise InsufficientDataError(len(labeled), self.min_examples)

        self.logger.info(f"Training intent classifier with {len(labeled)} labeled examples")

        rows = pd.DataFrame([features.to_row() for features, _ in labeled], columns=FEATURE_COLUMNS)
        labels = [intent.value for _, intent in labeled]
        allowed_categories = frozenset(rows[CATEGORICAL_FEATURE])

        model, metrics = self.trainer.fit(rows, labels)

        result = TrainingResult(
            model=model,
            training_accuracy=metrics.get("training_accuracy", 0.0),
            validation_accuracy=metrics.get("validation_accuracy", metrics.get("training_accuracy", 0.0)),
            feature_importance=dict(APPROXIMATE_FEATURE_IMPORTANCE),
            sample_count=len(labeled),
            allowed_categories=allowed_categories,
        )
        top = ", ".join(f"{name}: {weight:.0%}" for name, weight in result.top_features())
        self.logger.info(f"Top features: {top}")
        return result

    def predict(
        self,
        features: WorkoutFeatures,
        model: Any,
        allowed_categories: Optional[Iterable[str]] = None,
    ) -> PredictionResult:
        """Predict the intent of one workout.

        Raises:
            PredictionError: the model failed or returned an unknown label
        """
        row = pd.DataFrame([features.to_row(allowed_categories)], columns=FEATURE_COLUMNS)
        try:
            label, raw_probabilities = self.trainer.predict(model, row)
        except Exception as e:
            raise PredictionError(f"Failed to predict intent for {features.workout_id}: {e}") from e

        try:
            intent = ActivityIntent(label)
        except ValueError as e:
            raise PredictionError(f"Model returned unknown intent '{label}'") from e

        probabilities = {}
        for key, value in (raw_probabilities or {}).items():
            try:
                probabilities[ActivityIntent(key)] = float(value)
            except ValueError:
                self.logger.debug(f"Ignoring probability for unknown intent '{key}'")

        return PredictionResult(
            intent=intent,
            confidence=probabilities.get(intent, 0.5),
            probabilities=probabilities,
        )

    def classify_all(
        self,
        workouts: Iterable[WorkoutRecord],
        model: Any,
        allowed_categories: Optional[Iterable[str]],
        existing_labels: Optional[Set[str]] = None,
    ) -> List[ClassifiedWorkout]:
        """Classify all unlabeled workouts; failures become 'other' at 0.1."""
        existing_labels = existing_labels or set()
        allowed = frozenset(allowed_categories) if allowed_categories is not None else None
        results = []

        for workout in workouts:
            if workout.id in existing_labels:
                continue
            features = WorkoutFeatures.from_workout(workout)
            try:
                prediction = self.predict(features, model, allowed)
                results.append(ClassifiedWorkout(workout.id, prediction.intent, prediction.confidence))
            except PredictionError as e:
                self.logger.warning(f"Failed to classify workout {workout.id}: {e}")
                results.append(ClassifiedWorkout(workout.id, ActivityIntent.OTHER, 0.1))

        self.logger.info(f"Classified {len(results)} workouts")
        return results

    @staticmethod
    def training_examples(
        workouts: Iterable[WorkoutRecord],
        labels: Iterable[IntentLabel],
    ) -> List[Tuple[WorkoutFeatures, ActivityIntent]]:
        """Join workouts with their labels into training pairs."""
        intent_by_id = {label.workout_id: label.intent for label in labels}
        return [
            (WorkoutFeatures.from_workout(workout), intent_by_id[workout.id])
            for workout in workouts
            if workout.id in intent_by_id
        ]


@dataclass(frozen=True)
class DataFingerprint:
    """Counts of the inputs a model was trained on."""
    workout_count: int
    sleep_count: int = 0
    hrv_count: int = 0
    rhr_count: int = 0


class ModelCache:
    """Keeps trained models keyed by the data they were trained on."""

    def __init__(self):
        self._entries: Dict[DataFingerprint, TrainingResult] = {}

    def get(self, fingerprint: DataFingerprint) -> Optional[TrainingResult]:
        return self._entries.get(fingerprint)

    def put(self, fingerprint: DataFingerprint, result: TrainingResult) -> None:
        self._entries[fingerprint] = result

    def is_up_to_date(self, fingerprint: DataFingerprint) -> bool:
        return fingerprint in self._entries

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def save_model(result: TrainingResult, filepath: Union[str, Path]) -> Path:
    """Persist a training result with joblib."""
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    joblib.dump(result, path)
    logger.info(f"Model saved to {path}")
    return path


def load_model(filepath: Union[str, Path]) -> TrainingResult:
    """Load a training result saved by save_model."""
    result = joblib.load(Path(filepath))
    logger.info(f"Model loaded from {filepath}")
    return result

"""Analysis modules for intent-aware readiness and performance modeling."""

from .sample_size import AnalysisType, SampleSizeResult, SampleSizeValidator
from .statistics import StatisticalValidator, EffectSize, ComparisonResult
from .heuristic_classifier import HeuristicIntentClassifier, ClassifiedWorkout
from .intent_classifier import (
    IntentClassifier,
    RandomForestIntentTrainer,
    WorkoutFeatures,
    TrainingResult,
    PredictionResult,
    ModelCache,
    DataFingerprint,
    InsufficientDataError,
    PredictionError,
)
from .readiness import IntentAwareReadinessService, ReadinessAssessment, ReadinessLevel, LoadTrend
from .temporal import TemporalModelingService, TemporalAnalysis
from .patterns import PerformancePatternValidator, ValidatedPattern

__all__ = [
    "AnalysisType",
    "SampleSizeResult",
    "SampleSizeValidator",
    "StatisticalValidator",
    "EffectSize",
    "ComparisonResult",
    "HeuristicIntentClassifier",
    "ClassifiedWorkout",
    "IntentClassifier",
    "RandomForestIntentTrainer",
    "WorkoutFeatures",
    "TrainingResult",
    "PredictionResult",
    "ModelCache",
    "DataFingerprint",
    "InsufficientDataError",
    "PredictionError",
    "IntentAwareReadinessService",
    "ReadinessAssessment",
    "ReadinessLevel",
    "LoadTrend",
    "TemporalModelingService",
    "TemporalAnalysis",
    "PerformancePatternValidator",
    "ValidatedPattern",
]

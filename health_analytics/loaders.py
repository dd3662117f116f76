"""CSV readers and writers for workouts, health metrics and intent labels."""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

import pandas as pd

from .labels import IntentLabelStore
from .models import ActivityIntent, ActivityType, HealthMetricSample, LabelSource, WorkoutRecord

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

WORKOUT_COLUMNS = ["id", "start_date", "duration", "activity_type"]
OPTIONAL_WORKOUT_COLUMNS = ["distance", "average_heart_rate", "average_power", "source"]
METRIC_COLUMNS = ["metric", "date", "value"]
LABEL_COLUMNS = ["workout_id", "intent", "confidence", "source"]


def _require_columns(df: pd.DataFrame, columns: List[str], path: PathLike) -> None:
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise ValueError(f"{path} is missing required columns: {', '.join(missing)}")


def _optional_float(value) -> Optional[float]:
    if pd.isna(value):
        return None
    return float(value)


def _naive_utc(values: pd.Series) -> pd.Series:
    """Parse timestamps, converting any with an offset to UTC and dropping the zone."""
    return pd.to_datetime(values, utc=True, format="mixed").dt.tz_convert(None)


def load_workouts(path: PathLike) -> List[WorkoutRecord]:
    """Read workouts from a CSV file.

    Required columns: id, start_date, duration (seconds), activity_type.
    Optional columns: distance (meters), average_heart_rate, average_power, source.
    """
    df = pd.read_csv(path)
    _require_columns(df, WORKOUT_COLUMNS, path)
    df["start_date"] = _naive_utc(df["start_date"])
    for column in OPTIONAL_WORKOUT_COLUMNS:
        if column not in df.columns:
            df[column] = None

    workouts = [
        WorkoutRecord(
            id=str(row.id),
            start_date=row.start_date.to_pydatetime(),
            duration=float(row.duration),
            activity_type=ActivityType.from_string(str(row.activity_type)),
            distance=_optional_float(row.distance),
            average_heart_rate=_optional_float(row.average_heart_rate),
            average_power=_optional_float(row.average_power),
            source=str(row.source) if not pd.isna(row.source) else "csv",
        )
        for row in df.itertuples(index=False)
    ]
    logger.info(f"Loaded {len(workouts)} workouts from {path}")
    return workouts


def load_metrics(path: PathLike) -> Dict[str, List[HealthMetricSample]]:
    """Read health metrics (columns metric, date, value) grouped by metric name."""
    df = pd.read_csv(path)
    _require_columns(df, METRIC_COLUMNS, path)
    df["date"] = _naive_utc(df["date"])
    df = df.dropna(subset=["value"]).sort_values("date")

    series = {}
    for metric, group in df.groupby("metric"):
        series[str(metric)] = [
            HealthMetricSample(date=row.date.to_pydatetime(), value=float(row.value), metric=str(metric))
            for row in group.itertuples(index=False)
        ]
    logger.info(f"Loaded {len(df)} metric samples across {len(series)} series from {path}")
    return series


def load_labels(path: PathLike, store: Optional[IntentLabelStore] = None) -> IntentLabelStore:
    """Read intent labels into a store; later rows supersede earlier ones."""
    df = pd.read_csv(path)
    _require_columns(df, ["workout_id", "intent"], path)
    store = store if store is not None else IntentLabelStore()

    for row in df.itertuples(index=False):
        confidence = getattr(row, "confidence", 1.0)
        source = getattr(row, "source", LabelSource.MANUAL.value)
        store.upsert(
            str(row.workout_id),
            ActivityIntent.from_string(str(row.intent)),
            1.0 if pd.isna(confidence) else float(confidence),
            LabelSource(source) if not pd.isna(source) else LabelSource.MANUAL,
        )
    logger.info(f"Loaded {len(store)} intent labels from {path}")
    return store


def write_labels(store: IntentLabelStore, path: PathLike) -> Path:
    """Write the store to CSV."""
    rows = [
        {
            "workout_id": label.workout_id,
            "intent": label.intent.value,
            "confidence": round(label.confidence, 4),
            "source": label.source.value,
        }
        for label in store.labels()
    ]
    output = Path(path)
    pd.DataFrame(rows, columns=LABEL_COLUMNS).to_csv(output, index=False)
    logger.info(f"Wrote {len(rows)} intent labels to {output}")
    return output

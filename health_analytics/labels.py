"""In-memory store of authoritative workout intent labels."""

import logging
from collections import Counter
from dataclasses import replace
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set

from .analysis.heuristic_classifier import ClassifiedWorkout
from .models import ActivityIntent, IntentLabel, LabelSource

logger = logging.getLogger(__name__)


class IntentLabelStore:
    """Holds at most one label per workout id; later writes supersede earlier ones."""

    def __init__(self, labels: Optional[Iterable[IntentLabel]] = None):
        self._labels: Dict[str, IntentLabel] = {}
        for label in labels or []:
            self._labels[label.workout_id] = label

    def upsert(
        self,
        workout_id: str,
        intent: ActivityIntent,
        confidence: float = 1.0,
        source: LabelSource = LabelSource.MANUAL,
        now: Optional[datetime] = None,
    ) -> IntentLabel:
        """Create or replace the label of a workout."""
        now = now or datetime.now()
        confidence = max(0.0, min(1.0, float(confidence)))
        existing = self._labels.get(workout_id)

        if existing is not None:
            label = replace(existing, intent=intent, confidence=confidence, source=source, updated_at=now)
        else:
            label = IntentLabel(
                workout_id=workout_id,
                intent=intent,
                confidence=confidence,
                source=source,
                created_at=now,
                updated_at=now,
            )
        self._labels[workout_id] = label
        return label

    def get(self, workout_id: str) -> Optional[IntentLabel]:
        return self._labels.get(workout_id)

    def remove(self, workout_id: str) -> bool:
        return self._labels.pop(workout_id, None) is not None

    def labels(self) -> List[IntentLabel]:
        return list(self._labels.values())

    def labeled_ids(self) -> Set[str]:
        return set(self._labels)

    def count_by_intent(self) -> Dict[ActivityIntent, int]:
        return dict(Counter(label.intent for label in self._labels.values()))

    def count_by_source(self) -> Dict[LabelSource, int]:
        return dict(Counter(label.source for label in self._labels.values()))

    def apply_classifications(
        self,
        results: Iterable[ClassifiedWorkout],
        source: LabelSource,
        now: Optional[datetime] = None,
    ) -> int:
        """Upsert a batch of classifier output.

        Manual labels are never overwritten by automatic sources.

        Returns:
            Number of labels written
        """
        written = 0
        for result in results:
            existing = self._labels.get(result.workout_id)
            if existing is not None and existing.source == LabelSource.MANUAL and source != LabelSource.MANUAL:
                continue
            self.upsert(result.workout_id, result.intent, result.confidence, source, now)
            written += 1
        logger.info(f"Stored {written} {source.value} labels")
        return written

    def __len__(self) -> int:
        return len(self._labels)

    def __contains__(self, workout_id: object) -> bool:
        return workout_id in self._labels

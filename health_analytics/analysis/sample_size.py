"""
Sample-size gating for statistical claims.

Every analysis kind carries a (minimum, ideal) pair. Results below the
minimum are reported as invalid rather than raised, so callers can show
"need N more data points" instead of a misleading number. Also provides an
approximate power calculator and its inverse.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import numpy as np
from scipy import stats

from ..models import ConfidenceLevel

logger = logging.getLogger(__name__)


class AnalysisType(Enum):
    """Kinds of analysis gated by sample size."""
    BASIC_STATS = "basic statistics"
    COMPARISON = "group comparison"
    CORRELATION = "correlation analysis"
    REGRESSION = "regression analysis"
    ML_TRAINING = "ML model training"
    PATTERN_DISCOVERY = "pattern discovery"
    INTENT_CLASSIFICATION = "intent classification"

    @property
    def minimum_required(self) -> int:
        return _REQUIREMENTS[self][0]

    @property
    def ideal_size(self) -> int:
        return _REQUIREMENTS[self][1]


_REQUIREMENTS = {
    AnalysisType.BASIC_STATS: (5, 30),
    AnalysisType.COMPARISON: (5, 30),
    AnalysisType.CORRELATION: (10, 30),
    AnalysisType.REGRESSION: (20, 50),
    AnalysisType.ML_TRAINING: (30, 100),
    AnalysisType.PATTERN_DISCOVERY: (20, 50),
    AnalysisType.INTENT_CLASSIFICATION: (10, 50),
}


@dataclass(frozen=True)
class SampleSizeResult:
    """Outcome of a sample-size check."""
    is_valid: bool
    sample_size: int
    required: int
    confidence: ConfidenceLevel
    message: str

    @property
    def needs_more_data(self) -> Optional[int]:
        """How many more observations are needed, or None when valid."""
        if self.is_valid:
            return None
        return self.required - self.sample_size


class SampleSizeValidator:
    """Checks whether there is enough data before making a claim."""

    @staticmethod
    def validate(sample_size: int, analysis_type: AnalysisType) -> SampleSizeResult:
        """Check if a sample size is adequate for an analysis type.

        Args:
            sample_size: Number of observations available
            analysis_type: Kind of analysis the sample feeds

        Returns:
            SampleSizeResult with validity, tier and a human-readable message
        """
        required = analysis_type.minimum_required
        ideal = analysis_type.ideal_size

        if sample_size < required:
            return SampleSizeResult(
                is_valid=False,
                sample_size=sample_size,
                required=required,
                confidence=ConfidenceLevel.INSUFFICIENT,
                message=(
                    f"Need at least {required} data points for {analysis_type.value}. "
                    f"Currently have {sample_size}."
                ),
            )
        elif sample_size < ideal:
            return SampleSizeResult(
                is_valid=True,
                sample_size=sample_size,
                required=required,
                confidence=ConfidenceLevel.MEDIUM if sample_size >= ideal // 2 else ConfidenceLevel.LOW,
                message=(
                    f"Have {sample_size} data points. "
                    f"Confidence would improve with {ideal}+ points."
                ),
            )
        else:
            return SampleSizeResult(
                is_valid=True,
                sample_size=sample_size,
                required=required,
                confidence=ConfidenceLevel.HIGH,
                message=f"Excellent sample size ({sample_size} points) for {analysis_type.value}.",
            )

    @classmethod
    def validate_comparison(
        cls,
        group1_size: int,
        group2_size: int,
        analysis_type: AnalysisType = AnalysisType.COMPARISON,
    ) -> SampleSizeResult:
        """Validate two groups by the smaller of the two."""
        return cls.validate(min(group1_size, group2_size), analysis_type)

    @staticmethod
    def calculate_power(
        sample_size: int,
        expected_effect_size: float,
        significance_level: float = 0.05,
    ) -> float:
        """Approximate probability of detecting a true effect of the given size.

        Uses a normal approximation: noncentrality d * sqrt(n / 2) against the
        two-tailed critical z (1.96 at alpha = 0.05).
        """
        if sample_size <= 0:
            return 0.0
        noncentrality = expected_effect_size * np.sqrt(sample_size / 2.0)
        critical_value = stats.norm.ppf(1 - significance_level / 2)
        power = 1.0 - stats.norm.cdf(critical_value - noncentrality)
        return float(max(0.0, min(1.0, power)))

    @classmethod
    def recommended_sample_size(
        cls,
        expected_effect_size: float,
        desired_power: float = 0.80,
        significance_level: float = 0.05,
    ) -> int:
        """Smallest sample size in [5, 1000] reaching the desired power."""
        low, high = 5, 1000
        while low < high:
            mid = (low + high) // 2
            power = cls.calculate_power(mid, expected_effect_size, significance_level)
            if power < desired_power:
                low = mid + 1
            else:
                high = mid
        if low == 1000:
            logger.debug(f"Effect size {expected_effect_size} needs at least 1000 samples for power {desired_power}")
        return low

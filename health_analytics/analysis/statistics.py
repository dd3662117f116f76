"""
Statistical validation toolkit.

This module implements:
1. Bootstrap confidence intervals for a mean and for the acute:chronic ratio
2. Welch's two-sample t-test and a permutation test
3. Cohen's d effect size with interpretation
4. Pearson correlation with a significance test

P-values come from one of two methods. "approximate" keeps the coarse rules
(normal approximation above 30 degrees of freedom, a |t| lookup table below).
"exact" uses Student's t distribution.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Union

import numpy as np
from scipy import stats

from ..config import config

logger = logging.getLogger(__name__)

RandomState = Union[np.random.Generator, int, None]


def _resolve_rng(rng: RandomState) -> np.random.Generator:
    if isinstance(rng, np.random.Generator):
        return rng
    return config.get_rng(rng)


class EffectSize(Enum):
    """Cohen's d magnitude buckets."""
    NEGLIGIBLE = "Negligible"
    SMALL = "Small"
    MEDIUM = "Medium"
    LARGE = "Large"

    @property
    def description(self) -> str:
        return {
            "Negligible": "Very small effect, likely not meaningful",
            "Small": "Small but detectable effect",
            "Medium": "Moderate, noticeable effect",
            "Large": "Large, substantial effect",
        }[self.value]


@dataclass(frozen=True)
class BootstrapInterval:
    mean: float
    lower: float
    upper: float


@dataclass(frozen=True)
class RatioInterval:
    acwr: float
    lower: float
    upper: float


@dataclass(frozen=True)
class TTestResult:
    t_statistic: float
    p_value: float
    degrees_of_freedom: float
    is_significant: bool


@dataclass(frozen=True)
class PermutationResult:
    mean_difference: float
    p_value: float
    is_significant: bool


@dataclass(frozen=True)
class CorrelationResult:
    """Pearson correlation with its significance."""
    r: float
    p_value: float
    n_samples: int
    is_significant: bool

    @property
    def strength(self) -> str:
        """Interpret correlation strength."""
        abs_r = abs(self.r)
        if abs_r >= 0.7:
            return "strong"
        elif abs_r >= 0.4:
            return "moderate"
        elif abs_r >= 0.2:
            return "weak"
        else:
            return "negligible"

    @property
    def direction(self) -> str:
        return "positive" if self.r > 0 else "negative"


@dataclass(frozen=True)
class ComparisonResult:
    """Two-group comparison combining a permutation test and Cohen's d."""
    group1_mean: float
    group2_mean: float
    difference: float
    p_value: float
    is_significant: bool
    effect_size: Optional[float]
    effect_size_interpretation: Optional[EffectSize]

    @property
    def summary(self) -> str:
        text = f"Difference: {self.difference:.2f} (p = {self.p_value:.3f})"
        text += " - Significant" if self.is_significant else " - Not significant"
        if self.effect_size_interpretation is not None:
            text += f", Effect: {self.effect_size_interpretation.value}"
        return text


class StatisticalValidator:
    """Resampling and significance tests over plain numeric samples."""

    # ------------------------------------------------------------------
    # Bootstrap intervals
    # ------------------------------------------------------------------

    @staticmethod
    def bootstrap_confidence_interval(
        data: Sequence[float],
        confidence_level: Optional[float] = None,
        iterations: Optional[int] = None,
        rng: RandomState = None,
    ) -> Optional[BootstrapInterval]:
        """Bootstrap a confidence interval for the mean.

        Args:
            data: Observed sample
            confidence_level: Interval coverage, defaults to config (0.95)
            iterations: Number of resamples, defaults to config (10000)
            rng: Generator or seed for reproducible resampling

        Returns:
            BootstrapInterval around the actual sample mean, or None for empty data
        """
        values = np.asarray(data, dtype=float)
        if values.size == 0:
            return None

        confidence_level = confidence_level or config.CONFIDENCE_LEVEL
        iterations = iterations or config.BOOTSTRAP_ITERATIONS
        generator = _resolve_rng(rng)

        resamples = generator.choice(values, size=(iterations, values.size), replace=True)
        means = np.sort(resamples.mean(axis=1))

        lower, upper = _percentile_bounds(means, confidence_level)
        return BootstrapInterval(mean=float(values.mean()), lower=lower, upper=upper)

    @staticmethod
    def acwr_confidence_interval(
        acute_loads: Sequence[float],
        chronic_loads: Sequence[float],
        confidence_level: Optional[float] = None,
        iterations: Optional[int] = None,
        rng: RandomState = None,
    ) -> Optional[RatioInterval]:
        """Bootstrap the acute:chronic workload ratio.

        Both windows are resampled independently on every draw. Draws whose
        resampled chronic mean is zero are skipped.
        """
        acute = np.asarray(acute_loads, dtype=float)
        chronic = np.asarray(chronic_loads, dtype=float)
        if acute.size == 0 or chronic.size == 0:
            return None

        confidence_level = confidence_level or config.CONFIDENCE_LEVEL
        iterations = iterations or config.BOOTSTRAP_ITERATIONS
        generator = _resolve_rng(rng)

        acute_means = generator.choice(acute, size=(iterations, acute.size), replace=True).mean(axis=1)
        chronic_means = generator.choice(chronic, size=(iterations, chronic.size), replace=True).mean(axis=1)

        valid = chronic_means > 0
        if not valid.any():
            logger.debug("Every bootstrap draw had a zero chronic load; no ACWR interval")
            return None
        skipped = iterations - int(valid.sum())
        if skipped:
            logger.debug(f"Skipped {skipped} ACWR draws with zero chronic load")

        ratios = np.sort(acute_means[valid] / chronic_means[valid])
        lower, upper = _percentile_bounds(ratios, confidence_level)

        chronic_mean = chronic.mean()
        acwr = float(acute.mean() / chronic_mean) if chronic_mean > 0 else 1.0
        return RatioInterval(acwr=acwr, lower=lower, upper=upper)

    # ------------------------------------------------------------------
    # Hypothesis tests
    # ------------------------------------------------------------------

    @classmethod
    def t_test(
        cls,
        group1: Sequence[float],
        group2: Sequence[float],
        significance_level: Optional[float] = None,
        method: Optional[str] = None,
    ) -> Optional[TTestResult]:
        """Welch's two-sample t-test. Needs at least 2 observations per group."""
        a = np.asarray(group1, dtype=float)
        b = np.asarray(group2, dtype=float)
        if a.size < 2 or b.size < 2:
            return None

        significance_level = significance_level or config.SIGNIFICANCE_LEVEL
        var1, var2 = a.var(ddof=1), b.var(ddof=1)
        n1, n2 = a.size, b.size

        se_squared = var1 / n1 + var2 / n2
        if se_squared <= 0:
            return None
        t_stat = (a.mean() - b.mean()) / np.sqrt(se_squared)

        # Welch-Satterthwaite
        df = se_squared ** 2 / ((var1 / n1) ** 2 / (n1 - 1) + (var2 / n2) ** 2 / (n2 - 1))

        p_value = cls.t_distribution_p_value(float(t_stat), float(df), method)
        return TTestResult(
            t_statistic=float(t_stat),
            p_value=p_value,
            degrees_of_freedom=float(df),
            is_significant=p_value < significance_level,
        )

    @staticmethod
    def permutation_test(
        group1: Sequence[float],
        group2: Sequence[float],
        iterations: Optional[int] = None,
        significance_level: Optional[float] = None,
        rng: RandomState = None,
    ) -> Optional[PermutationResult]:
        """Non-parametric test on the difference of means.

        Pools both groups, shuffles, splits at the size of group1 and counts
        how often the permuted difference is at least as extreme as observed.
        """
        a = np.asarray(group1, dtype=float)
        b = np.asarray(group2, dtype=float)
        if a.size == 0 or b.size == 0:
            return None

        iterations = iterations or config.PERMUTATION_ITERATIONS
        significance_level = significance_level or config.SIGNIFICANCE_LEVEL
        generator = _resolve_rng(rng)

        observed = a.mean() - b.mean()
        pooled = np.concatenate([a, b])
        n1 = a.size

        shuffled = generator.permuted(np.tile(pooled, (iterations, 1)), axis=1)
        permuted_diffs = shuffled[:, :n1].mean(axis=1) - shuffled[:, n1:].mean(axis=1)

        extreme_count = int(np.sum(np.abs(permuted_diffs) >= abs(observed)))
        p_value = extreme_count / iterations
        return PermutationResult(
            mean_difference=float(observed),
            p_value=p_value,
            is_significant=p_value < significance_level,
        )

    # ------------------------------------------------------------------
    # Effect size
    # ------------------------------------------------------------------

    @staticmethod
    def cohens_d(group1: Sequence[float], group2: Sequence[float]) -> Optional[float]:
        """Standardized mean difference using the pooled standard deviation."""
        a = np.asarray(group1, dtype=float)
        b = np.asarray(group2, dtype=float)
        if a.size < 2 or b.size < 2:
            return None

        n1, n2 = a.size, b.size
        pooled_sd = np.sqrt(((n1 - 1) * a.var(ddof=1) + (n2 - 1) * b.var(ddof=1)) / (n1 + n2 - 2))
        if pooled_sd <= 0:
            return None
        return float((a.mean() - b.mean()) / pooled_sd)

    @staticmethod
    def interpret_effect_size(d: float) -> EffectSize:
        abs_d = abs(d)
        if abs_d < 0.2:
            return EffectSize.NEGLIGIBLE
        elif abs_d < 0.5:
            return EffectSize.SMALL
        elif abs_d < 0.8:
            return EffectSize.MEDIUM
        else:
            return EffectSize.LARGE

    # ------------------------------------------------------------------
    # Correlation
    # ------------------------------------------------------------------

    @classmethod
    def pearson_correlation(
        cls,
        x: Sequence[float],
        y: Sequence[float],
        significance_level: Optional[float] = None,
        method: Optional[str] = None,
    ) -> Optional[CorrelationResult]:
        """Pearson r with a t-based significance test on n - 2 degrees of freedom."""
        xs = np.asarray(x, dtype=float)
        ys = np.asarray(y, dtype=float)
        if xs.size != ys.size or xs.size < 3:
            return None

        significance_level = significance_level or config.SIGNIFICANCE_LEVEL
        if np.ptp(xs) == 0 or np.ptp(ys) == 0:
            return None

        r = float(stats.pearsonr(xs, ys)[0])
        r = max(-1.0, min(1.0, r))
        n = xs.size
        df = n - 2

        if 1 - r * r <= 1e-12:
            p_value = 0.0
        else:
            t_stat = r * np.sqrt(df / (1 - r * r))
            p_value = cls.t_distribution_p_value(float(t_stat), float(df), method)

        return CorrelationResult(
            r=r,
            p_value=p_value,
            n_samples=n,
            is_significant=p_value < significance_level,
        )

    @classmethod
    def compare_groups(
        cls,
        group1: Sequence[float],
        group2: Sequence[float],
        iterations: Optional[int] = None,
        significance_level: Optional[float] = None,
        rng: RandomState = None,
    ) -> Optional[ComparisonResult]:
        """Permutation test plus effect size for two groups."""
        permutation = cls.permutation_test(group1, group2, iterations, significance_level, rng)
        if permutation is None:
            return None

        d = cls.cohens_d(group1, group2)
        return ComparisonResult(
            group1_mean=float(np.mean(group1)),
            group2_mean=float(np.mean(group2)),
            difference=permutation.mean_difference,
            p_value=permutation.p_value,
            is_significant=permutation.is_significant,
            effect_size=d,
            effect_size_interpretation=cls.interpret_effect_size(d) if d is not None else None,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def t_distribution_p_value(t: float, df: float, method: Optional[str] = None) -> float:
        """Two-tailed p-value for a t statistic.

        The "approximate" method is intentionally coarse: it uses the normal
        distribution above 30 degrees of freedom and a lookup table on |t|
        otherwise. The "exact" method uses Student's t survival function.
        """
        method = (method or config.PVALUE_METHOD).lower()
        abs_t = abs(t)

        if method == "exact":
            return float(2.0 * stats.t.sf(abs_t, df))
        if method != "approximate":
            raise ValueError(f"Unknown p-value method: {method}")

        if df > 30:
            return float(2.0 * stats.norm.cdf(-abs_t))

        if abs_t > 3.0:
            return 0.01
        elif abs_t > 2.0:
            return 0.05
        elif abs_t > 1.5:
            return 0.15
        else:
            return 0.30


def _percentile_bounds(sorted_values: np.ndarray, confidence_level: float) -> List[float]:
    """Lower/upper percentile values of an already sorted distribution."""
    alpha = 1.0 - confidence_level
    count = sorted_values.size
    lower_index = int(count * (alpha / 2))
    upper_index = min(int(count * (1 - alpha / 2)), count - 1)
    return [float(sorted_values[lower_index]), float(sorted_values[upper_index])]

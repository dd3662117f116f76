"""Configuration management for the health analytics engine."""

import os
from pathlib import Path
from typing import Optional

import numpy as np
from dotenv import load_dotenv

load_dotenv()


def _optional_int(value: Optional[str]) -> Optional[int]:
    if value is None or value.strip() == "":
        return None
    return int(value)


class Config:
    """Application configuration."""

    # Application
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    MODEL_DIR: Path = Path(os.getenv("MODEL_DIR", str(Path.home() / ".health_analytics" / "models")))

    # Resampling
    BOOTSTRAP_ITERATIONS: int = int(os.getenv("BOOTSTRAP_ITERATIONS", "10000"))
    PERMUTATION_ITERATIONS: int = int(os.getenv("PERMUTATION_ITERATIONS", "10000"))
    RANDOM_SEED: Optional[int] = _optional_int(os.getenv("RANDOM_SEED"))

    # Significance testing
    CONFIDENCE_LEVEL: float = float(os.getenv("CONFIDENCE_LEVEL", "0.95"))
    SIGNIFICANCE_LEVEL: float = float(os.getenv("SIGNIFICANCE_LEVEL", "0.05"))
    PVALUE_METHOD: str = os.getenv("PVALUE_METHOD", "approximate").lower()  # approximate | exact
    PVALUE_METHODS = ("approximate", "exact")

    # Intent classification
    ESTIMATED_MAX_HR: float = float(os.getenv("ESTIMATED_MAX_HR", "185"))
    MIN_TRAINING_EXAMPLES: int = int(os.getenv("MIN_TRAINING_EXAMPLES", "10"))

    # ACWR windows (days)
    ACUTE_WINDOW_DAYS: int = int(os.getenv("ACUTE_WINDOW_DAYS", "7"))
    CHRONIC_WINDOW_DAYS: int = int(os.getenv("CHRONIC_WINDOW_DAYS", "28"))

    # Sport Load Multipliers
    # Per-workout load = duration in hours x multiplier
    SPORT_LOAD_MULTIPLIERS = {
        "run": float(os.getenv("LOAD_MULTIPLIER_RUN", "1.2")),
        "ride": float(os.getenv("LOAD_MULTIPLIER_RIDE", "1.0")),
        "swim": float(os.getenv("LOAD_MULTIPLIER_SWIM", "1.3")),
        "strength": float(os.getenv("LOAD_MULTIPLIER_STRENGTH", "1.1")),
        "walk": float(os.getenv("LOAD_MULTIPLIER_WALK", "0.5")),
        "other": float(os.getenv("LOAD_MULTIPLIER_OTHER", "1.0")),
    }

    @classmethod
    def get_sport_load_multiplier(cls, sport: str) -> float:
        """Get load multiplier for a sport, falling back to the 'other' multiplier."""
        return cls.SPORT_LOAD_MULTIPLIERS.get(sport, cls.SPORT_LOAD_MULTIPLIERS["other"])

    @classmethod
    def get_rng(cls, seed: Optional[int] = None) -> np.random.Generator:
        """Create a random generator from an explicit seed or the configured one."""
        return np.random.default_rng(seed if seed is not None else cls.RANDOM_SEED)

    @classmethod
    def validate(cls) -> bool:
        """Validate configuration values."""
        if cls.PVALUE_METHOD not in cls.PVALUE_METHODS:
            raise ValueError(
                f"Invalid PVALUE_METHOD '{cls.PVALUE_METHOD}'. Expected one of: {', '.join(cls.PVALUE_METHODS)}"
            )
        if not 0 < cls.CONFIDENCE_LEVEL < 1:
            raise ValueError("CONFIDENCE_LEVEL must be between 0 and 1")
        if not 0 < cls.SIGNIFICANCE_LEVEL < 1:
            raise ValueError("SIGNIFICANCE_LEVEL must be between 0 and 1")
        if cls.BOOTSTRAP_ITERATIONS <= 0 or cls.PERMUTATION_ITERATIONS <= 0:
            raise ValueError("Resampling iterations must be positive")
        return True

    @classmethod
    def ensure_dirs(cls) -> None:
        """Ensure required directories exist."""
        cls.MODEL_DIR.mkdir(parents=True, exist_ok=True)


config = Config()

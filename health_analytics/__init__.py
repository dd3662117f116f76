"""Intent-aware readiness and statistical validation engine."""

__version__ = "0.1.0"

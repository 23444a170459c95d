"""Food Safety Audit Scoring & Exclusion Engine."""

__version__ = "1.0.0"

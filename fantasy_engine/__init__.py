"""Fantasy F1 scoring, pricing and roster lockout rules engine."""

__version__ = "0.1.0"

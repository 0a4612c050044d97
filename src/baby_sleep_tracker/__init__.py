"""Baby Sleep Tracker - sleep-interval reconciliation engine and API."""

__version__ = "1.0.0"

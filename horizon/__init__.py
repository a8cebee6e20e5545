"""Horizon - operations dashboard back-end with predictive analytics."""

__version__ = "0.3.0"

"""Temporal analyses."""

from .seasonality import classify_seasonality

__all__ = ["classify_seasonality"]

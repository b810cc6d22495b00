"""Niche breadth and niche position classifications."""

from .breadth import NICHE_BREADTH_METHODS, classify_niche_breadth
from .position import classify_niche_range, classify_niche_value

__all__ = [
    "NICHE_BREADTH_METHODS",
    "classify_niche_breadth",
    "classify_niche_range",
    "classify_niche_value",
]

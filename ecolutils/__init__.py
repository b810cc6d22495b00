"""
EcolUtils: null-model classification for ecological community matrices.

This package provides tools to:
- Load and validate community tables, sample metadata and dissimilarity matrices
- Rarefy communities by averaging repeated subsamples
- Classify taxa as generalists/specialists against swap null models
- Classify niche position and niche range along environmental gradients
- Detect seasonal taxa from temporal autocorrelation
- Run pairwise PERMANOVA between factor levels
- Locate community discontinuities with split moving windows
"""

__version__ = "0.1.0"

from . import errors, io, nullmodel, stats, niche, temporal, groups, turnover, export
from .groups import pairwise_permanova
from .niche import classify_niche_breadth, classify_niche_range, classify_niche_value
from .nullmodel import ReplicatePool, build_null_distribution, rarefy_averaged
from .stats import classify, compute_column_stat
from .temporal import classify_seasonality
from .turnover import SplitWindowResult, split_window_analysis

__all__ = [
    "errors",
    "io",
    "nullmodel",
    "stats",
    "niche",
    "temporal",
    "groups",
    "turnover",
    "export",
    "pairwise_permanova",
    "classify_niche_breadth",
    "classify_niche_range",
    "classify_niche_value",
    "ReplicatePool",
    "build_null_distribution",
    "rarefy_averaged",
    "classify",
    "compute_column_stat",
    "classify_seasonality",
    "SplitWindowResult",
    "split_window_analysis",
    "__version__",
]

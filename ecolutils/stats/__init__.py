"""Statistics, null-distribution summaries and classification."""

from .adapters import autocorrelation, niche_width, p_adjust, permanova_test, quantile
from .classifier import (
    NICHE_BREADTH_LABELS,
    NICHE_POSITION_LABELS,
    SEASONALITY_LABELS,
    WINDOW_LABELS,
    LabelSet,
    classify,
    classify_value,
    summarize_null,
)
from .column_stats import (
    COLUMN_STATISTICS,
    compute_column_stat,
    make_column_statistic,
    niche_range,
    occurrence,
    seasonality_index,
    weighted_mean,
)
from .distance import community_dissimilarity

__all__ = [
    "autocorrelation",
    "niche_width",
    "p_adjust",
    "permanova_test",
    "quantile",
    "NICHE_BREADTH_LABELS",
    "NICHE_POSITION_LABELS",
    "SEASONALITY_LABELS",
    "WINDOW_LABELS",
    "LabelSet",
    "classify",
    "classify_value",
    "summarize_null",
    "COLUMN_STATISTICS",
    "compute_column_stat",
    "make_column_statistic",
    "niche_range",
    "occurrence",
    "seasonality_index",
    "weighted_mean",
    "community_dissimilarity",
]

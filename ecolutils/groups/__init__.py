"""Group comparisons on dissimilarity matrices."""

from .pairwise import factor_levels, pairwise_permanova

__all__ = ["factor_levels", "pairwise_permanova"]

"""I/O utilities for loading, validating and aligning community data."""

from .loader import (
    load_h5ad,
    load_table,
    load_community,
    load_metadata,
    load_dissimilarity,
    summarize_community,
)
from .validator import (
    check_community,
    validate_community,
    validate_dissimilarity,
    align_environment,
    align_factor,
)
from .converter import community_from_anndata, as_community_frame, as_dissimilarity_frame

__all__ = [
    "load_h5ad",
    "load_table",
    "load_community",
    "load_metadata",
    "load_dissimilarity",
    "summarize_community",
    "check_community",
    "validate_community",
    "validate_dissimilarity",
    "align_environment",
    "align_factor",
    "community_from_anndata",
    "as_community_frame",
    "as_dissimilarity_frame",
]

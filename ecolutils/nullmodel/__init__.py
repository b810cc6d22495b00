"""Null-model generation, replicate aggregation and rarefaction."""

from .generators import (
    get_null_generator,
    null_swap,
    permute_samples,
    random_sample_order,
    rarefy_once,
    shuffle_rows,
)
from .replicates import ReplicatePool, build_null_distribution, run_replicates
from .rarefaction import rarefy_averaged
from .parameters import NullModelParameters, get_default_parameters, validate_parameters

__all__ = [
    "get_null_generator",
    "null_swap",
    "permute_samples",
    "random_sample_order",
    "rarefy_once",
    "shuffle_rows",
    "ReplicatePool",
    "build_null_distribution",
    "run_replicates",
    "rarefy_averaged",
    "NullModelParameters",
    "get_default_parameters",
    "validate_parameters",
]

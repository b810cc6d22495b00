"""Pairwise PERMANOVA between all pairs of factor levels."""

import itertools
import logging
from typing import List

import numpy as np
import pandas as pd

from ..errors import DegenerateGroupError, InsufficientLevelsError
from ..io.converter import as_dissimilarity_frame
from ..io.validator import align_factor, validate_dissimilarity
from ..stats.adapters import P_ADJUST_METHODS, p_adjust, permanova_test

logger = logging.getLogger(__name__)

PAIRWISE_COLUMNS = [
    "combination",
    "sums_of_sqs",
    "mean_sqs",
    "f_model",
    "r2",
    "p_value",
    "p_value_corrected",
]


def factor_levels(factor: pd.Series) -> List:
    """
    Levels present in ``factor``, in natural order.

    Categorical factors keep their category order; other labels are sorted.
    Missing labels are not a level.
    """
    present = factor.dropna()
    if isinstance(factor.dtype, pd.CategoricalDtype):
        observed = set(present)
        return [level for level in factor.cat.categories if level in observed]
    return sorted(present.unique())


def _check_levels(factor: pd.Series, levels: List) -> None:
    if len(levels) < 2:
        msg = f"Pairwise comparison needs at least 2 factor levels, found {len(levels)}: {levels}"
        logger.error(msg)
        raise InsufficientLevelsError(msg)

    sizes = factor.value_counts()
    small = {level: int(sizes.get(level, 0)) for level in levels if sizes.get(level, 0) < 2}
    if small:
        msg = f"Every factor level needs at least 2 samples; too small: {small}"
        logger.error(msg)
        raise DegenerateGroupError(msg)


def pairwise_permanova(
    dissimilarity,
    factor,
    permutations: int = 1000,
    correction: str = "fdr",
    random_state=None,
) -> pd.DataFrame:
    """
    Run a PERMANOVA for every pair of factor levels.

    Parameters
    ----------
    dissimilarity : pd.DataFrame, DistanceMatrix or array
        Square, symmetric, hollow dissimilarity matrix between samples.
    factor : pd.Series or sequence
        Group label per sample (Series aligned by sample id, otherwise by
        position). Samples with a missing label are left out.
    permutations : int
        Permutations per test.
    correction : str
        Multiple-comparison correction ('fdr', 'BH', 'BY', 'bonferroni',
        'holm', 'hochberg', 'hommel' or 'none').
    random_state : int, optional
        Seed for reproducible permutations.

    Returns
    -------
    pd.DataFrame
        One row per pair (``"A <-> B"``), in level-combination order, with the
        sums of squares, mean squares, pseudo-F, R², raw and corrected
        p-values.
    """
    dissimilarity = as_dissimilarity_frame(dissimilarity)
    validate_dissimilarity(dissimilarity, require_hollow=True)
    factor = align_factor(factor, dissimilarity.index)

    if correction not in P_ADJUST_METHODS:
        raise ValueError(f"Unknown correction: {correction}. Choose from {list(P_ADJUST_METHODS)}")
    if permutations < 0:
        raise ValueError(f"permutations must be >= 0, got {permutations}")

    levels = factor_levels(factor)
    _check_levels(factor, levels)

    pairs = list(itertools.combinations(levels, 2))
    seeds = np.random.SeedSequence(random_state).spawn(len(pairs))

    logger.info(
        f"Pairwise PERMANOVA: {len(levels)} levels, {len(pairs)} pairs, "
        f"{permutations} permutations"
    )

    rows = []
    for (level_a, level_b), seed in zip(pairs, seeds):
        members = factor.isin([level_a, level_b]).to_numpy()
        subset = dissimilarity.iloc[members, members]
        groups = factor[members].astype(object).tolist()

        stats = permanova_test(
            subset, groups, permutations=permutations, seed=np.random.default_rng(seed)
        )
        rows.append({"combination": f"{level_a} <-> {level_b}", **stats})
        logger.debug(f"{level_a} <-> {level_b}: F={stats['f_model']:.4f}, p={stats['p_value']:.4f}")

    result = pd.DataFrame(rows)
    result["p_value_corrected"] = p_adjust(result["p_value"].to_numpy(), method=correction)

    return result[PAIRWISE_COLUMNS]

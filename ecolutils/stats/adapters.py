"""Thin adapters over the numerical libraries used by the analyses.

Each function exposes one narrow capability (quantiles, p-value correction,
autocorrelation, niche width, PERMANOVA) so the analysis code does not depend
on library-specific call conventions.
"""

import logging
import warnings
from typing import Dict, Sequence

import numpy as np
import pandas as pd
from scipy import stats
from skbio.stats.distance import DistanceMatrix, permanova
from statsmodels.stats.multitest import multipletests
from statsmodels.tsa.stattools import acf

logger = logging.getLogger(__name__)

# p.adjust method names mapped to statsmodels multipletests methods
P_ADJUST_METHODS = {
    "fdr": "fdr_bh",
    "BH": "fdr_bh",
    "fdr_bh": "fdr_bh",
    "BY": "fdr_by",
    "fdr_by": "fdr_by",
    "bonferroni": "bonferroni",
    "holm": "holm",
    "hochberg": "simes-hochberg",
    "hommel": "hommel",
    "none": None,
}

NICHE_WIDTH_METHODS = ("levins", "shannon")


def quantile(values: np.ndarray, probs: Sequence[float], axis: int = 0) -> np.ndarray:
    """
    Empirical quantiles with linear interpolation (R type 7), ignoring NaN.

    Slices that are entirely NaN give NaN.
    """
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", category=RuntimeWarning)
        return np.nanquantile(np.asarray(values, dtype=float), probs, axis=axis, method="linear")


def p_adjust(p_values: Sequence[float], method: str = "fdr") -> np.ndarray:
    """
    Multiple-comparison correction of a p-value vector.

    Parameters
    ----------
    p_values : sequence of float
        Raw p-values. NaN entries are left untouched and excluded from the
        correction.
    method : str
        R ``p.adjust`` name ('fdr', 'BH', 'BY', 'bonferroni', 'holm',
        'hochberg', 'hommel', 'none') or a statsmodels method name.

    Returns
    -------
    np.ndarray
        Adjusted p-values in input order.
    """
    p_values = np.asarray(p_values, dtype=float)
    sm_method = P_ADJUST_METHODS.get(method, method)

    adjusted = p_values.copy()
    if sm_method is None:
        return adjusted

    finite = np.isfinite(p_values)
    if finite.any():
        _, corrected, _, _ = multipletests(p_values[finite], method=sm_method)
        adjusted[finite] = corrected

    return adjusted


def autocorrelation(series: np.ndarray, lag_max: int) -> np.ndarray:
    """
    Sample autocorrelation at lags ``0..lag_max``.

    ``lag_max`` is capped at ``len(series) - 1``. Missing values are excluded
    pairwise from the mean and covariance computation. Constant series give
    NaN coefficients.
    """
    series = np.asarray(series, dtype=float)
    nlags = int(min(lag_max, len(series) - 1))
    if nlags < 1:
        return np.full(1, np.nan)

    with warnings.catch_warnings(), np.errstate(divide="ignore", invalid="ignore"):
        warnings.simplefilter("ignore", category=RuntimeWarning)
        return acf(series, nlags=nlags, fft=False, missing="conservative")


def niche_width(values: np.ndarray, method: str = "levins") -> np.ndarray:
    """
    Niche width of every column of a samples x taxa array.

    Parameters
    ----------
    values : np.ndarray
        Non-negative abundances.
    method : {'levins', 'shannon'}
        ``levins``: ``1 / sum(p_i^2)``; ``shannon``: ``-sum(p_i log p_i)``,
        with ``p_i`` the share of the column total found in sample ``i``.

    Returns
    -------
    np.ndarray
        One value per column (NaN for all-zero columns).
    """
    values = np.asarray(values, dtype=float)

    if method == "levins":
        with np.errstate(divide="ignore", invalid="ignore"):
            p = values / values.sum(axis=0)
            return 1.0 / np.sum(p ** 2, axis=0)
    elif method == "shannon":
        with warnings.catch_warnings(), np.errstate(divide="ignore", invalid="ignore"):
            warnings.simplefilter("ignore", category=RuntimeWarning)
            width = stats.entropy(values, axis=0)
        width = np.asarray(width, dtype=float)
        width[values.sum(axis=0) == 0] = np.nan
        return width
    else:
        raise ValueError(f"Unknown niche width method: {method}. Choose from {NICHE_WIDTH_METHODS}")


def _sums_of_squares(distances: np.ndarray, groups: np.ndarray) -> Dict[str, float]:
    """Partition squared distances into total and within-group sums of squares."""
    n = len(groups)
    squared = distances ** 2
    ss_total = squared[np.triu_indices(n, k=1)].sum() / n

    ss_within = 0.0
    for level in np.unique(groups):
        members = np.flatnonzero(groups == level)
        block = squared[np.ix_(members, members)]
        ss_within += block[np.triu_indices(len(members), k=1)].sum() / len(members)

    return {"total": float(ss_total), "within": float(ss_within)}


def permanova_test(
    dissimilarity: pd.DataFrame,
    groups: Sequence,
    permutations: int = 999,
    seed=None,
) -> Dict[str, float]:
    """
    One-way PERMANOVA for a grouping of the samples of a dissimilarity matrix.

    Parameters
    ----------
    dissimilarity : pd.DataFrame
        Square, symmetric, hollow dissimilarity matrix.
    groups : sequence
        Group label per sample, in matrix order.
    permutations : int
        Number of permutations for the p-value.
    seed : int or np.random.Generator, optional
        Random source for the permutations.

    Returns
    -------
    dict
        ``sums_of_sqs``, ``mean_sqs``, ``f_model``, ``r2`` and ``p_value`` for
        the grouping term.
    """
    values = dissimilarity.to_numpy(dtype=float)
    # Remove floating asymmetry/diagonal noise that passed validation
    values = (values + values.T) / 2.0
    np.fill_diagonal(values, 0.0)

    ids = [str(sample) for sample in dissimilarity.index]
    labels = np.asarray([str(group) for group in groups])

    result = permanova(
        DistanceMatrix(values, ids), list(labels), permutations=permutations, seed=seed
    )

    ss = _sums_of_squares(values, labels)
    n_groups = len(np.unique(labels))
    ss_between = ss["total"] - ss["within"]
    df_between = n_groups - 1

    return {
        "sums_of_sqs": ss_between,
        "mean_sqs": ss_between / df_between,
        "f_model": float(result["test statistic"]),
        "r2": ss_between / ss["total"] if ss["total"] > 0 else np.nan,
        "p_value": float(result["p-value"]),
    }

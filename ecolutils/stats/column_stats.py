"""Per-taxon (column) statistics of a community table."""

import functools
import logging
from typing import Callable, Optional

import numpy as np
import pandas as pd

from .adapters import autocorrelation, niche_width

logger = logging.getLogger(__name__)

COLUMN_STATISTICS = (
    "levins",
    "shannon",
    "occurrence",
    "weighted_mean",
    "niche_range",
    "seasonality",
)

ENV_STATISTICS = ("weighted_mean", "niche_range")


def normalize_method(method: str) -> str:
    """Map R-style dotted names (``weighted.mean``) to ecolutils names."""
    name = method.replace(".", "_").lower()
    if name == "seasonality_index":
        name = "seasonality"
    if name not in COLUMN_STATISTICS:
        raise ValueError(f"Unknown column statistic: {method}. Choose from {COLUMN_STATISTICS}")
    return name


def occurrence(values: np.ndarray) -> np.ndarray:
    """
    Number of samples each taxon occupies, as ``sum(ceil(x / max(matrix)))``.

    The normalising maximum is the maximum of the whole matrix, not of each
    column.
    """
    values = np.asarray(values, dtype=float)
    overall_max = values.max() if values.size else 0.0
    if overall_max <= 0:
        return np.zeros(values.shape[1])
    return np.ceil(values / overall_max).sum(axis=0)


def weighted_mean(values: np.ndarray, env: np.ndarray) -> np.ndarray:
    """Abundance-weighted mean of ``env`` per column, skipping missing env values."""
    values = np.asarray(values, dtype=float)
    env = np.asarray(env, dtype=float)
    known = np.isfinite(env)

    weights = values[known]
    with np.errstate(divide="ignore", invalid="ignore"):
        return env[known] @ weights / weights.sum(axis=0)


def niche_range(values: np.ndarray, env: np.ndarray) -> np.ndarray:
    """
    Range of ``env`` over the samples where each column is present.

    NaN when a taxon is present in no sample with a known env value, or when
    its abundance is missing in a sample with a known env value.
    """
    values = np.asarray(values, dtype=float)
    env = np.asarray(env, dtype=float)

    known_env = np.isfinite(env)[:, np.newaxis]
    present = (values > 0) & known_env
    env_grid = np.broadcast_to(env[:, np.newaxis], values.shape)
    highs = np.where(present, env_grid, -np.inf).max(axis=0)
    lows = np.where(present, env_grid, np.inf).min(axis=0)

    ranges = np.abs(highs - lows)
    ranges[~present.any(axis=0)] = np.nan
    ranges[(np.isnan(values) & known_env).any(axis=0)] = np.nan
    return ranges


def seasonality_index(values: np.ndarray, lag_max: int = 120) -> np.ndarray:
    """
    Sum of absolute autocorrelation coefficients at lags ``1..lag_max``.

    Each column is treated as a time series in row order.
    """
    values = np.asarray(values, dtype=float)
    index = np.empty(values.shape[1])
    for j in range(values.shape[1]):
        coefficients = autocorrelation(values[:, j], lag_max)
        index[j] = np.sum(np.abs(coefficients[1:])) if len(coefficients) > 1 else np.nan
    return index


def compute_column_stat(
    community: pd.DataFrame,
    method: str,
    env: Optional[np.ndarray] = None,
    lag_max: int = 120,
) -> pd.Series:
    """
    Compute one statistic per taxon.

    Parameters
    ----------
    community : pd.DataFrame
        Samples x taxa table.
    method : str
        'levins', 'shannon', 'occurrence', 'weighted_mean', 'niche_range' or
        'seasonality' (dotted R names are accepted).
    env : np.ndarray, optional
        Environmental values in row order; required by 'weighted_mean' and
        'niche_range'.
    lag_max : int
        Maximum autocorrelation lag for 'seasonality'.

    Returns
    -------
    pd.Series
        Statistic indexed by the community columns, in column order.
    """
    method = normalize_method(method)
    values = community.to_numpy(dtype=float)

    if method in ENV_STATISTICS:
        if env is None:
            raise ValueError(f"Statistic '{method}' requires an environmental variable")
        env = np.asarray(env, dtype=float)
        if len(env) != values.shape[0]:
            raise ValueError(
                f"Environmental variable has {len(env)} values for {values.shape[0]} samples"
            )

    if method in ("levins", "shannon"):
        result = niche_width(values, method=method)
    elif method == "occurrence":
        result = occurrence(values)
    elif method == "weighted_mean":
        result = weighted_mean(values, env)
    elif method == "niche_range":
        result = niche_range(values, env)
    else:
        result = seasonality_index(values, lag_max=lag_max)

    return pd.Series(result, index=community.columns, name=method, dtype=float)


def make_column_statistic(
    method: str, env: Optional[np.ndarray] = None, lag_max: int = 120
) -> Callable[[pd.DataFrame], pd.Series]:
    """Bind a column statistic to its auxiliary data as a picklable callable."""
    method = normalize_method(method)
    if env is not None:
        env = np.asarray(env, dtype=float)
    return functools.partial(compute_column_stat, method=method, env=env, lag_max=lag_max)

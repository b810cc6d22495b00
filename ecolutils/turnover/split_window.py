"""Split moving-window analysis of community turnover along a gradient."""

import functools
import logging
import warnings
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
import pandas as pd
from scipy import stats

from ..errors import InvalidWindowSizeError
from ..io.converter import as_dissimilarity_frame
from ..io.validator import align_environment, validate_dissimilarity
from ..nullmodel.generators import permute_samples
from ..nullmodel.replicates import ReplicatePool, build_null_distribution
from ..stats.adapters import quantile
from ..stats.classifier import WINDOW_LABELS, check_probs, classify_value

logger = logging.getLogger(__name__)

WINDOW_COLUMNS = ["env_mean", "env_min", "env_max", "stat_real", "stat_real_zscore", "sign"]


@dataclass
class SplitWindowResult:
    """Output of :func:`split_window_analysis`."""

    windows: pd.DataFrame
    random_quantiles: pd.Series
    random_mean: float
    random_values: np.ndarray
    window_sample_map: pd.DataFrame

    def significant_windows(self) -> pd.DataFrame:
        """Rows of ``windows`` labelled SIGNIFICANT."""
        return self.windows[self.windows["sign"] == WINDOW_LABELS.upper]


def check_window_size(window_size: int, n_samples: int) -> None:
    """Raise InvalidWindowSizeError unless the window fits the sample count."""
    problems = []
    if window_size % 2 != 0:
        problems.append("must be even")
    if window_size < 2:
        problems.append("must be positive")
    if window_size >= n_samples:
        problems.append(f"must be smaller than the number of samples ({n_samples})")

    if problems:
        msg = f"Invalid window size {window_size}: " + "; ".join(problems)
        logger.error(msg)
        raise InvalidWindowSizeError(msg)


def window_ratio(values: np.ndarray, start: int, window_size: int) -> float:
    """
    Between-half over within-half mean dissimilarity of one window.

    Parameters
    ----------
    values : np.ndarray
        Square dissimilarity matrix, samples ordered along the gradient.
    start : int
        Zero-based index of the first sample in the window.
    window_size : int
        Even number of samples in the window.

    Returns
    -------
    float
        ``mean(between) / mean(within)``, where ``between`` is the block of
        second-half rows against first-half columns and ``within`` pools the
        strict lower triangles of both half blocks.
    """
    half = window_size // 2
    sub = values[start:start + window_size, start:start + window_size]

    between = sub[half:, :half]
    tri = np.tril_indices(half, k=-1)
    within = np.concatenate([sub[:half, :half][tri], sub[half:, half:][tri]])

    with warnings.catch_warnings(), np.errstate(divide="ignore", invalid="ignore"):
        warnings.simplefilter("ignore", category=RuntimeWarning)
        return float(np.mean(between) / np.nanmean(within))


def _first_window_ratio(dissimilarity: pd.DataFrame, window_size: int) -> float:
    return window_ratio(dissimilarity.to_numpy(dtype=float), 0, window_size)


def _window_environment(env: np.ndarray, start: int, window_size: int) -> tuple:
    half = window_size // 2
    window = env[start:start + window_size]
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", category=RuntimeWarning)
        env_min = np.nanmin(window) if np.isfinite(window).any() else np.nan
        env_max = np.nanmax(window) if np.isfinite(window).any() else np.nan
    env_mean = (env[start + half - 1] + env[start + half]) / 2.0
    return env_mean, env_min, env_max


def split_window_analysis(
    dissimilarity,
    env,
    window_size: int = 10,
    nrep: int = 1000,
    probs: Sequence[float] = (0.025, 0.975),
    random_state=None,
    pool: Optional[ReplicatePool] = None,
    n_workers: Optional[int] = None,
) -> SplitWindowResult:
    """
    Detect discontinuities in community composition along a gradient.

    Samples are sorted by the environmental variable and a window of
    ``window_size`` consecutive samples is moved along the gradient one sample
    at a time. Each window is split in two halves and the ratio of between-half
    to within-half dissimilarity is compared with its distribution over
    randomly ordered samples.

    Parameters
    ----------
    dissimilarity : pd.DataFrame, DistanceMatrix or array
        Square symmetric dissimilarity matrix between samples.
    env : pd.Series or array-like
        Gradient value per sample (Series aligned by sample id). Missing values
        sort last.
    window_size : int
        Even window size smaller than the number of samples. With 2, halves
        hold one sample each, so ratios and labels are missing.
    nrep : int
        Number of random sample orders for the null distribution.
    probs : sequence of float
        Lower and upper quantiles of the null distribution.
    random_state : int, optional
        Seed for reproducible null orders.
    pool : ReplicatePool, optional
        Running worker pool.
    n_workers : int, optional
        Create a pool of this size for the call when ``pool`` is None.

    Returns
    -------
    SplitWindowResult
        Per-window statistics and labels, the null distribution and the
        window membership of every sample.
    """
    dissimilarity = as_dissimilarity_frame(dissimilarity)
    probs = check_probs(probs)
    validate_dissimilarity(dissimilarity)
    env_values = align_environment(env, dissimilarity.index)

    n_samples = dissimilarity.shape[0]
    check_window_size(window_size, n_samples)

    order = np.argsort(env_values, kind="stable")
    env_sorted = env_values[order]
    ordered = dissimilarity.iloc[order, order]
    values = ordered.to_numpy(dtype=float)

    starts = range(n_samples - window_size)
    names = [f"window{start + 1}" for start in starts]

    logger.info(
        f"Split moving window: {n_samples} samples, window size {window_size}, "
        f"{len(names)} windows, {nrep} random orders"
    )

    stat_real = np.array([window_ratio(values, start, window_size) for start in starts])
    environment = np.array([_window_environment(env_sorted, start, window_size) for start in starts])

    if np.isfinite(stat_real).any():
        with warnings.catch_warnings(), np.errstate(divide="ignore", invalid="ignore"):
            warnings.simplefilter("ignore", category=RuntimeWarning)
            zscores = stats.zscore(stat_real, ddof=1, nan_policy="omit")
    else:
        zscores = np.full(len(stat_real), np.nan)

    null = build_null_distribution(
        ordered,
        nrep,
        permute_samples,
        functools.partial(_first_window_ratio, window_size=window_size),
        columns=["stat_random"],
        random_state=random_state,
        pool=pool,
        n_workers=n_workers,
    )
    random_values = null["stat_random"].to_numpy()

    low, upp = quantile(random_values, probs)
    signs = [classify_value(value, low, upp, WINDOW_LABELS) for value in stat_real]

    windows = pd.DataFrame(
        {
            "env_mean": environment[:, 0],
            "env_min": environment[:, 1],
            "env_max": environment[:, 2],
            "stat_real": stat_real,
            "stat_real_zscore": np.asarray(zscores, dtype=float),
            "sign": pd.Categorical(
                signs, categories=[WINDOW_LABELS.upper, WINDOW_LABELS.neutral]
            ),
        },
        index=pd.Index(names, name="window"),
    )[WINDOW_COLUMNS]

    membership = np.zeros((len(names), n_samples), dtype=bool)
    for row, start in enumerate(starts):
        membership[row, start:start + window_size] = True
    window_sample_map = pd.DataFrame(membership, index=windows.index, columns=ordered.index)

    n_significant = int((windows["sign"] == WINDOW_LABELS.upper).sum())
    logger.info(f"{n_significant} of {len(names)} windows exceed the null interval")

    with warnings.catch_warnings():
        warnings.simplefilter("ignore", category=RuntimeWarning)
        random_mean = float(np.nanmean(random_values))

    return SplitWindowResult(
        windows=windows,
        random_quantiles=pd.Series([low, upp], index=pd.Index(probs, name="prob")),
        random_mean=random_mean,
        random_values=random_values,
        window_sample_map=window_sample_map,
    )

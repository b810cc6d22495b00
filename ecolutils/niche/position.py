"""Niche position along an environmental gradient: niche value and niche range."""

import logging
from typing import Optional, Sequence

import pandas as pd

from ..io.converter import as_community_frame
from ..io.validator import align_environment, validate_community
from ..nullmodel.generators import shuffle_rows
from ..nullmodel.replicates import ReplicatePool, build_null_distribution
from ..stats.classifier import NICHE_POSITION_LABELS, check_probs, classify
from ..stats.column_stats import make_column_statistic

logger = logging.getLogger(__name__)


def _classify_position(
    method: str,
    community,
    env,
    n: int,
    probs: Sequence[float],
    random_state,
    pool: Optional[ReplicatePool],
    n_workers: Optional[int],
) -> pd.DataFrame:
    community = as_community_frame(community)
    probs = check_probs(probs)
    validate_community(community, allow_missing=True)
    env_values = align_environment(env, community.index)

    logger.info(
        f"Niche {method.replace('_', ' ')} for {community.shape[1]} taxa over "
        f"{community.shape[0]} samples, {n} row-shuffled null communities"
    )

    statistic = make_column_statistic(method, env=env_values)
    observed = statistic(community)

    null = build_null_distribution(
        community,
        n,
        shuffle_rows,
        statistic,
        columns=observed.index,
        random_state=random_state,
        pool=pool,
        n_workers=n_workers,
    )

    return classify(observed, null, probs=probs, labels=NICHE_POSITION_LABELS)


def classify_niche_value(
    community,
    env,
    n: int = 1000,
    probs: Sequence[float] = (0.025, 0.975),
    random_state=None,
    pool: Optional[ReplicatePool] = None,
    n_workers: Optional[int] = None,
) -> pd.DataFrame:
    """
    Classify the abundance-weighted mean environment of each taxon.

    The null model shuffles abundance profiles across samples, breaking the
    link between taxa and the environmental variable.

    Parameters
    ----------
    community : pd.DataFrame, AnnData or array
        Abundance table (samples x taxa).
    env : pd.Series or array-like
        Environmental variable per sample (Series aligned by sample id).
        Samples with a missing value are ignored.
    n : int
        Number of null communities.
    probs : sequence of float
        Lower and upper quantiles of the null interval.
    random_state : int, optional
        Seed for reproducible null communities.
    pool : ReplicatePool, optional
        Running worker pool.
    n_workers : int, optional
        Create a pool of this size for the call when ``pool`` is None.

    Returns
    -------
    pd.DataFrame
        Classification table; ``sign`` is HIGHER, LOWER or NON_SIGNIFICANT.
    """
    return _classify_position(
        "weighted_mean", community, env, n, probs, random_state, pool, n_workers
    )


def classify_niche_range(
    community,
    env,
    n: int = 1000,
    probs: Sequence[float] = (0.025, 0.975),
    random_state=None,
    pool: Optional[ReplicatePool] = None,
    n_workers: Optional[int] = None,
) -> pd.DataFrame:
    """
    Classify the environmental range occupied by each taxon.

    Same null model and arguments as :func:`classify_niche_value`; the
    statistic is ``max(env) - min(env)`` over the samples where the taxon is
    present.
    """
    return _classify_position(
        "niche_range", community, env, n, probs, random_state, pool, n_workers
    )

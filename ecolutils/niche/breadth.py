"""Niche breadth classification: generalists and specialists."""

import logging
from typing import Optional, Sequence

import pandas as pd

from ..io.converter import as_community_frame
from ..io.validator import validate_community
from ..nullmodel.generators import SWAP_METHODS, get_null_generator
from ..nullmodel.replicates import ReplicatePool, build_null_distribution
from ..stats.classifier import NICHE_BREADTH_LABELS, check_probs, classify
from ..stats.column_stats import make_column_statistic

logger = logging.getLogger(__name__)

NICHE_BREADTH_METHODS = ("levins", "shannon", "occurrence")


def classify_niche_breadth(
    community,
    method: str = "levins",
    perm_method: str = "quasiswap",
    n: int = 1000,
    probs: Sequence[float] = (0.025, 0.975),
    random_state=None,
    pool: Optional[ReplicatePool] = None,
    n_workers: Optional[int] = None,
) -> pd.DataFrame:
    """
    Classify taxa as generalists or specialists against a swap null model.

    The observed niche width of each taxon is compared with its distribution
    over ``n`` randomized communities that keep the row and column totals
    (and, for ``quasiswap``, the number of occupied cells) of the data.

    Parameters
    ----------
    community : pd.DataFrame, AnnData or array
        Integer count table (samples x taxa).
    method : {'levins', 'shannon', 'occurrence'}
        Niche width statistic.
    perm_method : {'quasiswap', 'r2dtable'}
        Null model.
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
        Classification table; ``sign`` is GENERALIST, SPECIALIST or
        NON_SIGNIFICANT.
    """
    community = as_community_frame(community)
    probs = check_probs(probs)

    if method not in NICHE_BREADTH_METHODS:
        raise ValueError(f"Unknown niche breadth method: {method}. Choose from {NICHE_BREADTH_METHODS}")
    if perm_method not in SWAP_METHODS:
        raise ValueError(f"Unknown null model: {perm_method}. Choose from {SWAP_METHODS}")

    validate_community(community, require_integer=True)

    logger.info(
        f"Niche breadth ({method}) for {community.shape[1]} taxa in {community.shape[0]} samples, "
        f"{n} {perm_method} null communities"
    )

    statistic = make_column_statistic(method)
    observed = statistic(community)

    null = build_null_distribution(
        community,
        n,
        get_null_generator(perm_method),
        statistic,
        columns=observed.index,
        random_state=random_state,
        pool=pool,
        n_workers=n_workers,
    )

    return classify(observed, null, probs=probs, labels=NICHE_BREADTH_LABELS)

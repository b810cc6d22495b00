"""Seasonality classification from autocorrelation of taxon time series."""

import logging
from typing import Optional, Sequence

import pandas as pd

from ..io.converter import as_community_frame
from ..io.validator import validate_community
from ..nullmodel.generators import shuffle_rows
from ..nullmodel.replicates import ReplicatePool, build_null_distribution
from ..stats.classifier import SEASONALITY_LABELS, check_probs, classify
from ..stats.column_stats import make_column_statistic

logger = logging.getLogger(__name__)


def classify_seasonality(
    community,
    n: int = 1000,
    probs: Sequence[float] = (0.025, 0.975),
    lag_max: int = 120,
    random_state=None,
    pool: Optional[ReplicatePool] = None,
    n_workers: Optional[int] = None,
) -> pd.DataFrame:
    """
    Classify taxa by the strength of their temporal autocorrelation.

    Rows are read as consecutive time points. The seasonality index of a
    taxon is the sum of absolute autocorrelation coefficients at lags
    ``1..lag_max``; it is compared with the index of time-shuffled series.

    Parameters
    ----------
    community : pd.DataFrame, AnnData or array
        Abundance table with samples in temporal order.
    n : int
        Number of shuffled series.
    probs : sequence of float
        Lower and upper quantiles of the null interval.
    lag_max : int
        Maximum lag; capped at ``n_samples - 1``.
    random_state : int, optional
        Seed for reproducible shuffles.
    pool : ReplicatePool, optional
        Running worker pool.
    n_workers : int, optional
        Create a pool of this size for the call when ``pool`` is None.

    Returns
    -------
    pd.DataFrame
        Classification table; ``sign`` is SIGNIFICANTLY_HIGHER,
        SIGNIFICANTLY_LOWER or NON_SIGNIFICANT. Constant taxa get NaN.
    """
    community = as_community_frame(community)
    probs = check_probs(probs)
    validate_community(community, allow_missing=True)

    if lag_max < 1:
        raise ValueError(f"lag_max must be >= 1, got {lag_max}")
    if community.shape[0] - 1 < lag_max:
        logger.warning(
            f"lag_max {lag_max} exceeds the series length; using {community.shape[0] - 1}"
        )

    logger.info(
        f"Seasonality for {community.shape[1]} taxa over {community.shape[0]} time points, "
        f"{n} shuffled series"
    )

    statistic = make_column_statistic("seasonality", lag_max=lag_max)
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

    return classify(observed, null, probs=probs, labels=SEASONALITY_LABELS)

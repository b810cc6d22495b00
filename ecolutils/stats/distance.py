"""Dissimilarity matrices from community tables."""

import logging
from typing import Optional

import numpy as np
import pandas as pd
from sklearn.metrics import pairwise_distances

from ..io.converter import as_community_frame
from ..io.validator import validate_community

logger = logging.getLogger(__name__)


def community_dissimilarity(
    community,
    metric: str = "braycurtis",
    n_jobs: Optional[int] = None,
) -> pd.DataFrame:
    """
    Pairwise dissimilarity between the samples of a community table.

    Parameters
    ----------
    community : pd.DataFrame, AnnData or array
        Samples x taxa table.
    metric : str
        Any metric accepted by ``sklearn.metrics.pairwise_distances``
        ('braycurtis', 'jaccard', 'euclidean', ...).
    n_jobs : int, optional
        Parallel jobs for the distance computation.

    Returns
    -------
    pd.DataFrame
        Square, symmetric, hollow matrix labelled by sample.
    """
    community = as_community_frame(community)
    validate_community(community)

    values = community.to_numpy(dtype=float)
    if metric == "jaccard":
        values = values > 0

    logger.info(f"Computing {metric} dissimilarity for {community.shape[0]} samples")
    with np.errstate(divide="ignore", invalid="ignore"):
        distances = pairwise_distances(values, metric=metric, n_jobs=n_jobs)

    distances = (distances + distances.T) / 2.0
    np.fill_diagonal(distances, 0.0)

    return pd.DataFrame(distances, index=community.index, columns=community.index)

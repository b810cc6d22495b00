"""Averaged rarefaction of community tables."""

import functools
import logging
from typing import Optional

import numpy as np
import pandas as pd

from ..errors import InvalidDepthError
from ..io.converter import as_community_frame
from ..io.validator import validate_community
from .generators import rarefy_once
from .replicates import ReplicatePool, run_replicates

logger = logging.getLogger(__name__)


def _rarefied_values(community: pd.DataFrame, depth: int, rng: np.random.Generator) -> np.ndarray:
    return rarefy_once(community, depth, rng).to_numpy(dtype=float)


def rarefy_averaged(
    community,
    depth: Optional[int] = None,
    n: int = 100,
    round_output: bool = True,
    random_state=None,
    pool: Optional[ReplicatePool] = None,
    n_workers: Optional[int] = None,
) -> pd.DataFrame:
    """
    Average ``n`` independent rarefactions of a community table.

    Parameters
    ----------
    community : pd.DataFrame, AnnData or array
        Integer count table (samples x taxa).
    depth : int, optional
        Subsample size per sample. Defaults to the smallest sample total.
    n : int
        Number of independent rarefactions.
    round_output : bool
        If True, round each averaged cell to the nearest integer
        (half-to-even).
    random_state : int, optional
        Seed for reproducible draws.
    pool : ReplicatePool, optional
        Running worker pool for parallel draws.
    n_workers : int, optional
        Create a pool of this size for the call when ``pool`` is None.

    Returns
    -------
    pd.DataFrame
        Averaged rarefied community with the input labels.

    Raises
    ------
    InvalidDepthError
        If ``depth`` exceeds the total of any sample.
    """
    community = as_community_frame(community)
    validate_community(community, require_integer=True)

    if n < 1:
        raise ValueError(f"n must be >= 1, got {n}")

    totals = community.sum(axis=1)
    if depth is None:
        depth = int(totals.min())
    depth = int(depth)

    short = totals[totals < depth]
    if len(short) > 0:
        offending = {sample: int(total) for sample, total in short.items()}
        logger.error(f"Rarefaction depth {depth} exceeds {len(offending)} sample total(s)")
        raise InvalidDepthError(depth, offending)

    logger.info(f"Rarefying {community.shape[0]} samples to depth {depth} ({n} repetitions)")

    fn = functools.partial(_rarefied_values, community, depth)
    draws = run_replicates(fn, n, random_state=random_state, pool=pool, n_workers=n_workers)

    averaged = np.mean(np.stack(draws), axis=0)
    if round_output:
        averaged = np.round(averaged)

    return pd.DataFrame(averaged, index=community.index, columns=community.columns)

"""Null-model generators: one randomized replicate per call.

Every generator takes the observed data and a ``numpy.random.Generator`` and
returns a new object; inputs are never modified. Generators are module-level
functions (or ``functools.partial`` objects built on them) so they can be
shipped to worker processes.

Available models
----------------
- ``quasiswap``: random integer matrix with the observed row sums, column sums
  and number of non-zero cells. A fixed-margin table is drawn first
  (sequential multivariate hypergeometric draws), then 2x2 margin-preserving
  transfers move the fill back to the observed value.
- ``r2dtable``: fixed row and column sums only.
- ``shuffle_rows``: uniform random permutation of sample order.
"""

import functools
import logging
from typing import Callable, Optional

import numpy as np
import pandas as pd
from skbio.stats import subsample_counts

from ..errors import ReplicateGenerationError

logger = logging.getLogger(__name__)

SWAP_METHODS = ("quasiswap", "r2dtable")

# Candidate 2x2 submatrices drawn per batch in the quasiswap loop
_SWAP_BATCH = 4096


def random_sample_order(n_samples: int, rng: np.random.Generator) -> np.ndarray:
    """Return a uniform random permutation of ``range(n_samples)``."""
    return rng.permutation(n_samples)


def shuffle_rows(community: pd.DataFrame, rng: np.random.Generator) -> pd.DataFrame:
    """
    Randomly reassign rows (samples) of a community table.

    Abundance profiles are permuted across sample positions while the sample
    index stays in place, so any environmental vector aligned to the index is
    now paired with a random profile.
    """
    order = random_sample_order(community.shape[0], rng)
    return pd.DataFrame(
        community.to_numpy()[order], index=community.index, columns=community.columns
    )


def permute_samples(dissimilarity: pd.DataFrame, rng: np.random.Generator) -> pd.DataFrame:
    """Reorder rows and columns of a dissimilarity matrix by one random permutation."""
    order = random_sample_order(dissimilarity.shape[0], rng)
    labels = dissimilarity.index[order]
    values = dissimilarity.to_numpy()[np.ix_(order, order)]
    return pd.DataFrame(values, index=labels, columns=labels)


def rarefy_once(
    community: pd.DataFrame, depth: int, rng: np.random.Generator
) -> pd.DataFrame:
    """
    Subsample every sample without replacement down to ``depth`` counts.

    Parameters
    ----------
    community : pd.DataFrame
        Integer count table (samples x taxa).
    depth : int
        Target total per sample.
    rng : np.random.Generator
        Random source.

    Returns
    -------
    pd.DataFrame
        Rarefied counts, same labels as ``community``.
    """
    counts = np.rint(community.to_numpy(dtype=float)).astype(np.int64)
    rarefied = np.empty_like(counts)
    for i, row in enumerate(counts):
        rarefied[i] = subsample_counts(row, int(depth), replace=False, seed=rng)
    return pd.DataFrame(rarefied, index=community.index, columns=community.columns)


def _fixed_margin_table(
    row_sums: np.ndarray, col_sums: np.ndarray, rng: np.random.Generator
) -> np.ndarray:
    """Random non-negative integer table with the given margins."""
    table = np.zeros((len(row_sums), len(col_sums)), dtype=np.int64)
    remaining = col_sums.astype(np.int64).copy()
    for i, total in enumerate(row_sums):
        if total == 0:
            continue
        draw = rng.multivariate_hypergeometric(remaining, int(total))
        table[i] = draw
        remaining -= draw
    return table


def _restore_fill(
    table: np.ndarray, target_fill: int, rng: np.random.Generator, max_iter: int
) -> np.ndarray:
    """
    Apply 2x2 transfers until ``table`` has ``target_fill`` non-zero cells.

    A transfer moves ``amount`` units from cells (i, l), (j, k) to (i, k),
    (j, l), which keeps every row and column sum unchanged. When the table is
    too full the whole smaller donor value is moved (emptying a cell); when it
    is too sparse a single unit is moved. Transfers that take the fill further
    from the target are rejected.
    """
    n_rows, n_cols = table.shape
    fill = int(np.count_nonzero(table))
    if fill == target_fill:
        return table
    if n_rows < 2 or n_cols < 2:
        raise ReplicateGenerationError(
            f"Cannot reach fill {target_fill} by swaps in a {n_rows}x{n_cols} matrix"
        )

    iterations = 0
    while fill != target_fill:
        rows = rng.integers(n_rows, size=(_SWAP_BATCH, 2))
        cols = rng.integers(n_cols, size=(_SWAP_BATCH, 2))
        for (i, j), (k, l) in zip(rows, cols):
            iterations += 1
            if iterations > max_iter:
                raise ReplicateGenerationError(
                    f"Quasiswap did not reach fill {target_fill} (current {fill}) "
                    f"within {max_iter} iterations"
                )
            if i == j or k == l:
                continue

            donor_a, donor_b = table[i, l], table[j, k]
            if donor_a == 0 or donor_b == 0:
                continue
            amount = min(donor_a, donor_b) if fill > target_fill else 1

            delta = (
                int(table[i, k] == 0)
                + int(table[j, l] == 0)
                - int(donor_a == amount)
                - int(donor_b == amount)
            )
            if abs(fill + delta - target_fill) > abs(fill - target_fill):
                continue

            table[i, l] -= amount
            table[j, k] -= amount
            table[i, k] += amount
            table[j, l] += amount
            fill += delta
            if fill == target_fill:
                break

    logger.debug(f"Quasiswap reached fill {target_fill} after {iterations} iterations")
    return table


def null_swap(
    community: pd.DataFrame,
    rng: np.random.Generator,
    method: str = "quasiswap",
    max_iter: Optional[int] = None,
) -> pd.DataFrame:
    """
    Draw one randomized community preserving row and column sums.

    Parameters
    ----------
    community : pd.DataFrame
        Integer count (or presence/absence) table.
    rng : np.random.Generator
        Random source.
    method : {'quasiswap', 'r2dtable'}
        ``quasiswap`` additionally preserves the number of non-zero cells.
    max_iter : int, optional
        Upper bound on quasiswap iterations. Defaults to
        ``max(100000, 200 * n_cells)``.

    Returns
    -------
    pd.DataFrame
        Randomized table with the labels of ``community``.
    """
    if method not in SWAP_METHODS:
        raise ValueError(f"Unknown null model method: {method}. Choose from {SWAP_METHODS}")

    values = community.to_numpy(dtype=float)
    counts = np.rint(values)
    if not np.allclose(values, counts):
        raise ValueError(f"Null model '{method}' requires integer counts")
    counts = counts.astype(np.int64)

    table = _fixed_margin_table(counts.sum(axis=1), counts.sum(axis=0), rng)

    if method == "quasiswap":
        if max_iter is None:
            max_iter = max(100_000, 200 * counts.size)
        table = _restore_fill(table, int(np.count_nonzero(counts)), rng, max_iter)

    return pd.DataFrame(table, index=community.index, columns=community.columns)


def get_null_generator(method: str) -> Callable[[pd.DataFrame, np.random.Generator], pd.DataFrame]:
    """
    Return a picklable ``generator(data, rng)`` for a named null model.

    Parameters
    ----------
    method : str
        'quasiswap', 'r2dtable' or 'shuffle_rows'.
    """
    if method in SWAP_METHODS:
        return functools.partial(null_swap, method=method)
    if method == "shuffle_rows":
        return shuffle_rows
    raise ValueError(f"Unknown null model: {method}")

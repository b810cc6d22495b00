"""Validators for community tables, dissimilarity matrices and sample metadata."""

import logging
from typing import List, Sequence, Tuple

import numpy as np
import pandas as pd

from ..errors import (
    AsymmetricMatrixError,
    DimensionMismatchError,
    InvalidCommunityError,
)

logger = logging.getLogger(__name__)


def check_community(
    community: pd.DataFrame, require_integer: bool = False, allow_missing: bool = False
) -> Tuple[bool, List[str]]:
    """
    Check that a community table satisfies the community-matrix invariants.

    Parameters
    ----------
    community : pd.DataFrame
        Samples x taxa abundance table.
    require_integer : bool
        If True, values must be whole counts (needed by rarefaction and swap
        null models).
    allow_missing : bool
        If True, missing (NaN) cells are accepted and left to the statistic.
        Infinite values are always rejected.

    Returns
    -------
    tuple of (bool, list)
        (is_valid, list of warning/error messages)
    """
    messages = []
    is_valid = True

    if community.shape[0] == 0:
        messages.append("ERROR: No samples (rows) in the community table.")
        is_valid = False

    if community.shape[1] == 0:
        messages.append("ERROR: No taxa (columns) in the community table.")
        is_valid = False

    if not community.index.is_unique:
        dupes = community.index[community.index.duplicated()].unique().tolist()
        messages.append(f"ERROR: Sample ids are not unique: {dupes[:10]}")
        is_valid = False

    if not community.columns.is_unique:
        dupes = community.columns[community.columns.duplicated()].unique().tolist()
        messages.append(f"ERROR: Taxon ids are not unique: {dupes[:10]}")
        is_valid = False

    try:
        values = community.to_numpy(dtype=float)
    except (TypeError, ValueError):
        messages.append("ERROR: Community table contains non-numeric values.")
        return False, messages

    if values.size:
        missing = np.isnan(values)
        invalid = np.isinf(values) if allow_missing else ~np.isfinite(values)
        known = values[~missing]

        if np.any(invalid):
            kind = "infinite" if allow_missing else "missing or infinite"
            messages.append(
                f"ERROR: Community table contains {int(np.sum(invalid))} {kind} values."
            )
            is_valid = False
        elif np.any(known < 0):
            negative = community.columns[np.any(np.where(missing, 0.0, values) < 0, axis=0)].tolist()
            messages.append(f"ERROR: Negative abundances in taxa: {negative[:10]}")
            is_valid = False
        elif require_integer and not np.allclose(known, np.round(known)):
            messages.append("ERROR: Community table must contain integer counts.")
            is_valid = False

        if is_valid and np.any(missing):
            messages.append(
                f"WARNING: {int(missing.sum())} missing values; affected taxa may get missing statistics."
            )

        empty_taxa = int(np.sum(np.nansum(values, axis=0) == 0)) if is_valid else 0
        if empty_taxa:
            messages.append(f"WARNING: {empty_taxa} taxa have zero total abundance.")

    for msg in messages:
        if msg.startswith("ERROR"):
            logger.error(msg)
        else:
            logger.warning(msg)

    return is_valid, messages


def validate_community(
    community: pd.DataFrame, require_integer: bool = False, allow_missing: bool = False
) -> None:
    """Raise InvalidCommunityError unless ``community`` passes check_community."""
    is_valid, messages = check_community(
        community, require_integer=require_integer, allow_missing=allow_missing
    )
    if not is_valid:
        errors = [m for m in messages if m.startswith("ERROR")]
        raise InvalidCommunityError("; ".join(errors))


def validate_dissimilarity(
    dissimilarity: pd.DataFrame, require_hollow: bool = False, atol: float = 1e-8
) -> None:
    """
    Check that a dissimilarity matrix is square, labelled and symmetric.

    Parameters
    ----------
    dissimilarity : pd.DataFrame
        Candidate dissimilarity matrix.
    require_hollow : bool
        If True, the diagonal must be zero.
    atol : float
        Absolute tolerance for the symmetry and diagonal checks.

    Raises
    ------
    AsymmetricMatrixError
        If any of the checks fail.
    """
    n_rows, n_cols = dissimilarity.shape
    if n_rows != n_cols:
        msg = (
            f"Dissimilarity matrix must be square, got {n_rows} rows x {n_cols} columns"
        )
        logger.error(msg)
        raise AsymmetricMatrixError(msg)

    if not dissimilarity.index.equals(dissimilarity.columns):
        msg = "Dissimilarity matrix row and column identifiers differ"
        logger.error(msg)
        raise AsymmetricMatrixError(msg)

    if not dissimilarity.index.is_unique:
        msg = "Dissimilarity matrix identifiers are not unique"
        logger.error(msg)
        raise AsymmetricMatrixError(msg)

    values = dissimilarity.to_numpy(dtype=float)
    finite = np.isfinite(values)
    if not np.array_equal(finite, finite.T) or not np.allclose(
        values[finite], values.T[finite], atol=atol
    ):
        msg = "Dissimilarity matrix is not symmetric"
        logger.error(msg)
        raise AsymmetricMatrixError(msg)

    diagonal = np.diag(values)
    if not np.allclose(diagonal, 0.0, atol=atol):
        if require_hollow:
            msg = "Dissimilarity matrix must have a zero diagonal"
            logger.error(msg)
            raise AsymmetricMatrixError(msg)
        logger.warning("Dissimilarity matrix has a non-zero diagonal; it is ignored")


def align_environment(
    env, sample_ids: Sequence, name: str = "environmental variable"
) -> np.ndarray:
    """
    Align an environmental variable to a sample order.

    Parameters
    ----------
    env : pd.Series or array-like
        One numeric value per sample. A Series is aligned by index; anything
        else is taken in positional order.
    sample_ids : sequence
        Target sample order.
    name : str
        Name used in error messages.

    Returns
    -------
    np.ndarray
        Float array in ``sample_ids`` order (NaN for missing values).
    """
    sample_ids = pd.Index(sample_ids)

    if isinstance(env, pd.Series):
        missing = sample_ids.difference(env.index)
        if len(missing) > 0:
            msg = f"{len(missing)} sample(s) have no {name} value: {missing[:10].tolist()}"
            logger.error(msg)
            raise DimensionMismatchError(msg)
        if not env.index.is_unique:
            raise DimensionMismatchError(f"{name} index contains duplicated sample ids")
        values = pd.to_numeric(env.reindex(sample_ids), errors="coerce")
        return values.to_numpy(dtype=float)

    values = np.asarray(env, dtype=float)
    if values.ndim != 1 or len(values) != len(sample_ids):
        msg = f"Expected one {name} value per sample ({len(sample_ids)}), got shape {values.shape}"
        logger.error(msg)
        raise DimensionMismatchError(msg)

    return values


def align_factor(factor, sample_ids: Sequence) -> pd.Series:
    """
    Align a grouping factor to a sample order.

    A Series is aligned by index (categorical dtype is preserved); any other
    sequence is taken in positional order.
    """
    sample_ids = pd.Index(sample_ids)

    if isinstance(factor, pd.Series):
        missing = sample_ids.difference(factor.index)
        if len(missing) > 0:
            msg = f"{len(missing)} sample(s) have no group label: {missing[:10].tolist()}"
            logger.error(msg)
            raise DimensionMismatchError(msg)
        return factor.reindex(sample_ids)

    if isinstance(factor, pd.Categorical):
        series = pd.Series(factor)
    else:
        series = pd.Series(list(factor), dtype=object)

    if len(series) != len(sample_ids):
        msg = f"Expected one group label per sample ({len(sample_ids)}), got {len(series)}"
        logger.error(msg)
        raise DimensionMismatchError(msg)

    series.index = sample_ids
    return series

"""Coerce user inputs into the DataFrame shapes used by the analyses."""

import logging
from typing import Optional, Sequence

import anndata
import numpy as np
import pandas as pd
from scipy import sparse
from scipy.spatial.distance import squareform

logger = logging.getLogger(__name__)


def community_from_anndata(
    adata: anndata.AnnData, layer: Optional[str] = None
) -> pd.DataFrame:
    """
    Extract a samples x taxa community table from an AnnData object.

    Parameters
    ----------
    adata : anndata.AnnData
        AnnData with samples in ``obs`` and taxa in ``var``.
    layer : str, optional
        Layer holding the counts. If None, uses adata.X.

    Returns
    -------
    pd.DataFrame
        Dense community table indexed by ``obs_names`` with ``var_names`` columns.
    """
    if layer is not None:
        if layer not in adata.layers:
            raise ValueError(f"Layer '{layer}' not found in adata.layers")
        data = adata.layers[layer]
    else:
        data = adata.X

    if data is None:
        raise ValueError("No data matrix found in AnnData object")

    if sparse.issparse(data):
        data = data.toarray()

    return pd.DataFrame(
        np.asarray(data),
        index=adata.obs_names.copy(),
        columns=adata.var_names.copy(),
    )


def as_community_frame(data, layer: Optional[str] = None) -> pd.DataFrame:
    """
    Return a community table as a DataFrame (samples as rows, taxa as columns).

    Accepts a DataFrame (returned as-is), an AnnData object or a 2-D array. Arrays
    get generated ``sample_<i>`` / ``taxon_<j>`` identifiers.
    """
    if isinstance(data, pd.DataFrame):
        return data
    if isinstance(data, anndata.AnnData):
        return community_from_anndata(data, layer=layer)

    values = np.asarray(data)
    if values.ndim != 2:
        raise ValueError(f"Community data must be 2-D, got {values.ndim} dimension(s)")

    n_samples, n_taxa = values.shape
    return pd.DataFrame(
        values,
        index=[f"sample_{i + 1}" for i in range(n_samples)],
        columns=[f"taxon_{j + 1}" for j in range(n_taxa)],
    )


def as_dissimilarity_frame(data, ids: Optional[Sequence] = None) -> pd.DataFrame:
    """
    Return a dissimilarity matrix as a square DataFrame.

    Parameters
    ----------
    data : pd.DataFrame, np.ndarray or skbio DistanceMatrix
        Square matrix, condensed distance vector (as returned by
        ``scipy.spatial.distance.pdist``) or an object exposing ``data`` and
        ``ids`` attributes.
    ids : sequence, optional
        Sample identifiers for array inputs. Defaults to ``sample_<i>``.

    Returns
    -------
    pd.DataFrame
        Square DataFrame with identical index and columns.
    """
    if isinstance(data, pd.DataFrame):
        return data

    if hasattr(data, "ids") and hasattr(data, "data"):
        return pd.DataFrame(np.asarray(data.data), index=list(data.ids), columns=list(data.ids))

    values = np.asarray(data, dtype=float)
    if values.ndim == 1:
        values = squareform(values, checks=False)
        logger.debug(f"Expanded condensed distances to a {values.shape[0]}x{values.shape[0]} matrix")

    if ids is None:
        ids = [f"sample_{i + 1}" for i in range(values.shape[0])]
    ids = list(ids)

    # Non-square input is kept as-is so validation can report its shape
    columns = ids if values.shape[0] == values.shape[1] else None
    return pd.DataFrame(values, index=ids, columns=columns)

"""Loaders for community tables, sample metadata and dissimilarity matrices."""

import logging
from pathlib import Path
from typing import Dict, Optional

import anndata
import pandas as pd

from .converter import community_from_anndata

logger = logging.getLogger(__name__)


def _separator_for(file_path: str) -> str:
    suffix = Path(file_path).suffix.lower()
    return "\t" if suffix in (".tsv", ".txt", ".tab") else ","


def load_h5ad(file_path: str) -> anndata.AnnData:
    """
    Load an H5AD file.

    Parameters
    ----------
    file_path : str
        Path to H5AD file.

    Returns
    -------
    anndata.AnnData
        Loaded AnnData object.
    """
    logger.info(f"Loading H5AD file: {file_path}")
    adata = anndata.read_h5ad(file_path)
    logger.info(f"Loaded {adata.n_obs} samples × {adata.n_vars} taxa from {file_path}")
    return adata


def load_table(file_path: str, sep: Optional[str] = None) -> pd.DataFrame:
    """
    Read a delimited table with identifiers in the first column.

    The separator is inferred from the suffix (tab for .tsv/.txt/.tab, comma
    otherwise) unless ``sep`` is given.
    """
    sep = sep or _separator_for(file_path)
    table = pd.read_csv(file_path, sep=sep, index_col=0)
    table.index = table.index.astype(str)
    return table


def load_community(
    file_path: str,
    transpose: bool = False,
    layer: Optional[str] = None,
    sep: Optional[str] = None,
) -> pd.DataFrame:
    """
    Load a community table (samples as rows, taxa as columns).

    Parameters
    ----------
    file_path : str
        Delimited text file or .h5ad file.
    transpose : bool
        Set when the file stores taxa as rows (OTU-table layout).
    layer : str, optional
        AnnData layer holding counts (.h5ad only).
    sep : str, optional
        Column separator for text files.

    Returns
    -------
    pd.DataFrame
        Community table.
    """
    if Path(file_path).suffix.lower() == ".h5ad":
        community = community_from_anndata(load_h5ad(file_path), layer=layer)
    else:
        logger.info(f"Loading community table: {file_path}")
        community = load_table(file_path, sep=sep)

    if transpose:
        community = community.T

    community.columns = community.columns.astype(str)
    logger.info(f"Community table: {community.shape[0]} samples × {community.shape[1]} taxa")
    return community


def load_metadata(file_path: str, sep: Optional[str] = None) -> pd.DataFrame:
    """Load a per-sample metadata table indexed by sample id."""
    logger.info(f"Loading sample metadata: {file_path}")
    metadata = load_table(file_path, sep=sep)
    logger.info(f"Loaded metadata for {len(metadata)} samples ({metadata.shape[1]} columns)")
    return metadata


def load_dissimilarity(file_path: str, sep: Optional[str] = None) -> pd.DataFrame:
    """Load a square dissimilarity matrix with sample ids as header and index."""
    logger.info(f"Loading dissimilarity matrix: {file_path}")
    matrix = load_table(file_path, sep=sep)
    matrix.columns = matrix.columns.astype(str)
    return matrix


def summarize_community(community: pd.DataFrame) -> Dict:
    """
    Generate a summary of a community table.

    Parameters
    ----------
    community : pd.DataFrame
        Samples x taxa table.

    Returns
    -------
    dict
        Shape, depth and sparsity statistics.
    """
    totals = community.sum(axis=1)
    summary = {
        "n_samples": int(community.shape[0]),
        "n_taxa": int(community.shape[1]),
        "min_depth": float(totals.min()) if len(totals) else 0.0,
        "max_depth": float(totals.max()) if len(totals) else 0.0,
        "median_depth": float(totals.median()) if len(totals) else 0.0,
        "sparsity": float((community.to_numpy() == 0).mean()) if community.size else 0.0,
    }
    return summary

"""Manifest creation for documenting run parameters and metadata."""

import hashlib
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


def compute_file_hash(file_path: str, algorithm: str = "sha256") -> str:
    """
    Compute hash of a file.

    Parameters
    ----------
    file_path : str
        Path to file.
    algorithm : str
        Hash algorithm ('md5', 'sha256').

    Returns
    -------
    str
        Hex digest of file hash.
    """
    hash_func = hashlib.new(algorithm)

    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            hash_func.update(chunk)

    return hash_func.hexdigest()


def summarize_result(result: pd.DataFrame) -> Dict[str, Any]:
    """Row count and label counts of a result table."""
    summary = {"n_rows": int(len(result))}
    if "sign" in result.columns:
        counts = result["sign"].value_counts(dropna=False)
        summary["sign_counts"] = {str(label): int(count) for label, count in counts.items()}
    if "p_value_corrected" in result.columns:
        summary["n_significant_0.05"] = int((result["p_value_corrected"] < 0.05).sum())
    return summary


def _software_versions() -> Dict[str, str]:
    from .. import __version__

    versions = {"python_version": sys.version, "ecolutils_version": __version__}
    for module_name in ("numpy", "pandas", "scipy", "skbio", "statsmodels"):
        module = sys.modules.get(module_name)
        if module is not None:
            versions[f"{module_name}_version"] = getattr(module, "__version__", "unknown")
    return versions


def create_manifest(
    analysis: str,
    input_files: list,
    parameters: Optional[Dict[str, Any]] = None,
    result: Optional[pd.DataFrame] = None,
    n_samples: Optional[int] = None,
    n_taxa: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Create a manifest documenting the analysis run.

    Parameters
    ----------
    analysis : str
        Analysis name.
    input_files : list
        List of input file paths.
    parameters : dict, optional
        Analysis parameters.
    result : pd.DataFrame, optional
        Main result table, summarised in the ``output`` section.
    n_samples, n_taxa : int, optional
        Input dimensions.

    Returns
    -------
    dict
        Manifest dictionary.
    """
    manifest = {
        "timestamp": datetime.now().isoformat(),
        "analysis": analysis,
        "input": {
            "files": [],
            "n_samples": n_samples,
            "n_taxa": n_taxa,
        },
        "parameters": parameters or {},
        "output": summarize_result(result) if result is not None else {},
        "software": _software_versions(),
    }

    for file_path in input_files:
        if file_path is not None and Path(file_path).exists():
            file_info = {
                "path": str(file_path),
                "name": Path(file_path).name,
                "size_bytes": Path(file_path).stat().st_size,
                "sha256": compute_file_hash(file_path, "sha256"),
            }
            manifest["input"]["files"].append(file_info)

    return manifest


def _json_default(value):
    if isinstance(value, np.generic):
        return value.item()
    return str(value)


def save_manifest(manifest: Dict[str, Any], output_file: str) -> None:
    """
    Save manifest to JSON file.

    Parameters
    ----------
    manifest : dict
        Manifest dictionary.
    output_file : str
        Output JSON file path.
    """
    logger.info(f"Saving manifest to {output_file}")

    with open(output_file, "w") as f:
        json.dump(manifest, f, indent=2, default=_json_default)

    logger.info("Manifest saved")

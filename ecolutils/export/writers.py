"""Writers for analysis result tables."""

import logging
from pathlib import Path
from typing import Dict

import pandas as pd

from ..turnover.split_window import SplitWindowResult

logger = logging.getLogger(__name__)


def _separator_for(path: Path) -> str:
    return "\t" if path.suffix.lower() in (".tsv", ".txt", ".tab") else ","


def write_result_table(result: pd.DataFrame, output_file: str, index: bool = True) -> Path:
    """
    Write a result table as CSV, or TSV for ``.tsv``/``.txt``/``.tab`` paths.

    Parameters
    ----------
    result : pd.DataFrame
        Classification, pairwise or rarefaction table.
    output_file : str
        Output file path.
    index : bool
        Whether to write the row labels.

    Returns
    -------
    Path
        The written file.
    """
    path = Path(output_file)
    path.parent.mkdir(parents=True, exist_ok=True)

    logger.info(f"Writing {len(result)} rows to {path}")
    result.to_csv(path, sep=_separator_for(path), index=index)

    return path


def write_split_window_result(
    result: SplitWindowResult, output_dir: str, prefix: str = "split_window"
) -> Dict[str, Path]:
    """
    Write every part of a split moving-window result to ``output_dir``.

    Files: ``<prefix>_windows.csv``, ``<prefix>_random_values.csv``,
    ``<prefix>_random_quantiles.csv`` and ``<prefix>_window_sample_map.csv``.

    Returns
    -------
    dict
        Part name to written path.
    """
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)

    random_values = pd.DataFrame({"stat_random": result.random_values})
    random_values.index.name = "replicate"

    labels = [f"{prob:g}" for prob in result.random_quantiles.index] + ["mean"]
    quantiles = pd.DataFrame(
        {"stat_random": list(result.random_quantiles.to_numpy()) + [result.random_mean]},
        index=pd.Index(labels, name="statistic"),
    )

    parts = {
        "windows": result.windows,
        "random_values": random_values,
        "random_quantiles": quantiles,
        "window_sample_map": result.window_sample_map.astype(int),
    }

    written = {}
    for name, table in parts.items():
        written[name] = write_result_table(table, out / f"{prefix}_{name}.csv")

    logger.info(f"Wrote split moving-window result to {out}")
    return written

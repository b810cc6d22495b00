"""Classification of observed statistics against a null distribution."""

import logging
import warnings
from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np
import pandas as pd

from .adapters import quantile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LabelSet:
    """Labels for values above, below and inside the null interval."""

    upper: str
    lower: str
    neutral: str

    @property
    def categories(self) -> list:
        return [self.upper, self.lower, self.neutral]


NICHE_BREADTH_LABELS = LabelSet("GENERALIST", "SPECIALIST", "NON_SIGNIFICANT")
NICHE_POSITION_LABELS = LabelSet("HIGHER", "LOWER", "NON_SIGNIFICANT")
SEASONALITY_LABELS = LabelSet("SIGNIFICANTLY_HIGHER", "SIGNIFICANTLY_LOWER", "NON_SIGNIFICANT")
WINDOW_LABELS = LabelSet("SIGNIFICANT", "SIGNIFICANT", "NOT_SIGNIFICANT")

RESULT_COLUMNS = ["observed", "mean_simulated", "low_ci", "upp_ci", "sign"]


def check_probs(probs: Sequence[float]) -> Tuple[float, float]:
    """Validate a (lower, upper) quantile pair."""
    probs = tuple(float(p) for p in probs)
    if len(probs) != 2:
        raise ValueError(f"probs must contain exactly two probabilities, got {len(probs)}")
    low, high = probs
    if not (0 <= low <= high <= 1):
        raise ValueError(f"probs must be ascending and within [0, 1], got {probs}")
    return probs


def summarize_null(null: pd.DataFrame, probs: Sequence[float]) -> pd.DataFrame:
    """
    Per-column mean and quantiles of a null distribution.

    Parameters
    ----------
    null : pd.DataFrame
        Replicates x columns matrix.
    probs : sequence of float
        Lower and upper probability.

    Returns
    -------
    pd.DataFrame
        Columns ``mean_simulated``, ``low_ci`` and ``upp_ci``, indexed by the
        null columns. Columns with no non-missing replicate give NaN.
    """
    probs = check_probs(probs)
    values = null.to_numpy(dtype=float)

    with warnings.catch_warnings():
        warnings.simplefilter("ignore", category=RuntimeWarning)
        means = np.nanmean(values, axis=0)

    low, upp = quantile(values, probs, axis=0)

    return pd.DataFrame(
        {"mean_simulated": means, "low_ci": low, "upp_ci": upp}, index=null.columns
    )


def classify_value(observed: float, low: float, upp: float, labels: LabelSet):
    """
    Label a single observed value against its null interval.

    Returns NaN when any of the three inputs is missing.
    """
    if pd.isna(observed) or pd.isna(low) or pd.isna(upp):
        return np.nan
    if observed > upp:
        return labels.upper
    if observed < low:
        return labels.lower
    return labels.neutral


def classify(
    observed: pd.Series,
    null: pd.DataFrame,
    probs: Sequence[float] = (0.025, 0.975),
    labels: LabelSet = NICHE_BREADTH_LABELS,
) -> pd.DataFrame:
    """
    Classify every observed value against the matching null column.

    Parameters
    ----------
    observed : pd.Series
        Observed statistic per taxon.
    null : pd.DataFrame
        Replicates x taxa null statistics, columns aligned with ``observed``.
    probs : sequence of float
        Lower and upper quantile probabilities.
    labels : LabelSet
        Output labels.

    Returns
    -------
    pd.DataFrame
        One row per taxon with ``observed``, ``mean_simulated``, ``low_ci``,
        ``upp_ci`` and the categorical ``sign``.
    """
    if not null.columns.equals(observed.index):
        raise ValueError("Null distribution columns do not match the observed statistic")

    summary = summarize_null(null, probs)
    result = summary.copy()
    result.insert(0, "observed", observed.to_numpy(dtype=float))

    signs = [
        classify_value(obs, low, upp, labels)
        for obs, low, upp in zip(result["observed"], result["low_ci"], result["upp_ci"])
    ]
    categories = list(dict.fromkeys(labels.categories))
    result["sign"] = pd.Categorical(signs, categories=categories)
    result.index.name = observed.index.name or "taxon"

    counts = result["sign"].value_counts()
    summary_text = ", ".join(f"{label}={count}" for label, count in counts.items())
    logger.info(f"Classified {len(result)} values: {summary_text}")

    return result[RESULT_COLUMNS]

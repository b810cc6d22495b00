"""Parameter management for null-model analyses."""

from dataclasses import dataclass, field
from typing import Literal, Optional, Tuple

from .replicates import default_n_workers

Analysis = Literal[
    "rarefaction",
    "niche_breadth",
    "niche_value",
    "niche_range",
    "seasonality",
    "split_window",
    "pairwise",
]

ANALYSES = (
    "rarefaction",
    "niche_breadth",
    "niche_value",
    "niche_range",
    "seasonality",
    "split_window",
    "pairwise",
)


@dataclass
class NullModelParameters:
    """Parameters shared by the null-model analyses."""

    analysis: str = "niche_breadth"

    # Replicates
    n_replicates: int = 1000
    probs: Tuple[float, float] = (0.025, 0.975)

    # Null model / statistic
    perm_method: str = "quasiswap"
    niche_width_method: Literal["levins", "shannon", "occurrence"] = "levins"
    lag_max: int = 120  # seasonality
    window_size: int = 10  # split window

    # Rarefaction
    depth: Optional[int] = None  # min sample total when None
    round_output: bool = True

    # Pairwise PERMANOVA
    correction: str = "fdr"

    # Execution
    n_workers: Optional[int] = None  # None = sequential, 0 = all free cores
    reserved_cores: int = 1  # cores kept free when n_workers is 0
    random_state: Optional[int] = None
    extra: dict = field(default_factory=dict)

    def to_dict(self):
        """Convert to dictionary."""
        return {
            "analysis": self.analysis,
            "n_replicates": self.n_replicates,
            "probs": list(self.probs),
            "perm_method": self.perm_method,
            "niche_width_method": self.niche_width_method,
            "lag_max": self.lag_max,
            "window_size": self.window_size,
            "depth": self.depth,
            "round_output": self.round_output,
            "correction": self.correction,
            "n_workers": self.n_workers,
            "reserved_cores": self.reserved_cores,
            "random_state": self.random_state,
            "extra": dict(self.extra),
        }

    def resolve_n_workers(self) -> Optional[int]:
        """Worker count for a run: None runs sequentially, 0 uses every core but ``reserved_cores``."""
        if self.n_workers == 0:
            return default_n_workers(self.reserved_cores)
        return self.n_workers

    @classmethod
    def from_dict(cls, d: dict):
        """Create from dictionary."""
        params = cls(**{k: v for k, v in d.items() if k in cls.__annotations__})
        params.probs = tuple(params.probs)
        return params


def get_default_parameters(analysis: Analysis = "niche_breadth") -> NullModelParameters:
    """
    Get default parameters for an analysis.

    Parameters
    ----------
    analysis : str
        One of ``ANALYSES``.

    Returns
    -------
    NullModelParameters
        Defaults for the analysis.
    """
    if analysis not in ANALYSES:
        raise ValueError(f"Unknown analysis: {analysis}")

    if analysis == "rarefaction":
        return NullModelParameters(analysis=analysis, n_replicates=100, perm_method="rarefy")
    elif analysis == "niche_breadth":
        return NullModelParameters(analysis=analysis, perm_method="quasiswap")
    elif analysis in ("niche_value", "niche_range", "seasonality"):
        return NullModelParameters(analysis=analysis, perm_method="shuffle_rows")
    elif analysis == "split_window":
        return NullModelParameters(analysis=analysis, perm_method="permute_samples", window_size=10)
    else:
        return NullModelParameters(analysis=analysis, perm_method="permanova")


def validate_parameters(params: NullModelParameters) -> tuple[bool, list[str]]:
    """
    Validate parameters.

    Parameters
    ----------
    params : NullModelParameters
        Parameters to validate.

    Returns
    -------
    tuple of (bool, list)
        (is_valid, list of error messages)
    """
    errors = []

    if params.analysis not in ANALYSES:
        errors.append(f"analysis must be one of {ANALYSES}")

    if params.n_replicates < 1:
        errors.append("n_replicates must be >= 1")

    if len(params.probs) != 2:
        errors.append("probs must contain exactly two probabilities")
    else:
        low, high = params.probs
        if not (0 <= low <= high <= 1):
            errors.append("probs must be ascending and within [0, 1]")

    if params.analysis == "niche_breadth":
        if params.niche_width_method not in ("levins", "shannon", "occurrence"):
            errors.append("niche_width_method must be 'levins', 'shannon' or 'occurrence'")
        if params.perm_method not in ("quasiswap", "r2dtable"):
            errors.append("perm_method must be 'quasiswap' or 'r2dtable'")

    if params.analysis == "seasonality" and params.lag_max < 1:
        errors.append("lag_max must be >= 1")

    if params.analysis == "split_window":
        if params.window_size % 2 != 0:
            errors.append("window_size must be even")
        if params.window_size < 2:
            errors.append("window_size must be >= 2")

    if params.analysis == "rarefaction" and params.depth is not None and params.depth < 1:
        errors.append("depth must be >= 1")

    if params.n_workers is not None and params.n_workers < 0:
        errors.append("n_workers must be >= 0")

    if params.reserved_cores < 0:
        errors.append("reserved_cores must be >= 0")

    is_valid = len(errors) == 0

    return is_valid, errors

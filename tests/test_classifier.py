"""Tests for null-distribution summaries and classification."""

import warnings

import numpy as np
import pandas as pd
import pytest

from ecolutils.stats import classifier
from ecolutils.stats.classifier import (
    NICHE_BREADTH_LABELS,
    SEASONALITY_LABELS,
    WINDOW_LABELS,
)


def create_test_null(n_replicates=101, columns=("a", "b", "c")):
    """Null distribution with values 0..n-1 in every column."""
    values = np.tile(np.arange(n_replicates, dtype=float)[:, np.newaxis], (1, len(columns)))
    return pd.DataFrame(values, columns=list(columns))


class TestClassifyValue:
    """Tests for the single-value label rule."""

    def test_above_upper(self):
        assert classifier.classify_value(5.0, 1.0, 4.0, NICHE_BREADTH_LABELS) == "GENERALIST"

    def test_below_lower(self):
        assert classifier.classify_value(0.5, 1.0, 4.0, NICHE_BREADTH_LABELS) == "SPECIALIST"

    def test_on_bounds_is_neutral(self):
        """Values equal to a bound are not significant."""
        assert classifier.classify_value(1.0, 1.0, 4.0, NICHE_BREADTH_LABELS) == "NON_SIGNIFICANT"
        assert classifier.classify_value(4.0, 1.0, 4.0, NICHE_BREADTH_LABELS) == "NON_SIGNIFICANT"

    def test_missing_inputs(self):
        """Missing observed or bounds give a missing label."""
        assert pd.isna(classifier.classify_value(np.nan, 1.0, 4.0, NICHE_BREADTH_LABELS))
        assert pd.isna(classifier.classify_value(2.0, np.nan, np.nan, NICHE_BREADTH_LABELS))

    def test_window_labels_symmetric(self):
        """Split-window labels do not distinguish the direction."""
        assert classifier.classify_value(9.0, 1.0, 4.0, WINDOW_LABELS) == "SIGNIFICANT"
        assert classifier.classify_value(0.0, 1.0, 4.0, WINDOW_LABELS) == "SIGNIFICANT"
        assert classifier.classify_value(2.0, 1.0, 4.0, WINDOW_LABELS) == "NOT_SIGNIFICANT"


class TestSummarizeNull:
    """Tests for summarize_null."""

    def test_mean_and_quantiles(self):
        """Type-7 quantiles of 0..100 are exact percentiles."""
        summary = classifier.summarize_null(create_test_null(), probs=(0.025, 0.975))

        np.testing.assert_allclose(summary["mean_simulated"], 50.0)
        np.testing.assert_allclose(summary["low_ci"], 2.5)
        np.testing.assert_allclose(summary["upp_ci"], 97.5)

    def test_bounds_ordered(self):
        """low_ci <= mean <= upp_ci for random nulls."""
        rng = np.random.default_rng(1)
        null = pd.DataFrame(rng.gamma(2.0, size=(200, 5)))

        summary = classifier.summarize_null(null, probs=(0.05, 0.95))

        assert (summary["low_ci"] <= summary["upp_ci"]).all()
        assert (summary["low_ci"] <= summary["mean_simulated"]).all()
        assert (summary["mean_simulated"] <= summary["upp_ci"]).all()

    def test_nan_replicates_ignored(self):
        """Missing replicate values are skipped; all-missing columns give NaN."""
        null = pd.DataFrame({"a": [1.0, np.nan, 3.0], "b": [np.nan] * 3})

        summary = classifier.summarize_null(null, probs=(0.0, 1.0))

        assert summary.loc["a", "mean_simulated"] == pytest.approx(2.0)
        assert summary.loc["a", "low_ci"] == pytest.approx(1.0)
        assert summary.loc["a", "upp_ci"] == pytest.approx(3.0)
        assert summary.loc["b"].isna().all()

    def test_all_missing_column_is_quiet(self):
        """All-missing columns summarize without runtime warnings."""
        null = pd.DataFrame({"a": [2.0, 4.0], "b": [np.nan, np.nan]})

        with warnings.catch_warnings():
            warnings.simplefilter("error", category=RuntimeWarning)
            summary = classifier.summarize_null(null, probs=(0.025, 0.975))

        assert summary.loc["a", "mean_simulated"] == pytest.approx(3.0)
        assert np.isnan(summary.loc["b", "mean_simulated"])

    @pytest.mark.parametrize("probs", [(0.9, 0.1), (-0.1, 0.5), (0.1,)])
    def test_invalid_probs(self, probs):
        """Probabilities must be an ascending pair within [0, 1]."""
        with pytest.raises(ValueError):
            classifier.summarize_null(create_test_null(), probs=probs)


class TestClassify:
    """Tests for classify."""

    def test_labels_and_columns(self):
        """Observed values are labelled against their own column."""
        observed = pd.Series([99.0, 1.0, 50.0], index=["a", "b", "c"])

        result = classifier.classify(observed, create_test_null(), labels=SEASONALITY_LABELS)

        assert list(result.columns) == ["observed", "mean_simulated", "low_ci", "upp_ci", "sign"]
        assert list(result.index) == ["a", "b", "c"]
        assert list(result["sign"]) == [
            "SIGNIFICANTLY_HIGHER",
            "SIGNIFICANTLY_LOWER",
            "NON_SIGNIFICANT",
        ]
        assert isinstance(result["sign"].dtype, pd.CategoricalDtype)

    def test_missing_observed(self):
        """Missing observed values keep a missing label."""
        observed = pd.Series([np.nan, 1.0, 50.0], index=["a", "b", "c"])

        result = classifier.classify(observed, create_test_null())

        assert pd.isna(result.loc["a", "sign"])
        assert result.loc["b", "sign"] == "SPECIALIST"

    def test_misaligned_columns(self):
        """Null columns must match the observed index."""
        observed = pd.Series([1.0, 2.0, 3.0], index=["a", "c", "b"])

        with pytest.raises(ValueError, match="do not match"):
            classifier.classify(observed, create_test_null())

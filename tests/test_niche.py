"""Tests for niche breadth and niche position classification."""

import numpy as np
import pandas as pd
import pytest
from anndata import AnnData

from ecolutils.errors import DimensionMismatchError, InvalidCommunityError
from ecolutils.niche import classify_niche_breadth, classify_niche_range, classify_niche_value
from ecolutils.nullmodel import ReplicatePool

RESULT_COLUMNS = ["observed", "mean_simulated", "low_ci", "upp_ci", "sign"]


def create_test_community(n_samples=20, n_taxa=6, seed=0):
    """Random sparse integer community."""
    rng = np.random.default_rng(seed)
    counts = rng.poisson(4.0, size=(n_samples, n_taxa)) * (rng.random((n_samples, n_taxa)) < 0.6)
    counts[:, 0] += 1
    return pd.DataFrame(
        counts,
        index=[f"S{i}" for i in range(n_samples)],
        columns=[f"OTU{j}" for j in range(n_taxa)],
    )


def create_gradient_community(n_samples=20):
    """Community along an environmental gradient 0..n-1.

    high: only in the five highest samples; low: only in the five lowest;
    flat: constant everywhere; narrow: four adjacent mid-gradient samples.
    """
    env = pd.Series(np.arange(n_samples, dtype=float), index=[f"S{i}" for i in range(n_samples)])
    community = pd.DataFrame(0, index=env.index, columns=["high", "low", "flat", "narrow"])
    community.iloc[-5:, 0] = 3
    community.iloc[:5, 1] = 3
    community["flat"] = 2
    community.iloc[8:12, 3] = 1
    return community, env


class TestNicheBreadth:
    """Tests for classify_niche_breadth."""

    @pytest.mark.parametrize("method", ["levins", "shannon", "occurrence"])
    def test_result_table(self, method):
        """One row per taxon with the niche breadth vocabulary."""
        community = create_test_community()

        result = classify_niche_breadth(community, method=method, n=30, random_state=0)

        assert list(result.columns) == RESULT_COLUMNS
        assert list(result.index) == list(community.columns)
        assert set(result["sign"].dropna()) <= {"GENERALIST", "SPECIALIST", "NON_SIGNIFICANT"}
        assert (result["low_ci"] <= result["upp_ci"]).all()

    def test_occurrence_counts_occupied_samples(self):
        """Observed occurrence is the number of samples holding the taxon."""
        community = create_test_community()

        result = classify_niche_breadth(community, method="occurrence", n=30, random_state=2)

        np.testing.assert_array_equal(
            result["observed"].to_numpy(), (community > 0).sum(axis=0).to_numpy()
        )

    def test_reproducible(self):
        """Fixed seeds reproduce the classification."""
        community = create_test_community()

        first = classify_niche_breadth(community, n=20, random_state=42)
        second = classify_niche_breadth(community, n=20, random_state=42)

        pd.testing.assert_frame_equal(first, second)

    def test_r2dtable(self):
        community = create_test_community()

        result = classify_niche_breadth(community, perm_method="r2dtable", n=20, random_state=1)

        assert len(result) == community.shape[1]

    def test_anndata_input(self):
        """AnnData communities are accepted."""
        community = create_test_community()
        adata = AnnData(
            X=community.to_numpy().astype(float),
            obs=pd.DataFrame(index=community.index),
            var=pd.DataFrame(index=community.columns),
        )

        result = classify_niche_breadth(adata, n=10, random_state=0)

        assert list(result.index) == list(community.columns)

    def test_invalid_inputs(self):
        """Unknown methods and non-integer tables are rejected."""
        community = create_test_community()

        with pytest.raises(ValueError):
            classify_niche_breadth(community, method="simpson", n=5)
        with pytest.raises(ValueError):
            classify_niche_breadth(community, perm_method="shuffle_rows", n=5)
        with pytest.raises(InvalidCommunityError):
            classify_niche_breadth(community.astype(float) + 0.25, n=5)


class TestNicheValue:
    """Tests for classify_niche_value."""

    def test_gradient_labels(self):
        """Taxa restricted to one end of the gradient are HIGHER / LOWER."""
        community, env = create_gradient_community()

        result = classify_niche_value(community, env, n=200, random_state=0)

        assert result.loc["high", "sign"] == "HIGHER"
        assert result.loc["low", "sign"] == "LOWER"
        assert result.loc["flat", "sign"] == "NON_SIGNIFICANT"
        assert result.loc["flat", "observed"] == pytest.approx(env.mean())

    def test_env_aligned_by_sample_id(self):
        """A shuffled env Series gives the same observed values."""
        community, env = create_gradient_community()

        ordered = classify_niche_value(community, env, n=10, random_state=0)
        shuffled = classify_niche_value(community, env.sample(frac=1, random_state=3), n=10, random_state=0)

        pd.testing.assert_series_equal(ordered["observed"], shuffled["observed"])

    def test_thread_pool(self):
        """Pool execution matches sequential execution."""
        community, env = create_gradient_community()

        sequential = classify_niche_value(community, env, n=24, random_state=8)
        with ReplicatePool(n_workers=2, kind="thread") as pool:
            pooled = classify_niche_value(community, env, n=24, random_state=8, pool=pool)

        pd.testing.assert_frame_equal(sequential, pooled)

    def test_env_mismatch(self):
        community, env = create_gradient_community()

        with pytest.raises(DimensionMismatchError):
            classify_niche_value(community, env.iloc[:-1], n=5)

    def test_missing_abundance(self):
        """A missing cell gives a missing result for its taxon; the rest are classified."""
        community, env = create_gradient_community()
        community = community.astype(float)
        community.loc["S3", "low"] = np.nan

        result = classify_niche_value(community, env, n=50, random_state=0)

        assert np.isnan(result.loc["low", "observed"])
        assert pd.isna(result.loc["low", "sign"])
        assert result.loc["high", "sign"] == "HIGHER"
        assert result.loc["flat", "sign"] == "NON_SIGNIFICANT"


class TestNicheRange:
    """Tests for classify_niche_range."""

    def test_gradient_labels(self):
        """A taxon on four adjacent samples has a narrow range."""
        community, env = create_gradient_community()

        result = classify_niche_range(community, env, n=200, random_state=0)

        assert result.loc["narrow", "observed"] == pytest.approx(3.0)
        assert result.loc["narrow", "sign"] == "LOWER"
        assert result.loc["flat", "observed"] == pytest.approx(19.0)
        assert result.loc["flat", "sign"] == "NON_SIGNIFICANT"

    def test_absent_taxon_missing_label(self):
        """Taxa absent from every sample get NaN values and labels."""
        community, env = create_gradient_community()
        community["absent"] = 0

        result = classify_niche_range(community, env, n=10, random_state=0)

        assert np.isnan(result.loc["absent", "observed"])
        assert pd.isna(result.loc["absent", "sign"])

    def test_missing_abundance(self):
        """Missing cells are accepted and give a missing range for their taxon."""
        community, env = create_gradient_community()
        community = community.astype(float)
        community.loc["S10", "narrow"] = np.nan

        result = classify_niche_range(community, env, n=20, random_state=0)

        assert np.isnan(result.loc["narrow", "observed"])
        assert pd.isna(result.loc["narrow", "sign"])
        assert result.loc["flat", "observed"] == pytest.approx(19.0)

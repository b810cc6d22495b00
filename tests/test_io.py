"""Tests for I/O module."""

import numpy as np
import pandas as pd
import pytest
from anndata import AnnData
from scipy import sparse
from scipy.spatial.distance import pdist

from ecolutils.errors import (
    AsymmetricMatrixError,
    DimensionMismatchError,
    InvalidCommunityError,
)
from ecolutils.io import converter, loader, validator


def create_test_community(n_samples=12, n_taxa=8, seed=0):
    """Create a small integer community table."""
    rng = np.random.default_rng(seed)
    counts = rng.poisson(5, size=(n_samples, n_taxa))
    return pd.DataFrame(
        counts,
        index=[f"S{i}" for i in range(n_samples)],
        columns=[f"OTU{j}" for j in range(n_taxa)],
    )


def create_test_adata(n_samples=12, n_taxa=8):
    """Create an AnnData object with sparse counts."""
    community = create_test_community(n_samples, n_taxa)
    adata = AnnData(
        X=sparse.csr_matrix(community.to_numpy().astype(float)),
        obs=pd.DataFrame(index=community.index),
        var=pd.DataFrame(index=community.columns),
    )
    adata.layers["counts"] = community.to_numpy().astype(float)
    return adata


class TestConverter:
    """Tests for input coercion."""

    def test_dataframe_passthrough(self):
        """DataFrames are returned unchanged."""
        community = create_test_community()
        assert converter.as_community_frame(community) is community

    def test_array_gets_generated_ids(self):
        """Arrays get sample_/taxon_ identifiers."""
        frame = converter.as_community_frame(np.ones((3, 2)))

        assert list(frame.index) == ["sample_1", "sample_2", "sample_3"]
        assert list(frame.columns) == ["taxon_1", "taxon_2"]

    def test_array_must_be_2d(self):
        """One-dimensional community input is rejected."""
        with pytest.raises(ValueError):
            converter.as_community_frame(np.ones(5))

    def test_from_anndata_sparse(self):
        """Sparse AnnData matrices are densified with obs/var labels."""
        adata = create_test_adata()

        frame = converter.community_from_anndata(adata)

        assert frame.shape == (12, 8)
        assert list(frame.index) == list(adata.obs_names)
        np.testing.assert_array_equal(frame.to_numpy(), adata.X.toarray())

    def test_from_anndata_layer(self):
        """Named layers are used when given."""
        adata = create_test_adata()

        frame = converter.as_community_frame(adata, layer="counts")
        np.testing.assert_array_equal(frame.to_numpy(), adata.layers["counts"])

        with pytest.raises(ValueError):
            converter.community_from_anndata(adata, layer="missing")

    def test_condensed_distances_expanded(self):
        """Condensed pdist vectors become square matrices."""
        points = np.arange(8, dtype=float).reshape(4, 2)
        frame = converter.as_dissimilarity_frame(pdist(points), ids=list("abcd"))

        assert frame.shape == (4, 4)
        assert list(frame.columns) == list("abcd")
        assert frame.loc["a", "a"] == 0
        assert frame.loc["a", "b"] == pytest.approx(np.sqrt(8))


class TestValidator:
    """Tests for validator functions."""

    def test_check_community_valid(self):
        """A clean integer table passes."""
        is_valid, messages = validator.check_community(create_test_community(), require_integer=True)

        assert is_valid
        assert not [m for m in messages if m.startswith("ERROR")]

    def test_negative_values(self):
        """Negative abundances are rejected."""
        community = create_test_community()
        community.iloc[0, 0] = -1

        with pytest.raises(InvalidCommunityError):
            validator.validate_community(community)

    def test_missing_values(self):
        """Missing abundances are rejected."""
        community = create_test_community().astype(float)
        community.iloc[2, 3] = np.nan

        is_valid, messages = validator.check_community(community)

        assert not is_valid
        assert any("missing" in m for m in messages)

    def test_missing_values_allowed(self):
        """With allow_missing, NaN cells pass with a warning."""
        community = create_test_community().astype(float)
        community.iloc[2, 3] = np.nan

        is_valid, messages = validator.check_community(community, allow_missing=True)

        assert is_valid
        assert any(m.startswith("WARNING") and "missing" in m for m in messages)
        validator.validate_community(community, allow_missing=True)

    def test_allow_missing_still_rejects_bad_values(self):
        """allow_missing does not accept infinities, negatives or duplicate ids."""
        community = create_test_community().astype(float)
        community.iloc[0, 0] = np.nan

        infinite = community.copy()
        infinite.iloc[1, 1] = np.inf
        with pytest.raises(InvalidCommunityError, match="infinite"):
            validator.validate_community(infinite, allow_missing=True)

        negative = community.copy()
        negative.iloc[1, 1] = -2
        with pytest.raises(InvalidCommunityError, match="Negative"):
            validator.validate_community(negative, allow_missing=True)

        duplicated = community.copy()
        duplicated.index = ["S0"] * len(duplicated)
        with pytest.raises(InvalidCommunityError, match="not unique"):
            validator.validate_community(duplicated, allow_missing=True)

    def test_duplicate_ids(self):
        """Duplicated sample ids are rejected."""
        community = create_test_community()
        community.index = ["S0"] * len(community)

        with pytest.raises(InvalidCommunityError, match="not unique"):
            validator.validate_community(community)

    def test_non_integer_when_required(self):
        """Fractional counts fail only when integers are required."""
        community = create_test_community().astype(float) + 0.5

        validator.validate_community(community)
        with pytest.raises(InvalidCommunityError, match="integer"):
            validator.validate_community(community, require_integer=True)

    def test_empty_taxon_warning(self):
        """Zero-total taxa produce a warning, not an error."""
        community = create_test_community()
        community["OTU0"] = 0

        is_valid, messages = validator.check_community(community)

        assert is_valid
        assert any(m.startswith("WARNING") for m in messages)

    def test_dissimilarity_not_square(self):
        """Non-square matrices are rejected."""
        frame = converter.as_dissimilarity_frame(np.zeros((3, 4)))

        with pytest.raises(AsymmetricMatrixError, match="square"):
            validator.validate_dissimilarity(frame)

    def test_dissimilarity_asymmetric(self):
        """Asymmetric matrices are rejected."""
        values = np.array([[0.0, 0.2, 0.3], [0.5, 0.0, 0.1], [0.3, 0.1, 0.0]])
        frame = converter.as_dissimilarity_frame(values)

        with pytest.raises(AsymmetricMatrixError, match="symmetric"):
            validator.validate_dissimilarity(frame)

    def test_dissimilarity_ids_differ(self):
        """Row and column labels must match."""
        frame = pd.DataFrame(np.zeros((2, 2)), index=["a", "b"], columns=["a", "c"])

        with pytest.raises(AsymmetricMatrixError):
            validator.validate_dissimilarity(frame)

    def test_dissimilarity_hollow(self):
        """Non-zero diagonals only fail when a hollow matrix is required."""
        values = np.array([[1.0, 0.2], [0.2, 1.0]])
        frame = converter.as_dissimilarity_frame(values)

        validator.validate_dissimilarity(frame)
        with pytest.raises(AsymmetricMatrixError, match="diagonal"):
            validator.validate_dissimilarity(frame, require_hollow=True)

    def test_align_environment_by_index(self):
        """Series are reordered to the sample order."""
        env = pd.Series([3.0, 1.0, 2.0], index=["c", "a", "b"])

        aligned = validator.align_environment(env, ["a", "b", "c"])

        np.testing.assert_array_equal(aligned, [1.0, 2.0, 3.0])

    def test_align_environment_missing_sample(self):
        """Samples without an env value raise."""
        env = pd.Series([1.0, 2.0], index=["a", "b"])

        with pytest.raises(DimensionMismatchError):
            validator.align_environment(env, ["a", "b", "c"])

    def test_align_environment_wrong_length(self):
        """Positional env vectors must have one value per sample."""
        with pytest.raises(DimensionMismatchError):
            validator.align_environment([1.0, 2.0], ["a", "b", "c"])

    def test_align_factor_positional(self):
        """Sequences are labelled with the sample ids."""
        factor = validator.align_factor(["x", "y", "x"], ["a", "b", "c"])

        assert list(factor.index) == ["a", "b", "c"]
        assert list(factor) == ["x", "y", "x"]


class TestLoader:
    """Tests for loader functions."""

    def test_load_community_csv(self, tmp_path):
        """CSV tables load with string ids."""
        community = create_test_community()
        path = tmp_path / "community.csv"
        community.to_csv(path)

        loaded = loader.load_community(str(path))

        assert loaded.shape == community.shape
        assert list(loaded.index) == list(community.index)
        np.testing.assert_array_equal(loaded.to_numpy(), community.to_numpy())

    def test_load_community_transposed_tsv(self, tmp_path):
        """OTU-table layout (taxa as rows) is transposed."""
        community = create_test_community()
        path = tmp_path / "otu_table.tsv"
        community.T.to_csv(path, sep="\t")

        loaded = loader.load_community(str(path), transpose=True)

        assert loaded.shape == community.shape
        assert list(loaded.columns) == list(community.columns)

    def test_load_community_h5ad(self, tmp_path):
        """H5AD files load through AnnData."""
        adata = create_test_adata()
        path = tmp_path / "community.h5ad"
        adata.write_h5ad(path)

        loaded = loader.load_community(str(path))

        assert loaded.shape == (12, 8)

    def test_summarize_community(self):
        """Summary reports shape and depth."""
        community = create_test_community()

        summary = loader.summarize_community(community)

        assert summary["n_samples"] == 12
        assert summary["n_taxa"] == 8
        assert summary["min_depth"] == community.sum(axis=1).min()
        assert 0 <= summary["sparsity"] <= 1

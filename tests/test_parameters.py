"""Tests for analysis parameters."""

import pytest

from ecolutils.nullmodel.parameters import (
    ANALYSES,
    NullModelParameters,
    get_default_parameters,
    validate_parameters,
)


class TestDefaults:
    """Tests for get_default_parameters."""

    @pytest.mark.parametrize("analysis", ANALYSES)
    def test_defaults_valid(self, analysis):
        """Every analysis has valid defaults."""
        params = get_default_parameters(analysis)

        is_valid, errors = validate_parameters(params)

        assert params.analysis == analysis
        assert is_valid, errors

    def test_classic_defaults(self):
        """Replicate counts and quantiles follow the classic EcolUtils defaults."""
        assert get_default_parameters("rarefaction").n_replicates == 100
        assert get_default_parameters("niche_breadth").n_replicates == 1000
        assert get_default_parameters("seasonality").lag_max == 120
        assert get_default_parameters("split_window").window_size == 10
        assert get_default_parameters("pairwise").correction == "fdr"
        assert get_default_parameters().probs == (0.025, 0.975)

    def test_unknown_analysis(self):
        with pytest.raises(ValueError):
            get_default_parameters("ordination")


class TestValidation:
    """Tests for validate_parameters."""

    def test_bad_probs(self):
        params = NullModelParameters(probs=(0.9, 0.1))

        is_valid, errors = validate_parameters(params)

        assert not is_valid
        assert any("probs" in e for e in errors)

    def test_odd_window(self):
        params = get_default_parameters("split_window")
        params.window_size = 7

        is_valid, errors = validate_parameters(params)

        assert not is_valid
        assert "window_size must be even" in errors

    def test_smallest_window(self):
        """Two-sample windows are valid; empty windows are not."""
        params = get_default_parameters("split_window")
        params.window_size = 2
        assert validate_parameters(params)[0]

        params.window_size = 0
        assert "window_size must be >= 2" in validate_parameters(params)[1]

    def test_bad_perm_method(self):
        params = get_default_parameters("niche_breadth")
        params.perm_method = "shuffle_rows"

        assert not validate_parameters(params)[0]

    def test_workers(self):
        assert validate_parameters(NullModelParameters(n_workers=0))[0]
        assert "n_workers must be >= 0" in validate_parameters(NullModelParameters(n_workers=-1))[1]
        assert "reserved_cores must be >= 0" in validate_parameters(
            NullModelParameters(reserved_cores=-1)
        )[1]


class TestWorkers:
    """Tests for resolve_n_workers."""

    def test_sequential_and_explicit(self):
        assert NullModelParameters().resolve_n_workers() is None
        assert NullModelParameters(n_workers=3).resolve_n_workers() == 3

    def test_all_free_cores(self, monkeypatch):
        """n_workers=0 uses every core except reserved_cores."""
        monkeypatch.delenv("ECOLUTILS_N_WORKERS", raising=False)
        monkeypatch.setattr("os.cpu_count", lambda: 8)

        assert NullModelParameters(n_workers=0, reserved_cores=2).resolve_n_workers() == 6
        assert NullModelParameters(n_workers=0, reserved_cores=0).resolve_n_workers() == 8
        assert NullModelParameters(n_workers=0, reserved_cores=20).resolve_n_workers() == 1

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("ECOLUTILS_N_WORKERS", "2")

        assert NullModelParameters(n_workers=0, reserved_cores=0).resolve_n_workers() == 2


class TestSerialization:
    """Tests for to_dict / from_dict."""

    def test_round_trip(self):
        params = NullModelParameters(
            analysis="seasonality", n_replicates=50, probs=(0.05, 0.95), lag_max=12, random_state=3
        )

        restored = NullModelParameters.from_dict(params.to_dict())

        assert restored == params
        assert isinstance(restored.probs, tuple)

    def test_unknown_keys_ignored(self):
        restored = NullModelParameters.from_dict({"n_replicates": 10, "legacy_option": True})

        assert restored.n_replicates == 10

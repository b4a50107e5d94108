"""Tests for likelihood backend detection and dispatch."""

import os

import numpy as np
import pytest

from subtest.core.backend import (
    get_backend_info,
    get_compute_backend,
    normalize_backend_name,
    resolve_backend,
)
from subtest.mixture.em import ThreeGaussianEM


class TestBackendDetection:
    """Tests for get_compute_backend function."""

    def setup_method(self):
        """Clear cache before each test."""
        get_compute_backend.cache_clear()

    def teardown_method(self):
        """Clean up environment after each test."""
        os.environ.pop("SUBTEST_BACKEND", None)
        get_compute_backend.cache_clear()

    def test_default_is_numpy(self):
        os.environ.pop("SUBTEST_BACKEND", None)
        assert get_compute_backend() == "numpy"

    def test_env_override_jax(self):
        os.environ["SUBTEST_BACKEND"] = "jax"
        assert get_compute_backend() == "jax"

    def test_env_override_case_and_whitespace(self):
        os.environ["SUBTEST_BACKEND"] = "  JAX "
        assert get_compute_backend() == "jax"

    def test_env_alias(self):
        os.environ["SUBTEST_BACKEND"] = "np"
        assert get_compute_backend() == "numpy"

    def test_auto_falls_through(self):
        os.environ["SUBTEST_BACKEND"] = "auto"
        assert get_compute_backend() == "numpy"

    def test_invalid_override_ignored(self):
        os.environ["SUBTEST_BACKEND"] = "invalid"
        assert get_compute_backend() == "numpy"

    def test_caching(self):
        os.environ.pop("SUBTEST_BACKEND", None)
        first = get_compute_backend()
        os.environ["SUBTEST_BACKEND"] = "jax"
        assert get_compute_backend() == first


class TestResolveBackend:
    def setup_method(self):
        get_compute_backend.cache_clear()

    def teardown_method(self):
        os.environ.pop("SUBTEST_BACKEND", None)
        get_compute_backend.cache_clear()

    def test_explicit_request_wins(self):
        os.environ["SUBTEST_BACKEND"] = "jax"
        assert resolve_backend("numpy") == "numpy"

    def test_none_uses_detection(self):
        os.environ["SUBTEST_BACKEND"] = "jax"
        assert resolve_backend(None) == "jax"

    def test_unknown_raises(self):
        with pytest.raises(ValueError, match="Unknown backend"):
            resolve_backend("rust")

    @pytest.mark.parametrize(
        "value,expected",
        [("NumPy", "numpy"), (" jax ", "jax"), ("jax.numpy", "jax"), ("xla", "jax")],
    )
    def test_normalize(self, value, expected):
        assert normalize_backend_name(value) == expected


class TestBackendInfo:
    def setup_method(self):
        get_compute_backend.cache_clear()

    def teardown_method(self):
        os.environ.pop("SUBTEST_BACKEND", None)
        get_compute_backend.cache_clear()

    def test_returns_dict(self):
        info = get_backend_info()
        assert set(info) == {"selected", "gpu_available", "override"}
        assert isinstance(info["gpu_available"], bool)

    def test_shows_override_when_set(self):
        os.environ["SUBTEST_BACKEND"] = "jax"
        assert get_backend_info()["override"] == "jax"


class TestFitterDispatch:
    """The fitter binds the backend chosen at construction."""

    def setup_method(self):
        get_compute_backend.cache_clear()

    def teardown_method(self):
        os.environ.pop("SUBTEST_BACKEND", None)
        get_compute_backend.cache_clear()

    def test_env_selects_jax_kernel(self, small_data):
        os.environ["SUBTEST_BACKEND"] = "jax"
        em = ThreeGaussianEM(small_data.z, (0.8, 0.1, 2, 2, 3, 0.5))
        assert em.backend == "jax"
        assert np.isfinite(em.logl)

    def test_config_overrides_env(self, small_data):
        from subtest.core.config import FitConfig

        os.environ["SUBTEST_BACKEND"] = "jax"
        em = ThreeGaussianEM(
            small_data.z, (0.8, 0.1, 2, 2, 3, 0.5), config=FitConfig(backend="numpy")
        )
        assert em.backend == "numpy"

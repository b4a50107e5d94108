"""Tests for the validation comparison utilities."""

import dataclasses

import numpy as np
import pytest

from subtest.mixture.em import fit_3g
from subtest.mixture.results import FitStatus
from subtest.validation import (
    ToleranceConfig,
    compare_arrays,
    compare_densities,
    compare_fits,
)


class TestToleranceConfig:
    def test_defaults(self):
        config = ToleranceConfig()
        assert config.logl_rtol == 1e-6
        assert config.pars_rtol == 1e-3

    def test_strict_tighter_than_relaxed(self):
        strict, relaxed = ToleranceConfig.strict(), ToleranceConfig.relaxed()
        for field in ("density_rtol", "logl_rtol", "pars_rtol", "atol"):
            assert getattr(strict, field) < getattr(relaxed, field)


class TestCompareArrays:
    def test_pass(self):
        a = np.array([1.0, 2.0, 3.0])
        result = compare_arrays(a, a.copy(), rtol=1e-6, atol=1e-12, name="x")
        assert result.passed
        assert result.worst_location is None
        assert "x comparison passed" in result.message

    def test_fail_reports_worst_location(self):
        a = np.array([1.0, 2.0, 3.0])
        b = np.array([1.0, 2.5, 3.0])
        result = compare_arrays(a, b, rtol=1e-6, atol=1e-12)
        assert not result.passed
        assert result.worst_location == (1,)
        assert result.max_abs_diff == pytest.approx(0.5)

    def test_shape_mismatch(self):
        result = compare_arrays(np.ones(3), np.ones(4), rtol=1e-6, atol=0.0)
        assert not result.passed
        assert "shape mismatch" in result.message

    def test_scalars(self):
        assert compare_arrays(1.0, 1.0 + 1e-12, rtol=1e-9, atol=0.0).passed


@pytest.mark.tier0
class TestCompareFits:
    def test_identical_fits(self, small_data):
        a = fit_3g(small_data.z, max_iterations=100)
        b = fit_3g(small_data.z, max_iterations=100)
        assert compare_fits(a, b, ToleranceConfig.strict()).passed

    def test_different_hypotheses_fail(self, small_data):
        full = fit_3g(small_data.z, max_iterations=50)
        null = fit_3g(small_data.z, max_iterations=50, fit_null=True)
        comparison = compare_fits(full, null)
        assert not comparison.passed
        assert not comparison.same_hypothesis

    def test_status_mismatch_fails(self, small_data):
        a = fit_3g(small_data.z, max_iterations=100)
        b = dataclasses.replace(a, status=FitStatus.MAX_ITER_REACHED)
        comparison = compare_fits(a, b)
        assert comparison.pars.passed
        assert not comparison.same_status
        assert not comparison.passed


class TestCompareDensities:
    def test_uses_density_rtol(self):
        expected = np.array([[0.5, 0.25], [1e-3, 2.0]])
        actual = expected * (1 + 1e-11)
        assert compare_densities(actual, expected, ToleranceConfig()).passed
        assert not compare_densities(actual, expected, ToleranceConfig.strict()).passed

    def test_values_below_floor_are_equal(self):
        expected = np.array([1e-80, 0.3])
        actual = np.array([0.0, 0.3])
        assert compare_densities(actual, expected).passed

    def test_name_in_message(self):
        result = compare_densities(np.ones(2), np.ones(2), name="class densities")
        assert "class densities comparison passed" in result.message

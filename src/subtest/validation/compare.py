"""Comparison utilities for validating fits across backends and references.

Functions return structured results rather than raising, so validation
scripts and tests can report every mismatch at once.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.testing import assert_allclose

from subtest.mixture.likelihood import DENSITY_FLOOR
from subtest.mixture.results import FitResult
from subtest.validation.tolerances import ToleranceConfig


@dataclass
class ComparisonResult:
    """Result of a numerical array comparison.

    Attributes:
        passed: Whether the comparison passed within tolerance.
        max_abs_diff: Maximum absolute difference found.
        max_rel_diff: Maximum relative difference found.
        worst_location: Index tuple of the worst mismatch, or None if passed.
        message: Human-readable description of the result.
    """

    passed: bool
    max_abs_diff: float
    max_rel_diff: float
    worst_location: tuple[int, ...] | None
    message: str


def compare_arrays(
    actual: np.ndarray,
    expected: np.ndarray,
    rtol: float,
    atol: float,
    name: str = "array",
) -> ComparisonResult:
    """Compare two arrays with tolerance and return a structured result.

    Uses numpy.testing.assert_allclose internally but catches the assertion.

    Args:
        actual: The computed array to validate.
        expected: The reference array to compare against.
        rtol: Relative tolerance for comparison.
        atol: Absolute tolerance for comparison.
        name: Name to use in messages.

    Returns:
        ComparisonResult with pass/fail status and diagnostics.

    Example:
        >>> a = np.array([1.0, 2.0, 3.0])
        >>> compare_arrays(a, a.copy(), rtol=1e-6, atol=1e-12).passed
        True
    """
    actual = np.atleast_1d(np.asarray(actual, dtype=np.float64))
    expected = np.atleast_1d(np.asarray(expected, dtype=np.float64))
    if actual.shape != expected.shape:
        return ComparisonResult(
            passed=False,
            max_abs_diff=np.inf,
            max_rel_diff=np.inf,
            worst_location=None,
            message=(
                f"{name} shape mismatch: "
                f"actual {actual.shape} vs expected {expected.shape}"
            ),
        )

    abs_diff = np.abs(actual - expected)
    with np.errstate(divide="ignore", invalid="ignore"):
        rel_diff = abs_diff / np.abs(expected)
    max_abs_diff = float(np.max(abs_diff)) if abs_diff.size else 0.0

    try:
        assert_allclose(actual, expected, rtol=rtol, atol=atol, err_msg=name)
    except AssertionError:
        worst_idx = tuple(
            int(i) for i in np.unravel_index(np.argmax(abs_diff), abs_diff.shape)
        )
        rel_diff = np.where(np.isfinite(rel_diff), rel_diff, np.inf)
        return ComparisonResult(
            passed=False,
            max_abs_diff=max_abs_diff,
            max_rel_diff=float(np.max(rel_diff)),
            worst_location=worst_idx,
            message=f"{name} comparison failed at {worst_idx}: "
            f"actual={actual[worst_idx]:.10e}, expected={expected[worst_idx]:.10e}, "
            f"abs_diff={abs_diff[worst_idx]:.2e} (rtol={rtol}, atol={atol})",
        )

    rel_diff = np.where(np.isfinite(rel_diff), rel_diff, 0.0)
    max_rel_diff = float(np.max(rel_diff)) if rel_diff.size else 0.0
    return ComparisonResult(
        passed=True,
        max_abs_diff=max_abs_diff,
        max_rel_diff=max_rel_diff,
        worst_location=None,
        message=(
            f"{name} comparison passed "
            f"(max abs diff: {max_abs_diff:.2e}, max rel diff: {max_rel_diff:.2e})"
        ),
    )


@dataclass
class FitComparisonResult:
    """Result of comparing two fits.

    Attributes:
        passed: Whether every component comparison passed and the fits share
            hypothesis and status.
        pars: Comparison of fitted parameters.
        logl: Comparison of joint pseudo-log-likelihoods.
        logl_a: Comparison of Z_a pseudo-log-likelihoods.
        same_hypothesis: Whether both fits tested the same hypothesis.
        same_status: Whether both fits terminated the same way.
    """

    passed: bool
    pars: ComparisonResult
    logl: ComparisonResult
    logl_a: ComparisonResult
    same_hypothesis: bool
    same_status: bool


def compare_fits(
    actual: FitResult,
    expected: FitResult,
    config: ToleranceConfig | None = None,
) -> FitComparisonResult:
    """Compare two fits with value-appropriate tolerances.

    Args:
        actual: Fit under test.
        expected: Reference fit.
        config: Tolerance configuration. Uses default if None.

    Returns:
        FitComparisonResult with per-component details.
    """
    if config is None:
        config = ToleranceConfig()

    pars = compare_arrays(
        actual.pars, expected.pars, config.pars_rtol, config.atol, "pars"
    )
    logl = compare_arrays(
        actual.logl, expected.logl, config.logl_rtol, config.atol, "logl"
    )
    logl_a = compare_arrays(
        actual.logl_a, expected.logl_a, config.logl_rtol, config.atol, "logl_a"
    )
    same_hypothesis = actual.hypothesis is expected.hypothesis
    same_status = actual.status is expected.status

    return FitComparisonResult(
        passed=all(r.passed for r in (pars, logl, logl_a))
        and same_hypothesis
        and same_status,
        pars=pars,
        logl=logl,
        logl_a=logl_a,
        same_hypothesis=same_hypothesis,
        same_status=same_status,
    )


def compare_densities(
    actual: np.ndarray,
    expected: np.ndarray,
    config: ToleranceConfig | None = None,
    name: str = "densities",
) -> ComparisonResult:
    """Compare per-row density matrices at ``config.density_rtol``.

    Values below DENSITY_FLOOR count as equal, since the mixture density is
    clamped there.
    """
    if config is None:
        config = ToleranceConfig()
    return compare_arrays(actual, expected, config.density_rtol, DENSITY_FLOOR, name)

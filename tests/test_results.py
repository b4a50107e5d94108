"""Tests for FitResult, the pseudo-likelihood ratio and text reports."""

import dataclasses

import numpy as np
import pytest

from subtest.mixture.results import (
    FitResult,
    FitStatus,
    Hypothesis,
    format_fit,
    pseudo_likelihood_ratio,
    summarize_fit,
)


def _result(hypothesis=Hypothesis.FULL, logl=-100.0, logl_a=-120.0, n_rows=10, **kw):
    pars = np.array([0.8, 0.1, 2.0, 2.0, 3.0, 0.5])
    history = np.tile(np.append(pars, logl), (n_rows, 1))
    history[:, 6] = logl - np.arange(n_rows)[::-1] * 0.1
    defaults = dict(
        pars=pars,
        history=history,
        logl=logl,
        logl_a=logl_a,
        hypothesis=hypothesis,
        status=FitStatus.CONVERGED,
        n_iterations=n_rows - 1,
    )
    defaults.update(kw)
    return FitResult(**defaults)


@pytest.mark.tier0
class TestFitResult:
    def test_named_pars(self):
        named = _result().named_pars
        assert list(named) == ["pi0", "pi1", "tau", "sigma1", "sigma2", "rho"]
        assert named["sigma2"] == 3.0

    def test_last_delta(self):
        assert _result().last_delta == pytest.approx(0.1)
        assert np.isnan(_result(n_rows=1).last_delta)

    def test_frozen(self):
        result = _result()
        with pytest.raises(dataclasses.FrozenInstanceError):
            result.logl = 0.0

    def test_arrays_read_only(self):
        result = _result()
        with pytest.raises(ValueError):
            result.history[0, 0] = 1.0

    def test_converged_property(self):
        assert _result().converged
        assert not _result(status=FitStatus.MAX_ITER_REACHED).converged

    def test_hypothesis_values(self):
        assert Hypothesis.NULL == 0
        assert Hypothesis.FULL == 1


@pytest.mark.tier0
class TestPseudoLikelihoodRatio:
    def test_raw(self):
        full = _result(Hypothesis.FULL, logl=-100.0, logl_a=-110.0)
        null = _result(Hypothesis.NULL, logl=-104.0, logl_a=-111.0)
        assert pseudo_likelihood_ratio(full, null) == pytest.approx(8.0)

    def test_adjusted(self):
        full = _result(Hypothesis.FULL, logl=-100.0, logl_a=-110.0)
        null = _result(Hypothesis.NULL, logl=-104.0, logl_a=-111.0)
        assert pseudo_likelihood_ratio(full, null, adjust=True) == pytest.approx(6.0)

    def test_roles_checked(self):
        full = _result(Hypothesis.FULL)
        with pytest.raises(ValueError, match="null-hypothesis"):
            pseudo_likelihood_ratio(full, full)
        null = _result(Hypothesis.NULL)
        with pytest.raises(ValueError):
            pseudo_likelihood_ratio(null, full)


@pytest.mark.tier0
class TestReports:
    def test_format_fit_contains_trace_and_data(self):
        z = np.array([[0.1, 0.2], [1.0, 2.0]])
        text = format_fit(_result(z=z, weights=np.ones(2), n_rows=4))
        assert "Fitted parameters under full model" in text
        assert "Pseudo-likelihood: -100.000000" in text
        assert "Interim parameters from fitting algorithm" in text
        assert "Values of Z_d, Z_a, and weights" in text
        assert text.count("\n") >= 4 + 2 + 6

    def test_summary_truncates_long_trace(self):
        text = summarize_fit(_result(n_rows=20), n=3)
        assert "First and final 3 iterations" in text
        assert "..." in text
        assert "Number of iterations to fit: 19" in text

    def test_summary_short_trace(self):
        text = summarize_fit(_result(Hypothesis.NULL, n_rows=4), n=3)
        assert "Fitted parameters under null model" in text
        assert "..." not in text

    def test_summary_flags_iteration_cap(self):
        text = summarize_fit(_result(status=FitStatus.MAX_ITER_REACHED))
        assert "Iteration cap reached" in text

    def test_summary_data_stats(self):
        z = np.array([[0.1, 0.2], [1.5, 2.5]])
        text = summarize_fit(_result(z=z, weights=np.array([1.0, 0.0]), n_dropped=3))
        assert "Number of SNP observations: 2" in text
        assert "non-zero weights: 1" in text
        assert "Max. Z_a 2.50" in text
        assert "Rows dropped for non-finite values: 3" in text

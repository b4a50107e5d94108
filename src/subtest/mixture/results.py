"""Fit result type and its text reports.

A FitResult is produced by one call to ``fit_3g`` (or by running a
``ThreeGaussianEM`` to completion) and is not modified afterwards. Its
``hypothesis`` tag says whether it came from the null or the full model;
``format_fit`` and ``summarize_fit`` branch on that tag for their headers.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum

import numpy as np

from subtest.mixture.params import PARAM_NAMES

HISTORY_COLUMNS = (*PARAM_NAMES, "lhood")


class Hypothesis(IntEnum):
    """Which model was fitted: 0 = null (sigma2=1, rho=0), 1 = full."""

    NULL = 0
    FULL = 1


class FitStatus(str, Enum):
    """State of an EM run."""

    INITIALIZING = "initializing"
    ITERATING = "iterating"
    CONVERGED = "converged"
    MAX_ITER_REACHED = "max_iter_reached"


@dataclass(frozen=True)
class FitResult:
    """Outcome of a three-Gaussian EM fit.

    Attributes:
        pars: Fitted (pi0, pi1, tau, sigma1, sigma2, rho).
        history: (k, 7) trace; row 0 is the initial parameter vector, each
            later row the parameters after one EM update, with the joint
            pseudo-log-likelihood in the last column.
        logl: Joint pseudo-log-likelihood at ``pars``.
        logl_a: Pseudo-log-likelihood of Z_a alone at ``pars``.
        hypothesis: Hypothesis.NULL or Hypothesis.FULL.
        status: FitStatus.CONVERGED or FitStatus.MAX_ITER_REACHED.
        n_iterations: Number of EM updates performed.
        n_dropped: Rows removed from the input for non-finite values.
        C: Concentration of the prior term used in the fit.
        z: Cleaned (n, 2) absolute Z scores, or None if not retained.
        weights: Cleaned (n,) weights, or None if not retained.
    """

    pars: np.ndarray
    history: np.ndarray
    logl: float
    logl_a: float
    hypothesis: Hypothesis
    status: FitStatus
    n_iterations: int
    n_dropped: int = 0
    C: float = 1.0
    z: np.ndarray | None = None
    weights: np.ndarray | None = None

    def __post_init__(self) -> None:
        for arr in (self.pars, self.history, self.z, self.weights):
            if arr is not None:
                arr.setflags(write=False)

    @property
    def converged(self) -> bool:
        return self.status is FitStatus.CONVERGED

    @property
    def named_pars(self) -> dict[str, float]:
        """Fitted parameters keyed by name."""
        return {name: float(v) for name, v in zip(PARAM_NAMES, self.pars)}

    @property
    def last_delta(self) -> float:
        """Absolute change in pseudo-log-likelihood over the final update."""
        if self.history.shape[0] < 2:
            return float("nan")
        return float(abs(self.history[-1, -1] - self.history[-2, -1]))


def pseudo_likelihood_ratio(
    full: FitResult, null: FitResult, adjust: bool = False
) -> float:
    """Pseudo-likelihood ratio statistic comparing full and null fits.

    PLR = 2 * (logl_full - logl_null). With ``adjust``, the part of the
    improvement explained by Z_a alone, 2 * (logl_a_full - logl_a_null), is
    subtracted.

    Args:
        full: Fit under the full hypothesis.
        null: Fit under the null hypothesis, on the same data.
        adjust: Subtract the Z_a-only contribution.

    Returns:
        The (adjusted) pseudo-likelihood ratio.

    Raises:
        ValueError: If the hypothesis tags do not match their roles.
    """
    if full.hypothesis is not Hypothesis.FULL or null.hypothesis is not Hypothesis.NULL:
        raise ValueError(
            "pseudo_likelihood_ratio expects a full-hypothesis fit and a "
            f"null-hypothesis fit, got {full.hypothesis.name} and "
            f"{null.hypothesis.name}"
        )
    plr = 2.0 * (full.logl - null.logl)
    if adjust:
        plr -= 2.0 * (full.logl_a - null.logl_a)
    return plr


def _format_pars(pars: np.ndarray) -> str:
    return "  ".join(f"{name}={value:.6g}" for name, value in zip(PARAM_NAMES, pars))


def _format_history(history: np.ndarray) -> list[str]:
    lines = ["\t".join(HISTORY_COLUMNS)]
    lines.extend("\t".join(f"{v:.6g}" for v in row) for row in history)
    return lines


def _header(result: FitResult) -> list[str]:
    model = "full" if result.hypothesis is Hypothesis.FULL else "null"
    return [
        f"Fitted parameters under {model} model",
        _format_pars(result.pars),
        "",
        f"Pseudo-likelihood: {result.logl:.6f}",
        f"Pseudo-likelihood of Z_a: {result.logl_a:.6f}",
        "",
    ]


def format_fit(result: FitResult) -> str:
    """Full text report: parameters, likelihoods, whole trace and data."""
    lines = _header(result)
    lines.append("Interim parameters from fitting algorithm")
    lines.extend(_format_history(result.history))
    if result.z is not None:
        lines.append("")
        lines.append("Values of Z_d, Z_a, and weights")
        for (zd, za), w in zip(result.z, result.weights):
            lines.append(f"{zd:.6g}\t{za:.6g}\t{w:.6g}")
    return "\n".join(lines)


def summarize_fit(result: FitResult, n: int = 3) -> str:
    """Short text report: parameters, likelihoods and the ends of the trace.

    Args:
        result: Fit to summarise.
        n: Number of leading and trailing trace rows to show.
    """
    lines = _header(result)
    n_rows = result.history.shape[0]
    lines.append(f"Number of iterations to fit: {result.n_iterations}")
    if result.status is FitStatus.MAX_ITER_REACHED:
        lines.append(
            f"Iteration cap reached before convergence "
            f"(last change {result.last_delta:.3g})"
        )
    if n_rows > 2 * n:
        lines.append(f"First and final {n} iterations of fitting algorithm")
        table = _format_history(result.history)
        lines.extend(table[: n + 1])
        lines.append("...")
        lines.extend(table[-n:])
    else:
        lines.append("Iterations of fitting algorithm")
        lines.extend(_format_history(result.history))
    if result.z is not None:
        lines.append("")
        lines.append(f"Number of SNP observations: {result.z.shape[0]}")
        lines.append(
            "Number of SNPs with non-zero weights: "
            f"{int(np.count_nonzero(result.weights > 0))}"
        )
        if result.z.shape[0]:
            lines.append(f"Max. Z_d {result.z[:, 0].max():.2f}")
            lines.append(f"Max. Z_a {result.z[:, 1].max():.2f}")
    if result.n_dropped:
        lines.append(f"Rows dropped for non-finite values: {result.n_dropped}")
    return "\n".join(lines)

"""Root search for the class-3 covariance rho.

rho has no closed-form M-step update. Holding every other parameter fixed, the
pseudo-log-likelihood is assumed unimodal in rho on [0, tau*sigma2), so the
maximiser is located by bisection on the sign of the analytic derivative
d logL / d rho:

1. Probe the derivative just above the lower bound. If it is not positive the
   optimum sits on the boundary rho = 0 and the search stops.
2. Otherwise halve the bracket, keeping the half towards which the derivative
   at the midpoint points, until the bracket is narrower than the tolerance.
"""

from collections.abc import Callable

import numpy as np
from loguru import logger

from subtest.mixture.likelihood import rho_derivative


def bisect_derivative_root(
    deriv: Callable[[float], float],
    lower: float,
    upper: float,
    tol: float = 1e-3,
    probe: float | None = None,
    maxiter: int = 200,
) -> float:
    """Maximise a unimodal function on [lower, upper] from its derivative sign.

    Args:
        deriv: Derivative of the function being maximised.
        lower: Lower bound of the search interval.
        upper: Upper bound of the search interval.
        tol: Stop when upper - lower <= tol.
        probe: Point at which to test for a boundary optimum at ``lower``.
            Defaults to lower + 1e-5 * (upper - lower).
        maxiter: Maximum number of halvings.

    Returns:
        ``lower`` if the derivative is non-positive at ``probe``, otherwise the
        midpoint of the final bracket.
    """
    if upper <= lower:
        return lower
    if probe is None:
        probe = lower + 1e-5 * (upper - lower)
    if deriv(probe) <= 0.0:
        return lower

    for _ in range(maxiter):
        if upper - lower <= tol:
            break
        mid = 0.5 * (lower + upper)
        if deriv(mid) < 0.0:
            upper = mid
        else:
            lower = mid
    return 0.5 * (lower + upper)


def optimize_rho(
    z: np.ndarray,
    pars: np.ndarray,
    weights: np.ndarray,
    margin: float = 1e-3,
    tol: float = 1e-3,
    derivative: Callable[[np.ndarray, float], float] | None = None,
) -> float:
    """Find the rho maximising the pseudo-log-likelihood with other parameters fixed.

    The search interval is [0, tau*sigma2 - margin] so that the returned rho
    keeps the class-3 covariance strictly positive definite.

    Args:
        z: (n, 2) cleaned absolute Z scores.
        pars: Current parameter vector; pars[5] is ignored.
        weights: (n,) LD weights.
        margin: Distance kept from the positive-definite limit tau*sigma2.
        tol: Bisection tolerance in rho units.
        derivative: Callable ``derivative(pars, rho)`` returning d logL / d rho.
            Defaults to the NumPy kernel bound to ``z`` and ``weights``.

    Returns:
        Optimal rho (0.0 on a boundary optimum).
    """
    if derivative is None:

        def derivative(p: np.ndarray, rho: float) -> float:
            return rho_derivative(z, p, rho, weights)

    upper = pars[2] * pars[4] - margin
    if upper <= 0.0:
        logger.debug(f"tau*sigma2 below margin ({margin}); setting rho = 0")
        return 0.0

    rho = bisect_derivative_root(
        lambda r: derivative(pars, r), 0.0, upper, tol=tol, probe=upper / 1e5
    )
    if rho == 0.0:
        logger.debug("rho at lower boundary (derivative non-positive at 0)")
    return rho

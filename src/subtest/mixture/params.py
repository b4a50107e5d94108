"""Parameter vector validation and data cleaning for the three-Gaussian model.

The parameter vector is ``pars = (pi0, pi1, tau, sigma1, sigma2, rho)``.
The valid region is:

- pi0, pi1 in (0, 1) with pi0 + pi1 < 1 (pi2 = 1 - pi0 - pi1 is implied)
- tau, sigma1, sigma2 > 0
- 0 <= rho < tau * sigma2 (class-3 covariance positive definite)

Two flavours of checking are provided: ``validate_params`` raises on entry to
public functions, while ``is_valid_params`` and ``clamp_candidate`` give
verdicts/repairs without raising, for exploratory steps inside the fitter.
"""

from __future__ import annotations

import numpy as np
from loguru import logger

PARAM_NAMES = ("pi0", "pi1", "tau", "sigma1", "sigma2", "rho")
N_PARAMS = len(PARAM_NAMES)


class InputShapeError(ValueError):
    """Data matrix is not n x 2, or weights do not match the number of rows."""


class ParameterRangeError(ValueError):
    """Parameter vector lies outside the valid region of the mixture model."""


def as_params(pars) -> np.ndarray:
    """Convert a parameter sequence to a new float64 vector of length 6.

    The result never shares memory with ``pars``.

    Raises:
        ParameterRangeError: If the vector does not have six elements.
    """
    arr = np.array(pars, dtype=np.float64).reshape(-1)
    if arr.shape[0] != N_PARAMS:
        raise ParameterRangeError(
            "Parameter vector must have six elements "
            f"{PARAM_NAMES}, got {arr.shape[0]}"
        )
    return arr


def is_valid_params(pars) -> bool:
    """Return True if ``pars`` lies in the valid region. Never raises."""
    try:
        arr = as_params(pars)
    except (ParameterRangeError, TypeError, ValueError):
        return False
    if not np.all(np.isfinite(arr)):
        return False
    pi0, pi1, tau, sigma1, sigma2, rho = arr
    if not (0.0 < pi0 < 1.0 and 0.0 < pi1 < 1.0 and pi0 + pi1 < 1.0):
        return False
    if min(tau, sigma1, sigma2) <= 0.0:
        return False
    return 0.0 <= rho < tau * sigma2


def validate_params(pars) -> np.ndarray:
    """Validate a parameter vector, raising a descriptive error.

    Args:
        pars: Sequence of (pi0, pi1, tau, sigma1, sigma2, rho).

    Returns:
        The parameters as a float64 vector.

    Raises:
        ParameterRangeError: If any invariant of the valid region is violated.
    """
    arr = as_params(pars)
    if not np.all(np.isfinite(arr)):
        raise ParameterRangeError(f"Parameter vector must be finite, got {arr}")
    pi0, pi1, tau, sigma1, sigma2, rho = arr
    if not (0.0 < pi0 < 1.0 and 0.0 < pi1 < 1.0 and pi0 + pi1 < 1.0):
        raise ParameterRangeError(
            "Values of pi0, pi1 and pi2 = 1 - pi0 - pi1 must all lie in (0, 1), "
            f"got pi0={pi0}, pi1={pi1}"
        )
    if min(tau, sigma1, sigma2) <= 0.0:
        raise ParameterRangeError(
            "tau, sigma1 and sigma2 must be positive, "
            f"got tau={tau}, sigma1={sigma1}, sigma2={sigma2}"
        )
    if rho < 0.0:
        raise ParameterRangeError(f"rho must be nonnegative, got {rho}")
    if rho >= tau * sigma2:
        raise ParameterRangeError(
            "Class-3 covariance matrix must be positive definite "
            f"(rho < tau * sigma2), got rho={rho}, tau*sigma2={tau * sigma2}"
        )
    return arr


def clamp_candidate(
    candidate: np.ndarray,
    fallback: np.ndarray,
    sd_floor: float = 0.5,
    prob_floor: float = 1e-64,
    rho_cap: float = 0.95,
) -> np.ndarray:
    """Pull an exploratory parameter vector back into the valid region.

    Applied to every acceleration candidate before it is scored:

    - standard deviations below ``sd_floor`` are raised to ``sd_floor``
    - negative mixing weights are floored at ``prob_floor``
    - if pi0 + pi1 >= 1, both revert to their values in ``fallback``
    - rho is floored at 0 and capped at ``rho_cap * tau * sigma2``

    Args:
        candidate: Proposed parameter vector (not modified).
        fallback: Last accepted parameter vector; its mixing weights replace
            the candidate's on a simplex violation.
        sd_floor: Minimum allowed tau, sigma1, sigma2.
        prob_floor: Replacement value for non-positive mixing weights.
        rho_cap: Fraction of tau * sigma2 that rho may not exceed.

    Returns:
        A new, valid parameter vector.
    """
    out = np.array(candidate, dtype=np.float64)
    out[2:5] = np.maximum(out[2:5], sd_floor)
    out[:2] = np.where(out[:2] <= 0.0, prob_floor, out[:2])
    if out[0] + out[1] >= 1.0:
        out[:2] = fallback[:2]
    out[5] = min(max(out[5], 0.0), rho_cap * out[2] * out[4])
    return out


def check_data(
    z: np.ndarray, weights: np.ndarray | None = None
) -> tuple[np.ndarray, np.ndarray, int]:
    """Validate shapes and clean a Z matrix and its weights.

    Takes absolute values of Z and drops rows where either Z coordinate or
    the weight is non-finite.

    Args:
        z: (n, 2) array of Z_d and Z_a scores.
        weights: Optional (n,) array of LD weights. Defaults to ones.

    Returns:
        Tuple of (z_clean, weights_clean, n_dropped).

    Raises:
        InputShapeError: If z is not two-dimensional with two columns, or
            weights has a different length.
    """
    z = np.asarray(z, dtype=np.float64)
    if z.ndim != 2 or z.shape[1] != 2:
        raise InputShapeError(f"Z must be an n x 2 matrix, got shape {z.shape}")
    n = z.shape[0]
    if weights is None:
        weights = np.ones(n, dtype=np.float64)
    else:
        weights = np.asarray(weights, dtype=np.float64).reshape(-1)
        if weights.shape[0] != n:
            raise InputShapeError(
                f"weights must have length {n} (rows of Z), got {weights.shape[0]}"
            )

    keep = np.isfinite(z).all(axis=1) & np.isfinite(weights)
    n_dropped = int(n - np.count_nonzero(keep))
    if n_dropped:
        logger.info(f"Dropped {n_dropped} of {n} rows with non-finite values")
    if np.any(weights[keep] < 0):
        logger.warning("Negative weights found; weights are expected to be >= 0")

    return np.abs(z[keep]), weights[keep], n_dropped

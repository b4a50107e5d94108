"""Pseudo-likelihood of the three-Gaussian mixture for absolute Z scores.

Each SNP contributes a pair (|Z_d|, |Z_a|) drawn from one of three latent
classes:

- class 1 (pi0): Z_d, Z_a independent N(0, 1)
- class 2 (pi1): Z_d ~ N(0, 1), Z_a ~ N(0, sigma1^2)
- class 3 (pi2): bivariate normal with covariance [[tau^2, rho], [rho, sigma2^2]]

Because only absolute values are observed, all densities are folded onto the
positive quadrant. For the independent classes that is a factor 4; for class 3
the fold maps the four quadrants onto two sign variants, giving
2 * (phi(+rho) + phi(-rho)). Every class density integrates to one over the
positive quadrant.

The joint pseudo-log-likelihood adds C * log(pi0 * pi1 * pi2) to the weighted
log-density, keeping the mixing weights off the simplex boundary.

Zero mixture densities are replaced by DENSITY_FLOOR and non-finite ones by
DENSITY_CEILING so that log() never produces -inf/NaN during fitting.
"""

from __future__ import annotations

import numpy as np
from loguru import logger
from scipy.stats import norm

from subtest.mixture.params import check_data, validate_params

DENSITY_FLOOR = 1e-64
DENSITY_CEILING = 1e64

_TWO_PI = 2.0 * np.pi
_LOG_SQRT_TWO_PI = 0.5 * np.log(_TWO_PI)


def density_class1(z: np.ndarray) -> np.ndarray:
    """Folded density of class 1 (independent standard normals)."""
    return 4.0 * np.exp(-0.5 * (z[:, 0] ** 2 + z[:, 1] ** 2)) / _TWO_PI


def density_class2(z: np.ndarray, sigma1: float) -> np.ndarray:
    """Folded density of class 2 (Z_a with standard deviation sigma1)."""
    return (
        4.0
        * np.exp(-0.5 * (z[:, 0] ** 2 + (z[:, 1] / sigma1) ** 2))
        / (_TWO_PI * sigma1)
    )


def _class3_parts(
    z: np.ndarray, tau: float, sigma2: float, rho: float
) -> tuple[np.ndarray, np.ndarray, float, np.ndarray, np.ndarray]:
    """Unfolded +rho and -rho bivariate normal densities plus shared terms.

    Returns:
        Tuple of (phi_plus, phi_minus, det, quad, cross) where det is the
        covariance determinant, quad = sigma2^2 Z_d^2 + tau^2 Z_a^2 and
        cross = Z_d * Z_a.
    """
    det = (tau * sigma2) ** 2 - rho**2
    quad = (sigma2 * z[:, 0]) ** 2 + (tau * z[:, 1]) ** 2
    cross = z[:, 0] * z[:, 1]
    scale = _TWO_PI * np.sqrt(det)
    phi_plus = np.exp(-(quad - 2.0 * rho * cross) / (2.0 * det)) / scale
    phi_minus = np.exp(-(quad + 2.0 * rho * cross) / (2.0 * det)) / scale
    return phi_plus, phi_minus, det, quad, cross


def density_class3(z: np.ndarray, tau: float, sigma2: float, rho: float) -> np.ndarray:
    """Folded density of class 3: sum of the +rho and -rho bivariate normals."""
    phi_plus, phi_minus, _, _, _ = _class3_parts(z, tau, sigma2, rho)
    return 2.0 * (phi_plus + phi_minus)


def component_densities(z: np.ndarray, pars: np.ndarray) -> np.ndarray:
    """Mixing-weighted class densities, one column per class.

    Args:
        z: (n, 2) absolute Z scores.
        pars: Parameter vector (pi0, pi1, tau, sigma1, sigma2, rho).

    Returns:
        (n, 3) array with columns pi0*d1, pi1*d2, pi2*d3.
    """
    pi0, pi1, tau, sigma1, sigma2, rho = pars
    pi2 = 1.0 - pi0 - pi1
    return np.column_stack(
        [
            pi0 * density_class1(z),
            pi1 * density_class2(z, sigma1),
            pi2 * density_class3(z, tau, sigma2, rho),
        ]
    )


def clamp_density(e: np.ndarray) -> np.ndarray:
    """Replace zero densities by DENSITY_FLOOR and non-finite by DENSITY_CEILING."""
    e = np.array(e, dtype=np.float64)
    zero = e == 0.0
    bad = ~np.isfinite(e)
    if zero.any() or bad.any():
        logger.debug(
            f"Clamped {int(zero.sum())} zero and {int(bad.sum())} non-finite densities"
        )
        e[zero] = DENSITY_FLOOR
        e[bad] = DENSITY_CEILING
    return e


def mixture_density(z: np.ndarray, pars: np.ndarray) -> np.ndarray:
    """Clamped mixture density pi0*d1 + pi1*d2 + pi2*d3 for each row."""
    return clamp_density(component_densities(z, pars).sum(axis=1))


def _log_prior(pars: np.ndarray, C: float) -> float:
    if C == 0.0:
        return 0.0
    pi0, pi1 = pars[0], pars[1]
    return C * np.log(pi0 * pi1 * (1.0 - pi0 - pi1))


def _joint_log_likelihood(
    z: np.ndarray, pars: np.ndarray, weights: np.ndarray, C: float
) -> float:
    """Joint pseudo-log-likelihood on already-cleaned data, no validation."""
    e = mixture_density(z, pars)
    return float(np.sum(weights * np.log(e)) + _log_prior(pars, C))


def joint_log_likelihood(
    z: np.ndarray,
    pars,
    weights: np.ndarray | None = None,
    C: float = 1.0,
) -> float:
    """Joint pseudo-log-likelihood of (Z_d, Z_a) under the mixture.

    sum(weights * log(mixture_density)) + C * log(pi0 * pi1 * pi2)

    Z is cleaned the same way the fitter cleans it (absolute values, rows with
    non-finite values dropped), so the value for fitted parameters reproduces
    the fit's recorded log-likelihood.

    Args:
        z: (n, 2) matrix of Z_d and Z_a scores.
        pars: Parameter vector (pi0, pi1, tau, sigma1, sigma2, rho).
        weights: Optional (n,) LD weights; defaults to ones.
        C: Concentration of the symmetric prior on the mixing weights.

    Returns:
        Scalar pseudo-log-likelihood.

    Raises:
        InputShapeError: If z or weights have the wrong shape.
        ParameterRangeError: If pars lies outside the valid region.
    """
    pars = validate_params(pars)
    z, weights, _ = check_data(z, weights)
    return _joint_log_likelihood(z, pars, weights, C)


plhood = joint_log_likelihood


def marginal_log_likelihood_za(
    z: np.ndarray,
    pars,
    weights: np.ndarray | None = None,
    C: float = 1.0,
) -> float:
    """Pseudo-log-likelihood of Z_a alone.

    Z_a is modelled as a one-dimensional mixture of N(0, 1), N(0, sigma1^2)
    and N(0, sigma2^2) with the same mixing weights. Each observation also
    carries -1/2 - log(sqrt(2*pi)), the expected log-density of a unit
    variance Z_d, so the value is on the same footing as the joint
    pseudo-likelihood of a fit in which Z_d carries no information.

    Args:
        z: Either an (n, 2) matrix (Z_a taken from column 1) or an (n,)
            vector of Z_a scores.
        pars: Parameter vector (pi0, pi1, tau, sigma1, sigma2, rho).
        weights: Optional (n,) LD weights; defaults to ones.
        C: Concentration of the symmetric prior on the mixing weights.

    Returns:
        Scalar pseudo-log-likelihood of Z_a.
    """
    pars = validate_params(pars)
    z = np.asarray(z, dtype=np.float64)
    if z.ndim == 1:
        z = np.column_stack([np.zeros_like(z), z])
    z, weights, _ = check_data(z, weights)
    return _marginal_log_likelihood_za(z[:, 1], pars, weights, C)


def _marginal_log_likelihood_za(
    za: np.ndarray, pars: np.ndarray, weights: np.ndarray, C: float
) -> float:
    pi0, pi1, _, sigma1, sigma2, _ = pars
    pi2 = 1.0 - pi0 - pi1
    e = (
        pi0 * norm.pdf(za, scale=1.0)
        + pi1 * norm.pdf(za, scale=sigma1)
        + pi2 * norm.pdf(za, scale=sigma2)
    )
    e = clamp_density(e)
    per_obs = -0.5 - _LOG_SQRT_TWO_PI + np.log(e)
    return float(np.sum(weights * per_obs) + _log_prior(pars, C))


plhood_a = marginal_log_likelihood_za


def rho_derivative(
    z: np.ndarray, pars: np.ndarray, rho: float, weights: np.ndarray
) -> float:
    """Analytic derivative of the joint pseudo-log-likelihood in rho.

    Evaluated at ``rho`` with every other parameter taken from ``pars``
    (pars[5] is ignored). The prior term does not depend on rho.

    For sign s in {+1, -1} with D = tau^2 sigma2^2 - rho^2,
    A = sigma2^2 Z_d^2 + tau^2 Z_a^2 and P = Z_d Z_a:

        d log phi_s / d rho = (rho D + s P D - rho A + 2 s rho^2 P) / D^2

    Args:
        z: (n, 2) cleaned absolute Z scores.
        pars: Parameter vector; tau, sigma2 and the mixing weights are used.
        rho: Point at which to evaluate the derivative.
        weights: (n,) LD weights.

    Returns:
        Scalar derivative d logL / d rho.
    """
    pi0, pi1, tau, _, sigma2, _ = pars
    pi2 = 1.0 - pi0 - pi1
    phi_plus, phi_minus, det, quad, cross = _class3_parts(z, tau, sigma2, rho)

    base = rho * det - rho * quad
    sign_term = cross * det + 2.0 * rho**2 * cross
    d_plus = phi_plus * (base + sign_term)
    d_minus = phi_minus * (base - sign_term)
    d_class3 = 2.0 * (d_plus + d_minus) / det**2

    pars_at = np.array(pars, dtype=np.float64)
    pars_at[5] = rho
    e = mixture_density(z, pars_at)
    return float(np.sum(weights * pi2 * d_class3 / e))


def log_likelihood_gradient(
    z: np.ndarray,
    pars,
    weights: np.ndarray | None = None,
    C: float = 1.0,
) -> np.ndarray:
    """Gradient of the joint pseudo-log-likelihood with respect to all parameters.

    Args:
        z: (n, 2) matrix of Z_d and Z_a scores.
        pars: Parameter vector (pi0, pi1, tau, sigma1, sigma2, rho).
        weights: Optional (n,) LD weights; defaults to ones.
        C: Concentration of the symmetric prior on the mixing weights.

    Returns:
        (6,) array of partial derivatives in parameter order.
    """
    pars = validate_params(pars)
    z, weights, _ = check_data(z, weights)

    pi0, pi1, tau, sigma1, sigma2, rho = pars
    pi2 = 1.0 - pi0 - pi1
    d1 = density_class1(z)
    d2 = density_class2(z, sigma1)
    phi_plus, phi_minus, det, quad, cross = _class3_parts(z, tau, sigma2, rho)
    d3 = 2.0 * (phi_plus + phi_minus)
    we = weights / clamp_density(pi0 * d1 + pi1 * d2 + pi2 * d3)

    g_tau = np.zeros_like(d1)
    g_sigma2 = np.zeros_like(d1)
    g_rho = np.zeros_like(d1)
    for s, phi in ((1.0, phi_plus), (-1.0, phi_minus)):
        q = quad - 2.0 * s * rho * cross
        g_tau += phi * (
            -tau * sigma2**2 / det - tau * z[:, 1] ** 2 / det
            + tau * sigma2**2 * q / det**2
        )
        g_sigma2 += phi * (
            -sigma2 * tau**2 / det - sigma2 * z[:, 0] ** 2 / det
            + sigma2 * tau**2 * q / det**2
        )
        g_rho += phi * (rho * det + s * cross * det - rho * q) / det**2

    return np.array(
        [
            np.sum(we * (d1 - d3)) + C * (1.0 / pi0 - 1.0 / pi2),
            np.sum(we * (d2 - d3)) + C * (1.0 / pi1 - 1.0 / pi2),
            np.sum(we * 2.0 * pi2 * g_tau),
            np.sum(we * pi1 * d2 * (z[:, 1] ** 2 / sigma1**3 - 1.0 / sigma1)),
            np.sum(we * 2.0 * pi2 * g_sigma2),
            np.sum(we * 2.0 * pi2 * g_rho),
        ]
    )

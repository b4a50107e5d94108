"""JAX-compiled mixture pseudo-likelihood.

JIT-compiled counterparts of the NumPy kernel in ``subtest.mixture.likelihood``
with identical semantics (same folding factors, same floor/ceiling clamping).
The E-step is a row-wise map followed by column sums, which XLA fuses into a
single pass over the data; selecting the ``jax`` backend routes the fitter's
density evaluations through these functions.

Usage:
    from subtest.mixture.likelihood_jax import joint_log_likelihood_jax

    logl = float(joint_log_likelihood_jax(z, pars, weights, 1.0))

Type annotations use jaxtyping for shape documentation:
    n = n_observations
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import jax.numpy as jnp
from jax import config, jit

from subtest.mixture.likelihood import DENSITY_CEILING, DENSITY_FLOOR

if TYPE_CHECKING:
    from jaxtyping import Array, Float

# Ensure 64-bit precision
config.update("jax_enable_x64", True)

_TWO_PI = 2.0 * jnp.pi


def _class3_parts_jax(z, tau, sigma2, rho):
    det = (tau * sigma2) ** 2 - rho**2
    quad = (sigma2 * z[:, 0]) ** 2 + (tau * z[:, 1]) ** 2
    cross = z[:, 0] * z[:, 1]
    scale = _TWO_PI * jnp.sqrt(det)
    phi_plus = jnp.exp(-(quad - 2.0 * rho * cross) / (2.0 * det)) / scale
    phi_minus = jnp.exp(-(quad + 2.0 * rho * cross) / (2.0 * det)) / scale
    return phi_plus, phi_minus, det, quad, cross


@jit
def component_densities_jax(
    z: Float[Array, "n 2"], pars: Float[Array, " 6"]
) -> Float[Array, "n 3"]:
    """Mixing-weighted class densities (n, 3), as component_densities."""
    pi0, pi1, tau, sigma1, sigma2, rho = (pars[i] for i in range(6))
    pi2 = 1.0 - pi0 - pi1
    d1 = 4.0 * jnp.exp(-0.5 * (z[:, 0] ** 2 + z[:, 1] ** 2)) / _TWO_PI
    d2 = (
        4.0
        * jnp.exp(-0.5 * (z[:, 0] ** 2 + (z[:, 1] / sigma1) ** 2))
        / (_TWO_PI * sigma1)
    )
    phi_plus, phi_minus, _, _, _ = _class3_parts_jax(z, tau, sigma2, rho)
    d3 = 2.0 * (phi_plus + phi_minus)
    return jnp.column_stack([pi0 * d1, pi1 * d2, pi2 * d3])


def _clamp_jax(e):
    e = jnp.where(e == 0.0, DENSITY_FLOOR, e)
    return jnp.where(jnp.isfinite(e), e, DENSITY_CEILING)


@jit
def mixture_density_jax(
    z: Float[Array, "n 2"], pars: Float[Array, " 6"]
) -> Float[Array, " n"]:
    """Clamped mixture density for each row."""
    return _clamp_jax(component_densities_jax(z, pars).sum(axis=1))


@jit
def joint_log_likelihood_jax(
    z: Float[Array, "n 2"],
    pars: Float[Array, " 6"],
    weights: Float[Array, " n"],
    C: float,
) -> Float[Array, ""]:
    """Joint pseudo-log-likelihood on cleaned data (no validation)."""
    e = mixture_density_jax(z, pars)
    pi0, pi1 = pars[0], pars[1]
    prior = jnp.where(C == 0.0, 0.0, C * jnp.log(pi0 * pi1 * (1.0 - pi0 - pi1)))
    return jnp.sum(weights * jnp.log(e)) + prior


@jit
def rho_derivative_jax(
    z: Float[Array, "n 2"],
    pars: Float[Array, " 6"],
    rho: float,
    weights: Float[Array, " n"],
) -> Float[Array, ""]:
    """Analytic d logL / d rho at ``rho``, as rho_derivative."""
    pi2 = 1.0 - pars[0] - pars[1]
    tau, sigma2 = pars[2], pars[4]
    phi_plus, phi_minus, det, quad, cross = _class3_parts_jax(z, tau, sigma2, rho)

    base = rho * det - rho * quad
    sign_term = cross * det + 2.0 * rho**2 * cross
    d_class3 = 2.0 * (phi_plus * (base + sign_term) + phi_minus * (base - sign_term))
    d_class3 = d_class3 / det**2

    e = mixture_density_jax(z, pars.at[5].set(rho))
    return jnp.sum(weights * pi2 * d_class3 / e)

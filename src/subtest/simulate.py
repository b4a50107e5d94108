"""Simulation of Z scores from the three-Gaussian mixture.

Class sizes are fixed rather than random: round(pi2 * n) SNPs in class 3,
round(pi1 * n) in class 2, and the remainder in class 1. Rows are returned
grouped by class with labels 0, 1, 2.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from loguru import logger

from subtest.mixture.params import validate_params


@dataclass
class SimulatedZ:
    """Simulated absolute Z scores with their generating parameters.

    Attributes:
        z: (n, 2) absolute Z_d, Z_a.
        weights: (n,) weights (ones unless supplied).
        pars: Parameter vector the data were drawn from.
        labels: (n,) class index 0, 1 or 2 per row.
    """

    z: np.ndarray
    weights: np.ndarray
    pars: np.ndarray
    labels: np.ndarray

    @property
    def class_counts(self) -> np.ndarray:
        return np.bincount(self.labels, minlength=3)


def class_sizes(n: int, pars: np.ndarray) -> tuple[int, int, int]:
    """Number of rows in each class for n draws."""
    pi1 = pars[1]
    pi2 = 1.0 - pars[0] - pars[1]
    n2 = int(round(pi2 * n))
    n1 = int(round(pi1 * n))
    return n - n1 - n2, n1, n2


def simulate_zscores(
    n: int,
    pars,
    weights: np.ndarray | None = None,
    seed: int | None = None,
    rng: np.random.Generator | None = None,
) -> SimulatedZ:
    """Draw n absolute Z-score pairs from the mixture.

    Args:
        n: Number of SNPs.
        pars: (pi0, pi1, tau, sigma1, sigma2, rho).
        weights: Optional (n,) weights attached to the draws.
        seed: Seed for a new generator; ignored if ``rng`` is given.
        rng: Generator to draw from.

    Returns:
        SimulatedZ with rows grouped by class.

    Raises:
        ValueError: If n is not positive or weights has the wrong length.
        ParameterRangeError: If pars lies outside the valid region.
    """
    if n <= 0:
        raise ValueError(f"n must be positive, got {n}")
    pars = validate_params(pars)
    if weights is None:
        weights = np.ones(n, dtype=np.float64)
    else:
        weights = np.asarray(weights, dtype=np.float64)
        if weights.shape != (n,):
            raise ValueError(f"weights must have shape ({n},), got {weights.shape}")
    if rng is None:
        rng = np.random.default_rng(seed)

    _, _, tau, sigma1, sigma2, rho = pars
    sizes = class_sizes(n, pars)
    covariances = (
        np.eye(2),
        np.diag([1.0, sigma1**2]),
        np.array([[tau**2, rho], [rho, sigma2**2]]),
    )
    blocks = [
        rng.multivariate_normal(np.zeros(2), cov, size=size)
        for size, cov in zip(sizes, covariances)
    ]
    labels = np.repeat(np.arange(3), sizes)
    logger.debug(f"Simulated class sizes {sizes}")

    return SimulatedZ(
        z=np.abs(np.vstack(blocks)),
        weights=weights,
        pars=pars,
        labels=labels,
    )

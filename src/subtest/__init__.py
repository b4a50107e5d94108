"""subtest: testing whether genetic subtypes of a disease are distinct.

Given two association studies over the same SNPs, one between case subtypes
(Z_d) and one of all cases against controls (Z_a), subtest fits a constrained
three-Gaussian mixture to the absolute Z-score pairs by EM and compares a full
model, in which subtype-differentiating SNPs also affect the phenotype, with a
null model in which they do not.

Key features:
- EM with likelihood-guarded extrapolation and rho root search
- NumPy and JAX likelihood backends
- Pseudo-likelihood ratio with optional Z_a adjustment
- Typer CLI for fitting, evaluation and simulation

Example:
    >>> from subtest import fit_3g, pseudo_likelihood_ratio
    >>> full = fit_3g(z, weights=w)
    >>> null = fit_3g(z, weights=w, fit_null=True)
    >>> pseudo_likelihood_ratio(full, null)
"""

import sys
from importlib.metadata import version

from loguru import logger

__version__ = version("subtest")

# Configure loguru with sensible defaults on import
# Users can override by calling logger.remove()/add()
logger.remove()
logger.add(
    sys.stdout,
    level="INFO",
    format="{time:HH:mm:ss} | <level>{level: <8}</level> | {message}",
    colorize=True,
)

from subtest.core.config import FitConfig  # noqa: E402
from subtest.mixture import (  # noqa: E402
    FitResult,
    FitStatus,
    Hypothesis,
    InputShapeError,
    ParameterRangeError,
    ThreeGaussianEM,
    fit_3g,
    joint_log_likelihood,
    marginal_log_likelihood_za,
    plhood,
    plhood_a,
    pseudo_likelihood_ratio,
)
from subtest.pipeline import PLRResult, run_plr  # noqa: E402
from subtest.simulate import SimulatedZ, simulate_zscores  # noqa: E402

__all__ = [
    "FitConfig",
    "FitResult",
    "FitStatus",
    "Hypothesis",
    "InputShapeError",
    "PLRResult",
    "ParameterRangeError",
    "SimulatedZ",
    "ThreeGaussianEM",
    "__version__",
    "fit_3g",
    "joint_log_likelihood",
    "marginal_log_likelihood_za",
    "plhood",
    "plhood_a",
    "pseudo_likelihood_ratio",
    "run_plr",
    "simulate_zscores",
]

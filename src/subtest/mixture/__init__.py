"""Three-Gaussian mixture model for paired absolute Z scores.

Z_d compares two case subtypes, Z_a compares all cases with controls. Each SNP
falls in one of three classes:

- class 1: associated with neither (pi0)
- class 2: associated with the phenotype but not the subtype split (pi1)
- class 3: associated with both, with covariance rho between Z_d and Z_a (pi2)

The null hypothesis pins sigma2 = 1 and rho = 0, so class 3 carries no Z_a
signal; the pseudo-likelihood ratio of full against null fits tests whether
subtype-differentiating SNPs also influence the phenotype.

Modules:
- params: parameter validation, candidate clamping, data cleaning
- likelihood: NumPy densities, pseudo-likelihoods and derivatives
- likelihood_jax: JIT-compiled density kernel
- optimize: bisection search for rho
- em: ThreeGaussianEM iterator and fit_3g
- results: FitResult, pseudo_likelihood_ratio and text reports
- io: trace and parameter files
"""

from subtest.mixture.em import ThreeGaussianEM, fit_3g
from subtest.mixture.likelihood import (
    DENSITY_CEILING,
    DENSITY_FLOOR,
    component_densities,
    joint_log_likelihood,
    log_likelihood_gradient,
    marginal_log_likelihood_za,
    mixture_density,
    plhood,
    plhood_a,
    rho_derivative,
)
from subtest.mixture.optimize import bisect_derivative_root, optimize_rho
from subtest.mixture.params import (
    PARAM_NAMES,
    InputShapeError,
    ParameterRangeError,
    check_data,
    clamp_candidate,
    is_valid_params,
    validate_params,
)
from subtest.mixture.results import (
    FitResult,
    FitStatus,
    Hypothesis,
    format_fit,
    pseudo_likelihood_ratio,
    summarize_fit,
)

__all__ = [
    "DENSITY_CEILING",
    "DENSITY_FLOOR",
    "PARAM_NAMES",
    "FitResult",
    "FitStatus",
    "Hypothesis",
    "InputShapeError",
    "ParameterRangeError",
    "ThreeGaussianEM",
    "bisect_derivative_root",
    "check_data",
    "clamp_candidate",
    "component_densities",
    "fit_3g",
    "format_fit",
    "is_valid_params",
    "joint_log_likelihood",
    "log_likelihood_gradient",
    "marginal_log_likelihood_za",
    "mixture_density",
    "optimize_rho",
    "plhood",
    "plhood_a",
    "pseudo_likelihood_ratio",
    "rho_derivative",
    "summarize_fit",
    "validate_params",
]

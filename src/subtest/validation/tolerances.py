"""Tolerance configuration for numerical comparisons between fits.

Used to compare the NumPy and JAX likelihood backends, and a fit against a
stored reference. Two fits on the same data with the same starting point follow
the same EM path, but floating-point accumulation order differs between
backends and the rho bisection can take a different branch when the
derivative at a midpoint is within rounding of zero.

Value types and tolerances:
- **Densities / single likelihood evaluations**: direct computation, tightest
  tolerance (1e-10)
- **Log-likelihood of a converged fit**: stable at the optimum (1e-6)
- **Fitted parameters**: bisection tolerance on rho propagates into the other
  parameters through later iterations (1e-3)
"""

from dataclasses import dataclass


@dataclass
class ToleranceConfig:
    """Configuration for numerical comparison tolerances.

    Attributes:
        density_rtol: Relative tolerance for per-row densities and single
            pseudo-likelihood evaluations at fixed parameters.
        logl_rtol: Relative tolerance for the pseudo-log-likelihood of fits.
        pars_rtol: Relative tolerance for fitted parameters.
        atol: Absolute tolerance for values near zero (rho at the boundary).

    Example:
        >>> config = ToleranceConfig()
        >>> config.logl_rtol
        1e-06
        >>> ToleranceConfig.strict().logl_rtol
        1e-09
    """

    density_rtol: float = 1e-10
    logl_rtol: float = 1e-6
    pars_rtol: float = 1e-3
    atol: float = 1e-8

    @classmethod
    def strict(cls) -> "ToleranceConfig":
        """Tight tolerances for comparing runs on the same backend."""
        return cls(
            density_rtol=1e-12,
            logl_rtol=1e-9,
            pars_rtol=1e-6,
            atol=1e-12,
        )

    @classmethod
    def relaxed(cls) -> "ToleranceConfig":
        """Loose tolerances for comparing across platforms or start points."""
        return cls(
            density_rtol=1e-8,
            logl_rtol=1e-4,
            pars_rtol=1e-2,
            atol=1e-6,
        )

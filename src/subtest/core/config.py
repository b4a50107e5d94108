"""Configuration dataclasses for subtest.

This module contains dataclasses that configure fitting (FitConfig) and
output paths and logging (OutputConfig).
"""

from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class FitConfig:
    """Options for one three-Gaussian EM fit.

    Attributes:
        fit_null: Fit the null hypothesis (sigma2 pinned to 1, rho to 0).
        max_iterations: Maximum number of EM updates before stopping.
        tolerance: Stop when the pseudo-log-likelihood changes by less than this.
        enforce_min_sd_1: Floor tau, sigma1 and sigma2 at 1 in every update.
        use_acceleration: Extrapolate along the last update direction.
        concentration_C: Weight C of the C*log(pi0*pi1*pi2) term.
        accel_min_iterations: Number of EM updates before acceleration engages.
        accel_multiplier: Step multiple added per extrapolation round.
        accel_sd_floor: Lowest standard deviation an extrapolated step may take.
        accel_prob_floor: Replacement for non-positive extrapolated weights.
        accel_rho_cap: rho is capped at this fraction of tau*sigma2 when
            extrapolating.
        accel_max_steps: Upper bound on extrapolation rounds per iteration.
        rho_margin: rho is searched on [0, tau*sigma2 - rho_margin].
        rho_tolerance: Bisection stops when the bracket is narrower than this.
        backend: Likelihood backend ('numpy' or 'jax'); None auto-detects.
        include_data: Keep the cleaned Z matrix and weights on the result.
        verbose: Log a parameter snapshot every ``log_interval`` iterations.
        log_interval: Iterations between snapshots and checkpoint flushes.
        show_progress: Display a progress bar over iterations.
    """

    fit_null: bool = False
    max_iterations: int = 10_000
    tolerance: float = 1e-4
    enforce_min_sd_1: bool = False
    use_acceleration: bool = True
    concentration_C: float = 1.0
    accel_min_iterations: int = 5
    accel_multiplier: float = 3.0
    accel_sd_floor: float = 0.5
    accel_prob_floor: float = 1e-64
    accel_rho_cap: float = 0.95
    accel_max_steps: int = 1000
    rho_margin: float = 1e-3
    rho_tolerance: float = 1e-3
    backend: str | None = None
    include_data: bool = True
    verbose: bool = False
    log_interval: int = 20
    show_progress: bool = False

    def validate(self) -> None:
        """Check option ranges.

        Raises:
            ValueError: If any option is out of range.
        """
        if self.max_iterations <= 0:
            raise ValueError(
                f"max_iterations must be positive, got {self.max_iterations}"
            )
        if self.tolerance <= 0:
            raise ValueError(f"tolerance must be positive, got {self.tolerance}")
        if self.concentration_C < 0:
            raise ValueError(
                f"concentration_C must be nonnegative, got {self.concentration_C}"
            )
        if self.log_interval <= 0:
            raise ValueError(f"log_interval must be positive, got {self.log_interval}")
        if not 0.0 < self.accel_rho_cap < 1.0:
            raise ValueError(
                f"accel_rho_cap must lie in (0, 1), got {self.accel_rho_cap}"
            )
        if self.accel_sd_floor <= 0 or self.accel_prob_floor <= 0:
            raise ValueError("accel_sd_floor and accel_prob_floor must be positive")
        if self.rho_margin <= 0 or self.rho_tolerance <= 0:
            raise ValueError("rho_margin and rho_tolerance must be positive")

    @property
    def sd_floor(self) -> float:
        """Lower bound on fitted standard deviations in the M-step."""
        return 1.0 if self.enforce_min_sd_1 else 0.0


@dataclass
class OutputConfig:
    """Configuration for output files and directories.

    Attributes:
        outdir: Output directory for result files. Created if it doesn't exist.
        prefix: Prefix for output filenames (e.g., "result" produces "result.log.txt").
        verbose: Enable verbose/debug output to console.
    """

    outdir: Path = field(default_factory=lambda: Path("output"))
    prefix: str = "result"
    verbose: bool = False

    @property
    def log_path(self) -> Path:
        """Path to the run log file: {outdir}/{prefix}.log.txt"""
        return self.outdir / f"{self.prefix}.log.txt"

    @property
    def history_path(self) -> Path:
        """Path to the EM trace file: {outdir}/{prefix}.history.txt"""
        return self.outdir / f"{self.prefix}.history.txt"

    @property
    def params_path(self) -> Path:
        """Path to the fitted parameters file: {outdir}/{prefix}.pars.txt"""
        return self.outdir / f"{self.prefix}.pars.txt"

    def ensure_outdir(self) -> None:
        """Create output directory if it doesn't exist."""
        self.outdir.mkdir(parents=True, exist_ok=True)

"""Constrained EM fitting of the three-Gaussian mixture.

Each EM update:

1. E-step: class responsibilities from the mixing-weighted class densities,
   row-normalised (rows whose densities are all degenerate get zero
   responsibilities rather than NaN).
2. Mixing weights: (sum w*r_k + C) / (sum w + 3C), the MAP update under the
   C*log(pi0*pi1*pi2) term.
3. tau^2 and sigma1^2: weighted second moments of Z_d (class 3) and Z_a
   (class 2), optionally floored at 1.
4. Full hypothesis only: sigma2^2 as the class-3 second moment of Z_a, then
   rho by derivative bisection (``optimize_rho``). Under the null hypothesis
   sigma2 stays 1 and rho stays 0.
5. Optional acceleration: extrapolate along the last update while the
   pseudo-likelihood keeps increasing, clamping every candidate into the valid
   region.
6. Stop when the pseudo-likelihood changes by less than the tolerance or the
   iteration cap is reached.

``ThreeGaussianEM`` exposes the loop one update at a time; ``fit_3g`` runs it
to completion and returns a FitResult.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable
from contextlib import nullcontext
from dataclasses import dataclass
from pathlib import Path

import numpy as np
from loguru import logger

from subtest.core.backend import resolve_backend
from subtest.core.config import FitConfig
from subtest.core.progress import maybe_progress
from subtest.mixture.io import IncrementalHistoryWriter
from subtest.mixture.likelihood import (
    _joint_log_likelihood,
    _marginal_log_likelihood_za,
    component_densities,
    rho_derivative,
)
from subtest.mixture.optimize import optimize_rho
from subtest.mixture.params import (
    InputShapeError,
    check_data,
    clamp_candidate,
    validate_params,
)
from subtest.mixture.results import FitResult, FitStatus, Hypothesis


@dataclass(frozen=True)
class _Kernel:
    """Density evaluators bound to one data set and backend."""

    densities: Callable[[np.ndarray], np.ndarray]
    logl: Callable[[np.ndarray], float]
    drho: Callable[[np.ndarray, float], float]


def _make_kernel(backend: str, z: np.ndarray, weights: np.ndarray, C: float) -> _Kernel:
    if backend == "jax":
        import jax.numpy as jnp

        from subtest.mixture.likelihood_jax import (
            component_densities_jax,
            joint_log_likelihood_jax,
            rho_derivative_jax,
        )

        zj = jnp.asarray(z)
        wj = jnp.asarray(weights)
        return _Kernel(
            densities=lambda p: np.asarray(component_densities_jax(zj, jnp.asarray(p))),
            logl=lambda p: float(joint_log_likelihood_jax(zj, jnp.asarray(p), wj, C)),
            drho=lambda p, r: float(rho_derivative_jax(zj, jnp.asarray(p), r, wj)),
        )

    return _Kernel(
        densities=lambda p: component_densities(z, p),
        logl=lambda p: _joint_log_likelihood(z, p, weights, C),
        drho=lambda p, r: rho_derivative(z, p, r, weights),
    )


def _weighted_sd(
    weight: np.ndarray, x: np.ndarray, floor: float, previous: float
) -> float:
    """sqrt of the weighted second moment of x, floored; previous if no weight."""
    total = weight.sum()
    if not np.isfinite(total) or total <= 0.0:
        return float(max(previous, np.sqrt(floor)))
    return float(np.sqrt(max(floor, np.sum(weight * x**2) / total)))


class ThreeGaussianEM:
    """Steppable EM fitter for the three-Gaussian mixture.

    The constructor validates inputs and records the initial parameters as
    row 0 of the history. ``step()`` performs one EM update; ``run()`` steps
    until a terminal status. Callers wanting early termination can simply stop
    calling ``step()`` and build a result from the current state.

    Args:
        z: (n, 2) Z_d and Z_a scores. Absolute values are taken and rows with
            non-finite values dropped.
        pars: Initial (pi0, pi1, tau, sigma1, sigma2, rho). Never modified;
            with ``enforce_min_sd_1`` the SDs in trace row 0 are raised to 1.
        weights: Optional (n,) LD weights; defaults to ones.
        config: Fitting options; defaults to FitConfig().

    Raises:
        InputShapeError: If z or weights have the wrong shape, no finite
            rows remain, or the weights sum to zero while concentration_C is 0.
        ParameterRangeError: If pars lies outside the valid region.
        ValueError: If config options are out of range.

    Example:
        >>> em = ThreeGaussianEM(z, pars=(0.8, 0.1, 2, 2, 3, 0.5))
        >>> while not em.done:
        ...     em.step()
        >>> result = em.result()
    """

    def __init__(
        self,
        z: np.ndarray,
        pars,
        weights: np.ndarray | None = None,
        config: FitConfig | None = None,
    ):
        self.config = config if config is not None else FitConfig()
        self.config.validate()

        pars = validate_params(pars)
        self.z, self.weights, self.n_dropped = check_data(z, weights)
        if self.z.shape[0] == 0:
            raise InputShapeError("No rows with finite Z scores and weights remain")

        self._sum_weights = float(self.weights.sum())
        if self._sum_weights + 3.0 * self.config.concentration_C <= 0.0:
            raise InputShapeError(
                "Total weight is zero and concentration_C is 0; "
                "mixing weights are undefined"
            )

        if self.config.fit_null:
            pars[4] = 1.0
            pars[5] = 0.0
        if self.config.enforce_min_sd_1 and np.any(pars[2:5] < 1.0):
            logger.info(f"Raising initial SDs {pars[2:5]} to the floor of 1")
            pars[2:5] = np.maximum(pars[2:5], 1.0)

        self.backend = resolve_backend(self.config.backend)
        self._kernel = _make_kernel(
            self.backend, self.z, self.weights, self.config.concentration_C
        )

        self.pars = pars
        self.n_iterations = 0
        self.status = FitStatus.INITIALIZING
        self._history: list[np.ndarray] = [np.append(pars, self._kernel.logl(pars))]

    @property
    def hypothesis(self) -> Hypothesis:
        return Hypothesis.NULL if self.config.fit_null else Hypothesis.FULL

    @property
    def done(self) -> bool:
        return self.status in (FitStatus.CONVERGED, FitStatus.MAX_ITER_REACHED)

    @property
    def logl(self) -> float:
        """Pseudo-log-likelihood at the current parameters."""
        return float(self._history[-1][-1])

    @property
    def history(self) -> np.ndarray:
        """(k, 7) trace of parameters and pseudo-log-likelihood so far."""
        return np.vstack(self._history)

    def e_step(self, pars: np.ndarray) -> np.ndarray:
        """Class responsibilities (n, 3) at ``pars``."""
        dens = self._kernel.densities(pars)
        with np.errstate(divide="ignore", invalid="ignore"):
            resp = dens / dens.sum(axis=1, keepdims=True)
        bad = ~np.isfinite(resp)
        if bad.any():
            logger.debug(f"Zeroed {int(bad.any(axis=1).sum())} degenerate responsibility rows")
            resp[bad] = 0.0
        return resp

    def m_step(self, resp: np.ndarray, pars: np.ndarray) -> np.ndarray:
        """Updated parameter vector from responsibilities."""
        cfg = self.config
        C = cfg.concentration_C
        floor = cfg.sd_floor
        wr = self.weights[:, None] * resp
        zd, za = self.z[:, 0], self.z[:, 1]

        new = pars.copy()
        new[:2] = (wr[:, :2].sum(axis=0) + C) / (self._sum_weights + 3.0 * C)
        new[2] = _weighted_sd(wr[:, 2], zd, floor, pars[2])
        new[3] = _weighted_sd(wr[:, 1], za, floor, pars[3])

        if not cfg.fit_null:
            new[4] = _weighted_sd(wr[:, 2], za, floor, pars[4])
            new[5] = optimize_rho(
                self.z,
                new,
                self.weights,
                margin=cfg.rho_margin,
                tol=cfg.rho_tolerance,
                derivative=self._kernel.drho,
            )
        return new

    def accelerate(
        self, pars_old: np.ndarray, pars_new: np.ndarray, logl_new: float
    ) -> tuple[np.ndarray, float]:
        """Extrapolate along pars_new - pars_old while the likelihood improves.

        The first candidate is pars_new + step; each accepted candidate is
        followed by one ``accel_multiplier`` times further along. Every
        candidate is clamped into the valid region before scoring, and only
        strict improvements are accepted, so the returned likelihood is never
        below ``logl_new``.

        Returns:
            Tuple of (best parameters, their pseudo-log-likelihood).
        """
        cfg = self.config
        sd_floor = max(cfg.accel_sd_floor, cfg.sd_floor)

        def clamp(candidate: np.ndarray, fallback: np.ndarray) -> np.ndarray:
            return clamp_candidate(
                candidate,
                fallback,
                sd_floor=sd_floor,
                prob_floor=cfg.accel_prob_floor,
                rho_cap=cfg.accel_rho_cap,
            )

        step = pars_new - pars_old
        best, best_logl = pars_new, logl_new
        candidate = clamp(pars_new + step, best)
        for _ in range(cfg.accel_max_steps):
            candidate_logl = self._kernel.logl(candidate)
            if not candidate_logl > best_logl:
                break
            best, best_logl = candidate, candidate_logl
            candidate = clamp(candidate + cfg.accel_multiplier * step, best)
        return best, best_logl

    def step(self) -> FitStatus:
        """Perform one EM update (plus acceleration) and update the status."""
        if self.done:
            return self.status
        cfg = self.config
        self.status = FitStatus.ITERATING

        pars_old = self.pars
        logl_old = self.logl
        pars = self.m_step(self.e_step(pars_old), pars_old)
        logl = self._kernel.logl(pars)
        self.n_iterations += 1

        if cfg.use_acceleration and self.n_iterations >= cfg.accel_min_iterations:
            pars, logl = self.accelerate(pars_old, pars, logl)

        self.pars = pars
        self._history.append(np.append(pars, logl))

        delta = abs(logl - logl_old)
        if delta < cfg.tolerance:
            self.status = FitStatus.CONVERGED
        elif self.n_iterations >= cfg.max_iterations:
            self.status = FitStatus.MAX_ITER_REACHED

        if cfg.verbose and self.n_iterations % cfg.log_interval == 0:
            logger.info(
                f"iter {self.n_iterations}: "
                + " ".join(f"{v:.6g}" for v in pars)
                + f" logl={logl:.6f} delta={delta:.3g}"
            )
        return self.status

    def run(self, checkpoint_path: Path | None = None) -> FitResult:
        """Step until convergence or the iteration cap, then build the result.

        Args:
            checkpoint_path: If given, the trace is written there row by row
                and flushed every ``log_interval`` iterations.

        Returns:
            FitResult for the final parameters.
        """
        cfg = self.config
        model = self.hypothesis.name.lower()
        logger.info(
            f"Fitting {model} model to {self.z.shape[0]} observations "
            f"(backend={self.backend}, accel={cfg.use_acceleration})"
        )

        remaining = cfg.max_iterations - self.n_iterations
        checkpoint = (
            IncrementalHistoryWriter(checkpoint_path)
            if checkpoint_path is not None
            else nullcontext()
        )
        with checkpoint as writer:
            if writer is not None:
                writer.write_batch(self._history)
            for _ in maybe_progress(
                range(remaining), remaining, desc="EM", enabled=cfg.show_progress
            ):
                if self.done:
                    break
                self.step()
                if writer is not None:
                    writer.write(self._history[-1])
                    if self.n_iterations % cfg.log_interval == 0:
                        writer.flush()
        if writer is not None:
            logger.debug(f"Wrote {writer.count} history rows to {checkpoint_path}")

        if self.status is FitStatus.CONVERGED:
            logger.info(
                f"Converged after {self.n_iterations} iterations "
                f"(logl={self.logl:.6f})"
            )
        else:
            logger.warning(
                f"Stopped at iteration cap ({cfg.max_iterations}) before convergence; "
                f"last change {abs(self._history[-1][-1] - self._history[-2][-1]):.3g}"
            )
        return self.result()

    def result(self) -> FitResult:
        """Build a FitResult from the current state."""
        cfg = self.config
        pars = self.pars.copy()
        keep = cfg.include_data
        return FitResult(
            pars=pars,
            history=self.history,
            logl=self.logl,
            logl_a=_marginal_log_likelihood_za(
                self.z[:, 1], pars, self.weights, cfg.concentration_C
            ),
            hypothesis=self.hypothesis,
            status=self.status,
            n_iterations=self.n_iterations,
            n_dropped=self.n_dropped,
            C=cfg.concentration_C,
            z=self.z.copy() if keep else None,
            weights=self.weights.copy() if keep else None,
        )


def fit_3g(
    z: np.ndarray,
    pars=(0.8, 0.1, 2.0, 2.0, 3.0, 0.5),
    weights: np.ndarray | None = None,
    config: FitConfig | None = None,
    checkpoint_path: Path | None = None,
    **options,
) -> FitResult:
    """Fit the three-Gaussian mixture to paired absolute Z scores.

    Args:
        z: (n, 2) matrix; column 0 is Z_d (between subtypes), column 1 is Z_a
            (cases vs controls).
        pars: Initial (pi0, pi1, tau, sigma1, sigma2, rho).
        weights: Optional (n,) LD weights; defaults to ones.
        config: Fitting options. Keyword ``options`` override its fields,
            e.g. ``fit_3g(z, pars, fit_null=True, max_iterations=500)``.
        checkpoint_path: Optional path for incremental trace output.

    Returns:
        FitResult with fitted parameters, trace and pseudo-likelihoods.

    Raises:
        InputShapeError: If z or weights have the wrong shape.
        ParameterRangeError: If pars lies outside the valid region.
        ValueError: If an option is out of range.

    Example:
        >>> result = fit_3g(z, pars=(0.7, 0.2, 2.5, 1.5, 3.0, 1.0))
        >>> result.named_pars["pi0"]
    """
    config = config if config is not None else FitConfig()
    if options:
        config = dataclasses.replace(config, **options)
    em = ThreeGaussianEM(z, pars, weights=weights, config=config)
    return em.run(checkpoint_path=checkpoint_path)

"""subtest command-line interface.

Typer-based CLI with global -outdir, -o and -v options shared by the fit,
plhood, plr and simulate commands. Z scores are read from whitespace-delimited
files (Z_d, Z_a and optional weight columns).
"""

import dataclasses
import sys
import time
from pathlib import Path
from typing import Annotated

import typer

import subtest
from subtest.core import FitConfig, OutputConfig
from subtest.io import read_zscore_file, write_zscore_file
from subtest.mixture import (
    fit_3g,
    joint_log_likelihood,
    marginal_log_likelihood_za,
    summarize_fit,
)
from subtest.mixture.io import read_params, write_history, write_params
from subtest.pipeline import DEFAULT_START, run_plr
from subtest.simulate import simulate_zscores
from subtest.utils import setup_logging, write_run_log

app = typer.Typer(
    name="subtest",
    help="subtest: three-Gaussian mixture test for genetic disease subtypes.",
    add_completion=False,
)

_global_config: OutputConfig | None = None

DEFAULT_PARS = ",".join(str(v) for v in DEFAULT_START)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from subtest.core import get_backend_info

        typer.echo(f"subtest version {subtest.__version__}")
        info = get_backend_info()
        typer.echo(f"Backend: {info['selected']}")
        typer.echo(f"GPU available: {info['gpu_available']}")
        raise typer.Exit()


def _output_config() -> OutputConfig:
    global _global_config
    if _global_config is None:
        _global_config = OutputConfig()
    return _global_config


def _parse_pars(text: str) -> tuple[float, ...]:
    """Parse a comma-separated parameter vector."""
    try:
        values = tuple(float(v) for v in text.split(","))
    except ValueError:
        raise typer.BadParameter(
            f"expected six comma-separated numbers, got '{text}'"
        ) from None
    if len(values) != 6:
        raise typer.BadParameter(
            f"expected six values (pi0,pi1,tau,sigma1,sigma2,rho), got {len(values)}"
        )
    return values


def _load_z(zfile: Path):
    if not zfile.exists():
        typer.echo(f"Error: Z-score file not found: {zfile}", err=True)
        raise typer.Exit(code=1)
    try:
        return read_zscore_file(zfile)
    except ValueError as e:
        typer.echo(f"Error reading Z-score file: {e}", err=True)
        raise typer.Exit(code=1) from None


ZFileOption = Annotated[
    Path,
    typer.Option("-z", help="Z-score file (Z_d, Z_a[, weight] per row)"),
]
ParsOption = Annotated[
    str,
    typer.Option(
        "--pars", help="Starting parameters pi0,pi1,tau,sigma1,sigma2,rho"
    ),
]


@app.callback()
def main(
    outdir: Annotated[
        Path,
        typer.Option("-outdir", help="Output directory"),
    ] = Path("output"),
    output: Annotated[
        str,
        typer.Option("-o", help="Output file prefix"),
    ] = "result",
    verbose: Annotated[
        bool,
        typer.Option("-v", "--verbose", help="Verbose output"),
    ] = False,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = None,
) -> None:
    """subtest: are two disease subtypes genetically distinct?

    Fits a constrained three-Gaussian mixture to paired absolute Z scores
    and compares full and null models by pseudo-likelihood ratio.
    """
    global _global_config
    _global_config = OutputConfig(outdir=outdir, prefix=output, verbose=verbose)
    setup_logging(verbose=verbose)


@app.command("fit")
def fit_command(
    zfile: ZFileOption,
    pars: ParsOption = DEFAULT_PARS,
    null: Annotated[
        bool,
        typer.Option("--null", help="Fit the null model (sigma2=1, rho=0)"),
    ] = False,
    sg1: Annotated[
        bool,
        typer.Option("--sg1", help="Constrain tau, sigma1, sigma2 to be >= 1"),
    ] = False,
    accel: Annotated[
        bool,
        typer.Option("--accel/--no-accel", help="Use step extrapolation"),
    ] = True,
    max_iter: Annotated[
        int,
        typer.Option("--max-iter", help="Maximum number of EM iterations"),
    ] = 10_000,
    tol: Annotated[
        float,
        typer.Option("--tol", help="Convergence tolerance on pseudo-likelihood"),
    ] = 1e-4,
    concentration: Annotated[
        float,
        typer.Option("-C", help="Weight of the log(pi0*pi1*pi2) term"),
    ] = 1.0,
    backend: Annotated[
        str | None,
        typer.Option("--backend", help="Likelihood backend (numpy or jax)"),
    ] = None,
    checkpoint: Annotated[
        bool,
        typer.Option("--checkpoint", help="Write the trace while fitting"),
    ] = False,
    progress: Annotated[
        bool,
        typer.Option("--progress/--no-progress", help="Show a progress bar"),
    ] = False,
) -> None:
    """Fit the three-Gaussian mixture to a Z-score file.

    Writes the iteration trace ({prefix}.history.txt), fitted parameters
    ({prefix}.pars.txt) and a run log ({prefix}.log.txt).
    """
    start_time = time.perf_counter()
    out = _output_config()
    out.ensure_outdir()
    command_line = " ".join(sys.argv)

    start = _parse_pars(pars)
    z, weights = _load_z(zfile)
    config = FitConfig(
        fit_null=null,
        max_iterations=max_iter,
        tolerance=tol,
        enforce_min_sd_1=sg1,
        use_acceleration=accel,
        concentration_C=concentration,
        backend=backend,
        verbose=out.verbose,
        show_progress=progress,
        include_data=False,
    )

    typer.echo(f"Fitting {'null' if null else 'full'} model to {z.shape[0]} rows...")
    try:
        result = fit_3g(
            z,
            start,
            weights=weights,
            config=config,
            checkpoint_path=out.history_path if checkpoint else None,
        )
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from None

    write_history(result.history, out.history_path)
    write_params(result, out.params_path)
    typer.echo(summarize_fit(result))
    typer.echo(f"Trace written to {out.history_path}")
    typer.echo(f"Parameters written to {out.params_path}")

    elapsed = time.perf_counter() - start_time
    params = {
        "n_observations": z.shape[0] - result.n_dropped,
        "n_dropped": result.n_dropped,
        "hypothesis": result.hypothesis.name.lower(),
        "status": result.status.value,
        "n_iterations": result.n_iterations,
        **result.named_pars,
        "logl": f"{result.logl:.6f}",
        "logl_a": f"{result.logl_a:.6f}",
    }
    log_path = write_run_log(out, params, {"total": elapsed}, command_line)
    typer.echo(f"Log written to {log_path}")


@app.command("plhood")
def plhood_command(
    zfile: ZFileOption,
    pars: Annotated[
        str | None,
        typer.Option("--pars", help="Parameters pi0,pi1,tau,sigma1,sigma2,rho"),
    ] = None,
    pars_file: Annotated[
        Path | None,
        typer.Option("--pars-file", help="Parameters file written by 'fit'"),
    ] = None,
    concentration: Annotated[
        float,
        typer.Option("-C", help="Weight of the log(pi0*pi1*pi2) term"),
    ] = 1.0,
) -> None:
    """Evaluate the joint and Z_a pseudo-log-likelihoods at given parameters."""
    if (pars is None) == (pars_file is None):
        typer.echo("Error: give exactly one of --pars and --pars-file", err=True)
        raise typer.Exit(code=1)
    if pars_file is not None:
        try:
            theta = read_params(pars_file)
        except (OSError, ValueError) as e:
            typer.echo(f"Error reading parameters file: {e}", err=True)
            raise typer.Exit(code=1) from None
    else:
        theta = _parse_pars(pars)

    z, weights = _load_z(zfile)
    try:
        logl = joint_log_likelihood(z, theta, weights, C=concentration)
        logl_a = marginal_log_likelihood_za(z, theta, weights, C=concentration)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from None

    typer.echo(f"logl\t{logl:.6f}")
    typer.echo(f"logl_a\t{logl_a:.6f}")


@app.command("plr")
def plr_command(
    zfile: ZFileOption,
    pars: ParsOption = DEFAULT_PARS,
    sg1: Annotated[
        bool,
        typer.Option("--sg1", help="Constrain tau, sigma1, sigma2 to be >= 1"),
    ] = False,
    max_iter: Annotated[
        int,
        typer.Option("--max-iter", help="Maximum number of EM iterations"),
    ] = 10_000,
    tol: Annotated[
        float,
        typer.Option("--tol", help="Convergence tolerance on pseudo-likelihood"),
    ] = 1e-4,
    concentration: Annotated[
        float,
        typer.Option("-C", help="Weight of the log(pi0*pi1*pi2) term"),
    ] = 1.0,
    backend: Annotated[
        str | None,
        typer.Option("--backend", help="Likelihood backend (numpy or jax)"),
    ] = None,
) -> None:
    """Fit null and full models and report the pseudo-likelihood ratio.

    Writes {prefix}.null.pars.txt, {prefix}.full.pars.txt and a run log.
    """
    start_time = time.perf_counter()
    out = _output_config()
    out.ensure_outdir()
    command_line = " ".join(sys.argv)

    start = _parse_pars(pars)
    z, weights = _load_z(zfile)
    config = FitConfig(
        max_iterations=max_iter,
        tolerance=tol,
        enforce_min_sd_1=sg1,
        concentration_C=concentration,
        backend=backend,
        verbose=out.verbose,
        include_data=False,
    )

    try:
        result = run_plr(z, weights, pars=start, config=config)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from None

    for fit in (result.null, result.full):
        name = fit.hypothesis.name.lower()
        fit_out = dataclasses.replace(out, prefix=f"{out.prefix}.{name}")
        write_params(fit, fit_out.params_path)
        write_history(fit.history, fit_out.history_path)

    typer.echo(f"PLR\t{result.plr:.6f}")
    typer.echo(f"PLR_adjusted\t{result.plr_adjusted:.6f}")

    elapsed = time.perf_counter() - start_time
    params = {
        "n_observations": result.n_observations,
        "n_dropped": result.n_dropped,
        "logl_null": f"{result.null.logl:.6f}",
        "logl_full": f"{result.full.logl:.6f}",
        "plr": f"{result.plr:.6f}",
        "plr_adjusted": f"{result.plr_adjusted:.6f}",
    }
    timing = {"total": elapsed, **{k: v for k, v in result.timing.items() if k != "total"}}
    log_path = write_run_log(out, params, timing, command_line)
    typer.echo(f"Log written to {log_path}")


@app.command("simulate")
def simulate_command(
    n: Annotated[
        int,
        typer.Option("-n", help="Number of SNPs to simulate"),
    ],
    pars: Annotated[
        str,
        typer.Option("--pars", help="Parameters pi0,pi1,tau,sigma1,sigma2,rho"),
    ] = DEFAULT_PARS,
    seed: Annotated[
        int | None,
        typer.Option("--seed", help="Random seed"),
    ] = None,
) -> None:
    """Simulate absolute Z scores from the mixture and write {prefix}.z.txt."""
    out = _output_config()
    out.ensure_outdir()
    theta = _parse_pars(pars)
    try:
        sim = simulate_zscores(n, theta, seed=seed)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from None

    path = out.outdir / f"{out.prefix}.z.txt"
    write_zscore_file(path, sim.z, sim.weights)
    counts = sim.class_counts
    typer.echo(f"Simulated {n} SNPs (class sizes {counts[0]}, {counts[1]}, {counts[2]})")
    typer.echo(f"Z scores written to {path}")


if __name__ == "__main__":
    app()

"""Logging utilities for subtest.

This module provides loguru-based logging configuration and the ``##``-style
run log written next to fit output.
"""

import sys
from datetime import datetime
from pathlib import Path

from loguru import logger

import subtest


def setup_logging(
    verbose: bool = False,
    log_file: Path | None = None,
) -> None:
    """Configure loguru for subtest.

    Sets up console logging with INFO level (or DEBUG if verbose), and
    optional file logging with JSON serialization.

    Args:
        verbose: If True, set console logging to DEBUG level.
        log_file: Optional path to log file. If provided, DEBUG-level
            logs are written with JSON serialization.
    """
    logger.remove()

    level = "DEBUG" if verbose else "INFO"
    logger.add(
        sys.stdout,
        level=level,
        format="{time:HH:mm:ss} | <level>{level: <8}</level> | {message}",
        colorize=True,
    )

    if log_file:
        logger.add(
            log_file,
            serialize=True,
            level="DEBUG",
        )


def write_run_log(
    output_config: "subtest.core.config.OutputConfig",
    params: dict,
    timing: dict,
    command_line: str,
) -> Path:
    """Write the run log file.

    Args:
        output_config: Output configuration specifying directory and prefix.
        params: Values to record (data size, fitted parameters, PLR, ...).
        timing: Timing information in seconds (e.g. {'total': 1.23}).
        command_line: The command line used to invoke the program.

    Returns:
        Path to the written log file.

    Example output format:
        ##
        ## subtest Version = 0.1.0
        ## Date = 2026-01-31T10:30:00
        ##
        ## Command Line Input = subtest fit -z zscores.txt
        ##
        ## Summary Statistics:
        ## n_observations = 1000
        ## logl = -2841.17
        ##
        ## Computation Time:
        ## total time = 1.23 seconds
        ##
    """
    output_config.ensure_outdir()
    log_path = output_config.log_path

    with open(log_path, "w") as f:
        f.write("##\n")
        f.write(f"## subtest Version = {subtest.__version__}\n")
        f.write(f"## Date = {datetime.now().isoformat()}\n")
        f.write("##\n")

        f.write(f"## Command Line Input = {command_line}\n")
        f.write("##\n")

        f.write("## Summary Statistics:\n")
        for key, value in params.items():
            f.write(f"## {key} = {value}\n")
        f.write("##\n")

        f.write("## Computation Time:\n")
        for key, value in timing.items():
            if isinstance(value, float):
                f.write(f"## {key} time = {value:.2f} seconds\n")
            else:
                f.write(f"## {key} time = {value} seconds\n")
        f.write("##\n")

    return log_path

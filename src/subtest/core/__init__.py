"""Core infrastructure for subtest.

- config: Configuration dataclasses
- backend: Likelihood backend selection
- jax_config: JAX configuration and verification
- progress: Progress bars for long fits
"""

from subtest.core.backend import get_backend_info, get_compute_backend, resolve_backend
from subtest.core.config import FitConfig, OutputConfig
from subtest.core.jax_config import (
    configure_jax,
    get_jax_info,
    verify_jax_installation,
)

__all__ = [
    "FitConfig",
    "OutputConfig",
    "configure_jax",
    "get_backend_info",
    "get_compute_backend",
    "get_jax_info",
    "resolve_backend",
    "verify_jax_installation",
]

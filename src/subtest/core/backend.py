"""Likelihood backend detection and dispatch.

subtest supports two backends for density evaluation inside the fitter:

- numpy: reference NumPy kernel (``subtest.mixture.likelihood``). Lowest
  overhead for small and medium data sets, no compilation step.

- jax: JIT-compiled kernel (``subtest.mixture.likelihood_jax``). Pays a
  one-off compilation cost per data shape, then fuses the per-row E-step work
  into a single XLA computation; preferred for millions of SNPs or on GPU.

Backend selection defaults to numpy but can be overridden via the
SUBTEST_BACKEND environment variable or per fit via ``FitConfig.backend``.
"""

import os
from functools import cache
from typing import Literal

from loguru import logger

Backend = Literal["numpy", "jax"]

BACKEND_ALIASES: dict[str, str] = {
    "np": "numpy",
    "jax.numpy": "jax",
    "xla": "jax",
}


def normalize_backend_name(value: str) -> str:
    """Normalize backend name to canonical form.

    Handles case-insensitivity, whitespace and aliases.

    Examples:
        >>> normalize_backend_name(" NumPy ")
        'numpy'
        >>> normalize_backend_name("jax.numpy")
        'jax'
    """
    normalized = value.lower().strip()
    return BACKEND_ALIASES.get(normalized, normalized)


@cache
def get_compute_backend() -> Backend:
    """Detect the backend to use when none is requested explicitly.

    Priority:
    1. SUBTEST_BACKEND environment variable ('numpy', 'jax' or 'auto').
       Unknown values are ignored with a warning.
    2. Auto-selection: numpy.

    Returns:
        Backend identifier ('numpy' or 'jax').
    """
    override = os.environ.get("SUBTEST_BACKEND", "").strip()
    if override:
        override = normalize_backend_name(override)
        if override in ("numpy", "jax"):
            logger.debug(f"Backend override via SUBTEST_BACKEND={override}")
            return override
        if override != "auto":
            logger.warning(
                f"Ignoring unknown SUBTEST_BACKEND={override!r}; "
                "expected 'numpy', 'jax' or 'auto'"
            )

    logger.debug("Using numpy backend (default)")
    return "numpy"


def resolve_backend(requested: str | None = None) -> Backend:
    """Resolve an explicit backend request, falling back to detection.

    Args:
        requested: Backend name, or None to use get_compute_backend().

    Returns:
        Canonical backend name.

    Raises:
        ValueError: If the requested backend is not known.
    """
    if requested is None:
        return get_compute_backend()
    name = normalize_backend_name(requested)
    if name not in ("numpy", "jax"):
        raise ValueError(f"Unknown backend {requested!r}; expected 'numpy' or 'jax'")
    return name


def _has_gpu() -> bool:
    """Check if a GPU is available via JAX."""
    try:
        import jax

        devices = jax.devices()
        return any(d.platform in ("gpu", "cuda", "rocm") for d in devices)
    except Exception as e:
        logger.debug(f"Error checking for GPU: {e}")
        return False


def get_backend_info() -> dict:
    """Get information about backend selection.

    Returns:
        Dictionary with keys:
        - selected: Currently selected backend ('numpy' or 'jax')
        - gpu_available: True if JAX can access a GPU
        - override: Value of SUBTEST_BACKEND env var, or None
    """
    return {
        "selected": get_compute_backend(),
        "gpu_available": _has_gpu(),
        "override": os.environ.get("SUBTEST_BACKEND", None),
    }

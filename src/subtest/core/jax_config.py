"""JAX configuration utilities for subtest.

The JAX likelihood backend needs 64-bit precision: mixture densities routinely
fall below float32's range and the pseudo-likelihood differences used for
convergence are far smaller than float32 resolution. configure_jax() should be
called before any JAX computation when the jax backend is used.
"""

from __future__ import annotations

from typing import Any

import jax
import jax.numpy as jnp
from loguru import logger


def configure_jax(enable_x64: bool = True, platform: str | None = None) -> None:
    """Configure JAX for subtest computations.

    Args:
        enable_x64: Enable 64-bit floating point precision. Defaults to True.
        platform: Optional platform name ("cpu", "gpu", "tpu"). If None,
            JAX auto-selects the best available platform.

    Example:
        >>> configure_jax()  # Enable x64, auto-select platform
        >>> configure_jax(platform="cpu")  # Force CPU backend
    """
    if enable_x64:
        jax.config.update("jax_enable_x64", True)
        logger.debug("JAX 64-bit precision enabled")

    if platform is not None:
        jax.config.update("jax_platform_name", platform)
        logger.debug(f"JAX platform set to: {platform}")

    info = get_jax_info()
    logger.debug(
        f"JAX configured: version={info['version']}, "
        f"backend={info['backend']}, devices={len(info['devices'])}"
    )


def get_jax_info() -> dict[str, Any]:
    """Get information about the current JAX configuration.

    Returns:
        Dictionary with keys:
            - version: JAX version string
            - backend: Current default backend name (cpu/gpu/tpu)
            - devices: List of available device descriptions
            - x64_enabled: Whether 64-bit precision is enabled
    """
    return {
        "version": jax.__version__,
        "backend": jax.default_backend(),
        "devices": [str(d) for d in jax.devices()],
        "x64_enabled": bool(jax.config.jax_enable_x64),
    }


def verify_jax_installation() -> bool:
    """Verify that JAX can compile and run a float64 computation.

    Returns:
        True if verification succeeds.

    Raises:
        RuntimeError: If JAX verification fails, with details about the failure.
    """
    try:

        @jax.jit
        def _logsum_test(a: jnp.ndarray) -> jnp.ndarray:
            return jnp.sum(jnp.log(a))

        a = jnp.array([1e-300, 1.0, 1e300], dtype=jnp.float64)
        result = _logsum_test(a)
        if result.dtype != jnp.float64:
            raise RuntimeError(f"Expected float64 result, got {result.dtype}")
        if not jnp.allclose(result, 0.0, atol=1e-8):
            raise RuntimeError(f"Incorrect log-sum result: {result}")

        logger.debug("JAX installation verified: JIT compilation and float64 working")
        return True

    except Exception as e:
        error_msg = f"JAX verification failed: {type(e).__name__}: {e}"
        logger.error(error_msg)
        raise RuntimeError(error_msg) from e

"""Pytest fixtures for the subtest test suite."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np
import pytest

from subtest.simulate import simulate_zscores

if TYPE_CHECKING:
    from subtest.simulate import SimulatedZ
    from subtest.validation import ToleranceConfig

# =============================================================================
# Test Tier System
# =============================================================================
#
# tier0 - Fast Unit Tests (<5s each)
#   - Densities, validation, root search, single EM steps, I/O, CLI wiring
#   - Run on every commit
#   - Run: pytest -m tier0
#
# tier1 - Recovery Scenarios (<60s each)
#   - Full EM fits on simulated data with known generating parameters
#   - Run: pytest -m tier1
#
# tier2 - Large-sample tests
#   - Run manually
#   - Run: pytest -m tier2
#
# The existing @pytest.mark.slow is an alias for tier2.
#
# Quick reference:
#   pytest -m tier0             # Fast tests only
#   pytest -m "tier0 or tier1"  # Unit + recovery
#   pytest                      # All tests
# =============================================================================

# 800 class-1, 150 class-2 (sigma1=2), 50 class-3 (tau=3, sigma2=4, rho=2)
SCENARIO_PARS = np.array([0.8, 0.15, 3.0, 2.0, 4.0, 2.0])
DEFAULT_START = np.array([0.8, 0.1, 2.0, 2.0, 3.0, 0.5])


@pytest.fixture
def scenario_pars() -> np.ndarray:
    return SCENARIO_PARS.copy()


@pytest.fixture
def start_pars() -> np.ndarray:
    return DEFAULT_START.copy()


@pytest.fixture
def scenario_data() -> SimulatedZ:
    """1000 rows drawn from SCENARIO_PARS (seed 42)."""
    return simulate_zscores(1000, SCENARIO_PARS, seed=42)


@pytest.fixture
def small_data() -> SimulatedZ:
    """200 rows drawn from SCENARIO_PARS (seed 7) for fast unit tests."""
    return simulate_zscores(200, SCENARIO_PARS, seed=7)


@pytest.fixture
def small_weights(small_data) -> np.ndarray:
    """Non-uniform positive weights matching small_data."""
    rng = np.random.default_rng(11)
    return rng.uniform(0.2, 1.0, small_data.z.shape[0])


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    """Create temporary output directory for test results."""
    out = tmp_path / "output"
    out.mkdir()
    return out


@pytest.fixture
def zscore_file(tmp_path: Path, small_data) -> Path:
    """Z-score file (Z_d, Z_a, weight) with one NA row appended."""
    path = tmp_path / "zscores.txt"
    lines = [
        f"{zd:.8f}\t{za:.8f}\t1.0" for zd, za in small_data.z
    ]
    lines.append("NA\t0.5\t1.0")
    path.write_text("\n".join(lines) + "\n")
    return path


@pytest.fixture
def tolerance_config() -> ToleranceConfig:
    from subtest.validation import ToleranceConfig

    return ToleranceConfig()

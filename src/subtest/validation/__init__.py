"""Validation modules for subtest.

- tolerances: Configurable tolerance thresholds for different value types
- compare: Numerical comparison utilities for arrays, densities and fits
"""

from subtest.validation.compare import (
    ComparisonResult,
    FitComparisonResult,
    compare_arrays,
    compare_densities,
    compare_fits,
)
from subtest.validation.tolerances import ToleranceConfig

__all__ = [
    "ToleranceConfig",
    "ComparisonResult",
    "FitComparisonResult",
    "compare_arrays",
    "compare_densities",
    "compare_fits",
]

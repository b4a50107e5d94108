"""I/O modules for subtest.

- zscores: whitespace-delimited Z_d / Z_a / weight files
"""

from subtest.io.zscores import read_zscore_file, write_zscore_file

__all__ = [
    "read_zscore_file",
    "write_zscore_file",
]

"""I/O for EM traces and fitted parameters.

The trace (history) file is tab-separated with a header row naming the six
parameters and ``lhood``; every value uses ``.6e`` so that files written by
``write_history`` and by ``IncrementalHistoryWriter`` are byte-identical.

The parameters file holds one ``name<TAB>value`` line per fitted parameter
followed by the fit summary fields.
"""

from collections.abc import Iterable
from pathlib import Path

import numpy as np

from subtest.mixture.params import PARAM_NAMES, as_params
from subtest.mixture.results import HISTORY_COLUMNS, FitResult

HEADER_HISTORY = "\t".join(("iter", *HISTORY_COLUMNS))


def format_history_line(index: int, row: np.ndarray) -> str:
    """Format one trace row as a tab-separated line (no newline).

    Args:
        index: Row index (0 for the initial parameters).
        row: Seven values, the parameters followed by the pseudo-log-likelihood.
    """
    return "\t".join([str(index), *(f"{v:.6e}" for v in row)])


def write_history(history: np.ndarray, path: Path) -> None:
    """Write a full EM trace to ``path``."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        f.write(HEADER_HISTORY + "\n")
        for i, row in enumerate(history):
            f.write(format_history_line(i, row) + "\n")


def read_history(path: Path) -> np.ndarray:
    """Read a trace written by ``write_history`` back into a (k, 7) array."""
    data = np.loadtxt(path, skiprows=1, ndmin=2)
    return data[:, 1:]


def write_params(result: FitResult, path: Path) -> None:
    """Write fitted parameters and fit summary as ``name<TAB>value`` lines."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    lines = [f"{name}\t{value:.6e}" for name, value in zip(PARAM_NAMES, result.pars)]
    lines += [
        f"logl\t{result.logl:.6e}",
        f"logl_a\t{result.logl_a:.6e}",
        f"hypothesis\t{result.hypothesis.name.lower()}",
        f"status\t{result.status.value}",
        f"n_iterations\t{result.n_iterations}",
        f"n_dropped\t{result.n_dropped}",
    ]
    with open(path, "w") as f:
        f.write("\n".join(lines) + "\n")


def read_params(path: Path) -> np.ndarray:
    """Read the six parameters from a file written by ``write_params``.

    Raises:
        ValueError: If a parameter line is missing.
    """
    values = {}
    with open(path) as f:
        for line in f:
            fields = line.split()
            if len(fields) == 2 and fields[0] in PARAM_NAMES:
                values[fields[0]] = float(fields[1])
    missing = [name for name in PARAM_NAMES if name not in values]
    if missing:
        raise ValueError(f"Parameters file {path} is missing {', '.join(missing)}")
    return as_params([values[name] for name in PARAM_NAMES])


class IncrementalHistoryWriter:
    """Write EM trace rows to disk as they are produced.

    Context manager; rows are numbered in the order written, so the file
    matches ``write_history`` for the same trace.

    Example:
        with IncrementalHistoryWriter(Path("fit.history.txt")) as writer:
            for row in rows:
                writer.write(row)
        print(f"Wrote {writer.count} rows")
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._file = None
        self._count = 0

    def __enter__(self) -> "IncrementalHistoryWriter":
        """Open file and write header."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._file = open(self.path, "w")
        self._file.write(HEADER_HISTORY + "\n")
        return self

    def write(self, row: np.ndarray) -> None:
        """Write a single trace row."""
        if self._file is None:
            raise RuntimeError("Writer not opened. Use as context manager.")
        self._file.write(format_history_line(self._count, row) + "\n")
        self._count += 1

    def write_batch(self, rows: Iterable[np.ndarray]) -> None:
        for row in rows:
            self.write(row)

    def flush(self) -> None:
        if self._file is not None:
            self._file.flush()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Close file."""
        if self._file:
            self._file.close()
            self._file = None

    @property
    def count(self) -> int:
        """Number of rows written."""
        return self._count

"""Z-score file I/O.

Z-score file format:
- Whitespace/tab/space delimited, no header row
- Two columns (Z_d, Z_a) or three columns (Z_d, Z_a, weight)
- One SNP per row; missing values encoded as "NA" (read as NaN)

Rows with missing or non-finite values are kept here and dropped by the fitter,
which reports how many it removed.
"""

from pathlib import Path

import numpy as np


def read_zscore_file(path: Path) -> tuple[np.ndarray, np.ndarray | None]:
    """Read a Z-score file.

    Args:
        path: Path to the Z-score file.

    Returns:
        Tuple of (z, weights):
        - z: (n, 2) float64 array of Z_d and Z_a (NaN for "NA")
        - weights: (n,) float64 array if the file has a third column, else None

    Raises:
        ValueError: If the file is empty, has a column count other than 2 or 3,
            has rows with inconsistent column counts, or holds values that
            cannot be parsed as numbers (except "NA").

    Example:
        File contents (Z_d, Z_a, weight):
        ```
        0.31  -1.20  1.0
        2.85   4.10  0.5
        NA     0.77  1.0
        ```

        >>> z, weights = read_zscore_file(Path("zscores.txt"))
        >>> z.shape
        (3, 2)
    """
    rows: list[list[str]] = []
    with open(path) as f:
        for line in f:
            stripped = line.strip()
            if not stripped:
                continue
            rows.append(stripped.split())

    if not rows:
        raise ValueError(f"Z-score file is empty: {path}")

    n_cols = len(rows[0])
    if n_cols not in (2, 3):
        raise ValueError(
            f"Z-score file must have 2 (Z_d, Z_a) or 3 (Z_d, Z_a, weight) "
            f"columns, got {n_cols}"
        )

    data = np.empty((len(rows), n_cols), dtype=np.float64)
    for i, row in enumerate(rows):
        if len(row) != n_cols:
            raise ValueError(
                f"Z-score file row {i + 1} has {len(row)} columns "
                f"but expected {n_cols} (based on first row)"
            )
        for j, value in enumerate(row):
            if value == "NA":
                data[i, j] = np.nan
                continue
            try:
                data[i, j] = float(value)
            except ValueError:
                raise ValueError(
                    f"Z-score file row {i + 1}, column {j + 1}: "
                    f"cannot parse '{value}' as a number"
                ) from None

    weights = data[:, 2].copy() if n_cols == 3 else None
    return data[:, :2].copy(), weights


def write_zscore_file(
    path: Path, z: np.ndarray, weights: np.ndarray | None = None
) -> None:
    """Write Z scores (and optional weights) in the format read_zscore_file reads.

    Non-finite values are written as "NA".
    """
    z = np.asarray(z, dtype=np.float64)
    cols = [z[:, 0], z[:, 1]]
    if weights is not None:
        cols.append(np.asarray(weights, dtype=np.float64))
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        for row in zip(*cols):
            f.write(
                "\t".join(f"{v:.6e}" if np.isfinite(v) else "NA" for v in row) + "\n"
            )

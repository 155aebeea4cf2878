"""
Normalization Engine
====================

Pure computation engine for z-score standardization.

    z[i, j] = (x[i, j] - mean(j)) / sd(j)

sd is the SAMPLE standard deviation (ddof=1), matching conventional
statistical scaling, so the covariance of the output is exactly the
correlation matrix of the input.

Constant columns are rejected, never silently passed through with
sd=1.0: a PCA over a column with no variance has no defined correlation.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from biplot.config import DEGENERATE_STD_TOL
from biplot.validation.input_validation import default_column_names, validate_matrix


logger = logging.getLogger(__name__)


class DegenerateColumnError(ValueError):
    """Raised when a column has zero sample variance."""

    def __init__(self, column_index: int, column: str, value: float):
        self.column_index = column_index
        self.column = column
        self.value = value
        super().__init__(
            f"Column {column!r} (index {column_index}) is constant "
            f"(all values = {value!r}); standard deviation is zero"
        )


@dataclass(frozen=True)
class StandardizedMatrix:
    """
    Z-scored matrix plus the statistics needed to undo it.

    Arrays are read-only. Produced fresh per call, never mutated.
    """
    values: np.ndarray   # (R, C)
    mean: np.ndarray     # (C,)
    std: np.ndarray      # (C,) sample sd, ddof=1
    columns: Tuple[str, ...]

    @property
    def n_rows(self) -> int:
        return self.values.shape[0]

    @property
    def n_columns(self) -> int:
        return self.values.shape[1]

    @property
    def shape(self) -> Tuple[int, int]:
        return self.values.shape

    def params(self) -> Dict[str, Any]:
        """Parameters in the form inverse_standardize() and writers expect."""
        return {
            'method': 'zscore',
            'ddof': 1,
            'columns': list(self.columns),
            'mean': self.mean.tolist(),
            'std': self.std.tolist(),
        }


def _readonly(a: np.ndarray) -> np.ndarray:
    a = np.array(a, dtype=np.float64, copy=True)
    a.setflags(write=False)
    return a


def column_stats(data: np.ndarray, ddof: int = 1) -> Tuple[np.ndarray, np.ndarray]:
    """Per-column mean and standard deviation."""
    data = np.asarray(data, dtype=np.float64)
    mean = data.mean(axis=0)
    std = data.std(axis=0, ddof=ddof)
    return mean, std


def find_degenerate_columns(
    data: np.ndarray,
    tol: float = DEGENERATE_STD_TOL,
) -> List[int]:
    """
    Indices of columns whose values are all identical.

    A column whose sd is within a few ulps of |mean| is rounding noise
    around one stored value and counts as constant too. Columns that vary
    by more than that are kept, however small their scale.
    """
    data = np.asarray(data, dtype=np.float64)
    if data.shape[0] < 2:
        return []
    mean, std = column_stats(data)
    spread = np.ptp(data, axis=0)
    constant = (spread == 0.0) | (std == 0.0) | (std <= tol * np.abs(mean))
    return [int(j) for j in np.flatnonzero(constant)]


def standardize(
    data: np.ndarray,
    columns: Optional[Sequence[str]] = None,
) -> StandardizedMatrix:
    """
    Z-score each column using its mean and sample standard deviation.

    Args:
        data: (R, C) numeric matrix, R >= 2, all values finite
        columns: Optional names (length C), used in error reports

    Returns:
        StandardizedMatrix with per-column mean ~0 and sample sd ~1

    Raises:
        InvalidInputError: malformed, non-finite, or fewer than 2 rows
        DegenerateColumnError: first column with zero sample variance
    """
    data = validate_matrix(data, columns=columns)
    n_rows, n_cols = data.shape
    names = tuple(str(c) for c in columns) if columns is not None else tuple(default_column_names(n_cols))

    degenerate = find_degenerate_columns(data)
    if degenerate:
        j = degenerate[0]
        logger.debug("degenerate columns %s", [names[k] for k in degenerate])
        raise DegenerateColumnError(j, names[j], float(data[0, j]))

    mean, std = column_stats(data, ddof=1)
    z = (data - mean) / std

    logger.debug("standardized %d rows x %d columns", n_rows, n_cols)

    return StandardizedMatrix(
        values=_readonly(z),
        mean=_readonly(mean),
        std=_readonly(std),
        columns=names,
    )


def inverse_standardize(
    values: np.ndarray,
    standardized: StandardizedMatrix,
) -> np.ndarray:
    """
    Map z-scores back to original units.

    Args:
        values: (R, C) or (C,) array in standardized units
        standardized: The StandardizedMatrix whose statistics to apply

    Returns:
        Array in original units
    """
    values = np.asarray(values, dtype=np.float64)
    if values.shape[-1] != standardized.n_columns:
        raise ValueError(
            f"Expected {standardized.n_columns} columns, got {values.shape[-1]}"
        )
    return values * standardized.std + standardized.mean

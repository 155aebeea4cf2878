"""
Input Matrix Validation

Validates a numeric matrix before it reaches standardization.
Rejects anything the compute engines cannot reason about.

PRINCIPLE: "Engines compute on clean matrices. Validation decides what is clean."

Usage:
    from biplot.validation import validate_matrix

    # Raise on first problem set
    matrix = validate_matrix(data, columns=names)

    # Inspect without raising
    report = validate_matrix(data, raise_on_error=False)
    print(report.summary())
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np


class InvalidInputError(ValueError):
    """Raised when an input matrix is malformed (empty, ragged, non-numeric)."""

    def __init__(self, errors: List[str], warnings: List[str] = None):
        self.errors = errors
        self.warnings = warnings or []

        message = "Input validation failed:\n" + "\n".join(
            f"  ERROR: {e}" for e in errors
        )
        if warnings:
            message += "\n" + "\n".join(f"  WARNING: {w}" for w in warnings)

        super().__init__(message)


@dataclass
class InputValidationReport:
    """Report from matrix validation."""

    valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    # Shape
    n_rows: int = 0
    n_columns: int = 0

    # Column names (generated when caller gave none)
    columns: List[str] = field(default_factory=list)

    def summary(self) -> str:
        """Human-readable summary."""
        lines = [
            "=" * 60,
            "INPUT VALIDATION REPORT",
            "=" * 60,
            "",
            f"Rows: {self.n_rows:,}",
            f"Columns: {self.n_columns}",
        ]
        if self.columns:
            lines.append(f"  {', '.join(self.columns)}")
        lines.append("")

        if self.errors:
            lines.append("ERRORS:")
            for e in self.errors:
                lines.append(f"  - {e}")
            lines.append("")

        if self.warnings:
            lines.append("WARNINGS:")
            for w in self.warnings:
                lines.append(f"  - {w}")
            lines.append("")

        status = "PASSED" if self.valid else "FAILED"
        lines.append(f"Status: {status}")
        lines.append("=" * 60)

        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to serializable dict."""
        return {
            'valid': self.valid,
            'errors': self.errors,
            'warnings': self.warnings,
            'n_rows': self.n_rows,
            'n_columns': self.n_columns,
            'columns': self.columns,
        }


def default_column_names(n_columns: int) -> List[str]:
    """Positional names used when the caller supplies none."""
    return [f"x{j}" for j in range(n_columns)]


def _coerce_matrix(data: Any, report: InputValidationReport) -> Optional[np.ndarray]:
    """
    Turn nested sequences / arrays into a 2D float64 array.

    Ragged rows and non-numeric cells are reported, not raised.
    """
    if data is None:
        report.errors.append("Input is None")
        return None

    # Ragged nested lists cannot become a rectangular array
    if isinstance(data, (list, tuple)):
        if len(data) == 0:
            report.errors.append("Input matrix is empty (0 rows)")
            return None
        lengths = set()
        for row in data:
            if isinstance(row, (list, tuple, np.ndarray)):
                lengths.add(len(row))
            else:
                lengths.add(None)
        if None in lengths and len(lengths) > 1:
            report.errors.append("Input mixes scalar rows and sequence rows")
            return None
        if len(lengths) > 1:
            report.errors.append(
                f"Ragged rows: row lengths {sorted(lengths)} differ"
            )
            return None

    raw = np.asarray(data, dtype=object) if not isinstance(data, np.ndarray) else data

    if raw.dtype.kind in ('U', 'S', 'b'):
        report.errors.append(f"Non-numeric dtype: {raw.dtype}")
        return None

    if raw.dtype.kind == 'c':
        report.errors.append("Complex values are not supported")
        return None

    try:
        matrix = np.asarray(raw, dtype=np.float64)
    except (TypeError, ValueError):
        report.errors.append("Input contains non-numeric values")
        return None

    # bool / str cells slip through an object-array cast; check explicitly
    if raw.dtype == object:
        bad = [
            v for v in raw.ravel()
            if isinstance(v, (str, bytes, bool, np.bool_)) or v is None
        ]
        if bad:
            report.errors.append(
                f"Input contains {len(bad)} non-numeric value(s), e.g. {bad[0]!r}"
            )
            return None

    return matrix


def validate_matrix(
    data: Any,
    columns: Optional[Sequence[str]] = None,
    labels: Optional[Sequence[Any]] = None,
    min_rows: int = 2,
    raise_on_error: bool = True,
) -> Union[np.ndarray, InputValidationReport]:
    """
    Validate an R x C numeric matrix for the standardize-then-decompose pipeline.

    Checks:
        - not empty, exactly 2D, rectangular
        - numeric (no strings, bools, complex)
        - every value finite (missing rows must be dropped upstream)
        - at least `min_rows` rows, at least one column
        - column names unique and matching C
        - labels (if given) one per row

    Args:
        data: Array-like, rows are records and columns are numeric fields
        columns: Optional column names (length C)
        labels: Optional per-row group labels (length R)
        min_rows: Minimum row count (2 = sample sd is defined)
        raise_on_error: If True raise InvalidInputError, else return the report

    Returns:
        The validated float64 matrix, or the report when raise_on_error=False
    """
    report = InputValidationReport()
    matrix = _coerce_matrix(data, report)

    if matrix is not None:
        if matrix.size == 0:
            report.errors.append(f"Input matrix is empty (shape {matrix.shape})")
        elif matrix.ndim == 1:
            report.errors.append(
                f"Input is 1D (shape {matrix.shape}); expected rows x columns"
            )
        elif matrix.ndim != 2:
            report.errors.append(f"Input is {matrix.ndim}D; expected 2D")
        else:
            n_rows, n_cols = matrix.shape
            report.n_rows = n_rows
            report.n_columns = n_cols

            if n_rows < min_rows:
                report.errors.append(
                    f"Need at least {min_rows} rows, got {n_rows}"
                )

            n_nan = int(np.isnan(matrix).sum())
            n_inf = int(np.isinf(matrix).sum())
            if n_nan:
                report.errors.append(
                    f"{n_nan:,} missing (NaN) values; drop incomplete rows first"
                )
            if n_inf:
                report.errors.append(f"{n_inf:,} infinite values")

            if columns is None:
                report.columns = default_column_names(n_cols)
            else:
                names = [str(c) for c in columns]
                if len(names) != n_cols:
                    report.errors.append(
                        f"{len(names)} column names for {n_cols} columns"
                    )
                elif len(set(names)) != len(names):
                    dupes = sorted({c for c in names if names.count(c) > 1})
                    report.errors.append(f"Duplicate column names: {dupes}")
                report.columns = names

            if labels is not None and len(labels) != n_rows:
                report.errors.append(
                    f"{len(labels)} labels for {n_rows} rows"
                )

            if n_cols > n_rows:
                report.warnings.append(
                    f"Fewer rows ({n_rows}) than columns ({n_cols}); "
                    "trailing components will be degenerate"
                )

    report.valid = not report.errors

    if not raise_on_error:
        return report

    if not report.valid:
        raise InvalidInputError(report.errors, report.warnings)

    return matrix

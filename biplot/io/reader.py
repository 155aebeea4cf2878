"""
Reader — all dataset reads go through here.

No other module should call pl.read_csv / pl.read_parquet directly.

Turns a table into the clean numeric matrix the engines expect:
requested columns only, cast to Float64, rows with any missing
measurement dropped.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import numpy as np
import polars as pl

from biplot.config import DEFAULT_COLUMNS

# CSV spellings of "missing" seen in the penguin exports
NULL_VALUES = ['NA', 'NaN', 'nan', '']

NUMERIC_DTYPES = (
    pl.Float64, pl.Float32,
    pl.Int64, pl.Int32, pl.Int16, pl.Int8,
    pl.UInt64, pl.UInt32, pl.UInt16, pl.UInt8,
)


@dataclass
class Dataset:
    """Complete-case numeric matrix plus optional per-row group labels."""
    matrix: np.ndarray               # (R, C) float64
    columns: List[str]
    labels: Optional[List[str]] = None
    group_column: Optional[str] = None
    n_dropped: int = 0
    source: Optional[str] = None

    @property
    def n_rows(self) -> int:
        return self.matrix.shape[0]

    @property
    def n_columns(self) -> int:
        return self.matrix.shape[1]


def read_table(path: str) -> pl.DataFrame:
    """Read a CSV or Parquet file into a DataFrame."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Dataset not found: {path}")

    if p.suffix == '.parquet':
        return pl.read_parquet(str(p))
    if p.suffix in ('.csv', '.txt'):
        return pl.read_csv(str(p), null_values=NULL_VALUES, infer_schema_length=None)
    if p.suffix == '.tsv':
        return pl.read_csv(str(p), separator='\t', null_values=NULL_VALUES, infer_schema_length=None)

    raise ValueError(f"Unsupported dataset format: {p.suffix} (use .csv, .tsv or .parquet)")


def numeric_columns(df: pl.DataFrame) -> List[str]:
    """Auto-detect numeric columns, in table order."""
    return [c for c in df.columns if df[c].dtype in NUMERIC_DTYPES]


def _resolve_columns(df: pl.DataFrame, columns: Optional[Sequence[str]]) -> List[str]:
    if columns is None:
        if all(c in df.columns for c in DEFAULT_COLUMNS):
            return list(DEFAULT_COLUMNS)
        return numeric_columns(df)

    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise ValueError(f"Columns not in dataset: {missing}. Available: {df.columns}")
    return list(columns)


def select_complete(
    df: pl.DataFrame,
    columns: Sequence[str],
    group_column: Optional[str] = None,
) -> Tuple[pl.DataFrame, int]:
    """
    Cast measurement columns to Float64 and drop incomplete rows.

    A row is incomplete if any measurement is null or NaN. A null group
    label does not drop the row.

    Returns:
        (filtered frame, number of rows dropped)
    """
    keep = list(columns)
    if group_column is not None and group_column not in keep:
        keep.append(group_column)

    try:
        cast = df.select(keep).with_columns([
            pl.col(c).cast(pl.Float64, strict=True) for c in columns
        ])
    except (pl.exceptions.InvalidOperationError, pl.exceptions.ComputeError) as e:
        raise ValueError(f"Non-numeric values in measurement columns: {e}") from e

    complete = cast.drop_nulls(subset=list(columns)).filter(
        pl.all_horizontal([pl.col(c).is_finite() for c in columns])
    )
    return complete, df.height - complete.height


def load_dataset(
    path: str,
    columns: Optional[Sequence[str]] = None,
    group_column: Optional[str] = None,
    verbose: bool = False,
) -> Dataset:
    """
    Load a dataset file into a complete-case numeric matrix.

    Args:
        path: CSV / TSV / Parquet file
        columns: Measurement columns. None = the four penguin
            measurements when present, else every numeric column
        group_column: Optional categorical column carried as labels
        verbose: Print row counts

    Returns:
        Dataset
    """
    df = read_table(path)
    return dataset_from_frame(df, columns=columns, group_column=group_column,
                              source=str(path), verbose=verbose)


def dataset_from_frame(
    df: pl.DataFrame,
    columns: Optional[Sequence[str]] = None,
    group_column: Optional[str] = None,
    source: Optional[str] = None,
    verbose: bool = False,
) -> Dataset:
    """Same as load_dataset() for an in-memory DataFrame."""
    cols = _resolve_columns(df, columns)
    if not cols:
        raise ValueError("No numeric columns found")

    if group_column is not None and group_column not in df.columns:
        raise ValueError(f"Group column not in dataset: {group_column!r}")

    complete, n_dropped = select_complete(df, cols, group_column)

    labels = None
    if group_column is not None:
        labels = [None if v is None else str(v) for v in complete[group_column].to_list()]

    if verbose:
        print(f"Loaded {df.height} rows x {len(cols)} columns")
        if n_dropped:
            print(f"  Dropped {n_dropped} incomplete rows")

    return Dataset(
        matrix=complete.select(cols).to_numpy().astype(np.float64),
        columns=cols,
        labels=labels,
        group_column=group_column,
        n_dropped=n_dropped,
        source=source,
    )

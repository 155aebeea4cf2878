"""
Writer — all table writes go through here.

No other module should call df.write_parquet / df.write_csv directly.
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional

import polars as pl

from biplot.config import OUTPUT_FORMATS


# Output name -> file stem
OUTPUT_FILES = {
    'standardization':   'standardization',
    'loadings':          'pca_loadings',
    'scores':            'pca_scores',
    'variance':          'pca_variance',
    'correlation':       'correlation',
    'correlation_order': 'correlation_clustered',
}


def output_path(output_dir: str, name: str, fmt: str = 'parquet') -> Path:
    """Get the output path for a table by name."""
    if fmt not in OUTPUT_FORMATS:
        raise ValueError(f"Unknown output format: {fmt}. Use one of: {', '.join(OUTPUT_FORMATS)}")
    d = Path(output_dir)
    d.mkdir(parents=True, exist_ok=True)
    stem = OUTPUT_FILES.get(name, name)
    return d / f"{stem}.{fmt}"


def _safe_write(df: pl.DataFrame, path: Path, fmt: str, verbose: bool = True) -> bool:
    """
    Guard against writing invalid files.

    Returns True if a file was written, False if skipped.
    """
    if df is None:
        return False

    if len(df.columns) == 0:
        if verbose:
            print(f"  !! Skipped {path} (empty schema — 0 columns)")
        return False

    if fmt == 'csv':
        df.write_csv(str(path))
    else:
        df.write_parquet(str(path))
    return True


def write_output(
    df: pl.DataFrame,
    output_dir: str,
    name: str,
    fmt: str = 'parquet',
    verbose: bool = True,
) -> Optional[Path]:
    """
    Write a result table.

    Args:
        df: DataFrame to write (None or empty-schema -> skip)
        output_dir: Directory for all outputs
        name: Output name (e.g., 'loadings', 'scores')
        fmt: 'parquet' or 'csv'
        verbose: Print path on write

    Returns:
        Path to written file, or None if skipped
    """
    path = output_path(output_dir, name, fmt)

    if not _safe_write(df, path, fmt, verbose=verbose):
        return None

    if verbose:
        print(f"  -> {path} ({len(df)} rows)")

    return path


def write_summary(summary: Dict[str, Any], output_dir: str, verbose: bool = True) -> Path:
    """Write the run summary (explained variance, warnings, params) as JSON."""
    path = Path(output_dir)
    path.mkdir(parents=True, exist_ok=True)
    path = path / 'summary.json'
    with open(path, 'w') as f:
        json.dump(summary, f, indent=2, default=str)
    if verbose:
        print(f"  -> {path}")
    return path

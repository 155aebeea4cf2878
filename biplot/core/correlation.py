"""
Correlation Engine.

Computes the pairwise correlation matrix (symmetric) over numeric columns:
- Pearson correlation
- Spearman correlation (Pearson on average ranks)

This is the table a correlation heatmap is drawn from.
"""

import logging
from typing import Literal, Optional, Sequence

import numpy as np
import polars as pl
from scipy.stats import rankdata

from biplot.validation.input_validation import default_column_names, validate_matrix


logger = logging.getLogger(__name__)


def _pearson(data: np.ndarray) -> np.ndarray:
    centered = data - data.mean(axis=0)
    norms = np.sqrt((centered ** 2).sum(axis=0))
    # Constant columns have no defined correlation
    with np.errstate(invalid='ignore', divide='ignore'):
        corr = (centered.T @ centered) / np.outer(norms, norms)
    corr = np.clip(corr, -1.0, 1.0)
    zero = norms == 0
    if np.any(zero):
        corr[zero, :] = np.nan
        corr[:, zero] = np.nan
    np.fill_diagonal(corr, np.where(zero, np.nan, 1.0))
    return corr


def correlation_matrix(
    data: np.ndarray,
    method: Literal["pearson", "spearman"] = "pearson",
) -> np.ndarray:
    """
    C x C correlation matrix.

    Args:
        data: (R, C) numeric matrix, complete rows only
        method: 'pearson' or 'spearman'

    Returns:
        Symmetric matrix with unit diagonal. Rows/columns of constant
        columns are NaN.
    """
    data = validate_matrix(data)

    if method == 'spearman':
        data = np.apply_along_axis(rankdata, 0, data)
    elif method != 'pearson':
        raise ValueError(f"Unknown correlation method: {method}. Use 'pearson' or 'spearman'")

    corr = _pearson(data)
    # Symmetrize away float asymmetry from the matmul
    corr = (corr + corr.T) / 2.0

    logger.debug("%s correlation over %d columns", method, corr.shape[0])
    return corr


def correlation_frame(
    corr: np.ndarray,
    columns: Optional[Sequence[str]] = None,
) -> pl.DataFrame:
    """
    Long-format heatmap cells: [variable_a, variable_b, correlation].

    Every ordered pair is included, diagonal too.
    """
    corr = np.asarray(corr, dtype=np.float64)
    n = corr.shape[0]
    names = [str(c) for c in columns] if columns is not None else default_column_names(n)
    if len(names) != n:
        raise ValueError(f"{len(names)} column names for a {n} x {n} matrix")

    rows_a, rows_b, values = [], [], []
    for i in range(n):
        for j in range(n):
            rows_a.append(names[i])
            rows_b.append(names[j])
            values.append(float(corr[i, j]))

    return pl.DataFrame({
        'variable_a': rows_a,
        'variable_b': rows_b,
        'correlation': values,
    })


def strongest_pairs(
    corr: np.ndarray,
    columns: Optional[Sequence[str]] = None,
    top: int = 5,
) -> pl.DataFrame:
    """Upper-triangle pairs ranked by |r|, strongest first."""
    corr = np.asarray(corr, dtype=np.float64)
    n = corr.shape[0]
    names = [str(c) for c in columns] if columns is not None else default_column_names(n)

    i_idx, j_idx = np.triu_indices(n, k=1)
    df = pl.DataFrame({
        'variable_a': [names[i] for i in i_idx],
        'variable_b': [names[j] for j in j_idx],
        'correlation': corr[i_idx, j_idx],
    })
    return (
        df.with_columns(pl.col('correlation').abs().alias('correlation_abs'))
        .sort('correlation_abs', descending=True, nulls_last=True)
        .head(top)
    )

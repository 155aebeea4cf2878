"""
Decomposition Engine (Principal Components).

Computes the principal axes of a standardized matrix.

    standardize   = z-scores (WHERE each row sits, in sd units)
    decompose     = eigenvectors of cov(z) (the SHAPE of the cloud)

cov(z) of z-scored columns is their correlation matrix, so
sum(eigenvalues) == n_columns and explained_ratio == eigenvalue / n_columns.

Conventions (deterministic output):
    sign      Each loading vector is flipped so its largest-magnitude entry
              is positive. Entries tied in magnitude defer to the lowest
              column index.
    ordering  Eigenvalues descending. Eigenvalues equal within EIGEN_TIE_TOL
              (relative to the largest) are ordered by the column index of
              each component's largest-magnitude loading, ascending.
    zeros     Negative round-off eigenvalues are set to 0.0, never NaN.

Two solvers, identical after the conventions above:
    eigh  numpy.linalg.eigh of the C x C covariance matrix (default)
    svd   numpy.linalg.svd of the R x C matrix, eigenvalues = s**2 / (R - 1)
"""

import logging
import warnings
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Sequence, Tuple, Union

import numpy as np
import polars as pl

from biplot.config import EIGEN_TIE_TOL, EIGEN_ZERO_TOL, LOADING_TIE_TOL
from biplot.core.normalization import StandardizedMatrix, _readonly, standardize
from biplot.validation.input_validation import (
    InvalidInputError,
    default_column_names,
    validate_matrix,
)


logger = logging.getLogger(__name__)


class InsufficientRowsWarning(UserWarning):
    """Fewer rows than columns: trailing components are degenerate."""


@dataclass(frozen=True)
class PrincipalComponentResult:
    """
    Output of decompose().

    components[k] is the unit loading vector of PC k+1 (one entry per
    original column). scores[:, k] is every row projected onto it.
    """
    components: np.ndarray        # (C, C) rows are loading vectors
    eigenvalues: np.ndarray       # (C,) non-negative, non-increasing
    explained_ratio: np.ndarray   # (C,) sums to 1
    scores: np.ndarray            # (R, C)
    columns: Tuple[str, ...]
    labels: Optional[Tuple[Any, ...]] = None
    warnings: Tuple[str, ...] = field(default=())
    method: str = 'eigh'

    @property
    def n_rows(self) -> int:
        return self.scores.shape[0]

    @property
    def n_components(self) -> int:
        return self.components.shape[0]

    @property
    def loadings(self) -> np.ndarray:
        """(C variables, C components): column k is PC k+1."""
        return self.components.T

    @property
    def total_variance(self) -> float:
        return float(self.eigenvalues.sum())

    @property
    def effective_dim(self) -> float:
        """Participation ratio (sum lambda)^2 / sum lambda^2."""
        denom = float((self.eigenvalues ** 2).sum())
        if denom <= 0:
            return 0.0
        return float(self.eigenvalues.sum() ** 2 / denom)

    def component_names(self, n_components: Optional[int] = None) -> List[str]:
        k = self._k(n_components)
        return [f"PC{i + 1}" for i in range(k)]

    def axis_labels(self, n_components: Optional[int] = None, decimals: int = 1) -> List[str]:
        """Plot axis labels, e.g. ['PC1 (68.8%)', 'PC2 (19.3%)']."""
        k = self._k(n_components)
        return [
            f"PC{i + 1} ({100.0 * self.explained_ratio[i]:.{decimals}f}%)"
            for i in range(k)
        ]

    def loadings_frame(self, n_components: Optional[int] = None) -> pl.DataFrame:
        """One row per original variable, one column per component."""
        k = self._k(n_components)
        data = {'variable': list(self.columns)}
        for i, name in enumerate(self.component_names(k)):
            data[name] = np.array(self.components[i])
        return pl.DataFrame(data)

    def scores_frame(
        self,
        n_components: Optional[int] = None,
        label_column: str = 'group',
    ) -> pl.DataFrame:
        """One row per observation, with its group label when known."""
        k = self._k(n_components)
        names = self.component_names(k)
        if self.labels is not None and label_column in ['row'] + names:
            raise ValueError(f"label_column {label_column!r} collides with a generated column")
        data: Dict[str, Any] = {'row': np.arange(self.n_rows)}
        if self.labels is not None:
            data[label_column] = [None if v is None else str(v) for v in self.labels]
        for i, name in enumerate(names):
            data[name] = np.array(self.scores[:, i])
        return pl.DataFrame(data)

    def variance_frame(self) -> pl.DataFrame:
        """Eigenvalue spectrum with explained and cumulative ratios."""
        return pl.DataFrame({
            'component': self.component_names(),
            'eigenvalue': np.array(self.eigenvalues),
            'explained_ratio': np.array(self.explained_ratio),
            'cumulative_ratio': np.cumsum(self.explained_ratio),
            'axis_label': self.axis_labels(),
        })

    def to_dict(self) -> Dict[str, Any]:
        """Convert to serializable dict."""
        return {
            'method': self.method,
            'columns': list(self.columns),
            'n_rows': self.n_rows,
            'n_components': self.n_components,
            'eigenvalues': self.eigenvalues.tolist(),
            'explained_ratio': self.explained_ratio.tolist(),
            'components': self.components.tolist(),
            'effective_dim': self.effective_dim,
            'warnings': list(self.warnings),
        }

    def _k(self, n_components: Optional[int]) -> int:
        if n_components is None:
            return self.n_components
        if not 1 <= n_components <= self.n_components:
            raise ValueError(
                f"n_components must be in [1, {self.n_components}], got {n_components}"
            )
        return n_components


def covariance_matrix(z: np.ndarray) -> np.ndarray:
    """C x C sample covariance (ddof=1). Equals the correlation matrix for z-scores."""
    z = np.asarray(z, dtype=np.float64)
    cov = np.cov(z, rowvar=False, ddof=1)
    return np.atleast_2d(cov)


def anchor_index(vector: np.ndarray, tol: float = LOADING_TIE_TOL) -> int:
    """
    Index of the largest-magnitude entry.

    Entries within tol of the maximum magnitude tie; the lowest index wins.
    """
    mags = np.abs(vector)
    top = mags.max()
    return int(np.flatnonzero(mags >= top - tol * max(top, 1.0))[0])


def apply_sign_convention(components: np.ndarray) -> np.ndarray:
    """
    Flip each row so its largest-magnitude loading is positive.

    Args:
        components: (k, C) loading vectors as rows

    Returns:
        Sign-corrected copy
    """
    corrected = np.array(components, dtype=np.float64, copy=True)
    for k in range(corrected.shape[0]):
        row = corrected[k]
        if not np.any(row):
            continue
        if row[anchor_index(row)] < 0:
            corrected[k] = -row
    return corrected


def order_components(
    eigenvalues: np.ndarray,
    components: np.ndarray,
    tol: float = EIGEN_TIE_TOL,
) -> np.ndarray:
    """
    Permutation that sorts components by descending eigenvalue.

    Tie groups are formed relative to the first eigenvalue of each group
    (no chaining) and ordered by anchor_index(), ascending. Stable.
    """
    eigenvalues = np.asarray(eigenvalues, dtype=np.float64)
    order = np.argsort(-eigenvalues, kind='stable')
    lam = eigenvalues[order]
    scale = tol * max(float(np.abs(lam).max()) if lam.size else 0.0, np.finfo(float).tiny)

    result = []
    i = 0
    n = len(order)
    while i < n:
        j = i + 1
        while j < n and lam[i] - lam[j] <= scale:
            j += 1
        group = list(order[i:j])
        if len(group) > 1:
            group.sort(key=lambda idx: anchor_index(components[idx]))
            logger.debug("eigenvalue tie at %.6g across %d components", lam[i], len(group))
        result.extend(group)
        i = j

    return np.asarray(result, dtype=int)


def _solve_eigh(z: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Eigenpairs of cov(z). Returns (eigenvalues, components-as-rows)."""
    cov = covariance_matrix(z)
    eigenvalues, vectors = np.linalg.eigh(cov)
    return eigenvalues, vectors.T


def _solve_svd(z: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Eigenpairs of cov(z) via SVD of the centered matrix."""
    n_rows, n_cols = z.shape
    centered = z - z.mean(axis=0)
    # Full V basis when R < C so every column still gets a component
    _, s, vt = np.linalg.svd(centered, full_matrices=n_rows < n_cols)
    eigenvalues = np.zeros(n_cols)
    eigenvalues[:len(s)] = (s ** 2) / max(n_rows - 1, 1)
    return eigenvalues, vt[:n_cols]


def decompose(
    standardized: Union[StandardizedMatrix, np.ndarray],
    labels: Optional[Sequence[Any]] = None,
    method: Literal["eigh", "svd"] = "eigh",
    columns: Optional[Sequence[str]] = None,
) -> PrincipalComponentResult:
    """
    Principal component decomposition of a standardized matrix.

    Args:
        standardized: StandardizedMatrix from standardize(), or an (R, C)
            array already on a common scale (centered here, not rescaled)
        labels: Optional per-row group labels carried into the result
        method: "eigh" (covariance eigen-decomposition) or "svd"
        columns: Column names when passing a plain array

    Returns:
        PrincipalComponentResult

    Raises:
        InvalidInputError: malformed matrix, unknown method, zero total variance

    Warns:
        InsufficientRowsWarning: R < C (also recorded in result.warnings)
    """
    if method not in ("eigh", "svd"):
        raise InvalidInputError([f"Unknown decomposition method: {method!r}. Use 'eigh' or 'svd'"])

    if isinstance(standardized, StandardizedMatrix):
        z = np.asarray(standardized.values, dtype=np.float64)
        names = tuple(standardized.columns)
        if z.ndim != 2 or z.shape[0] < 2:
            raise InvalidInputError([f"Need at least 2 rows to decompose, got shape {z.shape}"])
        if not np.all(np.isfinite(z)):
            raise InvalidInputError(["Standardized matrix contains NaN or Inf values"])
        if labels is not None and len(labels) != z.shape[0]:
            raise InvalidInputError([f"{len(labels)} labels for {z.shape[0]} rows"])
    else:
        z = validate_matrix(standardized, columns=columns, labels=labels)
        z = z - z.mean(axis=0)
        names = tuple(str(c) for c in columns) if columns is not None else tuple(default_column_names(z.shape[1]))

    n_rows, n_cols = z.shape

    notes = []
    if n_rows < n_cols:
        msg = (
            f"Fewer rows ({n_rows}) than columns ({n_cols}); "
            f"at most {n_rows - 1} components carry variance"
        )
        warnings.warn(msg, InsufficientRowsWarning, stacklevel=2)
        notes.append(msg)

    if method == "svd":
        eigenvalues, components = _solve_svd(z)
    else:
        eigenvalues, components = _solve_eigh(z)

    # Round-off can push zero eigenvalues slightly negative
    lam_max = float(np.abs(eigenvalues).max())
    negative = eigenvalues < 0
    if np.any(eigenvalues < -EIGEN_ZERO_TOL * max(lam_max, 1.0)):
        logger.debug("clipping negative eigenvalues %s", eigenvalues[negative])
    eigenvalues = np.where(negative, 0.0, eigenvalues)

    total = float(eigenvalues.sum())
    if total <= 0:
        raise InvalidInputError(["Total variance is zero; every column is constant"])

    components = apply_sign_convention(components)
    order = order_components(eigenvalues, components)
    eigenvalues = eigenvalues[order]
    components = components[order]

    explained_ratio = eigenvalues / total
    scores = z @ components.T

    logger.debug(
        "decomposed %d x %d via %s: explained %s",
        n_rows, n_cols, method, np.round(explained_ratio, 4).tolist(),
    )

    return PrincipalComponentResult(
        components=_readonly(components),
        eigenvalues=_readonly(eigenvalues),
        explained_ratio=_readonly(explained_ratio),
        scores=_readonly(scores),
        columns=names,
        labels=tuple(labels) if labels is not None else None,
        warnings=tuple(notes),
        method=method,
    )


def standardize_and_decompose(
    data: Any,
    columns: Optional[Sequence[str]] = None,
    labels: Optional[Sequence[Any]] = None,
    method: Literal["eigh", "svd"] = "eigh",
) -> PrincipalComponentResult:
    """
    Validate, z-score, then decompose. The single core entry point.

    Args:
        data: (R, C) numeric matrix, complete rows only
        columns: Optional column names
        labels: Optional per-row group labels
        method: "eigh" or "svd"

    Returns:
        PrincipalComponentResult

    Raises:
        InvalidInputError: empty, ragged, non-numeric or non-finite input
        DegenerateColumnError: a column with zero sample variance
    """
    matrix = validate_matrix(data, columns=columns, labels=labels)
    standardized = standardize(matrix, columns=columns)
    return decompose(standardized, labels=labels, method=method)



"""
Biplot Core
===========

Pure compute engines. Arrays in, arrays / dataclasses out, no file I/O.

Structure:
    normalization.py  - z-score standardization (sample sd)
    decomposition.py  - principal components (eigh / svd), sign + tie conventions
    correlation.py    - correlation matrix, heatmap cells
    clustering.py     - hierarchical variable ordering
"""

from biplot.core.normalization import (
    StandardizedMatrix,
    DegenerateColumnError,
    standardize,
    inverse_standardize,
    find_degenerate_columns,
)
from biplot.core.decomposition import (
    PrincipalComponentResult,
    InsufficientRowsWarning,
    decompose,
    standardize_and_decompose,
    apply_sign_convention,
    covariance_matrix,
)
from biplot.core.correlation import correlation_matrix, correlation_frame, strongest_pairs
from biplot.core.clustering import cluster_variables, correlation_distance

__all__ = [
    # Normalization
    'StandardizedMatrix',
    'DegenerateColumnError',
    'standardize',
    'inverse_standardize',
    'find_degenerate_columns',
    # Decomposition
    'PrincipalComponentResult',
    'InsufficientRowsWarning',
    'decompose',
    'standardize_and_decompose',
    'apply_sign_convention',
    'covariance_matrix',
    # Correlation
    'correlation_matrix',
    'correlation_frame',
    'strongest_pairs',
    # Clustering
    'cluster_variables',
    'correlation_distance',
]

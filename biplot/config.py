"""
Biplot Configuration

Single source of truth for default columns, tolerances and manifest defaults.
A manifest.yaml only needs to name what differs from these.

Column names MUST match the dataset header exactly.
"""

from typing import Any, Dict, List

import numpy as np

# ============================================================
# DEFAULT COLUMNS
# ============================================================
# The four continuous penguin measurements. Categorical fields
# (species, island, sex, year) are metadata, never PCA inputs.

DEFAULT_COLUMNS: List[str] = [
    'bill_length_mm',
    'bill_depth_mm',
    'flipper_length_mm',
    'body_mass_g',
]

DEFAULT_GROUP_COLUMN: str = 'species'

# ============================================================
# NUMERIC TOLERANCES
# ============================================================

# A column is constant when all values are identical, or when its sample
# sd is at or below this multiple of |mean| (a few ulps of rounding noise)
DEGENERATE_STD_TOL: float = 4 * float(np.finfo(np.float64).eps)

# Eigenvalues closer than this (relative to the largest) are treated as tied
EIGEN_TIE_TOL: float = 1e-10

# Negative eigenvalues within this (relative to the largest) are round-off
EIGEN_ZERO_TOL: float = 1e-10

# Two loadings closer than this in magnitude compete for the sign anchor
LOADING_TIE_TOL: float = 1e-12

# ============================================================
# PIPELINE DEFAULTS
# ============================================================

DEFAULTS: Dict[str, Any] = {
    'columns': DEFAULT_COLUMNS,
    'group_column': DEFAULT_GROUP_COLUMN,
    'method': 'eigh',
    'correlation': 'pearson',
    'cluster_linkage': 'average',
    'output_format': 'parquet',
    'paths': {
        'dataset': 'penguins.csv',
        'output_dir': 'output',
    },
}

DECOMPOSITION_METHODS = ('eigh', 'svd')
CORRELATION_METHODS = ('pearson', 'spearman')
LINKAGE_METHODS = ('single', 'complete', 'average', 'weighted')
OUTPUT_FORMATS = ('parquet', 'csv')

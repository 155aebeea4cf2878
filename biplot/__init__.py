"""
Biplot — standardize-then-decompose for exploratory multivariate data.

Public API:
    from biplot import standardize_and_decompose
    result = standardize_and_decompose(matrix, columns=names, labels=species)
    result.axis_labels()      # ['PC1 (68.6%)', ...]

Layers:
    biplot.core         Engines — compute (arrays in, dataclasses out, no file I/O)
    biplot.io           Dataset reads, table writes, manifest.yaml
    biplot.validation   Input validation (rectangular, numeric, complete)
    biplot.run          Sequencer + CLI (python -m biplot)
"""

from biplot.core.decomposition import (
    PrincipalComponentResult,
    InsufficientRowsWarning,
    decompose,
    standardize_and_decompose,
)
from biplot.core.normalization import DegenerateColumnError, StandardizedMatrix, standardize
from biplot.validation.input_validation import InvalidInputError
from biplot.run import run

__all__ = [
    'standardize_and_decompose',
    'standardize',
    'decompose',
    'run',
    'StandardizedMatrix',
    'PrincipalComponentResult',
    'InvalidInputError',
    'DegenerateColumnError',
    'InsufficientRowsWarning',
]

"""
Variable Clustering Engine

Groups variables by correlation similarity (agglomerative, scipy).

Measures:
- Linkage matrix (merge tree)
- Leaf order for a clustered heatmap
- Flat cluster assignments at a chosen count

Distance: 1 - |r| (absolute=True) or 1 - r. Drawing the dendrogram is
left to the caller; only the ordering and merge tree are computed here.
"""

import logging
from typing import Any, Dict, Optional, Sequence

import numpy as np
from scipy.cluster.hierarchy import fcluster, leaves_list, linkage, optimal_leaf_ordering
from scipy.spatial.distance import squareform

from biplot.config import LINKAGE_METHODS
from biplot.validation.input_validation import default_column_names


logger = logging.getLogger(__name__)


def correlation_distance(corr: np.ndarray, absolute: bool = True) -> np.ndarray:
    """Square distance matrix from a correlation matrix."""
    corr = np.asarray(corr, dtype=np.float64)
    if corr.ndim != 2 or corr.shape[0] != corr.shape[1]:
        raise ValueError(f"Correlation matrix must be square, got shape {corr.shape}")
    if np.isnan(corr).any():
        raise ValueError("Correlation matrix contains NaN (constant column?)")

    dist = 1.0 - (np.abs(corr) if absolute else corr)
    dist = (dist + dist.T) / 2.0
    np.fill_diagonal(dist, 0.0)
    return np.clip(dist, 0.0, None)


def cluster_variables(
    corr: np.ndarray,
    columns: Optional[Sequence[str]] = None,
    method: str = "average",
    absolute: bool = True,
    n_clusters: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Hierarchically cluster variables on correlation distance.

    Args:
        corr: C x C correlation matrix
        columns: Variable names (length C)
        method: Linkage ('single', 'complete', 'average', 'weighted')
        absolute: Treat strong negative correlation as similar
        n_clusters: If given, also cut the tree into this many flat clusters

    Returns:
        dict with order, ordered_columns, linkage, reordered, clusters
    """
    if method not in LINKAGE_METHODS:
        raise ValueError(f"Unknown linkage method: {method}. Use one of: {', '.join(LINKAGE_METHODS)}")

    dist = correlation_distance(corr, absolute=absolute)
    n = dist.shape[0]
    names = [str(c) for c in columns] if columns is not None else default_column_names(n)
    if len(names) != n:
        raise ValueError(f"{len(names)} column names for a {n} x {n} matrix")

    corr = np.asarray(corr, dtype=np.float64)

    if n < 2:
        return {
            'order': list(range(n)),
            'ordered_columns': names,
            'linkage': np.empty((0, 4)),
            'reordered': corr.copy(),
            'clusters': [1] * n if n_clusters else None,
        }

    condensed = squareform(dist, checks=False)
    Z = linkage(condensed, method=method)
    if n > 2:
        Z = optimal_leaf_ordering(Z, condensed)
    order = [int(i) for i in leaves_list(Z)]

    clusters = None
    if n_clusters:
        clusters = [int(c) for c in fcluster(Z, t=n_clusters, criterion='maxclust')]

    logger.debug("variable order %s", [names[i] for i in order])

    return {
        'order': order,
        'ordered_columns': [names[i] for i in order],
        'linkage': Z,
        'reordered': corr[np.ix_(order, order)],
        'clusters': clusters,
    }

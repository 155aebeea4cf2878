"""
Biplot Sequencer
================

Runs the full pipeline in dependency order.
Pure orchestration — no computation here.

    load        dataset file -> complete-case numeric matrix (+ group labels)
    standardize z-scores, sample sd
    decompose   PCA: loadings, scores, explained variance
    correlate   correlation matrix (heatmap cells)
    cluster     variable order for a clustered heatmap

Output (one directory):
    standardization   per-column mean / sd
    pca_loadings      variable x PC
    pca_scores        row x PC (+ group label)
    pca_variance      eigenvalue spectrum, axis labels
    correlation       long-format correlation cells
    correlation_clustered  same cells, variables in cluster order
    summary.json

Usage:
    python -m biplot penguins.csv
    python -m biplot penguins.csv --group-column species --method svd
    python -m biplot --manifest domains/penguins/manifest.yaml
"""

import argparse
import logging
import time
import warnings
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

import polars as pl

from biplot.config import (
    CORRELATION_METHODS,
    DECOMPOSITION_METHODS,
    LINKAGE_METHODS,
    OUTPUT_FORMATS,
)
from biplot.core.clustering import cluster_variables
from biplot.core.correlation import correlation_frame, correlation_matrix
from biplot.core.decomposition import InsufficientRowsWarning, decompose
from biplot.core.normalization import standardize
from biplot.io.manifest import get_dataset_path, get_output_dir, load_manifest, merge_defaults
from biplot.io.reader import load_dataset
from biplot.io.writer import write_output, write_summary
from biplot.validation.input_validation import validate_matrix


def run(
    dataset_path: str,
    output_dir: Optional[str] = None,
    columns: Optional[Sequence[str]] = None,
    group_column: Optional[str] = None,
    method: str = 'eigh',
    correlation: str = 'pearson',
    cluster_linkage: str = 'average',
    output_format: str = 'parquet',
    verbose: bool = True,
) -> Dict[str, Any]:
    """
    Run standardize -> decompose -> correlate -> cluster on one dataset.

    Args:
        dataset_path: CSV / TSV / Parquet file
        output_dir: Where to write tables. None = compute only
        columns: Measurement columns (None = penguin defaults / all numeric)
        group_column: Categorical column carried onto scores
        method: 'eigh' or 'svd'
        correlation: 'pearson' or 'spearman'
        cluster_linkage: scipy linkage method for variable clustering
        output_format: 'parquet' or 'csv'
        verbose: Print progress

    Returns:
        dict with dataset, standardized, pca, correlation, clustering, summary
    """
    t0 = time.time()

    if verbose:
        print("=" * 70)
        print("BIPLOT: standardize -> decompose")
        print("=" * 70)

    dataset = load_dataset(dataset_path, columns=columns, group_column=group_column, verbose=verbose)

    matrix = validate_matrix(dataset.matrix, columns=dataset.columns, labels=dataset.labels)
    standardized = standardize(matrix, columns=dataset.columns)

    with warnings.catch_warnings():
        warnings.simplefilter('ignore', InsufficientRowsWarning)
        pca = decompose(standardized, labels=dataset.labels, method=method)

    corr = correlation_matrix(matrix, method=correlation)
    clustering = cluster_variables(corr, columns=dataset.columns, method=cluster_linkage)

    summary = {
        'dataset': dataset.source,
        'n_rows': dataset.n_rows,
        'n_dropped': dataset.n_dropped,
        'columns': dataset.columns,
        'group_column': dataset.group_column,
        'correlation_method': correlation,
        'cluster_linkage': cluster_linkage,
        'cluster_order': clustering['ordered_columns'],
        'standardization': standardized.params(),
        'pca': pca.to_dict(),
        'axis_labels': pca.axis_labels(),
    }

    if verbose:
        _print_summary(pca, clustering['ordered_columns'])

    if output_dir is not None:
        if verbose:
            print(f"\nWriting outputs to {output_dir}")
        _write_all(standardized, pca, corr, clustering, dataset.columns,
                   output_dir, output_format, group_column or 'group', verbose)
        write_summary(summary, output_dir, verbose=verbose)

    if verbose:
        print(f"\nDone in {time.time() - t0:.2f}s")

    return {
        'dataset': dataset,
        'standardized': standardized,
        'pca': pca,
        'correlation': corr,
        'clustering': clustering,
        'summary': summary,
    }


def run_manifest(manifest_path: str, verbose: bool = True) -> Dict[str, Any]:
    """Resolve a manifest.yaml into run() arguments."""
    manifest = load_manifest(manifest_path)
    return run(
        dataset_path=get_dataset_path(manifest),
        output_dir=get_output_dir(manifest),
        columns=manifest.get('columns'),
        group_column=manifest.get('group_column'),
        method=manifest['method'],
        correlation=manifest['correlation'],
        cluster_linkage=manifest['cluster_linkage'],
        output_format=manifest['output_format'],
        verbose=verbose,
    )


def _write_all(standardized, pca, corr, clustering, columns, output_dir, fmt, label_column, verbose):
    params = standardized.params()
    write_output(
        pl.DataFrame({'variable': params['columns'], 'mean': params['mean'], 'std': params['std']}),
        output_dir, 'standardization', fmt=fmt, verbose=verbose,
    )
    write_output(pca.loadings_frame(), output_dir, 'loadings', fmt=fmt, verbose=verbose)
    write_output(pca.scores_frame(label_column=label_column), output_dir, 'scores', fmt=fmt, verbose=verbose)
    write_output(pca.variance_frame(), output_dir, 'variance', fmt=fmt, verbose=verbose)
    write_output(correlation_frame(corr, columns), output_dir, 'correlation', fmt=fmt, verbose=verbose)
    write_output(
        correlation_frame(clustering['reordered'], clustering['ordered_columns']),
        output_dir, 'correlation_order', fmt=fmt, verbose=verbose,
    )


def _print_summary(pca, cluster_order):
    print(f"\nPCA ({pca.method}) over {pca.n_rows} rows x {len(pca.columns)} columns")
    for label, lam in zip(pca.axis_labels(), pca.eigenvalues):
        print(f"  {label:<16} eigenvalue={lam:.4f}")
    print(f"  effective_dim={pca.effective_dim:.3f}")

    print("\nPC1 loadings:")
    for name, value in zip(pca.columns, pca.components[0]):
        print(f"  {name:<24} {value:+.4f}")

    print(f"\nClustered variable order: {', '.join(cluster_order)}")

    for note in pca.warnings:
        print(f"  WARNING: {note}")


def main():
    """CLI entry point. Resolves arguments (or a manifest) and calls run()."""
    parser = argparse.ArgumentParser(
        description="Biplot: z-score standardization + principal components",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Usage:
  python -m biplot penguins.csv
  python -m biplot penguins.csv --columns bill_length_mm body_mass_g --method svd
  python -m biplot --manifest domains/penguins/manifest.yaml
"""
    )
    parser.add_argument('dataset', nargs='?', help='CSV / TSV / Parquet dataset')
    parser.add_argument('--manifest', help='manifest.yaml (overrides all other options)')
    parser.add_argument('--columns', nargs='+', help='Measurement columns')
    parser.add_argument('--group-column', default=None, help='Categorical column for score labels')
    parser.add_argument('--method', choices=DECOMPOSITION_METHODS, default='eigh')
    parser.add_argument('--correlation', choices=CORRELATION_METHODS, default='pearson')
    parser.add_argument('--linkage', choices=LINKAGE_METHODS, default='average')
    parser.add_argument('--format', choices=OUTPUT_FORMATS, default='parquet')
    parser.add_argument('-o', '--output-dir', default=None, help='Output directory (default: <dataset dir>/output)')
    parser.add_argument('-q', '--quiet', action='store_true', help='Suppress output')
    parser.add_argument('--debug', action='store_true', help='Debug logging from compute engines')

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )

    if args.manifest:
        run_manifest(args.manifest, verbose=not args.quiet)
        return

    if not args.dataset:
        parser.error("dataset is required unless --manifest is given")

    defaults = merge_defaults()
    output_dir = args.output_dir or str(Path(args.dataset).parent / defaults['paths']['output_dir'])

    run(
        dataset_path=args.dataset,
        output_dir=output_dir,
        columns=args.columns,
        group_column=args.group_column,
        method=args.method,
        correlation=args.correlation,
        cluster_linkage=args.linkage,
        output_format=args.format,
        verbose=not args.quiet,
    )


if __name__ == '__main__':
    main()

"""
Penguins → Biplot Tables Demo

BIPLOT: standardizes the four measurements, decomposes, writes tables
PLOTTING (not here): reads pca_scores / pca_loadings and draws the biplot

Usage:
    python examples/penguins_biplot.py path/to/penguins.csv
"""

import sys
import tempfile
from pathlib import Path

import polars as pl


def main():
    from biplot.run import run

    if len(sys.argv) < 2:
        print("usage: python examples/penguins_biplot.py penguins.csv")
        sys.exit(1)

    print("=" * 70)
    print("PENGUINS → BIPLOT")
    print("=" * 70)

    output_dir = Path(tempfile.mkdtemp(prefix='biplot_'))

    result = run(
        sys.argv[1],
        output_dir=str(output_dir),
        group_column='species',
        verbose=False,
    )
    pca = result['pca']

    print(f"\n[BIPLOT] {pca.n_rows} complete rows ({result['dataset'].n_dropped} dropped)")
    print(f"[BIPLOT] Axes: {pca.axis_labels(n_components=2)}")

    print("\nLoadings (variable plot):")
    print(pca.loadings_frame(n_components=2))

    print("\nScores by species (biplot overlay):")
    scores = pl.read_parquet(str(output_dir / 'pca_scores.parquet'))
    print(
        scores.group_by('species')
        .agg(pl.col('PC1').mean(), pl.col('PC2').mean(), pl.len().alias('n'))
        .sort('species')
    )

    print(f"\nClustered heatmap order: {result['clustering']['ordered_columns']}")
    print(f"\nTables written to {output_dir}")


if __name__ == '__main__':
    main()

"""
Biplot I/O — dataset reads, result writes, manifest parsing.
"""

from biplot.io.reader import Dataset, load_dataset, dataset_from_frame, read_table
from biplot.io.writer import write_output, write_summary
from biplot.io.manifest import load_manifest, merge_defaults

__all__ = [
    'Dataset',
    'load_dataset',
    'dataset_from_frame',
    'read_table',
    'write_output',
    'write_summary',
    'load_manifest',
    'merge_defaults',
]

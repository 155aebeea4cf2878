"""
Manifest — parse manifest.yaml into pipeline config.
"""

import copy
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from biplot.config import (
    CORRELATION_METHODS,
    DECOMPOSITION_METHODS,
    DEFAULTS,
    LINKAGE_METHODS,
    OUTPUT_FORMATS,
)


def load_manifest(data_path: str) -> Dict[str, Any]:
    """
    Load manifest.yaml and merge it over DEFAULTS.

    Tries:
        1. data_path itself (if it's a .yaml file)
        2. data_path/manifest.yaml
    """
    p = Path(data_path)

    if p.is_file() and p.suffix in ('.yaml', '.yml'):
        manifest_path = p
    else:
        manifest_path = p / 'manifest.yaml'

    if not manifest_path.exists():
        raise FileNotFoundError(f"No manifest.yaml in {data_path}")

    with open(manifest_path) as f:
        raw = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise ValueError(f"{manifest_path}: top level must be a mapping")

    manifest = merge_defaults(raw)
    validate_config(manifest)

    # Stash the manifest path for resolving relative paths
    manifest['_manifest_path'] = str(manifest_path)
    manifest['_data_dir'] = str(manifest_path.parent)

    return manifest


def merge_defaults(overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """DEFAULTS with overrides applied (paths merged one level deep)."""
    merged = copy.deepcopy(DEFAULTS)
    for key, value in (overrides or {}).items():
        if key == 'paths' and isinstance(value, dict):
            merged['paths'].update(value)
        else:
            merged[key] = value
    return merged


def validate_config(config: Dict[str, Any]) -> None:
    """Raise ValueError for unknown method names or malformed columns."""
    checks = [
        ('method', DECOMPOSITION_METHODS),
        ('correlation', CORRELATION_METHODS),
        ('cluster_linkage', LINKAGE_METHODS),
        ('output_format', OUTPUT_FORMATS),
    ]
    for key, allowed in checks:
        if config.get(key) not in allowed:
            raise ValueError(f"{key}={config.get(key)!r} not in {allowed}")

    columns = config.get('columns')
    if columns is not None:
        if not isinstance(columns, list) or not all(isinstance(c, str) for c in columns):
            raise ValueError("columns must be a list of column names")
        if len(set(columns)) != len(columns):
            raise ValueError(f"columns contains duplicates: {columns}")


def get_dataset_path(manifest: Dict[str, Any]) -> str:
    """Get absolute path to the dataset from manifest."""
    rel = manifest.get('paths', {}).get('dataset', DEFAULTS['paths']['dataset'])
    data_dir = Path(manifest.get('_data_dir', '.'))
    return str(data_dir / rel)


def get_output_dir(manifest: Dict[str, Any]) -> str:
    """Get absolute path to output directory from manifest."""
    rel = manifest.get('paths', {}).get('output_dir', DEFAULTS['paths']['output_dir'])
    data_dir = Path(manifest.get('_data_dir', '.'))
    return str(data_dir / rel)

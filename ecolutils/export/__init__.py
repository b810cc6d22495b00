"""Export utilities for result tables and run manifests."""

from .writers import write_result_table, write_split_window_result
from .manifest import compute_file_hash, create_manifest, save_manifest

__all__ = [
    "write_result_table",
    "write_split_window_result",
    "compute_file_hash",
    "create_manifest",
    "save_manifest",
]

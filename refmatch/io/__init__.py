"""I/O utilities for RefMatch.

Provides logging, marker-list loading and result export.
"""

from .logging import get_logger, get_timestamped_log_path, log_yaml
from .markers import MarkerDocument, load_marker_document, resolve_marker_lists
from .results import ensure_output_dir, results_to_frame, write_dataframe

__all__ = [
    # Logging
    "get_logger",
    "get_timestamped_log_path",
    "log_yaml",
    # Markers
    "MarkerDocument",
    "load_marker_document",
    "resolve_marker_lists",
    # Results
    "ensure_output_dir",
    "results_to_frame",
    "write_dataframe",
]

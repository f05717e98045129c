"""Tabular export of classification results."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Sequence, Union

import numpy as np
import pandas as pd

PathLike = Union[str, Path]

logger = logging.getLogger(__name__)


def ensure_output_dir(path: PathLike) -> Path:
    """Create the directory at path if it does not exist and return it."""
    directory = Path(path)
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def results_to_frame(
    cell_names: Sequence[str],
    reference_names: Sequence[str],
    reference_labels: Sequence[Sequence[str]],
    reference_deltas: Sequence[np.ndarray],
    best_reference: np.ndarray,
    reference_scores: np.ndarray,
    delta: np.ndarray,
) -> pd.DataFrame:
    """Build the per-cell result table.

    Parameters
    ----------
    cell_names : Sequence[str]
        Test cell identifiers (used as index).
    reference_names : Sequence[str]
        Name of each reference.
    reference_labels : Sequence[Sequence[str]]
        Per reference, the label assigned to each cell.
    reference_deltas : Sequence[np.ndarray]
        Per reference, the single-reference delta of each cell.
    best_reference : np.ndarray
        Index of the winning reference per cell.
    reference_scores : np.ndarray
        Cells x references matrix of integrated scores.
    delta : np.ndarray
        Integrated best minus runner-up score per cell.

    Returns
    -------
    pd.DataFrame
        One row per cell with per-reference labels/scores and the final call.
    """
    columns = {}
    for r, name in enumerate(reference_names):
        columns[f"{name}_label"] = np.asarray(reference_labels[r], dtype=object)
        columns[f"{name}_delta"] = reference_deltas[r]
        columns[f"{name}_score"] = reference_scores[:, r]

    best_reference = np.asarray(best_reference, dtype=np.int64)
    names = np.asarray(reference_names, dtype=object)
    labels = np.empty(len(cell_names), dtype=object)
    for r in range(len(reference_names)):
        mask = best_reference == r
        labels[mask] = np.asarray(reference_labels[r], dtype=object)[mask]

    columns["best_reference"] = names[best_reference]
    columns["label"] = labels
    columns["delta"] = delta

    df = pd.DataFrame(columns, index=pd.Index(list(cell_names), name="cell_id"))
    return df


def write_dataframe(df: pd.DataFrame, path: PathLike, index: bool = True) -> Path:
    """Write a DataFrame to CSV, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=index)
    logger.info("Wrote %s (%d rows)", path, len(df))
    return path

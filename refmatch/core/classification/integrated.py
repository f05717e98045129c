"""Integrate classifications from multiple references.

Each reference is first used on its own to assign a label to every test
cell. For a given cell, the markers of its assigned label in every
reference are pooled into one set of genes, and the cell is scored against
the profiles of each assigned label over that common set. The reference
whose label scores highest wins.

Pooling markers makes scores comparable across references without ever
comparing expression between references, which side-steps batch effects.
Genes missing from a reference are ignored when scoring that reference.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from ..matrix import MatrixLike, as_matrix, iter_columns, matrix_shape
from ..scoring.aggregate import score_profiles
from ..scoring.ranks import RankRemapper, RankedVector
from ...utils.parallel import parallelize
from .config import ClassifyIntegratedOptions
from .training import TrainedIntegrated


@dataclass
class ClassifyIntegratedBuffers:
    """Caller-allocated outputs of ``classify_integrated_into``.

    Attributes:
        best: Per cell, the index of the reference with the top-scoring label
        scores: Per reference, an array of per-cell scores, or None to skip
        delta: Per cell, best minus second-best score, or None to skip
    """

    best: Optional[np.ndarray]
    scores: List[Optional[np.ndarray]]
    delta: Optional[np.ndarray] = None


@dataclass
class ClassifyIntegratedResults:
    """Outputs of ``classify_integrated``.

    Attributes:
        best: Per cell, the index of the reference with the top-scoring label
        scores: Cells x references matrix of scores
        delta: Per cell, best minus second-best score (NaN for one reference)
    """

    best: np.ndarray
    scores: np.ndarray
    delta: np.ndarray

    @classmethod
    def allocate(cls, num_cells: int, num_references: int) -> "ClassifyIntegratedResults":
        return cls(
            best=np.zeros(num_cells, dtype=np.int64),
            scores=np.full((num_cells, num_references), np.nan, dtype=np.float64),
            delta=np.full(num_cells, np.nan, dtype=np.float64),
        )

    def buffers(self) -> ClassifyIntegratedBuffers:
        return ClassifyIntegratedBuffers(
            best=self.best,
            scores=[self.scores[:, r] for r in range(self.scores.shape[1])],
            delta=self.delta,
        )


def _check_buffer(buffer: Optional[np.ndarray], num_cells: int, name: str) -> None:
    if buffer is not None and buffer.shape != (num_cells,):
        raise ValueError(f"Buffer '{name}' has shape {buffer.shape}, expected ({num_cells},)")


def _check_assigned(
    assigned: Sequence[Sequence[int]],
    trained: TrainedIntegrated,
    num_cells: int,
) -> List[np.ndarray]:
    nref = trained.num_references
    if len(assigned) != nref:
        raise ValueError(f"Expected assigned labels for {nref} references, got {len(assigned)}")

    output = []
    for r, labels in enumerate(assigned):
        arr = np.asarray(labels)
        if arr.shape != (num_cells,):
            raise ValueError(
                f"Assigned labels for reference {r} have shape {arr.shape}, expected ({num_cells},)"
            )
        if arr.size and not np.issubdtype(arr.dtype, np.integer):
            raise ValueError(f"Assigned labels for reference {r} must be integer indices")
        arr = arr.astype(np.int64)
        nlabels = trained.num_labels(r)
        if num_cells and (arr.min() < 0 or arr.max() >= nlabels):
            raise ValueError(f"Assigned labels for reference {r} must lie in [0, {nlabels})")
        output.append(arr)
    return output


def classify_integrated_into(
    test: MatrixLike,
    assigned: Sequence[Sequence[int]],
    trained: TrainedIntegrated,
    buffers: ClassifyIntegratedBuffers,
    options: Optional[ClassifyIntegratedOptions] = None,
    logger: Optional[logging.Logger] = None,
) -> None:
    """Choose the best reference for each test cell, writing into ``buffers``.

    Args:
        test: Test matrix (genes x cells); rows must match the test rows
            used to build ``trained``
        assigned: Per reference, the assigned label of every test cell
        trained: Output of ``train_integrated``
        buffers: Output arrays, each of length equal to the number of cells
        options: Quantile and number of threads
        logger: Optional logger instance

    Raises:
        ValueError: If any input or buffer does not match the number of
            cells or references
    """
    _logger = logger or logging.getLogger(__name__)
    options = options or ClassifyIntegratedOptions()
    test = as_matrix(test)
    nrow, ncells = matrix_shape(test)
    nref = trained.num_references

    labels = _check_assigned(assigned, trained, ncells)
    if len(buffers.scores) != nref:
        raise ValueError(f"Expected {nref} score buffers, got {len(buffers.scores)}")
    _check_buffer(buffers.best, ncells, "best")
    _check_buffer(buffers.delta, ncells, "delta")
    for r, buffer in enumerate(buffers.scores):
        _check_buffer(buffer, ncells, f"scores[{r}]")
    if trained.universe.size and trained.universe[-1] >= nrow:
        raise ValueError(
            f"Test matrix has {nrow} rows but the trained universe needs row {trained.universe[-1]}"
        )

    universe = trained.universe
    quantile = options.quantile

    def worker(_: int, start: int, length: int) -> None:
        # Per-worker scratch, reused across this worker's cells.
        intersect_mapping = RankRemapper(universe.shape[0])
        direct_mapping = RankRemapper(universe.shape[0])

        for i, values in iter_columns(test, universe, start, length):
            miniverse_set = set()
            for r in range(nref):
                miniverse_set.update(trained.markers[r][labels[r][i]])
            miniverse = np.fromiter(sorted(miniverse_set), dtype=np.int64, count=len(miniverse_set))
            test_ranked_full = RankedVector.from_values(values[miniverse], miniverse)

            best_score = -np.inf
            next_best = -np.inf
            best_ref = 0
            direct_mapping_filled = False

            for r in range(nref):
                if trained.check_availability[r]:
                    mapping = intersect_mapping.build(miniverse, trained.available[r])
                else:
                    if not direct_mapping_filled:
                        direct_mapping.build(miniverse)
                        direct_mapping_filled = True
                    mapping = direct_mapping

                score = score_profiles(
                    test_ranked_full,
                    mapping,
                    trained.ranked[r][labels[r][i]],
                    quantile,
                )
                if buffers.scores[r] is not None:
                    buffers.scores[r][i] = score
                if score > best_score:
                    next_best = best_score
                    best_score = score
                    best_ref = r
                elif score > next_best:
                    next_best = score

            if buffers.best is not None:
                buffers.best[i] = best_ref
            if buffers.delta is not None:
                buffers.delta[i] = best_score - next_best if nref > 1 else np.nan

    start_time = time.time()
    parallelize(worker, ncells, options.num_threads, logger=_logger)
    _logger.info(
        "Integrated %d cells across %d references in %.2f sec (%d threads)",
        ncells,
        nref,
        time.time() - start_time,
        options.num_threads,
    )


def classify_integrated(
    test: MatrixLike,
    assigned: Sequence[Sequence[int]],
    trained: TrainedIntegrated,
    options: Optional[ClassifyIntegratedOptions] = None,
    logger: Optional[logging.Logger] = None,
) -> ClassifyIntegratedResults:
    """Allocating overload of ``classify_integrated_into``.

    Returns:
        ClassifyIntegratedResults with the best reference, per-reference
        scores and deltas for every cell
    """
    test = as_matrix(test)
    _, ncells = matrix_shape(test)
    results = ClassifyIntegratedResults.allocate(ncells, trained.num_references)
    classify_integrated_into(test, assigned, trained, results.buffers(), options, logger)
    return results

"""Classification of test cells against a single reference.

Every label is scored by the quantile of the Spearman correlations between
the test cell and the label's reference profiles over all marker genes.
Optionally, the labels closest to the top score are fine-tuned: they are
rescored over only the markers that distinguish them from each other,
repeatedly, until one label clearly wins.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from ..matrix import MatrixLike, as_matrix, iter_columns, matrix_shape
from ..scoring.aggregate import correlations_to_score, score_profiles
from ..scoring.ranks import RankRemapper, RankedVector, scaled_ranks
from ...utils.parallel import parallelize
from .config import ClassifySingleOptions
from .training import TrainedSingle


@dataclass
class ClassifySingleBuffers:
    """Caller-allocated outputs of ``classify_single_into``.

    Attributes:
        best: Per cell, the assigned label
        scores: Per label, an array of per-cell scores, or None to skip
        delta: Per cell, best minus second-best score, or None to skip
    """

    best: Optional[np.ndarray]
    scores: List[Optional[np.ndarray]]
    delta: Optional[np.ndarray] = None


@dataclass
class ClassifySingleResults:
    """Outputs of ``classify_single``.

    Attributes:
        best: Per cell, the assigned label (after fine-tuning if enabled)
        scores: Cells x labels matrix of scores before fine-tuning
        delta: Per cell, best minus second-best score from the final round
    """

    best: np.ndarray
    scores: np.ndarray
    delta: np.ndarray

    @classmethod
    def allocate(cls, num_cells: int, num_labels: int) -> "ClassifySingleResults":
        return cls(
            best=np.zeros(num_cells, dtype=np.int64),
            scores=np.full((num_cells, num_labels), np.nan, dtype=np.float64),
            delta=np.full(num_cells, np.nan, dtype=np.float64),
        )

    def buffers(self) -> ClassifySingleBuffers:
        return ClassifySingleBuffers(
            best=self.best,
            scores=[self.scores[:, label] for label in range(self.scores.shape[1])],
            delta=self.delta,
        )


def _scaled_reference(trained: TrainedSingle) -> List[np.ndarray]:
    """Scaled ranks of every profile over the full marker subset, per label."""
    size = trained.subset.shape[0]
    output = []
    for profiles in trained.ranked:
        scaled = np.zeros((len(profiles), size), dtype=np.float64)
        for s, profile in enumerate(profiles):
            scaled[s] = scaled_ranks(profile, size)
        output.append(scaled)
    return output


def _top_two(labels: np.ndarray, scores: np.ndarray) -> Tuple[int, float]:
    """Return the first top-scoring label and the gap to the runner-up."""
    top = int(np.argmax(scores))
    if scores.shape[0] < 2:
        return int(labels[top]), np.nan
    runner_up = np.max(np.delete(scores, top))
    return int(labels[top]), float(scores[top] - runner_up)


def _fine_tune(
    test_ranked: RankedVector,
    trained: TrainedSingle,
    scores: np.ndarray,
    options: ClassifySingleOptions,
    mapping: RankRemapper,
) -> Tuple[int, float]:
    """Narrow down the labels within the threshold of the top score."""
    threshold = options.fine_tune_threshold
    last_labels = np.arange(scores.shape[0])
    last_scores = scores
    labels = np.flatnonzero(scores >= scores.max() - threshold)

    while labels.shape[0] > 1:
        genes = set()
        for a in labels:
            for b in labels:
                if a != b:
                    genes.update(trained.markers[a][b])
        if not genes:
            break

        mapping.build(sorted(genes))
        round_scores = np.array([
            score_profiles(test_ranked, mapping, trained.ranked[label], options.quantile)
            for label in labels
        ])
        last_labels, last_scores = labels, round_scores

        keep = round_scores >= round_scores.max() - threshold
        if keep.all():
            break
        labels = labels[keep]

    return _top_two(last_labels, last_scores)


def classify_single_into(
    test: MatrixLike,
    trained: TrainedSingle,
    buffers: ClassifySingleBuffers,
    options: Optional[ClassifySingleOptions] = None,
    logger: Optional[logging.Logger] = None,
) -> None:
    """Assign a reference label to each test cell, writing into ``buffers``.

    Args:
        test: Test matrix (genes x cells)
        trained: Output of ``train_single``
        buffers: Output arrays, each of length equal to the number of cells
        options: Quantile, fine-tuning and thread settings
        logger: Optional logger instance

    Raises:
        ValueError: If any buffer does not match the number of cells or labels
    """
    _logger = logger or logging.getLogger(__name__)
    options = options or ClassifySingleOptions()
    test = as_matrix(test)
    nrow, ncells = matrix_shape(test)
    nlabels = trained.num_labels

    if len(buffers.scores) != nlabels:
        raise ValueError(f"Expected {nlabels} score buffers, got {len(buffers.scores)}")
    for name, buffer in [("best", buffers.best), ("delta", buffers.delta)] + [
        (f"scores[{label}]", buffer) for label, buffer in enumerate(buffers.scores)
    ]:
        if buffer is not None and buffer.shape != (ncells,):
            raise ValueError(f"Buffer '{name}' has shape {buffer.shape}, expected ({ncells},)")
    if trained.test_subset.size and trained.test_subset.max() >= nrow:
        raise ValueError(
            f"Test matrix has {nrow} rows but the trained reference needs row "
            f"{trained.test_subset.max()}"
        )

    size = trained.test_subset.shape[0]
    reference_scaled = _scaled_reference(trained)

    def worker(_: int, start: int, length: int) -> None:
        mapping = RankRemapper(size)
        all_labels = np.arange(nlabels)

        for i, values in iter_columns(test, trained.test_subset, start, length):
            test_ranked = RankedVector.from_values(values)
            test_scaled = scaled_ranks(test_ranked, size)

            scores = np.empty(nlabels, dtype=np.float64)
            for label, scaled in enumerate(reference_scaled):
                diff = scaled - test_scaled
                correlations = 1.0 - np.einsum("ij,ij->i", diff, diff) / 2.0
                scores[label] = correlations_to_score(correlations, options.quantile)
                if buffers.scores[label] is not None:
                    buffers.scores[label][i] = scores[label]

            if options.fine_tune and nlabels > 1:
                best, delta = _fine_tune(test_ranked, trained, scores, options, mapping)
            else:
                best, delta = _top_two(all_labels, scores)

            if buffers.best is not None:
                buffers.best[i] = best
            if buffers.delta is not None:
                buffers.delta[i] = delta

    start_time = time.time()
    parallelize(worker, ncells, options.num_threads, logger=_logger)
    _logger.info(
        "Classified %d cells against %d labels in %.2f sec (%d threads)",
        ncells,
        nlabels,
        time.time() - start_time,
        options.num_threads,
    )


def classify_single(
    test: MatrixLike,
    trained: TrainedSingle,
    options: Optional[ClassifySingleOptions] = None,
    logger: Optional[logging.Logger] = None,
) -> ClassifySingleResults:
    """Allocating overload of ``classify_single_into``."""
    test = as_matrix(test)
    _, ncells = matrix_shape(test)
    results = ClassifySingleResults.allocate(ncells, trained.num_labels)
    classify_single_into(test, trained, results.buffers(), options, logger)
    return results

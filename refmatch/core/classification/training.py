"""Assembly of trained references from reference matrices and marker lists.

A trained reference stores, for every label, the ranked expression profile
of each reference sample over the marker genes only. Marker lists must
already exist; this module only subsets, reindexes and ranks.

Two trained forms are built here:
- ``TrainedSingle``: one reference, used by ``classify_single``
- ``TrainedIntegrated``: several references sharing a universe of marker
  genes, used by ``classify_integrated``
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, Hashable, List, Optional, Sequence

import numpy as np

from ..features.intersection import intersect_genes, unzip_intersection
from ..features.markers import Markers, subset_markers, subset_markers_direct
from ..matrix import MatrixLike, as_matrix, extract_columns, matrix_shape
from ..scoring.ranks import RankedVector


@dataclass
class TrainedSingle:
    """A single reference prepared for classification.

    Attributes:
        subset: Reference rows of the retained marker genes
        test_subset: Test rows of the same genes (equal to ``subset`` when
            both datasets share a feature space)
        markers: Marker lists reindexed onto positions in ``subset``
        ranked: Per-label list of ranked profiles over ``subset`` positions
    """

    subset: np.ndarray
    test_subset: np.ndarray
    markers: Markers
    ranked: List[List[RankedVector]]

    @property
    def num_labels(self) -> int:
        return len(self.ranked)

    @property
    def num_profiles(self) -> int:
        return sum(len(profiles) for profiles in self.ranked)


@dataclass
class IntegratedInput:
    """One reference prepared for integration.

    Attributes:
        ref: Reference matrix (genes x cells)
        labels: Label index for each reference column
        markers: Per-label union of markers against all other labels, as
            test rows
        test_to_ref: Test row -> reference row, or None when the reference
            shares the test feature space
    """

    ref: MatrixLike
    labels: np.ndarray
    markers: List[List[int]]
    test_to_ref: Optional[Dict[int, int]] = None

    @property
    def num_labels(self) -> int:
        return len(self.markers)


@dataclass
class TrainedIntegrated:
    """Several references prepared for integrated classification.

    Attributes:
        universe: Sorted test rows of every marker gene in any reference
        available: Per reference, the universe positions present in it
        check_availability: Per reference, whether some universe gene is
            missing (so remapping must consult ``available``)
        markers: ``markers[r][label]`` lists universe positions
        ranked: ``ranked[r][label]`` lists ranked profiles over universe
            positions
    """

    universe: np.ndarray
    available: List[FrozenSet[int]]
    check_availability: List[bool]
    markers: List[List[List[int]]]
    ranked: List[List[List[RankedVector]]]

    @property
    def num_references(self) -> int:
        return len(self.ranked)

    def num_labels(self, reference: int) -> int:
        return len(self.ranked[reference])


def _check_labels(labels: Sequence[int], num_cols: int, num_labels: int) -> np.ndarray:
    arr = np.asarray(labels)
    if arr.ndim != 1 or arr.shape[0] != num_cols:
        raise ValueError(
            f"Expected {num_cols} labels (one per reference column), got {arr.shape}"
        )
    if arr.size and not np.issubdtype(arr.dtype, np.integer):
        raise ValueError("Reference labels must be integer indices")
    arr = arr.astype(np.int64)
    if arr.size and (arr.min() < 0 or arr.max() >= num_labels):
        raise ValueError(f"Reference labels must lie in [0, {num_labels})")
    counts = np.bincount(arr, minlength=num_labels)
    empty = np.flatnonzero(counts == 0)
    if empty.size:
        raise ValueError(f"Labels without reference samples: {empty.tolist()}")
    return arr


def _check_markers(markers: Sequence[Sequence[Sequence[int]]]) -> int:
    num_labels = len(markers)
    for i, row in enumerate(markers):
        if len(row) != num_labels:
            raise ValueError(
                f"Marker lists for label {i} have {len(row)} entries, expected {num_labels}"
            )
    return num_labels


def _rank_profiles(
    ref: MatrixLike,
    rows: Sequence[int],
    positions: Sequence[int],
    labels: np.ndarray,
    num_labels: int,
) -> List[List[RankedVector]]:
    """Rank every reference column over ``rows``, grouped by label."""
    _, ncol = matrix_shape(ref)
    block = extract_columns(ref, rows, 0, ncol)
    ranked: List[List[RankedVector]] = [[] for _ in range(num_labels)]
    for col in range(ncol):
        ranked[labels[col]].append(RankedVector.from_values(block[:, col], positions))
    return ranked


def train_single(
    ref: MatrixLike,
    labels: Sequence[int],
    markers: Sequence[Sequence[Sequence[int]]],
    top: Optional[int] = None,
    test_ids: Optional[Sequence[Hashable]] = None,
    ref_ids: Optional[Sequence[Hashable]] = None,
    logger: Optional[logging.Logger] = None,
) -> TrainedSingle:
    """Prepare a single reference for classification.

    Without identifiers, test and reference rows are assumed to describe the
    same genes. With ``test_ids`` and ``ref_ids``, genes are matched by
    identifier and only markers present in both datasets are retained.

    Args:
        ref: Reference matrix (genes x cells)
        labels: Label index for each reference column
        markers: Nested marker lists in reference row space
        top: Markers kept per label pair (None keeps all)
        test_ids: Gene identifiers of the test rows
        ref_ids: Gene identifiers of the reference rows
        logger: Optional logger instance

    Returns:
        TrainedSingle ready for ``classify_single``
    """
    _logger = logger or logging.getLogger(__name__)
    ref = as_matrix(ref)
    nrow, ncol = matrix_shape(ref)
    num_labels = _check_markers(markers)
    label_arr = _check_labels(labels, ncol, num_labels)

    if test_ids is None and ref_ids is None:
        subset_list, compact = subset_markers_direct(markers, top)
        if subset_list and (subset_list[0] < 0 or subset_list[-1] >= nrow):
            raise ValueError(f"Marker rows must lie in [0, {nrow})")
        subset = np.asarray(subset_list, dtype=np.int64)
        test_subset = subset.copy()
    elif test_ids is not None and ref_ids is not None:
        if len(ref_ids) != nrow:
            raise ValueError(f"Expected {nrow} reference gene ids, got {len(ref_ids)}")
        intersection = intersect_genes(test_ids, ref_ids)
        compacted, compact = subset_markers(intersection, markers, top)
        test_subset, subset = unzip_intersection(compacted)
        _logger.info(
            "Intersected %d test and %d reference genes: %d shared",
            len(test_ids),
            nrow,
            len(intersection),
        )
    else:
        raise ValueError("test_ids and ref_ids must be supplied together")

    ranked = _rank_profiles(
        ref, subset, np.arange(subset.shape[0]), label_arr, num_labels
    )
    _logger.info(
        "Trained reference with %d labels, %d samples and %d marker genes",
        num_labels,
        ncol,
        subset.shape[0],
    )
    return TrainedSingle(
        subset=subset,
        test_subset=test_subset,
        markers=compact,
        ranked=ranked,
    )


def _label_markers_as_test_rows(trained: TrainedSingle) -> List[List[int]]:
    """Union each label's markers against all others, as test rows."""
    output: List[List[int]] = []
    for i, row in enumerate(trained.markers):
        collected = set()
        for j, current in enumerate(row):
            if i != j:
                collected.update(current)
        output.append(sorted(int(trained.test_subset[k]) for k in collected))
    return output


def prepare_integrated_input(
    ref: MatrixLike,
    labels: Sequence[int],
    trained: TrainedSingle,
) -> IntegratedInput:
    """Prepare a reference that shares the test feature space for integration."""
    ref = as_matrix(ref)
    _, ncol = matrix_shape(ref)
    label_arr = _check_labels(labels, ncol, trained.num_labels)
    return IntegratedInput(
        ref=ref,
        labels=label_arr,
        markers=_label_markers_as_test_rows(trained),
    )


def prepare_integrated_input_intersect(
    test_ids: Sequence[Hashable],
    ref: MatrixLike,
    ref_ids: Sequence[Hashable],
    labels: Sequence[int],
    trained: TrainedSingle,
) -> IntegratedInput:
    """Prepare a reference with its own feature space for integration.

    ``trained`` must come from ``train_single`` with the same identifiers.
    The full intersection is kept so that markers from other references can
    be looked up in this one.
    """
    ref = as_matrix(ref)
    nrow, ncol = matrix_shape(ref)
    if len(ref_ids) != nrow:
        raise ValueError(f"Expected {nrow} reference gene ids, got {len(ref_ids)}")
    label_arr = _check_labels(labels, ncol, trained.num_labels)
    return IntegratedInput(
        ref=ref,
        labels=label_arr,
        markers=_label_markers_as_test_rows(trained),
        test_to_ref=dict(intersect_genes(test_ids, ref_ids)),
    )


def train_integrated(
    inputs: Sequence[IntegratedInput],
    logger: Optional[logging.Logger] = None,
) -> TrainedIntegrated:
    """Combine prepared references into a ``TrainedIntegrated``.

    The universe is the union of all references' markers. Each reference's
    profiles cover the universe genes it actually contains.

    Args:
        inputs: Output of ``prepare_integrated_input*`` per reference
        logger: Optional logger instance

    Returns:
        TrainedIntegrated ready for ``classify_integrated``
    """
    _logger = logger or logging.getLogger(__name__)
    if not inputs:
        raise ValueError("At least one reference is required for integration")

    universe_rows = set()
    for current in inputs:
        for label_markers in current.markers:
            universe_rows.update(label_markers)
    universe = np.asarray(sorted(universe_rows), dtype=np.int64)
    position = {int(row): k for k, row in enumerate(universe)}

    available: List[FrozenSet[int]] = []
    check_availability: List[bool] = []
    markers: List[List[List[int]]] = []
    ranked: List[List[List[RankedVector]]] = []

    for r, current in enumerate(inputs):
        nrow, _ = matrix_shape(current.ref)
        markers.append(
            [sorted(position[row] for row in label_markers) for label_markers in current.markers]
        )

        if current.test_to_ref is None:
            positions = list(range(universe.shape[0]))
            ref_rows = [int(row) for row in universe]
            if ref_rows and ref_rows[-1] >= nrow:
                raise ValueError(
                    f"Reference {r} has {nrow} rows but the universe needs row {ref_rows[-1]}"
                )
        else:
            positions = [k for k, row in enumerate(universe) if int(row) in current.test_to_ref]
            ref_rows = [current.test_to_ref[int(universe[k])] for k in positions]

        available.append(frozenset(positions))
        check_availability.append(len(positions) < universe.shape[0])
        ranked.append(
            _rank_profiles(current.ref, ref_rows, positions, current.labels, current.num_labels)
        )
        _logger.debug(
            "Reference %d: %d of %d universe genes available",
            r,
            len(positions),
            universe.shape[0],
        )

    _logger.info(
        "Integrated %d references over a universe of %d genes",
        len(inputs),
        universe.shape[0],
    )
    return TrainedIntegrated(
        universe=universe,
        available=available,
        check_availability=check_availability,
        markers=markers,
        ranked=ranked,
    )

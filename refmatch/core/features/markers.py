"""Marker list subsetting and reindexing.

Marker lists are nested as ``markers[a][b]``: the genes up-regulated in
label ``a`` compared to label ``b``, most informative first. Diagonal
entries ``markers[a][a]`` are never consulted.

Both functions here reduce the lists to the top markers per label pair and
then reindex every surviving gene onto a compact 0-based space, so that
downstream scoring only ever touches marker rows.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Set, Tuple

from .intersection import Intersection

Markers = List[List[List[int]]]

logger = logging.getLogger(__name__)


def _check_top(top: Optional[int]) -> None:
    if top is not None and top < 0:
        raise ValueError(f"'top' must be non-negative or None, got {top}")


def _reindex(markers: Markers, mapping: Dict[int, int]) -> Markers:
    """Replace every off-diagonal marker index with its compact index."""
    output: Markers = []
    for i, row in enumerate(markers):
        new_row: List[List[int]] = []
        for j, current in enumerate(row):
            if i == j:
                new_row.append(list(current))
            else:
                new_row.append([mapping[g] for g in current])
        output.append(new_row)
    return output


def subset_markers(
    intersection: Intersection,
    markers: Sequence[Sequence[Sequence[int]]],
    top: Optional[int],
) -> Tuple[Intersection, Markers]:
    """Subset marker lists to the top markers that are present in the intersection.

    For every ordered label pair, the marker list is scanned in its existing
    order and a gene is kept only if its reference row is in the
    intersection; scanning stops once ``top`` genes have been kept. The
    intersection is then compacted to the kept genes and every marker list
    is rewritten in terms of positions in the compacted intersection.

    Args:
        intersection: (test_row, ref_row) pairs from ``intersect_genes``
        markers: Nested marker lists in reference row space
        top: Maximum number of markers retained per label pair, None for all

    Returns:
        Tuple of (compacted intersection, reindexed marker lists)
    """
    _check_top(top)
    available: Set[int] = {ref_row for _, ref_row in intersection}

    all_markers: Set[int] = set()
    filtered: Markers = []
    for i, row in enumerate(markers):
        new_row: List[List[int]] = []
        for j, current in enumerate(row):
            if i == j:
                new_row.append(list(current))
                continue

            replacement: List[int] = []
            for gene in current:
                if top is not None and len(replacement) >= top:
                    break
                if gene in available:
                    replacement.append(gene)
            all_markers.update(replacement)
            new_row.append(replacement)
        filtered.append(new_row)

    compacted: Intersection = []
    mapping: Dict[int, int] = {}
    for test_row, ref_row in intersection:
        if ref_row in all_markers:
            mapping[ref_row] = len(compacted)
            compacted.append((test_row, ref_row))

    logger.debug(
        "Retained %d of %d intersected genes as markers",
        len(compacted),
        len(intersection),
    )
    return compacted, _reindex(filtered, mapping)


def subset_markers_direct(
    markers: Sequence[Sequence[Sequence[int]]],
    top: Optional[int],
) -> Tuple[List[int], Markers]:
    """Subset marker lists when test and reference share a feature space.

    Each list is truncated to its first ``top`` entries without any
    availability filter. The union of all retained genes, sorted, becomes
    the compact space.

    Args:
        markers: Nested marker lists in row space
        top: Maximum number of markers retained per label pair, None for all

    Returns:
        Tuple of (sorted rows of the retained genes, reindexed marker lists)
    """
    _check_top(top)
    available: Set[int] = set()
    truncated: Markers = []
    for i, row in enumerate(markers):
        new_row: List[List[int]] = []
        for j, current in enumerate(row):
            if i == j:
                new_row.append(list(current))
                continue
            kept = list(current) if top is None else list(current[:top])
            available.update(kept)
            new_row.append(kept)
        truncated.append(new_row)

    subset = sorted(available)
    mapping = {gene: k for k, gene in enumerate(subset)}
    return subset, _reindex(truncated, mapping)

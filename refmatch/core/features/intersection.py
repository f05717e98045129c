"""Intersection of gene identifiers between test and reference datasets.

Each element of an intersection pairs the row index of a gene in the test
dataset with the row index of the same gene in the reference dataset.
"""

from __future__ import annotations

from typing import Dict, Hashable, List, Sequence, Tuple

import numpy as np

Intersection = List[Tuple[int, int]]


def intersect_genes(
    test_ids: Sequence[Hashable],
    ref_ids: Sequence[Hashable],
) -> Intersection:
    """Compute the intersection of genes in the test and reference datasets.

    If duplicated identifiers are present in either input, only the first
    occurrence is used.

    Args:
        test_ids: Gene identifier for each row of the test dataset
        ref_ids: Gene identifier for each row of the reference dataset

    Returns:
        List of (test_row, ref_row) pairs, ordered by test row
    """
    ref_found: Dict[Hashable, int] = {}
    for i, current in enumerate(ref_ids):
        ref_found.setdefault(current, i)

    output: Intersection = []
    for i, current in enumerate(test_ids):
        ref_row = ref_found.pop(current, None)
        # Popping means a later duplicate in test_ids is never matched.
        if ref_row is not None:
            output.append((i, ref_row))

    return output


def unzip_intersection(intersection: Intersection) -> Tuple[np.ndarray, np.ndarray]:
    """Split an intersection into arrays of test rows and reference rows."""
    if not intersection:
        empty = np.zeros(0, dtype=np.int64)
        return empty, empty.copy()
    pairs = np.asarray(intersection, dtype=np.int64)
    return pairs[:, 0].copy(), pairs[:, 1].copy()

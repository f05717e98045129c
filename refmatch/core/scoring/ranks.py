"""Ranked vectors, rank remapping and scaled ranks.

A ranked vector pairs expression values with the gene index they came from.
Scoring projects test and reference ranked vectors onto the same small set
of marker genes (``RankRemapper``) and converts each projection into scaled
ranks, so that Spearman correlation becomes a Euclidean distance:

    correlation = 1 - ||a - b||^2 / 2

for two scaled-rank vectors ``a`` and ``b`` of unit norm.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet, Iterable, List, Optional

import numpy as np
from scipy.stats import rankdata

# Sums of squares below this are treated as "no variance".
_MIN_SUM_SQUARES = 1e-8


@dataclass(frozen=True)
class RankedVector:
    """Values paired with their originating gene indices.

    Attributes:
        values: Expression values (or ranks)
        indices: Gene index for each value
    """

    values: np.ndarray
    indices: np.ndarray

    def __len__(self) -> int:
        return int(self.indices.shape[0])

    @classmethod
    def from_values(
        cls,
        values: Iterable[float],
        indices: Optional[Iterable[int]] = None,
    ) -> "RankedVector":
        """Build a ranked vector sorted by value, ties broken by index."""
        vals = np.asarray(values, dtype=np.float64)
        if indices is None:
            idx = np.arange(vals.shape[0], dtype=np.int64)
        else:
            idx = np.asarray(indices, dtype=np.int64)
        if vals.shape != idx.shape:
            raise ValueError(
                f"values and indices differ in length ({vals.shape[0]} vs {idx.shape[0]})"
            )
        order = np.lexsort((idx, vals))
        return cls(values=vals[order], indices=idx[order])


class RankRemapper:
    """Map gene indices of interest onto a compact 0..k-1 index space.

    The remapper is sized once for the largest index it will see and can be
    cleared and rebuilt cheaply, which lets a worker reuse it across cells.
    """

    def __init__(self, capacity: int):
        self._mapping = np.full(int(capacity), -1, dtype=np.int64)
        self._used: List[int] = []

    def __len__(self) -> int:
        return len(self._used)

    @property
    def capacity(self) -> int:
        return int(self._mapping.shape[0])

    def clear(self) -> None:
        if self._used:
            self._mapping[self._used] = -1
        self._used = []

    def add(self, index: int) -> None:
        """Assign the next compact id to ``index`` (no-op if already mapped)."""
        if self._mapping[index] < 0:
            self._mapping[index] = len(self._used)
            self._used.append(int(index))

    def build(
        self,
        indices: Iterable[int],
        available: Optional[AbstractSet[int]] = None,
    ) -> "RankRemapper":
        """Reset the mapping from ``indices``, keeping only available ones.

        Compact ids are assigned in encounter order.
        """
        self.clear()
        for index in indices:
            if available is None or index in available:
                self.add(index)
        return self

    def remap(self, source: RankedVector) -> RankedVector:
        """Drop entries without a compact id and reindex the rest.

        The relative order of ``source`` is preserved; nothing is re-sorted.
        """
        new_indices = self._mapping[source.indices]
        keep = new_indices >= 0
        return RankedVector(values=source.values[keep], indices=new_indices[keep])


def scaled_ranks(ranked: RankedVector, size: Optional[int] = None) -> np.ndarray:
    """Convert a ranked vector into centered, unit-norm ranks.

    Tied values receive their average rank. The output is indexed by the
    (compact) index of each entry, so ``ranked.indices`` must lie in
    ``0..size-1``. Vectors with fewer than two entries or no variance come
    back as all zeros.

    Args:
        ranked: Ranked vector in a compact index space
        size: Length of the output, defaults to ``len(ranked)``

    Returns:
        Array of scaled ranks
    """
    n = len(ranked)
    output = np.zeros(n if size is None else int(size), dtype=np.float64)
    if n <= 1:
        return output

    centered = rankdata(ranked.values) - (n + 1) / 2.0
    sum_squares = float(np.dot(centered, centered))
    if sum_squares < _MIN_SUM_SQUARES:
        return output

    output[ranked.indices] = centered / np.sqrt(sum_squares)
    return output


def distance_to_correlation(left: np.ndarray, right: np.ndarray) -> float:
    """Correlation between two scaled-rank vectors from their distance."""
    diff = left - right
    return 1.0 - float(np.sum(diff * diff)) / 2.0

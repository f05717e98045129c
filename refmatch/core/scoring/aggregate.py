"""Quantile aggregation of per-profile correlations into a label score."""

from __future__ import annotations

from typing import Iterable, Sequence, Union

import numpy as np

from .ranks import RankRemapper, RankedVector, distance_to_correlation, scaled_ranks

ArrayLike = Union[Iterable[float], np.ndarray]


def check_quantile(quantile: float) -> float:
    """Validate that ``quantile`` lies in [0, 1] and return it as float."""
    quantile = float(quantile)
    if not 0.0 <= quantile <= 1.0:
        raise ValueError(f"quantile must be in [0, 1], got {quantile}")
    return quantile


def correlations_to_score(correlations: ArrayLike, quantile: float) -> float:
    """Summarize correlations against a label's reference profiles.

    Uses the ``quantile``-th quantile with linear interpolation between
    order statistics, which is robust to a few noisy reference profiles.

    Parameters
    ----------
    correlations : ArrayLike
        One correlation per reference profile of the label.
    quantile : float
        Quantile in [0, 1]; 1 gives the maximum correlation.

    Returns
    -------
    float
        Score for the label.

    Raises
    ------
    ValueError
        If no correlations are supplied or the quantile is out of range.
    """
    quantile = check_quantile(quantile)
    arr = np.asarray(list(correlations), dtype=np.float64)
    if arr.size == 0:
        raise ValueError("cannot compute a score from zero correlations")
    if arr.size == 1 or quantile == 1.0:
        return float(arr.max())
    return float(np.quantile(arr, quantile))


def score_profiles(
    test_ranked: RankedVector,
    mapping: RankRemapper,
    profiles: Sequence[RankedVector],
    quantile: float,
) -> float:
    """Score a test profile against one label's reference profiles.

    Both the test profile and every reference profile are projected through
    ``mapping`` before scaling, so only the genes it retains contribute.
    """
    size = len(mapping)
    test_scaled = scaled_ranks(mapping.remap(test_ranked), size)
    correlations = np.empty(len(profiles), dtype=np.float64)
    for s, profile in enumerate(profiles):
        ref_scaled = scaled_ranks(mapping.remap(profile), size)
        correlations[s] = distance_to_correlation(test_scaled, ref_scaled)
    return correlations_to_score(correlations, quantile)

"""Rank-based correlation scoring.

Provides ranked vectors, rank remapping, scaled ranks and quantile scores.
"""

from .aggregate import check_quantile, correlations_to_score, score_profiles
from .ranks import (
    RankRemapper,
    RankedVector,
    distance_to_correlation,
    scaled_ranks,
)

__all__ = [
    # Ranks
    "RankedVector",
    "RankRemapper",
    "scaled_ranks",
    "distance_to_correlation",
    # Aggregation
    "check_quantile",
    "correlations_to_score",
    "score_profiles",
]

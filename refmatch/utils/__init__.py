"""Utility functions for RefMatch.

Provides the range-based parallel scheduler used by the classifiers.
"""

from .parallel import check_num_threads, parallelize, split_ranges

__all__ = [
    "check_num_threads",
    "parallelize",
    "split_ranges",
]

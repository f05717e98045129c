"""Feature alignment between test and reference datasets.

Provides gene intersection and marker subsetting/reindexing.
"""

from .intersection import Intersection, intersect_genes, unzip_intersection
from .markers import Markers, subset_markers, subset_markers_direct

__all__ = [
    # Intersection
    "Intersection",
    "intersect_genes",
    "unzip_intersection",
    # Markers
    "Markers",
    "subset_markers",
    "subset_markers_direct",
]

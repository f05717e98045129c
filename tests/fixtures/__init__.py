"""Test fixtures for RefMatch.

Provides mock data generators and test utilities.
"""

from .mock_references import (
    create_gene_ids,
    create_labeled_matrix,
    create_block_markers,
    markers_to_document,
    create_reference_adata,
    create_end_to_end_scenario,
)

__all__ = [
    "create_gene_ids",
    "create_labeled_matrix",
    "create_block_markers",
    "markers_to_document",
    "create_reference_adata",
    "create_end_to_end_scenario",
]

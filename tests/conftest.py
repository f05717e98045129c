"""Pytest configuration and shared fixtures for RefMatch tests."""

import json
import sys
from pathlib import Path

import pytest
import numpy as np
import pandas as pd

# Add package to path
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Import mock data generators
from tests.fixtures import (
    create_gene_ids,
    create_labeled_matrix,
    create_block_markers,
    markers_to_document,
    create_reference_adata,
    create_end_to_end_scenario,
)


LABEL_NAMES = ["B cell", "Monocyte", "T cell"]


# ============================================================================
# Matrix Fixtures
# ============================================================================


@pytest.fixture
def reference_data():
    """Reference matrix (genes x cells), labels and block markers."""
    matrix, labels = create_labeled_matrix(seed=1)
    markers = create_block_markers()
    return matrix, labels, markers


@pytest.fixture
def test_data():
    """Test matrix drawn from the same labels, with its true labels."""
    return create_labeled_matrix(n_cells_per_label=5, seed=7)


@pytest.fixture
def end_to_end_scenario() -> dict:
    """Three-gene, two-reference, one-cell integration scenario."""
    return create_end_to_end_scenario()


@pytest.fixture
def tmp_output_dir(tmp_path: Path) -> Path:
    """Create a temporary output directory for tests."""
    output_dir = tmp_path / "output"
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir


# ============================================================================
# AnnData Fixtures
# ============================================================================


@pytest.fixture
def test_adata():
    """Test AnnData over all genes (15 cells)."""
    matrix, labels = create_labeled_matrix(n_cells_per_label=5, seed=7)
    gene_ids = create_gene_ids(matrix.shape[0])
    return create_reference_adata(matrix, labels, LABEL_NAMES, gene_ids, cell_prefix="test")


@pytest.fixture
def reference_datasets():
    """Two references: one over all genes, one with shuffled, partial genes.

    Returns a list of (name, AnnData, marker document) tuples.
    """
    markers = create_block_markers()

    matrix, labels = create_labeled_matrix(seed=1)
    gene_ids = create_gene_ids(matrix.shape[0])
    full = create_reference_adata(matrix, labels, LABEL_NAMES, gene_ids, cell_prefix="full")
    full_doc = markers_to_document(markers, LABEL_NAMES, gene_ids)

    # Second reference lacks the background genes and Gene_0, in reverse order.
    matrix2, labels2 = create_labeled_matrix(n_extra_genes=0, seed=3)
    gene_ids2 = create_gene_ids(matrix2.shape[0])
    partial_doc = markers_to_document(markers, LABEL_NAMES, gene_ids2)
    partial = create_reference_adata(
        matrix2[:0:-1], labels2, LABEL_NAMES, gene_ids2[:0:-1], cell_prefix="partial"
    )

    return [("full", full, full_doc), ("partial", partial, partial_doc)]


@pytest.fixture
def reference_files(tmp_path: Path, test_adata, reference_datasets) -> dict:
    """Write the test and reference AnnData plus marker JSON to disk."""
    test_path = tmp_path / "test.h5ad"
    test_adata.write_h5ad(test_path)

    options = []
    for name, adata, document in reference_datasets:
        ref_path = tmp_path / f"{name}.h5ad"
        marker_path = tmp_path / f"{name}_markers.json"
        adata.write_h5ad(ref_path)
        with open(marker_path, "w") as f:
            json.dump(document, f)
        options.append(f"{name}={ref_path}:{marker_path}")

    return {"test": test_path, "references": options}


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def sample_config(tmp_path) -> Path:
    """Create sample configuration file."""
    import yaml

    config = {
        "refmatch": {
            "train": {"top": 3},
            "single": {"quantile": 0.9, "fine_tune": False},
            "integrated": {"quantile": 0.7},
            "label_key": "cell_type",
            "num_threads": 2,
        },
    }

    path = tmp_path / "refmatch.yaml"
    with open(path, "w") as f:
        yaml.dump(config, f)

    return path

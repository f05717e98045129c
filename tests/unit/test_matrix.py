"""Unit tests for matrix column extraction."""

import pytest
import numpy as np
import pandas as pd
from scipy import sparse

from refmatch.core.matrix import (
    as_matrix,
    extract_columns,
    iter_columns,
    matrix_from_anndata,
    matrix_shape,
)


@pytest.fixture
def dense():
    return np.arange(20, dtype=np.float64).reshape(4, 5)


class TestAsMatrix:
    """Tests for as_matrix."""

    def test_dense_passthrough(self, dense):
        """Test dense arrays are returned as arrays."""
        assert isinstance(as_matrix(dense), np.ndarray)
        assert matrix_shape(as_matrix(dense)) == (4, 5)

    def test_sparse_to_csc(self, dense):
        """Test sparse input is converted to CSC."""
        result = as_matrix(sparse.csr_matrix(dense))
        assert result.format == "csc"

    def test_rejects_1d(self):
        """Test 1-D input is rejected."""
        with pytest.raises(ValueError):
            as_matrix(np.zeros(3))


class TestExtractColumns:
    """Tests for extract_columns and iter_columns."""

    def test_rows_in_requested_order(self, dense):
        """Test rows come back in the requested order."""
        block = extract_columns(dense, [3, 1], 1, 3)
        np.testing.assert_array_equal(block, [[16.0, 17.0], [6.0, 7.0]])

    def test_sparse_matches_dense(self, dense):
        """Test sparse and dense extraction agree."""
        csc = as_matrix(sparse.csr_matrix(dense))
        np.testing.assert_array_equal(
            extract_columns(csc, [0, 2, 3], 0, 5),
            extract_columns(dense, [0, 2, 3], 0, 5),
        )

    def test_iter_columns_chunks(self, dense):
        """Test iteration visits every column once across chunks."""
        seen = list(iter_columns(dense, [0, 1], start=1, length=4, chunk_size=3))
        assert [col for col, _ in seen] == [1, 2, 3, 4]
        for col, values in seen:
            np.testing.assert_array_equal(values, dense[[0, 1], col])


class TestMatrixFromAnnData:
    """Tests for matrix_from_anndata."""

    def test_transposes(self):
        """Test cells x genes becomes genes x cells."""
        import anndata as ad

        X = np.arange(6, dtype=np.float32).reshape(3, 2)
        adata = ad.AnnData(
            X=X,
            obs=pd.DataFrame(index=["c0", "c1", "c2"]),
            var=pd.DataFrame(index=["g0", "g1"]),
        )
        np.testing.assert_array_equal(matrix_from_anndata(adata), X.T)

    def test_uses_layer(self):
        """Test an existing layer is used in place of X."""
        import anndata as ad

        X = np.zeros((2, 2), dtype=np.float32)
        adata = ad.AnnData(
            X=X,
            obs=pd.DataFrame(index=["c0", "c1"]),
            var=pd.DataFrame(index=["g0", "g1"]),
        )
        adata.layers["counts"] = np.ones((2, 2), dtype=np.float32)
        np.testing.assert_array_equal(matrix_from_anndata(adata, "counts"), np.ones((2, 2)))
        np.testing.assert_array_equal(matrix_from_anndata(adata, "missing"), np.zeros((2, 2)))

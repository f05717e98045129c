"""Column extraction from expression matrices.

All matrices handled by the classifiers are genes x cells: rows are genes
and columns are cells. Dense numpy arrays and scipy.sparse matrices are
accepted directly; AnnData objects (cells x genes) are transposed by
``matrix_from_anndata``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterator, Optional, Sequence, Tuple, Union

import numpy as np
from scipy import sparse

if TYPE_CHECKING:
    import anndata

MatrixLike = Union[np.ndarray, sparse.spmatrix]

DEFAULT_CHUNK_SIZE = 256


def as_matrix(matrix: MatrixLike) -> MatrixLike:
    """Return a 2-D numpy array, or a CSC matrix for sparse input."""
    if sparse.issparse(matrix):
        return matrix.tocsc()
    arr = np.asarray(matrix)
    if arr.ndim != 2:
        raise ValueError(f"Expected a 2-D genes x cells matrix, got {arr.ndim} dimensions")
    return arr


def matrix_shape(matrix: MatrixLike) -> Tuple[int, int]:
    """Return (number of genes, number of cells)."""
    nrow, ncol = matrix.shape
    return int(nrow), int(ncol)


def extract_columns(
    matrix: MatrixLike,
    rows: Sequence[int],
    start: int,
    end: int,
) -> np.ndarray:
    """Extract a dense block of ``rows`` for columns ``start:end``.

    Parameters
    ----------
    matrix : MatrixLike
        Genes x cells matrix.
    rows : Sequence[int]
        Row indices to extract, in the order they should appear.
    start, end : int
        Column range (end exclusive).

    Returns
    -------
    np.ndarray
        Dense float64 array of shape ``(len(rows), end - start)``.
    """
    rows = np.asarray(rows, dtype=np.int64)
    if sparse.issparse(matrix):
        block = matrix[:, start:end][rows, :]
        return block.toarray().astype(np.float64, copy=False)
    return np.asarray(matrix[rows, start:end], dtype=np.float64)


def iter_columns(
    matrix: MatrixLike,
    rows: Sequence[int],
    start: int,
    length: int,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> Iterator[Tuple[int, np.ndarray]]:
    """Yield ``(column, values)`` for consecutive columns, restricted to ``rows``.

    Columns are extracted ``chunk_size`` at a time so that memory stays
    bounded for long column ranges.
    """
    end = start + length
    for chunk_start in range(start, end, chunk_size):
        chunk_end = min(chunk_start + chunk_size, end)
        block = extract_columns(matrix, rows, chunk_start, chunk_end)
        for offset in range(chunk_end - chunk_start):
            yield chunk_start + offset, block[:, offset]


def matrix_from_anndata(adata: "anndata.AnnData", layer: Optional[str] = None) -> MatrixLike:
    """Return the genes x cells matrix of an AnnData object.

    Uses ``adata.layers[layer]`` when the layer exists, otherwise ``adata.X``.
    """
    if layer is not None and layer in adata.layers:
        matrix = adata.layers[layer]
    else:
        matrix = adata.X
    if sparse.issparse(matrix):
        return matrix.T
    return np.asarray(matrix).T

"""Unit tests for gene intersection and marker subsetting."""

import pytest
import numpy as np

from refmatch.core.features import (
    intersect_genes,
    subset_markers,
    subset_markers_direct,
    unzip_intersection,
)


class TestIntersectGenes:
    """Tests for intersect_genes."""

    def test_basic_intersection(self):
        """Test shared genes are paired by row, ordered by test row."""
        result = intersect_genes(["A", "B", "C"], ["C", "A", "D"])
        assert result == [(0, 1), (2, 0)]

    def test_first_occurrence_wins(self):
        """Test duplicated ids only match through their first occurrence."""
        result = intersect_genes(["A", "B", "C", "A"], ["C", "A", "A", "D"])
        assert result == [(0, 1), (2, 0)]

    def test_no_overlap(self):
        """Test disjoint ids give an empty intersection."""
        assert intersect_genes(["A", "B"], ["C", "D"]) == []

    def test_integer_ids(self):
        """Test any hashable identifier works."""
        assert intersect_genes([10, 20, 30], [30, 10]) == [(0, 1), (2, 0)]

    def test_unzip(self):
        """Test splitting an intersection into row arrays."""
        test_rows, ref_rows = unzip_intersection([(0, 1), (2, 0)])
        np.testing.assert_array_equal(test_rows, [0, 2])
        np.testing.assert_array_equal(ref_rows, [1, 0])

    def test_unzip_empty(self):
        """Test unzipping an empty intersection."""
        test_rows, ref_rows = unzip_intersection([])
        assert test_rows.shape == (0,)
        assert ref_rows.shape == (0,)


class TestSubsetMarkers:
    """Tests for subset_markers."""

    @pytest.fixture
    def intersection(self):
        # Reference rows 10, 11 and 12 are shared with test rows 0, 1 and 2.
        return [(0, 10), (1, 11), (2, 12)]

    @pytest.fixture
    def markers(self):
        return [
            [[], [13, 10, 11]],
            [[12, 14], []],
        ]

    def test_top_skips_unavailable_genes(self, intersection, markers):
        """Test unavailable genes do not count toward top."""
        compacted, result = subset_markers(intersection, markers, top=1)
        assert compacted == [(0, 10), (2, 12)]
        assert result == [[[], [0]], [[1], []]]

    def test_no_cap(self, intersection, markers):
        """Test top=None keeps every available marker."""
        compacted, result = subset_markers(intersection, markers, top=None)
        assert compacted == [(0, 10), (1, 11), (2, 12)]
        assert result == [[[], [0, 1]], [[2], []]]

    def test_top_zero(self, intersection, markers):
        """Test top=0 removes all markers and empties the intersection."""
        compacted, result = subset_markers(intersection, markers, top=0)
        assert compacted == []
        assert result == [[[], []], [[], []]]

    def test_input_not_mutated(self, intersection, markers):
        """Test inputs are left untouched."""
        subset_markers(intersection, markers, top=1)
        assert intersection == [(0, 10), (1, 11), (2, 12)]
        assert markers[0][1] == [13, 10, 11]

    def test_compacted_indices_in_range(self, intersection, markers):
        """Test every reindexed marker points into the compacted intersection."""
        compacted, result = subset_markers(intersection, markers, top=2)
        for i, row in enumerate(result):
            for j, current in enumerate(row):
                if i != j:
                    assert all(0 <= g < len(compacted) for g in current)

    def test_negative_top_raises(self, intersection, markers):
        """Test negative top is rejected."""
        with pytest.raises(ValueError, match="top"):
            subset_markers(intersection, markers, top=-1)


class TestSubsetMarkersDirect:
    """Tests for subset_markers_direct."""

    def test_truncate_and_reindex(self):
        """Test lists are truncated and mapped onto the sorted union."""
        markers = [
            [[], [5, 3, 7]],
            [[3, 1], []],
        ]
        subset, result = subset_markers_direct(markers, top=2)
        assert subset == [1, 3, 5]
        assert result == [[[], [2, 1]], [[1, 0], []]]

    def test_no_cap(self):
        """Test top=None keeps whole lists."""
        markers = [
            [[], [5, 3, 7]],
            [[3, 1], []],
        ]
        subset, result = subset_markers_direct(markers, top=None)
        assert subset == [1, 3, 5, 7]
        assert result == [[[], [2, 1, 3]], [[1, 0], []]]

    def test_negative_top_raises(self):
        """Test negative top is rejected."""
        with pytest.raises(ValueError):
            subset_markers_direct([[[]]], top=-2)


class TestDocumentedExamples:
    """Tests for small worked examples of intersection and subsetting."""

    def test_duplicate_test_ids(self):
        """Test [A, A, B] against [A, B] pairs the first A only."""
        assert intersect_genes(["A", "A", "B"], ["A", "B"]) == [(0, 0), (2, 1)]

    def test_subset_with_availability(self):
        """Test only available genes are kept, up to top."""
        intersection = [(0, 2), (1, 5), (2, 7)]
        markers = [[[], [5, 7, 9]], [[2, 3], []]]
        compacted, result = subset_markers(intersection, markers, top=2)
        assert compacted == intersection
        assert result == [[[], [1, 2]], [[0], []]]

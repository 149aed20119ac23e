"""
Unit tests for value set algebra.
"""

import pytest

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_flags.app.rules.values import diff_values, merge_values, sorted_values, unique_values


class TestValueSets:
    """Test cases for merge and difference of value sets."""

    def test_merge_is_sorted_union(self):
        """Test union of overlapping sets."""
        assert merge_values([3, 1], [2, 3]) == [1, 2, 3]

    def test_merge_is_idempotent(self):
        """Test merging the same values twice changes nothing."""
        once = merge_values([], [1, 2])
        assert merge_values(once, [1, 2]) == once

    def test_merge_drops_incoming_duplicates(self):
        """Test duplicates within the incoming values collapse."""
        assert merge_values([], ["a", "a", "b"]) == ["a", "b"]

    def test_diff_removes_only_given_values(self):
        """Test set difference."""
        assert diff_values([1, 2, 3, 4, 5], [1, 3, 5]) == [2, 4]

    def test_diff_ignores_missing_values(self):
        """Test removing values that are not present."""
        assert diff_values([1, 2], [9]) == [1, 2]

    def test_diff_to_empty(self):
        """Test removing everything leaves an empty set."""
        assert diff_values([1], [1]) == []

    def test_mixed_types_group_by_type_name(self):
        """Test mixed types sort by type name, then value."""
        assert sorted_values(["b", 2, "a", 1]) == [1, 2, "a", "b"]

    def test_unhashable_values(self):
        """Test JSON objects are de-duplicated and removable."""
        merged = merge_values([{"id": 1}], [{"id": 1}, {"id": 2}])
        assert len(merged) == 2
        assert diff_values(merged, [{"id": 1}]) == [{"id": 2}]

    def test_unique_keeps_first_occurrence(self):
        """Test de-duplication order."""
        assert unique_values([3, 1, 3, 2, 1]) == [3, 1, 2]


if __name__ == "__main__":
    pytest.main([__file__])

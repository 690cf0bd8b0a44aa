"""Tests for path suppression."""

import pytest

from metabind.suppression import SuppressionFilter


class TestSuppressionFilter:
    """Tests for SuppressionFilter."""

    def test_empty_by_default(self):
        suppression = SuppressionFilter()
        assert len(suppression) == 0
        assert not suppression.is_suppressed("table/columns")

    def test_exact_match_only(self):
        suppression = SuppressionFilter(["table/columns"])
        assert suppression.is_suppressed("table/columns")
        assert "table/columns" in suppression
        assert not suppression.is_suppressed("table/column")
        assert not suppression.is_suppressed("table")
        assert not suppression.is_suppressed("column/columns")

    def test_chaining(self):
        suppression = SuppressionFilter().suppress("a/b").suppress("c/d", "e/f")
        assert suppression.paths == frozenset({"a/b", "c/d", "e/f"})

    def test_duplicates_collapse(self):
        suppression = SuppressionFilter(["a/b", "a/b"])
        assert len(suppression) == 1

    def test_none_rejected(self):
        with pytest.raises(ValueError):
            SuppressionFilter().suppress(None)

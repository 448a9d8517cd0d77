"""Tests for sorting, pagination and tag suggestions."""

import math

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from marksearch.models.bookmark import BookmarkRecord, BookmarkType
from marksearch.models.search import ScoredResult
from marksearch.retrieval.assembler import paginate, sort_results, tag_suggestions


def _result(id_, title=None, created_at=None, tags=None, score=0.0) -> ScoredResult:
    record = BookmarkRecord(id=id_, title=title, createdAt=created_at, tags=tags or [])
    return ScoredResult(item=record, type=BookmarkType.LINK, score=score)


def _ids(results):
    return [r.item.id for r in results]


class TestSortResults:
    """Test the three sort policies."""

    def test_relevance_keeps_order(self):
        results = [_result("b", score=0.5), _result("a", score=0.1)]

        assert _ids(sort_results(results, "relevance")) == ["b", "a"]

    def test_date_newest_first(self):
        results = [
            _result("old", created_at=1000),
            _result("missing"),
            _result("new", created_at=3000),
        ]

        assert _ids(sort_results(results, "date")) == ["new", "old", "missing"]

    def test_date_ties_are_stable(self):
        results = [_result(str(i), created_at=1000) for i in range(4)]

        assert _ids(sort_results(results, "date")) == ["0", "1", "2", "3"]

    def test_title_case_insensitive(self):
        results = [
            _result("1", title="banana"),
            _result("2", title="Apple"),
            _result("3"),
            _result("4", title="cherry"),
        ]

        assert _ids(sort_results(results, "title")) == ["3", "2", "1", "4"]

    def test_does_not_mutate_input(self):
        results = [_result("b", title="b"), _result("a", title="a")]

        sort_results(results, "title")

        assert _ids(results) == ["b", "a"]


class TestPaginate:
    """Test 1-based pagination."""

    def test_slices_requested_page(self):
        results = [_result(str(i)) for i in range(7)]

        page = paginate(results, page=2, limit=3)

        assert _ids(page.items) == ["3", "4", "5"]
        assert page.total == 7
        assert page.page == 2
        assert page.total_pages == 3

    def test_page_past_end_is_empty(self):
        page = paginate([_result("1")], page=5, limit=10)

        assert page.items == []
        assert page.total == 1
        assert page.total_pages == 1

    def test_empty_results(self):
        page = paginate([], page=1, limit=20)

        assert page.items == []
        assert page.total_pages == 0

    @pytest.mark.parametrize("page_number,limit", [(0, 10), (1, 0), (-1, 5)])
    def test_invalid_arguments(self, page_number, limit):
        with pytest.raises(ValueError):
            paginate([], page=page_number, limit=limit)

    @given(
        total=st.integers(min_value=0, max_value=200),
        limit=st.integers(min_value=1, max_value=50),
    )
    @settings(deadline=None)
    def test_pages_cover_results_exactly_once(self, total, limit):
        """Concatenating every page reproduces the full result list."""
        results = [_result(str(i)) for i in range(total)]

        first = paginate(results, 1, limit)
        assert first.total_pages == math.ceil(total / limit)

        collected = []
        for page_number in range(1, first.total_pages + 1):
            collected.extend(paginate(results, page_number, limit).items)

        assert _ids(collected) == _ids(results)


class TestTagSuggestions:
    """Test tag frequency suggestions."""

    def test_most_frequent_first(self):
        results = [
            _result("1", tags=["b", "a"]),
            _result("2", tags=["a"]),
        ]

        assert tag_suggestions(results) == ["#a", "#b"]

    def test_ties_keep_first_encounter(self):
        results = [_result("1", tags=["zeta"]), _result("2", tags=["alpha"])]

        assert tag_suggestions(results) == ["#zeta", "#alpha"]

    def test_top_n(self):
        results = [_result(str(i), tags=[f"t{i}"]) for i in range(8)]

        assert tag_suggestions(results) == ["#t0", "#t1", "#t2", "#t3", "#t4"]
        assert tag_suggestions(results, count=2) == ["#t0", "#t1"]

    def test_no_tags(self):
        assert tag_suggestions([_result("1")]) == []

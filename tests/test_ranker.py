"""
Tests for ranking, pagination, highlights and suggestions.
"""

from datetime import timedelta

import pytest

from docsearch.services.hybrid_search import CorpusIndex, Ranker, ScoredResult, SortBy

from conftest import NOW, make_document
from test_fusion import make_query


def scored(document, relevance):
    return ScoredResult(
        doc_id=document.id,
        title=document.title,
        description=document.description,
        keywords=document.keywords,
        document_type=document.document_type,
        owner_id=document.owner_id,
        created_at=document.created_at,
        relevance_score=relevance,
    )


@pytest.fixture
def ranker():
    return Ranker(default_max_results=20, max_results_limit=50, highlight_max_chars=40, max_suggestions=3)


@pytest.fixture
def documents():
    return [
        make_document("old", "Budget Plan", keywords=["budget", "plan"], created_at=NOW - timedelta(days=30),
                      document_type="report"),
        make_document("new", "Budget Review", keywords=["budget", "review"], created_at=NOW - timedelta(days=1),
                      document_type="report"),
        make_document("top", "Budget Forecast", keywords=["forecast", "finance"], created_at=NOW - timedelta(days=90),
                      document_type="spreadsheet"),
        make_document("low", "Cost Notes", keywords=["cost", "notes", "travel"], created_at=NOW - timedelta(days=5)),
        make_document("mid", "Hiring Plan", keywords=["hiring"], created_at=NOW - timedelta(days=2)),
    ]


@pytest.fixture
def snapshot(documents):
    index = CorpusIndex(max_documents=10)
    index.build_full(documents)
    return index.snapshot()


@pytest.fixture
def results(documents):
    relevance = {"old": 0.6, "new": 0.6, "top": 0.9, "low": 0.2, "mid": 0.4}
    return [scored(d, relevance[d.id]) for d in documents]


class TestOrdering:

    def test_sorted_by_relevance_ties_newer_first(self, ranker, results, snapshot):
        page = ranker.rank(results, snapshot, make_query("budget"))
        assert [r.doc_id for r in page.results] == ["top", "new", "old", "mid", "low"]
        assert [r.rank for r in page.results] == [1, 2, 3, 4, 5]

    def test_sort_by_date(self, ranker, results, snapshot):
        page = ranker.rank(results, snapshot, make_query("budget"), sort_by=SortBy.DATE)
        assert [r.doc_id for r in page.results] == ["new", "mid", "low", "old", "top"]

    def test_filter_type(self, ranker, results, snapshot):
        page = ranker.rank(results, snapshot, make_query("budget"), filter_type="report")
        assert [r.doc_id for r in page.results] == ["new", "old"]
        assert page.total_results == 2

    def test_unknown_filter_type_gives_no_results(self, ranker, results, snapshot):
        page = ranker.rank(results, snapshot, make_query("budget"), filter_type="invoice")
        assert page.results == []
        assert page.total_results == 0


class TestPagination:

    @pytest.mark.parametrize("requested,expected", [(None, 20), (0, 1), (-5, 1), (7, 7), (1000, 50)])
    def test_page_size_is_clamped(self, ranker, requested, expected):
        assert ranker.page_size(requested) == expected

    def test_second_page(self, ranker, results, snapshot):
        page = ranker.rank(results, snapshot, make_query("budget"), max_results=2, page=2)
        assert [r.doc_id for r in page.results] == ["old", "mid"]
        assert [r.rank for r in page.results] == [3, 4]
        assert page.total_results == 5

    def test_invalid_page_clamps_to_first(self, ranker, results, snapshot):
        page = ranker.rank(results, snapshot, make_query("budget"), max_results=2, page=0)
        assert page.page == 1
        assert [r.doc_id for r in page.results] == ["top", "new"]

    def test_page_past_the_end_is_empty(self, ranker, results, snapshot):
        page = ranker.rank(results, snapshot, make_query("budget"), max_results=2, page=9)
        assert page.results == []
        assert page.total_results == 5


class TestHighlights:

    def test_field_with_most_matches(self, ranker, snapshot):
        query = make_query("hiring")
        assert ranker.highlight(snapshot, "mid", query) == "Hiring Plan"

    def test_keywords_field_can_win(self, ranker, snapshot):
        # Tie between title and keywords goes to the title
        assert ranker.highlight(snapshot, "low", make_query("notes")) == "Cost Notes"
        assert ranker.highlight(snapshot, "low", make_query("travel", "notes")) == "cost, notes, travel"

    def test_long_field_is_truncated(self, ranker):
        doc = make_document("long", "Budget", description="budget " * 20)
        index = CorpusIndex(max_documents=10)
        index.build_full([doc])
        highlight = ranker.highlight(index.snapshot(), "long", make_query("budget"))
        assert highlight.endswith("...")
        assert len(highlight) <= 43

    def test_highlight_attached_to_page(self, ranker, results, snapshot):
        page = ranker.rank(results, snapshot, make_query("budget"))
        assert all(r.highlight for r in page.results)


class TestSuggestions:

    def test_excludes_query_terms_and_limits_count(self, ranker, results, snapshot):
        page = ranker.rank(results, snapshot, make_query("budget"))
        assert page.suggestions == ["forecast", "finance", "review"]
        assert "budget" not in page.suggestions

    def test_no_suggestions_when_disabled(self, results, snapshot):
        ranker = Ranker(max_suggestions=0)
        assert ranker.rank(results, snapshot, make_query("budget")).suggestions == []

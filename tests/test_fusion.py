"""
Tests for candidate fusion and relevance scoring.
"""

from datetime import timedelta

import pytest

from docsearch.services.hybrid_search import (
    CorpusIndex, EnhancedQuery, Entity, Intent, RelevanceScorer
)
from docsearch.services.hybrid_search.indexing import concept_key
from docsearch.services.hybrid_search.search import freshness, fuse_candidates

from conftest import NOW, make_document


def make_query(*terms, entities=(), personal_terms=()):
    keys = tuple(concept_key(t) for t in terms)
    return EnhancedQuery(
        original=" ".join(terms),
        cleaned=" ".join(terms),
        cleaned_tokens=tuple(terms),
        stems=keys,
        expanded_terms=frozenset(keys),
        intent=Intent.GENERAL,
        entities=frozenset(entities),
        concepts=keys,
        personal_terms=tuple(personal_terms),
    )


@pytest.fixture
def scorer():
    return RelevanceScorer(now=lambda: NOW)


class TestFuseCandidates:

    def test_both_branches_are_averaged(self):
        candidates = {c.doc_id: c for c in fuse_candidates({"a": 0.8}, {"a": 0.4, "b": 0.5})}
        assert candidates["a"].base_score == pytest.approx(0.6)
        assert candidates["a"].search_types == {"text", "semantic"}

    def test_single_branch_score_is_not_penalized(self):
        candidates = {c.doc_id: c for c in fuse_candidates({"t": 0.7}, {"s": 0.5})}
        assert candidates["t"].base_score == pytest.approx(0.7)
        assert candidates["s"].base_score == pytest.approx(0.5)
        assert candidates["t"].semantic_score == 0.0

    def test_empty_inputs(self):
        assert fuse_candidates({}, {}) == []


class TestFreshness:

    def test_new_document_is_fully_fresh(self):
        assert freshness(NOW, NOW) == 1.0

    def test_half_year_old_document(self):
        assert freshness(NOW - timedelta(days=182.5), NOW) == pytest.approx(0.5)

    def test_older_than_a_year_is_zero(self):
        assert freshness(NOW - timedelta(days=400), NOW) == 0.0


class TestRelevanceScorer:

    def _score(self, scorer, document, query, text=None, semantic=None):
        index = CorpusIndex(max_documents=10)
        index.build_full([document])
        candidates = fuse_candidates(text or {}, semantic or {})
        results = scorer.score(candidates, index.snapshot(), query)
        assert len(results) == 1
        return results[0]

    def test_relevance_is_clamped(self, scorer):
        doc = make_document(
            "d1", "Budget Report Finance", keywords=["budget", "report", "finance"], created_at=NOW
        )
        result = self._score(scorer, doc, make_query("budget", "report", "finance"), text={"d1": 1.0})
        assert result.relevance_score == 1.0
        assert result.scoring_breakdown.title_boost == pytest.approx(0.6)
        assert result.scoring_breakdown.keyword_boost == pytest.approx(0.4)

    def test_boost_components(self, scorer):
        doc = make_document(
            "d1", "Budget", keywords=["forecast"],
            entities=[Entity("project", "Apollo")],
            created_at=NOW - timedelta(days=400),
        )
        query = make_query("budget", "forecast", entities=[Entity("project", "apollo")])
        result = self._score(scorer, doc, query, semantic={"d1": 0.1})
        breakdown = result.scoring_breakdown
        assert breakdown.title_matches == 1
        assert breakdown.keyword_matches == 1
        assert breakdown.entity_matches == 1
        assert breakdown.freshness_boost == 0.0
        assert result.relevance_score == pytest.approx(0.1 + 0.3 + 0.2 + 0.25)

    def test_entity_type_is_ignored(self, scorer):
        doc = make_document("d1", "Notes", entities=[Entity("organization", "Apollo")])
        query = make_query("notes", entities=[Entity("project", "Apollo")])
        result = self._score(scorer, doc, query, text={"d1": 0.1})
        assert result.scoring_breakdown.entity_matches == 1

    def test_freshness_boost_for_new_document(self, scorer):
        doc = make_document("d1", "Notes", created_at=NOW)
        result = self._score(scorer, doc, make_query("other"), semantic={"d1": 0.3})
        assert result.scoring_breakdown.freshness_boost == pytest.approx(0.1)
        assert result.relevance_score == pytest.approx(0.4)

    def test_personalization_boost_is_capped(self, scorer):
        doc = make_document(
            "d1", "Forecast Deck", keywords=["slides", "revenue"], created_at=NOW - timedelta(days=400)
        )
        query = make_query("other", personal_terms=("forecast", "slides", "revenue"))
        result = self._score(scorer, doc, query, semantic={"d1": 0.3})
        assert result.scoring_breakdown.personalization_boost == pytest.approx(0.1)

    def test_scores_reported_per_branch(self, scorer):
        doc = make_document("d1", "Notes", created_at=NOW - timedelta(days=400))
        result = self._score(scorer, doc, make_query("other"), text={"d1": 0.2}, semantic={"d1": 0.6})
        assert result.text_score == pytest.approx(0.2)
        assert result.semantic_score == pytest.approx(0.6)
        assert result.search_types == ["semantic", "text"]
        assert result.relevance_score == pytest.approx(0.4)

    def test_candidates_missing_from_snapshot_are_skipped(self, scorer):
        index = CorpusIndex(max_documents=10)
        index.build_full([])
        assert scorer.score(fuse_candidates({"gone": 0.9}, {}), index.snapshot(), make_query("x")) == []

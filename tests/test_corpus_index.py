"""
Tests for the corpus index and its snapshots.
"""

import logging

from docsearch.services.hybrid_search import CorpusIndex
from docsearch.services.hybrid_search.indexing import (
    build_concept_vector, concept_key, cosine_similarity, index_document
)

from conftest import make_document


class TestIndexDocument:

    def test_posting_weight_prefers_title(self, budget_doc):
        entry = index_document(budget_doc)
        budget = entry.postings[concept_key("budget")]
        assert budget.title_tf == 1
        assert budget.keyword_tf == 1
        assert budget.weight == 5

    def test_summary_counts_as_description(self):
        doc = make_document("d1", "Plan", summary="Hiring roadmap")
        entry = index_document(doc)
        assert entry.postings[concept_key("roadmap")].description_tf == 1

    def test_document_without_keywords_has_no_vector(self):
        entry = index_document(make_document("d1", "Untagged memo"))
        assert entry.concept_vector is None

    def test_concept_vector_weights_by_rank(self, numbers_doc):
        entry = index_document(numbers_doc)
        assert entry.concept_vector == {concept_key("finance"): 1.0, concept_key("forecast"): 0.5}


class TestConceptVectors:

    def test_repeated_concept_keeps_first_rank(self):
        vector = build_concept_vector(["Finance", "cost", "finances"])
        assert vector == {concept_key("finance"): 1.0, concept_key("cost"): 0.5}

    def test_disjoint_vectors_have_zero_similarity(self):
        assert cosine_similarity({"a": 1.0}, {"b": 1.0}) == 0.0
        assert cosine_similarity({}, {"b": 1.0}) == 0.0

    def test_identical_vectors_are_fully_similar(self):
        vector = {"a": 1.0, "b": 0.5}
        assert abs(cosine_similarity(vector, dict(vector)) - 1.0) < 1e-9


class TestCorpusIndex:

    def test_not_ready_before_build(self):
        assert not CorpusIndex(max_documents=10).is_ready

    def test_build_full_indexes_documents(self, index, corpus):
        assert index.is_ready
        assert len(index.snapshot()) == len(corpus)
        assert index.get_stats()['documents'] == len(corpus)

    def test_build_full_is_capped(self, corpus, caplog):
        capped = CorpusIndex(max_documents=2)
        with caplog.at_level(logging.WARNING):
            count = capped.build_full(corpus)
        assert count == 2
        assert len(capped.snapshot()) == 2
        assert "capped at 2 documents" in caplog.text

    def test_upsert_twice_matches_upsert_once(self, budget_doc):
        once = CorpusIndex(max_documents=10)
        once.upsert(budget_doc)

        twice = CorpusIndex(max_documents=10)
        twice.upsert(budget_doc)
        twice.upsert(budget_doc)

        assert twice.snapshot().postings == once.snapshot().postings
        assert twice.snapshot().vectors == once.snapshot().vectors
        assert set(twice.snapshot().documents) == set(once.snapshot().documents)

    def test_upsert_replaces_old_terms(self, index, budget_doc):
        changed = budget_doc.model_copy(update={'title': "Annual Plan", 'keywords': ["strategy"]})
        index.upsert(changed)
        snapshot = index.snapshot()
        assert "budget" not in snapshot.lexical_candidates(["report"])
        assert "budget" in snapshot.lexical_candidates(["strategy"])
        assert snapshot.vectors["budget"] == {concept_key("strategy"): 1.0}

    def test_upsert_without_keywords_drops_vector(self, index, budget_doc):
        index.upsert(budget_doc.model_copy(update={'keywords': []}))
        assert "budget" not in index.snapshot().vectors

    def test_remove(self, index):
        assert index.remove("budget")
        snapshot = index.snapshot()
        assert "budget" not in snapshot
        assert "budget" not in snapshot.vectors
        assert "budget" not in snapshot.lexical_candidates(["quarterly"])
        assert not index.remove("budget")

    def test_lexical_candidates_use_or_semantics(self, index):
        matched = index.lexical_candidates(["quarterly", "forecast"])
        assert matched == {"budget", "q3"}

    def test_unknown_term_contributes_nothing(self, index):
        assert index.lexical_candidates(["zzz"]) == frozenset()
        assert index.lexical_candidates(["zzz", "vendor"]) == {"contract"}

    def test_multi_word_term_needs_every_stem(self, index):
        assert index.lexical_candidates(["weekly minutes"]) == {"meeting"}
        assert index.lexical_candidates(["weekly budget"]) == frozenset()

    def test_semantic_candidates_sorted_and_thresholded(self, index):
        matches = index.semantic_candidates({concept_key("finance"): 1.0}, threshold=0.3, limit=10)
        ids = [doc_id for doc_id, _ in matches]
        assert set(ids) == {"budget", "q3"}
        similarities = [sim for _, sim in matches]
        assert similarities == sorted(similarities, reverse=True)

    def test_empty_query_vector_has_no_semantic_candidates(self, index):
        assert index.semantic_candidates({}) == []

    def test_snapshot_isolated_from_later_writes(self, index):
        before = index.snapshot()
        index.upsert(make_document("new", "Budget Forecast", keywords=["budget"]))
        index.remove("q3")

        assert "new" not in before
        assert "q3" in before
        assert "new" not in before.lexical_candidates(["forecast"])
        assert index.snapshot().generation > before.generation
        assert "new" in index.snapshot()

    def test_shutdown_resets_readiness(self, index):
        index.shutdown()
        assert not index.is_ready
        assert len(index.snapshot()) == 0

    def test_zero_cap_indexes_nothing(self, corpus):
        empty = CorpusIndex(max_documents=0)
        assert empty.build_full(corpus) == 0
        assert empty.is_ready
        assert len(empty.snapshot()) == 0


class TestWritesDuringBuild:

    def test_upsert_during_build_survives(self, corpus):
        index = CorpusIndex(max_documents=10)
        late = make_document("late", "Travel Policy", keywords=["travel"])

        def listing():
            yield from corpus
            index.upsert(late)

        index.build_full(listing())
        assert "late" in index.snapshot()
        assert "late" in index.lexical_candidates(["travel"])

    def test_newer_version_wins_over_listed_copy(self, corpus, budget_doc):
        index = CorpusIndex(max_documents=10)
        renamed = budget_doc.model_copy(update={'title': "Annual Hiring Plan"})

        def listing():
            yield from corpus
            index.upsert(renamed)

        index.build_full(listing())
        assert index.snapshot().get("budget").document.title == "Annual Hiring Plan"
        assert "budget" not in index.lexical_candidates(["quarterly"])

    def test_remove_during_build_survives(self, corpus):
        index = CorpusIndex(max_documents=10)

        def listing():
            yield from corpus
            index.remove("q3")

        count = index.build_full(listing())
        assert "q3" not in index.snapshot()
        assert "q3" not in index.snapshot().vectors
        assert count == len(corpus) - 1

    def test_writes_between_begin_and_build_are_replayed(self, corpus):
        index = CorpusIndex(max_documents=10)
        index.begin_build()
        listed = list(corpus)
        index.upsert(make_document("late", "Travel Policy", keywords=["travel"]))

        index.build_full(listed)
        assert "late" in index.snapshot()

    def test_writes_after_build_are_not_logged(self, index):
        index.upsert(make_document("late", "Travel Policy"))
        assert index._pending is None

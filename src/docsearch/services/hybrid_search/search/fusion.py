"""
Candidate fusion and relevance scoring.

A document found by both branches scores the average of its two branch
scores; a document found by one branch keeps that score unchanged. Boosts
are then added, each capped on its own, and the total is clamped to [0, 1].
"""

from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional

from ....shared import get_logger
from ..indexing.corpus_index import IndexedDocument, IndexSnapshot
from ..indexing.tokenizer import concept_key, contains_all, stem
from ..models import Candidate, EnhancedQuery, ScoredResult, ScoringBreakdown, SearchType

TITLE_BOOST = 0.3
KEYWORD_BOOST = 0.2
ENTITY_BOOST = 0.25
FRESHNESS_BOOST = 0.1
PERSONAL_TERM_BOOST = 0.05

TITLE_BOOST_CAP = 0.6
KEYWORD_BOOST_CAP = 0.4
ENTITY_BOOST_CAP = 0.5
FRESHNESS_BOOST_CAP = 0.1
PERSONALIZATION_BOOST_CAP = 0.1

FRESHNESS_WINDOW_DAYS = 365


def fuse_candidates(text: Dict[str, float], semantic: Dict[str, float]) -> List[Candidate]:
    """Merge the two branch result maps by document ID."""
    candidates = []
    for doc_id in sorted(set(text) | set(semantic)):
        types = set()
        if doc_id in text:
            types.add(SearchType.TEXT.value)
        if doc_id in semantic:
            types.add(SearchType.SEMANTIC.value)
        candidates.append(Candidate(
            doc_id=doc_id,
            text_score=text.get(doc_id, 0.0),
            semantic_score=semantic.get(doc_id, 0.0),
            search_types=frozenset(types),
        ))
    return candidates


def freshness(created_at: datetime, now: datetime) -> float:
    """1.0 for a brand-new document, decaying linearly to 0 after a year."""
    age_days = (now - created_at).total_seconds() / 86400
    return min(1.0, max(0.0, 1 - age_days / FRESHNESS_WINDOW_DAYS))


def _clamp(value: float) -> float:
    return min(1.0, max(0.0, value))


class RelevanceScorer:
    """
    Turns fused candidates into ScoredResults with a scoring breakdown.
    """

    def __init__(self, now: Optional[Callable[[], datetime]] = None):
        self.logger = get_logger(__name__)
        self._now = now or (lambda: datetime.now(timezone.utc))

    def score(self,
              candidates: Iterable[Candidate],
              snapshot: IndexSnapshot,
              query: EnhancedQuery) -> List[ScoredResult]:
        now = self._now()
        query_entities = {concept_key(entity.name) for entity in query.entities} - {''}
        personal_stems = [stem(term) for term in query.personal_terms]

        results = []
        for candidate in candidates:
            entry = snapshot.get(candidate.doc_id)
            if entry is None:
                continue
            results.append(self._score_one(candidate, entry, query, query_entities, personal_stems, now))
        return results

    def _score_one(self,
                   candidate: Candidate,
                   entry: IndexedDocument,
                   query: EnhancedQuery,
                   query_entities: set,
                   personal_stems: List[str],
                   now: datetime) -> ScoredResult:
        document = entry.document
        title = set(entry.title_stems)
        keywords = set(entry.flat_keyword_stems)

        title_matches = 0
        keyword_matches = 0
        for term in query.expanded_terms:
            stems = term.split()
            if contains_all(title, stems):
                title_matches += 1
            if contains_all(keywords, stems):
                keyword_matches += 1

        document_entities = {concept_key(entity.name) for entity in document.entities}
        entity_matches = len(query_entities & document_entities)

        fresh = freshness(document.created_at, now)
        personal_hits = sum(1 for s in personal_stems if s in title or s in keywords)

        breakdown = ScoringBreakdown(
            base_score=candidate.base_score,
            title_matches=title_matches,
            keyword_matches=keyword_matches,
            entity_matches=entity_matches,
            freshness_score=fresh,
            title_boost=min(TITLE_BOOST_CAP, TITLE_BOOST * title_matches),
            keyword_boost=min(KEYWORD_BOOST_CAP, KEYWORD_BOOST * keyword_matches),
            entity_boost=min(ENTITY_BOOST_CAP, ENTITY_BOOST * entity_matches),
            freshness_boost=min(FRESHNESS_BOOST_CAP, FRESHNESS_BOOST * fresh),
            personalization_boost=min(PERSONALIZATION_BOOST_CAP, PERSONAL_TERM_BOOST * personal_hits),
        )

        relevance = _clamp(
            breakdown.base_score
            + breakdown.title_boost
            + breakdown.keyword_boost
            + breakdown.entity_boost
            + breakdown.freshness_boost
            + breakdown.personalization_boost
        )

        return ScoredResult(
            doc_id=document.id,
            title=document.title,
            description=document.description,
            keywords=list(document.keywords),
            document_type=document.document_type,
            owner_id=document.owner_id,
            created_at=document.created_at,
            text_score=_clamp(candidate.text_score),
            semantic_score=_clamp(candidate.semantic_score),
            search_types=sorted(candidate.search_types),
            relevance_score=relevance,
            scoring_breakdown=breakdown,
        )

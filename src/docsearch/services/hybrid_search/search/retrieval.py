"""
Two-branch retrieval: lexical postings and concept-vector similarity.

Both branches run against the same IndexSnapshot and are awaited
independently; one branch failing never cancels or empties the other.
A failing permission predicate is the exception and always propagates.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from ....shared import PermissionFilterError, get_logger, get_metrics, get_settings
from ..indexing.corpus_index import IndexedDocument, IndexSnapshot, build_concept_vector
from ..indexing.tokenizer import contains_all
from ..models import Document, EnhancedQuery, SearchType

PermissionFilter = Callable[[Document, Optional[str]], bool]

# Per-term contribution by the best field the term occurs in
TITLE_WEIGHT = 1.0
KEYWORD_WEIGHT = 0.7
DESCRIPTION_WEIGHT = 0.4


@dataclass
class RetrievalOutcome:
    """Scores per branch, keyed by document ID, plus the branches that failed."""
    text: Dict[str, float] = field(default_factory=dict)
    semantic: Dict[str, float] = field(default_factory=dict)
    failed_branches: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.text and not self.semantic


def text_score(entry: IndexedDocument, query: EnhancedQuery) -> float:
    """Match density of the expanded terms, weighted by field, in [0, 1]."""
    title = set(entry.title_stems)
    keywords = set(entry.flat_keyword_stems)
    body = set(entry.description_stems) | set(entry.summary_stems)

    total = 0.0
    for term in query.expanded_terms:
        stems = term.split()
        if contains_all(title, stems):
            total += TITLE_WEIGHT
        elif contains_all(keywords, stems):
            total += KEYWORD_WEIGHT
        elif contains_all(body, stems):
            total += DESCRIPTION_WEIGHT

    return min(1.0, total / max(1, len(set(query.stems))))


class RetrievalEngine:
    """
    Runs the text and semantic branches for one enhanced query.
    """

    def __init__(self,
                 semantic_threshold: Optional[float] = None,
                 semantic_limit: Optional[int] = None):
        settings = get_settings()
        self.logger = get_logger(__name__)
        self.metrics = get_metrics()
        self.semantic_threshold = (
            settings.semantic_threshold if semantic_threshold is None else semantic_threshold
        )
        self.semantic_limit = settings.semantic_limit if semantic_limit is None else semantic_limit

    async def retrieve(self,
                       query: EnhancedQuery,
                       snapshot: IndexSnapshot,
                       permission_filter: PermissionFilter,
                       caller_id: Optional[str] = None,
                       search_type: SearchType = SearchType.HYBRID) -> RetrievalOutcome:
        """
        Retrieve permitted candidates from one or both branches.

        Raises:
            PermissionFilterError: If the permission predicate raised
        """
        allowed = self._permission_check(snapshot, permission_filter, caller_id)

        branches: List[Tuple[str, Callable[[], Dict[str, float]]]] = []
        if search_type in (SearchType.TEXT, SearchType.HYBRID):
            branches.append((SearchType.TEXT.value, lambda: self._text_branch(query, snapshot, allowed)))
        if search_type in (SearchType.SEMANTIC, SearchType.HYBRID):
            branches.append((SearchType.SEMANTIC.value, lambda: self._semantic_branch(query, snapshot, allowed)))

        results = await asyncio.gather(
            *(asyncio.to_thread(run) for _, run in branches),
            return_exceptions=True,
        )

        outcome = RetrievalOutcome()
        for (branch, _), result in zip(branches, results):
            if isinstance(result, PermissionFilterError):
                raise result
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                self.logger.warning(f"{branch} retrieval branch failed, continuing without it: {result}")
                self.metrics.record_branch_failure(branch, result)
                outcome.failed_branches.append(branch)
                continue
            setattr(outcome, branch, result)

        return outcome

    @staticmethod
    def _permission_check(snapshot: IndexSnapshot,
                          permission_filter: PermissionFilter,
                          caller_id: Optional[str]) -> Callable[[str], bool]:
        def allowed(doc_id: str) -> bool:
            entry = snapshot.get(doc_id)
            if entry is None:
                return False
            try:
                return bool(permission_filter(entry.document, caller_id))
            except Exception as e:
                raise PermissionFilterError(
                    f"Permission filter failed for document {doc_id}: {e}"
                ) from e
        return allowed

    def _text_branch(self, query: EnhancedQuery, snapshot: IndexSnapshot,
                     allowed: Callable[[str], bool]) -> Dict[str, float]:
        scores = {}
        for doc_id in sorted(snapshot.lexical_candidates(query.expanded_terms)):
            if not allowed(doc_id):
                continue
            scores[doc_id] = text_score(snapshot.documents[doc_id], query)
        return scores

    def _semantic_branch(self, query: EnhancedQuery, snapshot: IndexSnapshot,
                         allowed: Callable[[str], bool]) -> Dict[str, float]:
        query_vector = build_concept_vector(query.concepts)
        matches = snapshot.semantic_candidates(
            query_vector,
            threshold=self.semantic_threshold,
            limit=self.semantic_limit,
            accept=allowed,
        )
        return dict(matches)

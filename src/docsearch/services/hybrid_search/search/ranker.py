"""
Ranking and response formatting.

Filters, sorts and paginates scored results, then attaches highlight
snippets and related-keyword suggestions to the returned page.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from ....shared import get_logger, get_settings
from ..indexing.corpus_index import IndexSnapshot
from ..indexing.tokenizer import analyze, concept_key, count_occurrences
from ..models import EnhancedQuery, ScoredResult, SortBy


@dataclass
class RankedPage:
    """One page of ranked results plus the totals needed for the response."""
    results: List[ScoredResult] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    total_results: int = 0
    page: int = 1
    page_size: int = 0


def _relevance_key(result: ScoredResult) -> Tuple:
    return (-result.relevance_score, -result.created_at.timestamp(), result.doc_id)


def _date_key(result: ScoredResult) -> Tuple:
    return (-result.created_at.timestamp(), -result.relevance_score, result.doc_id)


def truncate(text: str, max_chars: int) -> str:
    if len(text) <= max_chars:
        return text
    return text[:max_chars].rstrip() + "..."


class Ranker:
    """
    Orders results and builds the page returned to the caller.

    Relevance ordering breaks ties by creation time, newest first.
    """

    def __init__(self,
                 default_max_results: Optional[int] = None,
                 max_results_limit: Optional[int] = None,
                 highlight_max_chars: Optional[int] = None,
                 max_suggestions: Optional[int] = None):
        settings = get_settings()
        self.logger = get_logger(__name__)
        self.default_max_results = settings.default_max_results if default_max_results is None else default_max_results
        self.max_results_limit = settings.max_results_limit if max_results_limit is None else max_results_limit
        self.highlight_max_chars = settings.highlight_max_chars if highlight_max_chars is None else highlight_max_chars
        self.max_suggestions = settings.max_suggestions if max_suggestions is None else max_suggestions

    def page_size(self, max_results: Optional[int]) -> int:
        """Clamp a requested page size into [1, max_results_limit]."""
        if max_results is None:
            max_results = self.default_max_results
        return max(1, min(self.max_results_limit, max_results))

    def rank(self,
             results: List[ScoredResult],
             snapshot: IndexSnapshot,
             query: EnhancedQuery,
             filter_type: Optional[str] = None,
             sort_by: SortBy = SortBy.RELEVANCE,
             max_results: Optional[int] = None,
             page: int = 1) -> RankedPage:
        if filter_type is not None:
            results = [r for r in results if r.document_type == filter_type]

        key = _date_key if sort_by == SortBy.DATE else _relevance_key
        ordered = sorted(results, key=key)

        size = self.page_size(max_results)
        page = max(1, page)
        start = (page - 1) * size

        returned = []
        for position, result in enumerate(ordered[start:start + size], start=start + 1):
            returned.append(result.model_copy(update={
                'rank': position,
                'highlight': self.highlight(snapshot, result.doc_id, query),
            }))

        return RankedPage(
            results=returned,
            suggestions=self.suggestions(returned, query),
            total_results=len(ordered),
            page=page,
            page_size=size,
        )

    def highlight(self, snapshot: IndexSnapshot, doc_id: str, query: EnhancedQuery) -> Optional[str]:
        """The field with the most expanded-term occurrences, truncated; earlier fields win ties."""
        entry = snapshot.get(doc_id)
        if entry is None:
            return None

        document = entry.document
        fields = [
            (document.title, entry.title_stems),
            (document.description, entry.description_stems),
            (document.summary, entry.summary_stems),
            (", ".join(document.keywords), entry.flat_keyword_stems),
        ]

        best_text, best_count = None, -1
        for text, stems in fields:
            if not text:
                continue
            count = sum(count_occurrences(stems, term.split()) for term in query.expanded_terms)
            if count > best_count:
                best_text, best_count = text, count

        if best_text is None:
            return None
        return truncate(best_text, self.highlight_max_chars)

    def suggestions(self, results: List[ScoredResult], query: EnhancedQuery) -> List[str]:
        """Related keywords from the returned results that the query does not already contain."""
        if self.max_suggestions <= 0:
            return []

        query_text = query.original.lower()
        query_stems = set(query.stems)
        seen = set()
        suggestions = []

        for result in results:
            for keyword in result.keywords:
                lowered = keyword.lower()
                if lowered in seen:
                    continue
                seen.add(lowered)
                if lowered in query_text or concept_key(keyword) in query_stems:
                    continue
                if not analyze(keyword):
                    continue
                suggestions.append(keyword)
                if len(suggestions) >= self.max_suggestions:
                    return suggestions
        return suggestions

"""
Hybrid search data models for DocSearch.

Defines the document projection held by the engine, the query and
candidate types passed between pipeline stages, and the response
shapes returned to callers.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, List, NamedTuple, Optional, Tuple

from pydantic import Field, field_validator

from ...shared.models.base import BaseModel


class Visibility(str, Enum):
    """Who may see a document besides its owner."""
    OWNER_ONLY = "owner_only"
    PUBLIC = "public"
    ALLOW_LIST = "allow_list"


class Intent(str, Enum):
    """Query intent, resolved once during query enhancement."""
    TASK = "task"
    DOCUMENT = "document"
    SEARCH = "search"
    SCHEDULE = "schedule"
    CONVERSATION = "conversation"
    FILE = "file"
    GENERAL = "general"

    @classmethod
    def from_label(cls, label: Any) -> Optional["Intent"]:
        """Map a collaborator label to an Intent, or None when unrecognized."""
        if not isinstance(label, str):
            return None
        return INTENT_LABELS.get(label.strip().lower())


# Accepts both the short names and the long labels the extraction prompt
# historically produced.
INTENT_LABELS: Dict[str, Intent] = {
    **{intent.value: intent for intent in Intent},
    "task_management": Intent.TASK,
    "document_analysis": Intent.DOCUMENT,
    "search_query": Intent.SEARCH,
    "schedule_management": Intent.SCHEDULE,
    "ai_conversation": Intent.CONVERSATION,
    "file_operation": Intent.FILE,
}


class SearchType(str, Enum):
    """Which retrieval branches a search runs."""
    TEXT = "text"
    SEMANTIC = "semantic"
    HYBRID = "hybrid"


class SortBy(str, Enum):
    """Result ordering."""
    RELEVANCE = "relevance"
    DATE = "date"


class Entity(NamedTuple):
    """A typed named entity, e.g. ("project", "apollo")."""
    type: str
    name: str


class Document(BaseModel):
    """
    Engine-side projection of a stored document.

    The document store owns the record; the engine only indexes the
    fields below and never mutates them.
    """

    id: str = Field(..., min_length=1, description="Stable document identifier")
    title: str = Field(default="", description="Document title")
    description: str = Field(default="", description="Short description")
    summary: str = Field(default="", description="Extracted summary")
    keywords: List[str] = Field(default_factory=list, description="Keywords ordered by importance")
    owner_id: str = Field(..., description="Uploading user")
    visibility: Visibility = Field(default=Visibility.OWNER_ONLY, description="Visibility mode")
    allowed_users: List[str] = Field(
        default_factory=list, description="Users allowed when visibility is allow_list"
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), description="Creation timestamp"
    )
    document_type: Optional[str] = Field(default=None, description="Document type, e.g. report or contract")
    tags: List[str] = Field(default_factory=list, description="Free-form tags")
    entities: List[Entity] = Field(default_factory=list, description="Entities extracted from the document")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Additional document metadata")

    @field_validator('keywords', 'tags', mode='before')
    @classmethod
    def drop_blank_strings(cls, v):
        if v is None:
            return []
        return [item for item in v if isinstance(item, str) and item.strip()]

    @field_validator('created_at')
    @classmethod
    def ensure_timezone(cls, v: datetime) -> datetime:
        """Naive timestamps are taken as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    def is_visible_to(self, caller_id: Optional[str]) -> bool:
        """Owner match OR public OR caller in the allow-list."""
        if self.visibility == Visibility.PUBLIC:
            return True
        if caller_id is None:
            return False
        if caller_id == self.owner_id:
            return True
        return self.visibility == Visibility.ALLOW_LIST and caller_id in self.allowed_users


def default_permission_filter(document: Document, caller_id: Optional[str]) -> bool:
    """Permission predicate used when the caller supplies none."""
    return document.is_visible_to(caller_id)


@dataclass(frozen=True)
class EnhancedQuery:
    """Represents a cleaned, stemmed and expanded query. Immutable."""
    original: str
    cleaned: str
    cleaned_tokens: Tuple[str, ...]
    stems: Tuple[str, ...]
    expanded_terms: FrozenSet[str]
    intent: Intent
    entities: FrozenSet[Entity]
    # Ordered concept keys; rank drives the 1/(rank+1) weighting
    concepts: Tuple[str, ...] = ()
    personal_terms: Tuple[str, ...] = ()
    extraction_error: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.expanded_terms

    def summary(self) -> Dict[str, Any]:
        return {
            'original': self.original,
            'cleaned': self.cleaned,
            'tokens': list(self.cleaned_tokens),
            'stems': list(self.stems),
            'expanded_terms': sorted(self.expanded_terms),
            'intent': self.intent.value,
            'entities': [{'type': e.type, 'name': e.name} for e in sorted(self.entities)],
            'personal_terms': list(self.personal_terms),
        }


@dataclass(frozen=True)
class Candidate:
    """A document found by one or both retrieval branches."""
    doc_id: str
    text_score: float = 0.0
    semantic_score: float = 0.0
    search_types: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def base_score(self) -> float:
        """Average when both branches matched, otherwise the single branch score."""
        if SearchType.TEXT.value in self.search_types and SearchType.SEMANTIC.value in self.search_types:
            return (self.text_score + self.semantic_score) / 2
        if SearchType.TEXT.value in self.search_types:
            return self.text_score
        return self.semantic_score


class ScoringBreakdown(BaseModel):
    """Per-factor explanation of a relevance score."""

    base_score: float = Field(default=0.0, description="Fused branch score before boosts")
    title_matches: int = Field(default=0, description="Expanded terms found in the title")
    keyword_matches: int = Field(default=0, description="Expanded terms found in the keywords")
    entity_matches: int = Field(default=0, description="Query entities found among document entities")
    freshness_score: float = Field(
        default=0.0, ge=0.0, le=1.0, description="1 for brand-new, 0 after a year"
    )
    title_boost: float = Field(default=0.0)
    keyword_boost: float = Field(default=0.0)
    entity_boost: float = Field(default=0.0)
    freshness_boost: float = Field(default=0.0)
    personalization_boost: float = Field(default=0.0)


class ScoredResult(BaseModel):
    """
    A ranked search hit.

    Carries both branch scores, the fused relevance score and its
    breakdown, plus the document fields needed for display.
    """

    doc_id: str = Field(..., description="Matched document ID")
    title: str = Field(default="", description="Document title")
    description: str = Field(default="", description="Document description")
    keywords: List[str] = Field(default_factory=list, description="Document keywords")
    document_type: Optional[str] = Field(default=None, description="Document type")
    owner_id: str = Field(..., description="Document owner")
    created_at: datetime = Field(..., description="Document creation time")

    text_score: float = Field(default=0.0, ge=0.0, le=1.0, description="Lexical branch score")
    semantic_score: float = Field(default=0.0, ge=0.0, le=1.0, description="Semantic branch score")
    search_types: List[SearchType] = Field(
        default_factory=list, description="Branches that found the document"
    )
    relevance_score: float = Field(..., ge=0.0, le=1.0, description="Final relevance score")
    scoring_breakdown: ScoringBreakdown = Field(default_factory=ScoringBreakdown)
    rank: int = Field(default=0, description="1-based position in the full ranking")
    highlight: Optional[str] = Field(default=None, description="Best-matching field snippet")


class SearchOptions(BaseModel):
    """
    Caller options for one search.

    Fields accept their camelCase API names (maxResults, searchType, ...)
    as well as the Python names.

    Malformed pagination values never raise; they fall back to defaults
    and are clamped by the ranker.
    """

    search_type: SearchType = Field(
        default=SearchType.HYBRID, alias="searchType", description="Retrieval branches to run"
    )
    filter_type: Optional[str] = Field(
        default=None, alias="filterType", description="Only return this document type"
    )
    sort_by: SortBy = Field(default=SortBy.RELEVANCE, alias="sortBy", description="Result ordering")
    max_results: Optional[int] = Field(
        default=None, alias="maxResults", description="Page size; settings default when unset"
    )
    page: int = Field(default=1, description="1-based page number")
    enable_personalization: bool = Field(
        default=True, alias="enablePersonalization", description="Use and record search history"
    )
    timeout: Optional[float] = Field(default=None, description="Deadline for retrieval in seconds")

    @field_validator('max_results', mode='before')
    @classmethod
    def coerce_max_results(cls, v):
        if v is None or isinstance(v, bool):
            return None
        try:
            return int(v)
        except (TypeError, ValueError):
            return None

    @field_validator('page', mode='before')
    @classmethod
    def coerce_page(cls, v):
        try:
            page = int(v)
        except (TypeError, ValueError):
            return 1
        return max(1, page)

    @field_validator('timeout', mode='before')
    @classmethod
    def coerce_timeout(cls, v):
        if v is None:
            return None
        try:
            v = float(v)
        except (TypeError, ValueError):
            return None
        return v if v > 0 else None


class SearchHistoryEntry(BaseModel):
    """One recorded search of one user."""

    query: str = Field(..., description="Raw query text")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), description="When the search ran"
    )
    result_count: int = Field(default=0, ge=0, description="Total results of the search")


class SearchResponse(BaseModel):
    """
    Represents a complete search response.

    Zero results is a valid response, not an error.
    """

    query: str = Field(..., description="Original query text")
    search_type: SearchType = Field(..., description="Search type requested")
    results: List[ScoredResult] = Field(default_factory=list, description="Results of the requested page")
    suggestions: List[str] = Field(default_factory=list, description="Related keyword suggestions")
    total_results: int = Field(default=0, description="Results before pagination")
    search_time_ms: int = Field(default=0, description="Wall time of the search")

    page: int = Field(default=1)
    max_results: int = Field(default=0)
    intent: Intent = Field(default=Intent.GENERAL, description="Resolved query intent")
    degraded_branches: List[str] = Field(
        default_factory=list, description="Branches that failed and were skipped"
    )
    index_generation: int = Field(default=0, description="Index snapshot the search ran against")
    enhanced_query: Dict[str, Any] = Field(default_factory=dict, description="Enhanced query summary")

    @property
    def returned_results(self) -> int:
        return len(self.results)

    def get_document_ids(self) -> List[str]:
        return [r.doc_id for r in self.results]

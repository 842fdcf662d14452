"""
Hybrid search service for DocSearch.

Indexes documents into lexical postings and keyword concept vectors,
enhances natural-language queries, retrieves from both structures in
parallel and returns a fused, permission-filtered, ranked result set.
"""

from .service import HybridSearchService
from .models import (
    Document, Entity, Intent, SearchType, SortBy, Visibility, SearchOptions,
    ScoredResult, ScoringBreakdown, SearchResponse, SearchHistoryEntry,
    EnhancedQuery, default_permission_filter
)
from .indexing import CorpusIndex, IndexSnapshot
from .extraction import ConceptExtractor, ExtractionResult, GeminiConceptExtractor, NullConceptExtractor
from .search import PersonalizationLayer, QueryEnhancer, RetrievalEngine, RelevanceScorer, Ranker
from .sources import DocumentSource, InMemoryDocumentSource

__all__ = [
    'HybridSearchService',
    'Document',
    'Entity',
    'Intent',
    'SearchType',
    'SortBy',
    'Visibility',
    'SearchOptions',
    'ScoredResult',
    'ScoringBreakdown',
    'SearchResponse',
    'SearchHistoryEntry',
    'EnhancedQuery',
    'default_permission_filter',
    'CorpusIndex',
    'IndexSnapshot',
    'ConceptExtractor',
    'ExtractionResult',
    'GeminiConceptExtractor',
    'NullConceptExtractor',
    'PersonalizationLayer',
    'QueryEnhancer',
    'RetrievalEngine',
    'RelevanceScorer',
    'Ranker',
    'DocumentSource',
    'InMemoryDocumentSource',
]

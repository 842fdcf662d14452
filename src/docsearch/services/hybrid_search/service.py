"""
Main hybrid search service for DocSearch.

Owns the corpus index lifecycle (initialize, rebuild, shutdown), keeps
the index current through document change notifications, and runs the
search pipeline: enhance, retrieve, fuse, score, rank, record history.
"""

import asyncio
import time
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from ...shared import (
    IndexInitializationError, IndexNotReadyError, InvalidQueryError, SearchTimeoutError,
    Settings, ValidationError, get_logger, get_metrics, get_settings
)
from .extraction import ConceptExtractor, GeminiConceptExtractor, NullConceptExtractor
from .indexing import CorpusIndex
from .models import Document, SearchOptions, SearchResponse, SearchType, default_permission_filter
from .search import (
    PermissionFilter, PersonalizationLayer, QueryEnhancer, Ranker,
    RelevanceScorer, RetrievalEngine, fuse_candidates
)
from .sources import DocumentSource


class HybridSearchService:
    """
    Main hybrid search service.

    Refuses queries until a full index build has succeeded. After that,
    queries and index writes proceed concurrently: each query runs on the
    snapshot it took at the start.
    """

    def __init__(self,
                 source: DocumentSource,
                 concept_extractor: Optional[ConceptExtractor] = None,
                 index: Optional[CorpusIndex] = None,
                 personalization: Optional[PersonalizationLayer] = None,
                 settings: Optional[Settings] = None):
        self.logger = get_logger(__name__)
        self.metrics = get_metrics()
        self.settings = settings or get_settings()

        self.source = source
        self.concept_extractor = concept_extractor or self._default_extractor()
        self.index = index or CorpusIndex(max_documents=self.settings.index_max_documents)
        self.personalization = personalization or PersonalizationLayer(self.settings.history_size)

        self.query_enhancer = QueryEnhancer(
            concept_extractor=self.concept_extractor,
            personalization=self.personalization,
            extraction_timeout=self.settings.concept_extraction_timeout,
            personal_terms_limit=self.settings.personal_terms_limit,
        )
        self.retrieval = RetrievalEngine(
            semantic_threshold=self.settings.semantic_threshold,
            semantic_limit=self.settings.semantic_limit,
        )
        self.scorer = RelevanceScorer()
        self.ranker = Ranker(
            default_max_results=self.settings.default_max_results,
            max_results_limit=self.settings.max_results_limit,
            highlight_max_chars=self.settings.highlight_max_chars,
            max_suggestions=self.settings.max_suggestions,
        )

        self._subscribed = False
        self.logger.info("Hybrid search service initialized")

    def _default_extractor(self) -> ConceptExtractor:
        if self.settings.gemini_api_key:
            return GeminiConceptExtractor(model_name=self.settings.default_llm_model)
        self.logger.info("No Gemini API key configured, concept extraction uses local fallback only")
        return NullConceptExtractor()

    @property
    def is_ready(self) -> bool:
        return self.index.is_ready

    # === Lifecycle ===

    async def initialize(self) -> int:
        """
        Build the index from the document source and start listening for changes.

        Returns:
            Number of documents indexed

        Raises:
            IndexInitializationError: If the source could not be read; the
                service stays unable to serve queries
        """
        return await self._build()

    async def rebuild(self) -> int:
        """
        Rebuild the whole index.

        Also recovers a service whose initialize failed or that was shut
        down. On failure the previous snapshot keeps serving and the error
        is raised.
        """
        return await self._build()

    async def _build(self) -> int:
        # Listen before reading the source so no change falls between the two
        if not self._subscribed:
            self.source.subscribe(self)
            self._subscribed = True

        # One extra document lets the index report a truncated build
        limit = self.settings.index_max_documents + 1
        self.index.begin_build()
        try:
            documents = await self.source.list_visible_documents(limit=limit)
            count = await asyncio.to_thread(self.index.build_full, documents)
        except Exception as e:
            self.index.abort_build()
            self.logger.error(f"Index initialization failed: {e}")
            raise IndexInitializationError(f"Failed to build search index: {e}") from e
        return count

    async def shutdown(self) -> None:
        """Stop listening for changes and drop the index."""
        if self._subscribed:
            self.source.unsubscribe(self)
            self._subscribed = False
        self.index.shutdown()
        self.logger.info("Hybrid search service shut down")

    # === Change notifications ===

    async def on_document_created(self, document: Document) -> None:
        await asyncio.to_thread(self.index.upsert, document)

    async def on_document_updated(self, document: Document) -> None:
        await asyncio.to_thread(self.index.upsert, document)

    async def on_document_deleted(self, doc_id: str) -> None:
        await asyncio.to_thread(self.index.remove, doc_id)

    # === Search ===

    async def search(self,
                     query: str,
                     options: Optional[Union[SearchOptions, Mapping[str, Any]]] = None,
                     caller_id: Optional[str] = None,
                     permission_filter: Optional[PermissionFilter] = None) -> SearchResponse:
        """
        Run one hybrid search.

        Args:
            query: Natural-language query text
            options: SearchOptions or a dict of its fields
            caller_id: Identity the permission filter and history apply to
            permission_filter: Predicate (document, caller_id) -> bool;
                owner OR public OR allow-list when omitted

        Returns:
            SearchResponse; zero results is a valid response

        Raises:
            InvalidQueryError: Empty or whitespace-only query
            IndexNotReadyError: No successful index build yet
            PermissionFilterError: The permission predicate raised
            SearchTimeoutError: Retrieval exceeded options.timeout
        """
        start_time = time.time()

        if not isinstance(query, str) or not query.strip():
            raise InvalidQueryError("Search query must not be empty")
        if not self.index.is_ready:
            raise IndexNotReadyError("Search index is not initialized")

        options = self._coerce_options(options)
        search_type = SearchType(options.search_type)
        personalize = bool(options.enable_personalization and caller_id)

        enhanced = await self.query_enhancer.enhance(query, user_id=caller_id, personalize=personalize)
        snapshot = self.index.snapshot()

        retrieval = self.retrieval.retrieve(
            enhanced,
            snapshot,
            permission_filter or default_permission_filter,
            caller_id=caller_id,
            search_type=search_type,
        )
        if options.timeout is not None:
            try:
                outcome = await asyncio.wait_for(retrieval, timeout=options.timeout)
            except asyncio.TimeoutError:
                raise SearchTimeoutError(
                    f"Search exceeded its {options.timeout:.2f}s deadline"
                ) from None
        else:
            outcome = await retrieval

        candidates = fuse_candidates(outcome.text, outcome.semantic)
        scored = self.scorer.score(candidates, snapshot, enhanced)
        page = self.ranker.rank(
            scored,
            snapshot,
            enhanced,
            filter_type=options.filter_type,
            sort_by=options.sort_by,
            max_results=options.max_results,
            page=options.page,
        )

        duration = time.time() - start_time

        if personalize:
            self._record_history(caller_id, query, page.total_results)

        self.metrics.record_search(search_type.value, duration, page.total_results)
        self.logger.info(
            f"Search '{query}' ({search_type.value}) returned {page.total_results} results "
            f"in {duration * 1000:.0f}ms"
        )

        return SearchResponse(
            query=query,
            search_type=search_type,
            results=page.results,
            suggestions=page.suggestions,
            total_results=page.total_results,
            search_time_ms=int(duration * 1000),
            page=page.page,
            max_results=page.page_size,
            intent=enhanced.intent,
            degraded_branches=outcome.failed_branches,
            index_generation=snapshot.generation,
            enhanced_query=enhanced.summary(),
        )

    @staticmethod
    def _coerce_options(options: Optional[Union[SearchOptions, Mapping[str, Any]]]) -> SearchOptions:
        if options is None:
            return SearchOptions()
        if isinstance(options, SearchOptions):
            return options
        try:
            return SearchOptions(**dict(options))
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid search options: {e}") from e

    def _record_history(self, user_id: str, query: str, result_count: int) -> None:
        try:
            self.personalization.record(user_id, query, result_count)
        except Exception as e:
            self.logger.warning(f"Failed to record search history for user {user_id}: {e}")

    def get_stats(self) -> Dict[str, Any]:
        """Index, personalization and metrics snapshot."""
        return {
            'ready': self.is_ready,
            'index': self.index.get_stats(),
            'personalization': self.personalization.get_stats(),
            'extractor': self.concept_extractor.get_info(),
            'search_types': [t.value for t in SearchType],
            'metrics': self.metrics.get_all_metrics(),
            'recent_searches': [
                {'search_type': point.tags.get('search_type'), 'duration_ms': int(point.value * 1000)}
                for point in self.metrics.get_metric_history('search_duration', limit=10)
            ],
        }

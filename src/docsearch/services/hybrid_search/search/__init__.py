"""
Query pipeline for hybrid search: enhancement, retrieval, fusion,
ranking and personalization.
"""

from .personalization import PersonalizationLayer
from .query_enhancer import QueryEnhancer, INTENT_RULES, SYNONYMS, classify_intent_by_rules
from .retrieval import RetrievalEngine, RetrievalOutcome, PermissionFilter, text_score
from .fusion import RelevanceScorer, fuse_candidates, freshness
from .ranker import Ranker, RankedPage

__all__ = [
    'PersonalizationLayer',
    'QueryEnhancer',
    'INTENT_RULES',
    'SYNONYMS',
    'classify_intent_by_rules',
    'RetrievalEngine',
    'RetrievalOutcome',
    'PermissionFilter',
    'text_score',
    'RelevanceScorer',
    'fuse_candidates',
    'freshness',
    'Ranker',
    'RankedPage',
]

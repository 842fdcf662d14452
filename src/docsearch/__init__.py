"""
DocSearch - Hybrid document search and ranking engine.
"""

__version__ = "1.0.0"
__author__ = "DocSearch Team"

# Re-export main components for easy access
from .shared.config.settings import get_settings
from .shared.exceptions import DocSearchError, ConfigurationError
from .services.hybrid_search import HybridSearchService, Document, SearchOptions, SearchResponse

__all__ = [
    "get_settings",
    "DocSearchError",
    "ConfigurationError",
    "HybridSearchService",
    "Document",
    "SearchOptions",
    "SearchResponse",
]

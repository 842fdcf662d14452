"""
Document sources feeding the hybrid search index.
"""

from .base import DocumentSource, DocumentChangeListener
from .memory_source import InMemoryDocumentSource

__all__ = [
    'DocumentSource',
    'DocumentChangeListener',
    'InMemoryDocumentSource',
]

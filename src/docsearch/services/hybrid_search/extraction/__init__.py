"""
Concept-extraction collaborators for query enhancement.
"""

from .base import (
    ConceptExtractor, ExtractionResult, NullConceptExtractor,
    extract_with_timeout, parse_extraction_payload
)
from .gemini_extractor import GeminiConceptExtractor

__all__ = [
    'ConceptExtractor',
    'ExtractionResult',
    'NullConceptExtractor',
    'GeminiConceptExtractor',
    'extract_with_timeout',
    'parse_extraction_payload',
]

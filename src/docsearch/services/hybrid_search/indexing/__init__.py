"""
Indexing for hybrid search: tokenization, stemming and the corpus index.
"""

from .tokenizer import STOPWORDS, tokenize, stem, analyze, clean_query, concept_key
from .corpus_index import (
    CorpusIndex, IndexSnapshot, IndexedDocument, PostingEntry,
    build_concept_vector, cosine_similarity, index_document
)

__all__ = [
    'STOPWORDS',
    'tokenize',
    'stem',
    'analyze',
    'clean_query',
    'concept_key',
    'CorpusIndex',
    'IndexSnapshot',
    'IndexedDocument',
    'PostingEntry',
    'build_concept_vector',
    'cosine_similarity',
    'index_document',
]

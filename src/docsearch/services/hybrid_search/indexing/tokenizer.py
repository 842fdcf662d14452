"""
Tokenization and stemming shared by the index and the query pipeline.

Both sides of every comparison (postings, concept vectors, boosts,
highlights) go through these functions, so a term always normalizes
the same way whether it came from a document or a query.
"""

import re
from functools import lru_cache
from typing import Any, Iterable, List, Sequence, Tuple

from nltk.stem.porter import PorterStemmer

_CJK_RANGE = '一-龥'

# Query cleaning keeps ideographs, ASCII letters, digits and whitespace only
_QUERY_DISALLOWED = re.compile(rf'[^{_CJK_RANGE}a-zA-Z0-9\s]')
_WHITESPACE = re.compile(r'\s+')

# Punctuation (including underscore) separates tokens
_PUNCTUATION = re.compile(r'[^\w\s]|_')
# One token per ideograph, otherwise maximal non-space runs
_TOKEN = re.compile(rf'[{_CJK_RANGE}]|[^\s{_CJK_RANGE}]+')
_ASCII_WORD = re.compile(r'^[a-z]+$')

# Function words dropped from queries unless the query has nothing else
STOPWORDS = frozenset({
    "a", "an", "and", "are", "as", "at", "be", "by", "for", "from", "how",
    "in", "is", "it", "me", "my", "of", "on", "or", "the", "this", "to",
    "what", "when", "where", "which", "with",
    "的", "了", "和", "是", "在", "我", "有", "与",
})

_stemmer = PorterStemmer()

# Porter converges in a couple of passes; the bound only guards the loop
_MAX_STEM_PASSES = 8


def _as_text(text: Any) -> str:
    if isinstance(text, str):
        return text
    if isinstance(text, (bytes, bytearray)):
        try:
            return bytes(text).decode('utf-8')
        except UnicodeDecodeError:
            return ''
    return ''


def clean_query(text: Any) -> str:
    """Replace disallowed characters with spaces and collapse whitespace."""
    text = _as_text(text)
    text = _QUERY_DISALLOWED.sub(' ', text)
    return _WHITESPACE.sub(' ', text).strip()


def tokenize(text: Any) -> List[str]:
    """
    Split text into lowercase tokens.

    Punctuation is stripped, whitespace separates tokens and every CJK
    ideograph is its own token. Non-text input yields no tokens.
    """
    text = _as_text(text)
    if not text:
        return []
    text = _PUNCTUATION.sub(' ', text.lower())
    return _TOKEN.findall(text)


@lru_cache(maxsize=65536)
def stem(token: str) -> str:
    """
    Porter-stem an ASCII word; other tokens are returned unchanged.

    Iterates to a fixpoint so that stem(stem(t)) == stem(t).
    """
    token = token.lower()
    if not _ASCII_WORD.match(token):
        return token

    current = token
    for _ in range(_MAX_STEM_PASSES):
        reduced = _stemmer.stem(current)
        if reduced == current:
            break
        current = reduced
    return current


def analyze(text: Any) -> List[str]:
    """Tokenize then stem."""
    return [stem(token) for token in tokenize(text)]


def concept_key(text: Any) -> str:
    """Normalized key used for concept-vector entries."""
    return ' '.join(analyze(text))


def contains_all(haystack: Iterable[str], needle: Sequence[str]) -> bool:
    """True when every stem of needle occurs in haystack."""
    if not needle:
        return False
    present = haystack if isinstance(haystack, (set, frozenset)) else set(haystack)
    return all(s in present for s in needle)


def count_occurrences(haystack: Sequence[str], needle: Sequence[str]) -> int:
    """Occurrences of a single stem, or 1/0 presence for a multi-stem phrase."""
    if not needle:
        return 0
    if len(needle) == 1:
        return sum(1 for s in haystack if s == needle[0])
    return 1 if contains_all(haystack, needle) else 0


def analyze_many(texts: Iterable[str]) -> Tuple[Tuple[str, ...], ...]:
    """Analyze each text separately, e.g. a keyword list."""
    return tuple(tuple(analyze(text)) for text in texts)

"""
Common exceptions for DocSearch.
"""


class DocSearchError(Exception):
    """Base exception for all DocSearch errors."""
    pass


class ConfigurationError(DocSearchError):
    """Raised when there are configuration issues."""
    pass


class AIError(DocSearchError):
    """Raised when AI operations fail."""
    pass


class ValidationError(DocSearchError):
    """Raised when data validation fails."""
    pass


class InvalidQueryError(ValidationError):
    """Raised when a search query is empty or whitespace-only."""
    pass


class RepositoryError(DocSearchError):
    """Raised when the document source cannot be read."""
    pass


class SearchError(DocSearchError):
    """Raised when search operations fail."""
    pass


class IndexNotReadyError(SearchError):
    """Raised when a query arrives before the corpus index was built."""
    pass


class IndexInitializationError(SearchError):
    """Raised when the corpus index cannot be built from the document source."""
    pass


class PermissionFilterError(SearchError):
    """Raised when the caller-supplied permission predicate itself fails."""
    pass


class SearchTimeoutError(SearchError):
    """Raised when retrieval does not finish before the caller's deadline."""
    pass

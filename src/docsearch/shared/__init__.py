"""
Shared components for DocSearch.

Contains common models, configuration, exceptions and infrastructure
used by the search services:

- Base data model
- Centralized configuration management
- Shared exception hierarchy
- Infrastructure services (AI client, logging, metrics)
"""

from .models import *
from .config import *
from .exceptions import *
from .infrastructure import *

__all__ = [
    # From models
    "BaseModel",

    # From config
    "Settings", "get_settings",

    # From exceptions
    "DocSearchError", "ConfigurationError", "AIError", "ValidationError",
    "InvalidQueryError", "RepositoryError", "SearchError", "IndexNotReadyError",
    "IndexInitializationError", "PermissionFilterError", "SearchTimeoutError",

    # From infrastructure
    "ModelClient", "get_model_client",
    "get_logger", "setup_logging", "MetricsCollector", "get_metrics", "timed_operation",
]

"""
Shared infrastructure components for DocSearch.

Provides:
- AI model client for the concept-extraction collaborator
- Logging setup
- Metrics collection
"""

from .ai.model_client import ModelClient, get_model_client
from .monitoring.logger import get_logger, setup_logging
from .monitoring.metrics import MetricsCollector, get_metrics, timed_operation

__all__ = [
    # AI Services
    "ModelClient",
    "get_model_client",

    # Monitoring
    "get_logger",
    "setup_logging",
    "MetricsCollector",
    "get_metrics",
    "timed_operation",
]

"""
AI infrastructure for DocSearch.
"""

from .model_client import ModelClient, get_model_client

__all__ = [
    "ModelClient",
    "get_model_client",
]

"""
Shared data models for DocSearch.
"""

from .base import BaseModel

__all__ = [
    "BaseModel",
]

"""
Base models for DocSearch.
"""

from pydantic import BaseModel as PydanticBaseModel


class BaseModel(PydanticBaseModel):
    """
    Base model for all DocSearch data structures.

    Provides common configuration and utilities.
    """

    class Config:
        # Allow field population by name or alias
        validate_by_name = True
        # Validate assignments after object creation
        validate_assignment = True
        # Use enum values instead of enum names
        use_enum_values = True
        # Reject unknown fields
        extra = "forbid"

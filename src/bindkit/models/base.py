"""
Base classes for bindkit models.

All pydantic models in the package share the configuration defined here.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class BaseSyncModel(BaseModel):
    """
    Base model for all sync objects with common configuration.

    Provides the standard Pydantic v2 configuration used across the
    access record, masking and data source models.
    """

    model_config = ConfigDict(
        arbitrary_types_allowed=True,  # Allow Google Cloud client types
        validate_assignment=False,  # Disabled for performance
        validate_default=True,  # Validate defaults once
        populate_by_name=True,  # Allow field population by name
        use_enum_values=False,  # Keep enums as enum objects
        str_strip_whitespace=True,  # Strip whitespace from strings
    )

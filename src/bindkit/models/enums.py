"""
Enum definitions for bindkit models.

This module contains all enumeration types used throughout the sync engine.
"""

from enum import Enum
from typing import Dict, Optional


class ResourceType(str, Enum):
    """Identifies a node type in the GCP resource hierarchy."""
    ORGANIZATION = "organization"
    FOLDER = "folder"
    PROJECT = "project"

    @property
    def collection(self) -> str:
        """Collection segment used in fully-qualified resource names."""
        return f"{self.value}s"


class Action(str, Enum):
    """Action carried by an access record."""
    GRANT = "Grant"
    MASK = "Mask"
    FILTER = "Filtered"  # Row filters, not supported by this data source
    PROMISE = "Promise"  # Not supported by this data source


class IdentityKind(str, Enum):
    """
    Kind of identity carried in an IAM member string.

    The value is the member prefix used by GCP (``user:alice@example.com``).
    """
    USER = "user"
    SERVICE_ACCOUNT = "serviceAccount"
    GROUP = "group"
    DOMAIN = "domain"
    SPECIAL_GROUP = "special_group"
    OTHER = ""  # allUsers, allAuthenticatedUsers, principal:// and friends


class MaskType(str, Enum):
    """
    BigQuery predefined masking expressions.

    Names match ``DataMaskingPolicy.PredefinedExpression`` members.
    """
    SHA256 = "SHA256"
    ALWAYS_NULL = "ALWAYS_NULL"
    DEFAULT_MASKING_VALUE = "DEFAULT_MASKING_VALUE"
    LAST_FOUR_CHARACTERS = "LAST_FOUR_CHARACTERS"
    FIRST_FOUR_CHARACTERS = "FIRST_FOUR_CHARACTERS"
    EMAIL_MASK = "EMAIL_MASK"
    DATE_YEAR_MASK = "DATE_YEAR_MASK"

    @classmethod
    def parse(cls, value: Optional[str]) -> "MaskType":
        """Resolve a declared mask type, defaulting to ALWAYS_NULL when unknown."""
        if value and value.upper() in cls.__members__:
            return cls[value.upper()]
        return cls.ALWAYS_NULL


# Display names shown to users for each predefined masking expression
MASK_TYPE_DISPLAY_NAMES: Dict[MaskType, str] = {
    MaskType.SHA256: "Hash (SHA256)",
    MaskType.ALWAYS_NULL: "Nullify",
    MaskType.DEFAULT_MASKING_VALUE: "Default masking value",
    MaskType.LAST_FOUR_CHARACTERS: "Last four characters",
    MaskType.FIRST_FOUR_CHARACTERS: "First four characters",
    MaskType.EMAIL_MASK: "Email mask",
    MaskType.DATE_YEAR_MASK: "Date year mask",
}


# Data object type used for masked columns
COLUMN_DATA_OBJECT_TYPE = "column"

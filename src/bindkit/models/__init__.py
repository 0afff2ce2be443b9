"""
bindkit models.

Value objects and pydantic models shared by the pull and push directions.
"""

from .access import (
    ACL_SET_TYPE,
    MAX_NAMING_HINT_LENGTH,
    AccessRecord,
    AccessRecordFeedback,
    DesiredAccessRecord,
    Locks,
    WhatItem,
    WhoItem,
    generate_naming_hint,
    who_to_members,
)
from .base import BaseSyncModel
from .bindings import Binding, BindingDelta, flatten_policy_bindings
from .datasource import DataObject, DataObjectType, DataObjectTypePermission, DataSourceMetadata
from .enums import COLUMN_DATA_OBJECT_TYPE, Action, IdentityKind, MaskType, ResourceType
from .identities import SERVICE_ACCOUNT_DOMAIN_MARKER, Identity
from .masking import (
    DataPolicyInfo,
    MaskingInformation,
    PolicyTagInfo,
    TaggedColumn,
    location_from_resource_name,
)
from .resources import ResourceNode

__all__ = [
    # Base
    "BaseSyncModel",
    # Enums
    "Action",
    "IdentityKind",
    "MaskType",
    "ResourceType",
    "COLUMN_DATA_OBJECT_TYPE",
    # Identities and bindings
    "Identity",
    "SERVICE_ACCOUNT_DOMAIN_MARKER",
    "Binding",
    "BindingDelta",
    "flatten_policy_bindings",
    # Hierarchy
    "ResourceNode",
    # Access records
    "ACL_SET_TYPE",
    "MAX_NAMING_HINT_LENGTH",
    "AccessRecord",
    "AccessRecordFeedback",
    "DesiredAccessRecord",
    "Locks",
    "WhatItem",
    "WhoItem",
    "generate_naming_hint",
    "who_to_members",
    # Masking
    "DataPolicyInfo",
    "MaskingInformation",
    "PolicyTagInfo",
    "TaggedColumn",
    "location_from_resource_name",
    # Data source
    "DataObject",
    "DataObjectType",
    "DataObjectTypePermission",
    "DataSourceMetadata",
]

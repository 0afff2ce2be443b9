"""Converters between IAM bindings and access records."""

from .to_access import (
    SPECIAL_GROUP_ROLE_MAPPING,
    BindingToAccessConverter,
    identity_record_name,
    resource_role_record_name,
    special_group_record_name,
)
from .to_bindings import AccessToBindingConverter

__all__ = [
    "SPECIAL_GROUP_ROLE_MAPPING",
    "AccessToBindingConverter",
    "BindingToAccessConverter",
    "identity_record_name",
    "resource_role_record_name",
    "special_group_record_name",
]

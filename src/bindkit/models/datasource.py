"""
Data source models describing the GCP hierarchy to the access platform.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import Field

from .base import BaseSyncModel


class DataObject(BaseSyncModel):
    """A node of the hierarchy as exposed to the access platform."""

    external_id: str
    name: str
    full_name: str
    type: str
    description: str = ""
    parent_external_id: Optional[str] = None


class DataObjectTypePermission(BaseSyncModel):
    """A permission (GCP role) applicable on a data object type."""

    permission: str
    description: str = ""
    global_permissions: List[str] = Field(default_factory=list)


class DataObjectType(BaseSyncModel):
    """A data object type and the permissions that can be granted on it."""

    name: str
    type: str
    label: str
    permissions: List[DataObjectTypePermission] = Field(default_factory=list)
    children: List[str] = Field(default_factory=list)


class DataSourceMetadata(BaseSyncModel):
    """Metadata the access platform needs to interpret this data source."""

    type: str = "gcp"
    data_object_types: List[DataObjectType] = Field(default_factory=list)
    supported_features: List[str] = Field(default_factory=list)
    mask_types: List[str] = Field(default_factory=list)

"""
Data source sync: exposes the resource hierarchy to the access platform.
"""

import logging
from typing import List, Optional, Protocol

from bindkit.config import SyncConfig
from bindkit.models.datasource import DataObject, DataObjectType, DataSourceMetadata
from bindkit.models.enums import MASK_TYPE_DISPLAY_NAMES, ResourceType
from bindkit.models.resources import ResourceNode
from bindkit.roles import PermissionCatalog
from bindkit.walker import ResourceTreeWalker

logger = logging.getLogger(__name__)

# Child types each node type can hold
_CHILD_TYPES = {
    ResourceType.ORGANIZATION: [ResourceType.FOLDER.value, ResourceType.PROJECT.value],
    ResourceType.FOLDER: [ResourceType.FOLDER.value, ResourceType.PROJECT.value],
    ResourceType.PROJECT: [],
}


class DataObjectHandler(Protocol):
    """Receives data objects from the data source sync."""

    def add_data_objects(self, *data_objects: DataObject) -> None:
        ...


def to_data_object(node: ResourceNode) -> DataObject:
    """Describe a hierarchy node as a data object."""
    return DataObject(
        external_id=node.id,
        name=node.display_name or node.id,
        full_name=node.full_name,
        type=node.type.value,
        parent_external_id=node.parent_id,
    )


class DataSourceSyncer:
    """
    Emits one data object per organization, folder and project.

    Args:
        config: Sync configuration
        walker: Resource tree walker
        catalog: Managed permission catalog
    """

    def __init__(
        self,
        config: SyncConfig,
        walker: ResourceTreeWalker,
        catalog: Optional[PermissionCatalog] = None,
    ):
        self.config = config
        self.walker = walker
        self.catalog = catalog or PermissionCatalog()

    def sync_data_source(self, handler: DataObjectHandler) -> int:
        """
        Walk the hierarchy and hand every node to the handler.

        Returns:
            Number of data objects emitted
        """
        count = 0

        def visit(node: ResourceNode) -> None:
            nonlocal count
            handler.add_data_objects(to_data_object(node))
            count += 1

        self.walker.walk(visit)
        logger.info(f"Synced {count} data objects")
        return count

    def get_metadata(self) -> DataSourceMetadata:
        """Data object types with the roles that can be granted on them."""
        types: List[DataObjectType] = []
        for resource_type in ResourceType:
            types.append(DataObjectType(
                name=resource_type.value,
                type=resource_type.value,
                label=resource_type.value.capitalize(),
                permissions=[role.to_permission() for role in self.catalog.roles_for(resource_type.value)],
                children=_CHILD_TYPES[resource_type],
            ))

        mask_types: List[str] = []
        if self.config.masking_enabled:
            mask_types = [mask_type.value for mask_type in MASK_TYPE_DISPLAY_NAMES]

        return DataSourceMetadata(
            data_object_types=types,
            supported_features=["columnMasking"] if self.config.masking_enabled else [],
            mask_types=mask_types,
        )

"""
Folder repository backed by ``resourcemanager_v3.FoldersClient``.
"""

import logging
from typing import Iterator

from bindkit.models.enums import ResourceType
from bindkit.models.resources import ResourceNode

from .base import IamPolicyRepository

logger = logging.getLogger(__name__)


class FolderRepository(IamPolicyRepository):
    """Lists folders and manages their IAM policies."""

    resource_type = ResourceType.FOLDER

    def resource_name(self, resource_id: str) -> str:
        if resource_id.startswith("folders/"):
            return resource_id
        return f"folders/{resource_id}"

    def list_folders(self, parent: ResourceNode) -> Iterator[ResourceNode]:
        """
        Lazily list the folders directly under a parent.

        Pagination is followed by the client's pager.
        """
        logger.debug(f"Listing folders under {parent.entry_name}")
        pager = self.client.list_folders(
            request={"parent": parent.entry_name},
            timeout=self.session.timeout,
        )
        for folder in pager:
            folder_id = folder.name.split("folders/", 1)[-1]
            yield ResourceNode(
                entry_name=folder.name,
                id=folder_id,
                display_name=folder.display_name,
                full_name=folder_id,
                type=ResourceType.FOLDER,
                parent=parent,
            )

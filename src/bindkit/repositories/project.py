"""
Project repository backed by ``resourcemanager_v3.ProjectsClient``.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterator, List

from bindkit.models.enums import ResourceType
from bindkit.models.resources import ResourceNode

from .base import IamPolicyRepository

logger = logging.getLogger(__name__)

ROLE_OWNER = "roles/owner"
ROLE_EDITOR = "roles/editor"
ROLE_VIEWER = "roles/viewer"


@dataclass
class ProjectOwners:
    """Members holding the basic roles on a project."""

    owners: List[str] = field(default_factory=list)
    editors: List[str] = field(default_factory=list)
    viewers: List[str] = field(default_factory=list)


class ProjectRepository(IamPolicyRepository):
    """Lists projects and manages their IAM policies."""

    resource_type = ResourceType.PROJECT

    def resource_name(self, resource_id: str) -> str:
        if resource_id.startswith("projects/"):
            return resource_id
        return f"projects/{resource_id}"

    def list_projects(self, parent: ResourceNode) -> Iterator[ResourceNode]:
        """Lazily list the projects directly under a parent."""
        logger.debug(f"Listing projects under {parent.entry_name}")
        pager = self.client.list_projects(
            request={"parent": parent.entry_name},
            timeout=self.session.timeout,
        )
        for project in pager:
            yield ResourceNode(
                entry_name=project.name,
                id=project.project_id,
                display_name=project.display_name,
                full_name=project.project_id,
                type=ResourceType.PROJECT,
                parent=parent,
            )

    def get_project_owners(self, project_id: str) -> ProjectOwners:
        """
        Members of the owner, editor and viewer roles of a project.

        Args:
            project_id: Project id

        Returns:
            ProjectOwners with prefixed member strings
        """
        owners = ProjectOwners()
        for binding in self.get_bindings(project_id):
            if binding.role == ROLE_OWNER:
                owners.owners.append(binding.member)
            elif binding.role == ROLE_EDITOR:
                owners.editors.append(binding.member)
            elif binding.role == ROLE_VIEWER:
                owners.viewers.append(binding.member)
        return owners

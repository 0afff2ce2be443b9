"""
Depth-first traversal of the GCP resource hierarchy.

The walk starts at the configured organization. For every parent it first
yields all child projects, then every child folder followed by that
folder's own subtree.
"""

import logging
from typing import Callable, Iterator

from google.api_core import exceptions as google_exceptions

from bindkit.models.resources import ResourceNode
from bindkit.repositories.folder import FolderRepository
from bindkit.repositories.organization import OrganizationRepository
from bindkit.repositories.project import ProjectRepository

logger = logging.getLogger(__name__)


class ResourceTreeWalker:
    """
    Walks organization, folders and projects.

    Args:
        organizations: Repository for the root organization
        folders: Repository listing folders
        projects: Repository listing projects
    """

    def __init__(
        self,
        organizations: OrganizationRepository,
        folders: FolderRepository,
        projects: ProjectRepository,
    ):
        self.organizations = organizations
        self.folders = folders
        self.projects = projects

    def iter_nodes(self) -> Iterator[ResourceNode]:
        """
        Lazily yield every node exactly once, parents before children.

        A 4xx while listing the children of a node is logged and the node is
        treated as having no (further) children.

        Raises:
            OrganizationNotFoundError: If the organization cannot be read
        """
        organization = self.organizations.get_organization()
        logger.info(f"Walking resource hierarchy of {organization.entry_name}")
        yield organization
        yield from self._iter_children(organization)

    def walk(self, visit: Callable[[ResourceNode], None]) -> None:
        """
        Call ``visit`` on every node.

        An exception raised by ``visit`` aborts the walk and propagates.
        """
        for node in self.iter_nodes():
            visit(node)

    def _iter_children(self, parent: ResourceNode) -> Iterator[ResourceNode]:
        try:
            for project in self.projects.list_projects(parent):
                logger.debug(f"Visiting {project}")
                yield project
        except google_exceptions.ClientError as e:
            logger.warning(f"Unable to list projects of {parent.entry_name}, skipping them: {e}")

        try:
            for folder in self.folders.list_folders(parent):
                logger.debug(f"Visiting {folder}")
                yield folder
                yield from self._iter_children(folder)
        except google_exceptions.ClientError as e:
            logger.warning(f"Unable to list folders of {parent.entry_name}, skipping them: {e}")

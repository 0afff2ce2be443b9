"""
Repositories wrapping the Google Cloud client libraries.
"""

from .base import IamPolicyRepository
from .datacatalog import FINE_GRAINED_READER_ROLE, TAXONOMY_PREFIX, DataCatalogRepository
from .folder import FolderRepository
from .organization import OrganizationRepository
from .project import ProjectOwners, ProjectRepository

__all__ = [
    "IamPolicyRepository",
    "OrganizationRepository",
    "FolderRepository",
    "ProjectRepository",
    "ProjectOwners",
    "DataCatalogRepository",
    "FINE_GRAINED_READER_ROLE",
    "TAXONOMY_PREFIX",
]

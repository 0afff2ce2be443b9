"""
Managed permission catalog.

Lists the GCP roles the sync engine manages on each resource type. A binding
whose role is not listed for its resource type is "non-applicable": it is
skipped on import unless non-applicable permissions are included, and then
only as a read-only record.
"""

import re
from typing import Dict, Iterable, List, Optional

from pydantic import Field

from bindkit.models.base import BaseSyncModel
from bindkit.models.datasource import DataObjectTypePermission
from bindkit.models.enums import ResourceType

# Global permission levels understood by the access platform
READ = "read"
WRITE = "write"
ADMIN = "admin"

_CAPITAL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def role_to_display_name(role_name: str) -> str:
    """
    Generate a human readable role name.

    ``roles/bigquery.dataViewer`` becomes ``Bigquery Data Viewer``.
    """
    if role_name.startswith("roles/"):
        role_name = role_name[len("roles/"):]
    words = _CAPITAL_BOUNDARY.split(role_name.replace(".", " "))
    return " ".join(word.strip().title() for word in words if word.strip())


class GcpRole(BaseSyncModel):
    """A predefined GCP role known to the catalog."""

    name: str
    description: str = ""
    global_permissions: List[str] = Field(default_factory=list)

    @property
    def display_name(self) -> str:
        return role_to_display_name(self.name)

    def to_permission(self) -> DataObjectTypePermission:
        """Describe this role as a data object type permission."""
        return DataObjectTypePermission(
            permission=self.name,
            description=self.description,
            global_permissions=list(self.global_permissions),
        )


# =============================================================================
# BASIC ROLES
# =============================================================================

ROLE_OWNER = GcpRole(
    name="roles/owner",
    description="Full access to most Google Cloud resources.",
    global_permissions=[ADMIN],
)
ROLE_EDITOR = GcpRole(
    name="roles/editor",
    description="View, create, update, and delete most Google Cloud resources.",
    global_permissions=[READ, WRITE],
)
ROLE_VIEWER = GcpRole(
    name="roles/viewer",
    description="View most Google Cloud resources.",
    global_permissions=[READ],
)

# =============================================================================
# BIGQUERY ROLES
# =============================================================================

ROLE_BQ_ADMIN = GcpRole(
    name="roles/bigquery.admin",
    description="Provides permissions to manage all resources within the project.",
    global_permissions=[ADMIN],
)
ROLE_BQ_CONNECTION_ADMIN = GcpRole(name="roles/bigquery.connectionAdmin")
ROLE_BQ_CONNECTION_USER = GcpRole(name="roles/bigquery.connectionUser")
ROLE_BQ_DATA_EDITOR = GcpRole(
    name="roles/bigquery.dataEditor",
    description="Read and modify data and metadata of datasets and tables.",
    global_permissions=[WRITE],
)
ROLE_BQ_DATA_OWNER = GcpRole(
    name="roles/bigquery.dataOwner",
    description="Read, update, delete and share datasets and tables.",
    global_permissions=[ADMIN],
)
ROLE_BQ_DATA_VIEWER = GcpRole(
    name="roles/bigquery.dataViewer",
    description="Read data and metadata from datasets and tables.",
    global_permissions=[READ],
)
ROLE_BQ_FILTERED_DATA_VIEWER = GcpRole(name="roles/bigquery.filteredDataViewer")
ROLE_BQ_JOB_USER = GcpRole(
    name="roles/bigquery.jobUser",
    description="Run jobs, including queries, within the project.",
)
ROLE_BQ_METADATA_VIEWER = GcpRole(name="roles/bigquery.metadataViewer")
ROLE_BQ_READ_SESSION_USER = GcpRole(name="roles/bigquery.readSessionUser")
ROLE_BQ_RESOURCE_ADMIN = GcpRole(name="roles/bigquery.resourceAdmin")
ROLE_BQ_RESOURCE_EDITOR = GcpRole(name="roles/bigquery.resourceEditor")
ROLE_BQ_RESOURCE_VIEWER = GcpRole(name="roles/bigquery.resourceViewer")
ROLE_BQ_USER = GcpRole(
    name="roles/bigquery.user",
    description="Run jobs and list datasets within the project.",
)
ROLE_BQ_MASKED_READER = GcpRole(
    name="roles/bigquerydatapolicy.maskedReader",
    description="Read masked values of columns protected by a data policy.",
)

# =============================================================================
# DATA CATALOG ROLES
# =============================================================================

ROLE_CATALOG_CATEGORY_ADMIN = GcpRole(name="roles/datacatalog.categoryAdmin")
ROLE_CATALOG_FINE_GRAINED_READER = GcpRole(
    name="roles/datacatalog.categoryFineGrainedReader",
    description="Read the unmasked content of columns protected by a policy tag.",
)

MANAGED_ROLES: List[GcpRole] = [
    ROLE_OWNER,
    ROLE_EDITOR,
    ROLE_VIEWER,
    ROLE_BQ_ADMIN,
    ROLE_BQ_CONNECTION_ADMIN,
    ROLE_BQ_CONNECTION_USER,
    ROLE_BQ_DATA_EDITOR,
    ROLE_BQ_DATA_OWNER,
    ROLE_BQ_DATA_VIEWER,
    ROLE_BQ_FILTERED_DATA_VIEWER,
    ROLE_BQ_JOB_USER,
    ROLE_BQ_METADATA_VIEWER,
    ROLE_BQ_READ_SESSION_USER,
    ROLE_BQ_RESOURCE_ADMIN,
    ROLE_BQ_RESOURCE_EDITOR,
    ROLE_BQ_RESOURCE_VIEWER,
    ROLE_BQ_USER,
    ROLE_BQ_MASKED_READER,
    ROLE_CATALOG_CATEGORY_ADMIN,
    ROLE_CATALOG_FINE_GRAINED_READER,
]


class PermissionCatalog:
    """
    Roles that can be managed per resource type.

    Lookups are case-insensitive on both resource type and role.
    """

    def __init__(self, roles_by_type: Optional[Dict[str, Iterable[GcpRole]]] = None):
        if roles_by_type is None:
            roles_by_type = {resource_type.value: MANAGED_ROLES for resource_type in ResourceType}
        self._roles: Dict[str, Dict[str, GcpRole]] = {
            resource_type.lower(): {role.name.lower(): role for role in roles}
            for resource_type, roles in roles_by_type.items()
        }

    def is_managed(self, resource_type: str, role: str) -> bool:
        """Whether a role is in the catalog for a resource type."""
        return role.lower() in self._roles.get(resource_type.lower(), {})

    def get_role(self, resource_type: str, role: str) -> Optional[GcpRole]:
        return self._roles.get(resource_type.lower(), {}).get(role.lower())

    def roles_for(self, resource_type: str) -> List[GcpRole]:
        return list(self._roles.get(resource_type.lower(), {}).values())

    @property
    def resource_types(self) -> List[str]:
        return list(self._roles)

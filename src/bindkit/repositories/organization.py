"""
Organization repository backed by ``resourcemanager_v3.OrganizationsClient``.
"""

import logging

from google.api_core import exceptions as google_exceptions

from bindkit.config import ORGANIZATION_DATASOURCE_PREFIX
from bindkit.errors import OrganizationNotFoundError
from bindkit.models.enums import ResourceType
from bindkit.models.resources import ResourceNode

from .base import IamPolicyRepository

logger = logging.getLogger(__name__)


class OrganizationRepository(IamPolicyRepository):
    """Reads the configured organization and manages its IAM policy."""

    resource_type = ResourceType.ORGANIZATION

    def resource_name(self, resource_id: str) -> str:
        """
        Resolve an organization id to ``organizations/<id>``.

        Accepts the bare id, the synthetic ``gcp-org-<id>`` data source name
        and the fully-qualified name.
        """
        if resource_id.startswith("organizations/"):
            return resource_id
        if resource_id.startswith(ORGANIZATION_DATASOURCE_PREFIX):
            resource_id = resource_id[len(ORGANIZATION_DATASOURCE_PREFIX):]
        return f"organizations/{resource_id}"

    def get_organization(self) -> ResourceNode:
        """
        Fetch the root node of the hierarchy.

        Raises:
            OrganizationNotFoundError: If the organization lookup is rejected with a 4xx
        """
        config = self.session.config
        name = config.organization_resource_name
        display_name = name

        try:
            organization = self.client.get_organization(
                request={"name": name},
                timeout=self.session.timeout,
            )
            display_name = organization.display_name or name
        except google_exceptions.ClientError as e:
            raise OrganizationNotFoundError(config.organization_id, str(e)) from e
        except google_exceptions.GoogleAPICallError as e:
            logger.warning(f"Unable to fetch details of {name}, using its name as display name: {e}")

        return ResourceNode(
            entry_name=name,
            id=config.organization_datasource_name,
            display_name=display_name,
            full_name=config.organization_datasource_name,
            type=ResourceType.ORGANIZATION,
        )

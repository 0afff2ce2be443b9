"""
Binding collection for resource hierarchy nodes.
"""

import logging
from typing import Dict, Iterable, List

from bindkit.errors import UnsupportedResourceTypeError
from bindkit.models.bindings import Binding
from bindkit.models.enums import ResourceType
from bindkit.models.resources import ResourceNode
from bindkit.repositories.base import IamPolicyRepository

logger = logging.getLogger(__name__)


class BindingCollector:
    """
    Flattens the IAM policy of a node into bindings.

    Policies are cached per resource in the session, so visiting a resource
    twice in one run fetches its policy once.

    Args:
        repositories: IAM repository per resource type
    """

    def __init__(self, repositories: Dict[ResourceType, IamPolicyRepository]):
        self.repositories = repositories

    def repository_for(self, resource_type: str) -> IamPolicyRepository:
        """
        Repository handling a resource type.

        Raises:
            UnsupportedResourceTypeError: If no repository handles the type
        """
        try:
            return self.repositories[ResourceType(resource_type.lower())]
        except (KeyError, ValueError) as e:
            raise UnsupportedResourceTypeError(resource_type) from e

    def bindings(self, node: ResourceNode) -> List[Binding]:
        """
        Bindings of one node.

        Organization bindings carry the bare organization id as resource.
        """
        resource_id = node.id
        if node.type is ResourceType.ORGANIZATION:
            resource_id = node.entry_name.split("/", 1)[-1]

        bindings = self.repository_for(node.type.value).get_bindings(resource_id)
        logger.debug(f"Collected {len(bindings)} bindings for {node}")
        return bindings

    def collect(self, nodes: Iterable[ResourceNode]) -> List[Binding]:
        """Bindings of every node, in node order."""
        result: List[Binding] = []
        for node in nodes:
            result.extend(self.bindings(node))
        return result

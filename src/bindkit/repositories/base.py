"""
Base repository for IAM policies of resource hierarchy nodes.

Organizations, folders and projects expose the same ``get_iam_policy`` /
``set_iam_policy`` pair on their Resource Manager clients. This base class
adds the session policy cache, the 403 degradation and the binding level
mutations on top of it.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, List

from google.api_core import exceptions as google_exceptions
from google.iam.v1 import policy_pb2

from bindkit.models.bindings import Binding, flatten_policy_bindings
from bindkit.models.enums import ResourceType
from bindkit.session import SyncSession

logger = logging.getLogger(__name__)


def policy_role_members(policy: policy_pb2.Policy) -> List[tuple]:
    """(role, members) pairs of a policy in binding order."""
    return [(binding.role, list(binding.members)) for binding in policy.bindings]


class IamPolicyRepository(ABC):
    """
    Reads and writes the IAM policy of one kind of resource.

    Args:
        client: Resource Manager client for the resource kind
        session: Sync session holding the policy cache
    """

    resource_type: ResourceType

    def __init__(self, client: Any, session: SyncSession):
        self.client = client
        self.session = session

    @abstractmethod
    def resource_name(self, resource_id: str) -> str:
        """Fully-qualified name of a resource id (``projects/my-project``)."""

    def get_policy(self, resource_id: str, strict: bool = False) -> policy_pb2.Policy:
        """
        Fetch the IAM policy of a resource, using the session cache.

        A 403 is logged and answered with an empty policy, which is not cached.
        With ``strict`` the 403 propagates; writes must never start from a
        policy that was not actually read.

        Raises:
            google.api_core.exceptions.GoogleAPICallError: On any other failure
        """
        name = self.resource_name(resource_id)
        cached = self.session.get_policy(name)
        if cached is not None:
            return cached

        try:
            policy = self.client.get_iam_policy(
                request={"resource": name},
                timeout=self.session.timeout,
            )
        except google_exceptions.Forbidden as e:
            if strict:
                raise
            logger.warning(f"Not allowed to read IAM policy of {name}, assuming no bindings: {e}")
            return policy_pb2.Policy()

        self.session.store_policy(name, policy)
        return policy

    def get_bindings(self, resource_id: str) -> List[Binding]:
        """Flatten the IAM policy of a resource into one Binding per member."""
        policy = self.get_policy(resource_id)
        return flatten_policy_bindings(
            policy_role_members(policy),
            resource=resource_id,
            resource_type=self.resource_type.value,
        )

    def add_binding(self, binding: Binding) -> bool:
        """
        Grant a role to a member on the binding's resource.

        Returns:
            True if the policy was written, False if the member already had the role
        """
        policy = self._copy_policy(binding.resource)

        target = None
        for policy_binding in policy.bindings:
            if policy_binding.role == binding.role and not policy_binding.HasField("condition"):
                target = policy_binding
                break

        if target is None:
            policy.bindings.add(role=binding.role, members=[binding.member])
        elif any(member.lower() == binding.member.lower() for member in target.members):
            logger.debug(f"Binding {binding} already present")
            return False
        else:
            target.members.append(binding.member)

        self._set_policy(binding.resource, policy)
        return True

    def remove_binding(self, binding: Binding) -> bool:
        """
        Revoke a role from a member on the binding's resource.

        Role bindings left without members are dropped from the policy.

        Returns:
            True if the policy was written, False if there was nothing to remove
        """
        policy = self._copy_policy(binding.resource)

        for index, policy_binding in enumerate(policy.bindings):
            if policy_binding.role != binding.role or policy_binding.HasField("condition"):
                continue

            remaining = [m for m in policy_binding.members if m.lower() != binding.member.lower()]
            if len(remaining) == len(policy_binding.members):
                break

            if remaining:
                del policy_binding.members[:]
                policy_binding.members.extend(remaining)
            else:
                del policy.bindings[index]

            self._set_policy(binding.resource, policy)
            return True

        logger.warning(f"Binding {binding} not found, nothing to remove")
        return False

    def _copy_policy(self, resource_id: str) -> policy_pb2.Policy:
        """Mutable copy of the cached policy, read strictly."""
        policy = policy_pb2.Policy()
        policy.CopyFrom(self.get_policy(resource_id, strict=True))
        return policy

    def _set_policy(self, resource_id: str, policy: policy_pb2.Policy) -> policy_pb2.Policy:
        name = self.resource_name(resource_id)
        updated = self.client.set_iam_policy(
            request={"resource": name, "policy": policy},
            timeout=self.session.timeout,
        )
        self.session.store_policy(name, updated)
        return updated

"""
Resource hierarchy node model.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .enums import ResourceType


@dataclass(frozen=True)
class ResourceNode:
    """
    A node in the organization / folder / project hierarchy.

    Attributes:
        entry_name: Name used to list children (``organizations/123``, ``folders/456``)
        id: Resource id used in bindings (organization datasource name, folder number, project id)
        display_name: Human readable name
        full_name: Fully qualified id, equal to ``id`` for every node type
        type: Node type
        parent: Immediate parent node, None for the organization
    """

    entry_name: str
    id: str
    display_name: str
    full_name: str
    type: ResourceType
    parent: Optional[ResourceNode] = None

    @property
    def policy_resource_name(self) -> str:
        """Fully-qualified name used by the IAM policy APIs."""
        if self.type is ResourceType.PROJECT:
            return f"projects/{self.id}"
        return self.entry_name

    @property
    def parent_id(self) -> Optional[str]:
        return self.parent.id if self.parent is not None else None

    def __str__(self) -> str:
        return f"{self.type.value} {self.id}"

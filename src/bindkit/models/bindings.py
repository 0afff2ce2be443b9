"""
IAM binding models.

A ``Binding`` is a single (member, role, resource) grant as GCP expresses it.
``BindingDelta`` holds the bindings a push cycle has to add and remove,
together with the access records that asked for each of them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, Iterable, Iterator, List, Tuple

from .identities import Identity

if TYPE_CHECKING:
    from .access import DesiredAccessRecord


@dataclass(frozen=True, eq=False)
class Binding:
    """
    A flattened IAM policy binding.

    Equality and hashing ignore case on all four fields.

    Attributes:
        member: Prefixed member string (``user:alice@example.com``)
        role: Role name (``roles/bigquery.dataViewer``)
        resource: Resource id (project id, folder number, organization id)
        resource_type: ``organization``, ``folder`` or ``project``
    """

    member: str
    role: str
    resource: str
    resource_type: str

    def _key(self) -> Tuple[str, str, str, str]:
        return (
            self.member.lower(),
            self.role.lower(),
            self.resource.lower(),
            self.resource_type.lower(),
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Binding):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    @property
    def identity(self) -> Identity:
        """Parsed identity of the member."""
        return Identity.parse(self.member)

    def with_resource(self, resource: str) -> Binding:
        """Copy of this binding pointing at another resource id."""
        return Binding(
            member=self.member,
            role=self.role,
            resource=resource,
            resource_type=self.resource_type,
        )

    def __str__(self) -> str:
        return f"{self.member} -> {self.role} on {self.resource_type} {self.resource}"


@dataclass
class BindingDelta:
    """
    Bindings to add and to delete in one reconciliation cycle.

    Both sides keep insertion order. Each binding maps to the access records
    that requested it so mutation failures can be reported back to them.
    """

    _to_add: Dict[Binding, List['DesiredAccessRecord']] = field(default_factory=dict)
    _to_delete: Dict[Binding, List['DesiredAccessRecord']] = field(default_factory=dict)

    def add(self, binding: Binding, record: 'DesiredAccessRecord') -> None:
        """Schedule a binding for addition on behalf of a record."""
        self._attribute(self._to_add, binding, record)

    def delete(self, binding: Binding, record: 'DesiredAccessRecord') -> None:
        """Schedule a binding for removal on behalf of a record."""
        self._attribute(self._to_delete, binding, record)

    def resolve_conflicts(self) -> None:
        """Drop every binding from the delete side that is also being added."""
        for binding in self._to_add:
            self._to_delete.pop(binding, None)

    @property
    def bindings_to_add(self) -> List[Binding]:
        return list(self._to_add)

    @property
    def bindings_to_delete(self) -> List[Binding]:
        return list(self._to_delete)

    def records_for(self, binding: Binding) -> List['DesiredAccessRecord']:
        """Access records that requested a binding, on either side."""
        records = list(self._to_add.get(binding, []))
        for record in self._to_delete.get(binding, []):
            if all(existing is not record for existing in records):
                records.append(record)
        return records

    def iter_all(self) -> Iterator[Binding]:
        """Iterate deletions first, then additions."""
        yield from self._to_delete
        yield from self._to_add

    def is_empty(self) -> bool:
        return not self._to_add and not self._to_delete

    def __len__(self) -> int:
        return len(self._to_add) + len(self._to_delete)

    @staticmethod
    def _attribute(
        target: Dict[Binding, List['DesiredAccessRecord']],
        binding: Binding,
        record: 'DesiredAccessRecord',
    ) -> None:
        records = target.setdefault(binding, [])
        if all(existing is not record for existing in records):
            records.append(record)


def flatten_policy_bindings(
    role_members: Iterable[Tuple[str, Iterable[str]]],
    resource: str,
    resource_type: str,
) -> List[Binding]:
    """
    Flatten (role, members) pairs into one Binding per member.

    Args:
        role_members: Pairs of role and its members, as found in a policy
        resource: Resource id the policy belongs to
        resource_type: Resource type the policy belongs to

    Returns:
        Flattened bindings in policy order
    """
    return [
        Binding(member=member, role=role, resource=resource, resource_type=resource_type)
        for role, members in role_members
        for member in members
    ]

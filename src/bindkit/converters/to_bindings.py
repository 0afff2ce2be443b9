"""
Conversion of desired access records into binding mutations.
"""

import logging
from typing import Callable, Iterable, List, Optional

from bindkit.models.access import DesiredAccessRecord, who_to_members
from bindkit.models.bindings import Binding, BindingDelta

logger = logging.getLogger(__name__)

# Produces extra bindings to grant alongside a record's members
ExtraBindings = Callable[[List[str]], List[Binding]]


class AccessToBindingConverter:
    """
    Computes the bindings to add and remove for desired access records.

    Args:
        extra_bindings: Optional hook returning bindings granted to the members
            of every record that is not being deleted
    """

    def __init__(self, extra_bindings: Optional[ExtraBindings] = None):
        self.extra_bindings = extra_bindings

    def convert(self, records: Iterable[DesiredAccessRecord]) -> BindingDelta:
        """
        Build the delta for a batch of records.

        Current members are added on every (what, permission) pair, or
        removed when the record is deleted. Deleted members are always
        removed, and ``delete_what`` scope is removed for current and
        deleted members alike. A binding both added and removed is added.
        """
        delta = BindingDelta()

        for record in records:
            members = who_to_members(record.who)
            deleted_members = who_to_members(record.deleted_who)

            for item in record.what:
                for permission in item.permissions:
                    for member in members:
                        binding = Binding(member, permission, item.resource, item.resource_type)
                        if record.delete:
                            delta.delete(binding, record)
                        else:
                            delta.add(binding, record)

                    for member in deleted_members:
                        delta.delete(Binding(member, permission, item.resource, item.resource_type), record)

            for item in record.delete_what:
                for permission in item.permissions:
                    for member in [*members, *deleted_members]:
                        delta.delete(Binding(member, permission, item.resource, item.resource_type), record)

            if self.extra_bindings is not None and not record.delete and record.what and members:
                for binding in self.extra_bindings(members):
                    delta.add(binding, record)

        delta.resolve_conflicts()
        logger.info(
            f"Computed {len(delta.bindings_to_add)} bindings to add and "
            f"{len(delta.bindings_to_delete)} bindings to delete"
        )
        return delta

"""
Conversion of IAM bindings into access records.

Bindings are grouped into one of three shapes:

- one record per (resource type, resource, role), listing every member
- one record per member, for roles configured to be grouped by identity
- one record per project role mapping, for BigQuery special groups

Bindings written by the push direction in the same run are skipped so they
are not imported back as unmanaged grants.
"""

import logging
from typing import Dict, Iterable, List, Optional, Set, Tuple

from bindkit.config import SyncConfig
from bindkit.models.access import (
    ACL_SET_TYPE,
    AccessRecord,
    Locks,
    WhatItem,
    generate_naming_hint,
)
from bindkit.models.bindings import Binding
from bindkit.models.enums import IdentityKind, ResourceType
from bindkit.models.identities import Identity
from bindkit.repositories.project import ProjectOwners, ProjectRepository
from bindkit.roles import PermissionCatalog

logger = logging.getLogger(__name__)

# BigQuery data roles granted to special groups, mapped to the project role they mirror
SPECIAL_GROUP_ROLE_MAPPING: Dict[str, str] = {
    "roles/bigquery.dataViewer": "Viewer",
    "roles/bigquery.dataEditor": "Editor",
    "roles/bigquery.dataOwner": "Owner",
}


def resource_role_record_name(resource_type: str, resource: str, role: str) -> str:
    """Name of the record grouping every member of a role on a resource."""
    return f"{resource_type}_{resource}_{role.replace('/', '_')}"


def identity_record_name(member: str) -> str:
    """Name of the record grouping every binding of one member."""
    return f"Grouped permissions for {member.replace(':', ' ')}"


def special_group_record_name(mapping: str) -> str:
    return f"Project {mapping} Mapping"


def _add_what(record: AccessRecord, item: WhatItem) -> None:
    if item not in record.what:
        record.what.append(item)


class BindingToAccessConverter:
    """
    Converts flattened bindings into access records.

    Args:
        config: Sync configuration
        catalog: Managed permission catalog
        projects: Project repository used to resolve special group members
    """

    def __init__(
        self,
        config: SyncConfig,
        catalog: Optional[PermissionCatalog] = None,
        projects: Optional[ProjectRepository] = None,
    ):
        self.config = config
        self.catalog = catalog or PermissionCatalog()
        self.projects = projects

    def convert(
        self,
        bindings: Iterable[Binding],
        roles_to_group_by_identity: Optional[Set[str]] = None,
        managed_bindings: Optional[Iterable[Binding]] = None,
    ) -> List[AccessRecord]:
        """
        Convert bindings into access records.

        Args:
            bindings: Flattened bindings of the hierarchy
            roles_to_group_by_identity: Roles grouped per member, defaults to the configured roles
            managed_bindings: Bindings written by this run, skipped on import

        Returns:
            Per resource role records, then special group records, then per identity records
        """
        if roles_to_group_by_identity is None:
            roles_to_group_by_identity = self.config.roles_to_group_by_identity
        grouped_roles = {role.lower() for role in roles_to_group_by_identity}
        managed = set(managed_bindings or ())

        per_resource: Dict[Tuple[str, str, str], AccessRecord] = {}
        special_groups: Dict[str, AccessRecord] = {}
        per_identity: Dict[str, AccessRecord] = {}
        owners: Optional[ProjectOwners] = None

        for binding in bindings:
            if binding.resource_type.lower() == ResourceType.ORGANIZATION.value:
                binding = binding.with_resource(self.config.organization_datasource_name)

            is_managed = self.catalog.is_managed(binding.resource_type, binding.role)
            if not is_managed and not self.config.include_non_applicable_permissions:
                logger.debug(f"Skipping non-applicable binding {binding}")
                continue

            if binding in managed:
                logger.debug(f"Skipping binding {binding} written by this run")
                continue

            identity = binding.identity
            what = WhatItem(
                resource=binding.resource,
                resource_type=binding.resource_type,
                permissions=[binding.role],
            )

            if identity.kind is IdentityKind.SPECIAL_GROUP:
                mapping = SPECIAL_GROUP_ROLE_MAPPING.get(binding.role)
                if mapping is None:
                    logger.warning(f"Unknown role {binding.role} for special group binding {binding}, skipping")
                    continue
                if owners is None:
                    owners = self._project_owners()
                self._special_group_record(special_groups, mapping, owners).what.append(what)

            elif binding.role.lower() in grouped_roles:
                record = per_identity.get(binding.member.lower())
                if record is None:
                    name = identity_record_name(binding.member)
                    record = AccessRecord(
                        external_id=name,
                        name=name,
                        naming_hint=generate_naming_hint(name),
                        not_internalizable=True,
                    )
                    record.who.add_identity(identity)
                    per_identity[binding.member.lower()] = record
                _add_what(record, what)

            else:
                key = (binding.resource_type.lower(), binding.resource.lower(), binding.role.lower())
                record = per_resource.get(key)
                if record is None:
                    name = resource_role_record_name(binding.resource_type, binding.resource, binding.role)
                    record = AccessRecord(
                        external_id=name,
                        name=name,
                        naming_hint=generate_naming_hint(name),
                        type=ACL_SET_TYPE,
                        what=[what],
                        not_internalizable=not is_managed,
                        locks=Locks(),
                    )
                    per_resource[key] = record
                record.who.add_identity(identity)

        records = [*per_resource.values(), *special_groups.values(), *per_identity.values()]
        logger.info(
            f"Converted bindings into {len(records)} access records "
            f"({len(per_resource)} per resource, {len(special_groups)} special group, "
            f"{len(per_identity)} per identity)"
        )
        return records

    def _special_group_record(
        self,
        special_groups: Dict[str, AccessRecord],
        mapping: str,
        owners: ProjectOwners,
    ) -> AccessRecord:
        record = special_groups.get(mapping)
        if record is not None:
            return record

        members = {
            "Owner": owners.owners,
            "Editor": owners.editors,
            "Viewer": owners.viewers,
        }[mapping]

        name = special_group_record_name(mapping)
        record = AccessRecord(
            external_id=name,
            name=name,
            naming_hint=generate_naming_hint(name),
            not_internalizable=True,
        )
        for member in members:
            record.who.add_identity(Identity.parse(member))

        special_groups[mapping] = record
        return record

    def _project_owners(self) -> ProjectOwners:
        """Basic role members of the configured project, resolved once per conversion."""
        if self.projects is None or not self.config.project_id:
            logger.warning("No project configured, special group records will have no members")
            return ProjectOwners()
        return self.projects.get_project_owners(self.config.project_id)

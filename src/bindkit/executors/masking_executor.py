"""
Masking executor managing the lifecycle of BigQuery column masks.

A mask spanning several storage locations is backed by one policy tag /
data policy pair per location. Its external id is the comma-joined list of
data policy names, its actual name the comma-joined list of tag names.
"""

import logging
import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set

from google.api_core import exceptions as google_exceptions

from bindkit.errors import MaskingError
from bindkit.models.access import (
    AccessRecord,
    AccessRecordFeedback,
    DesiredAccessRecord,
    WhatItem,
    WhoItem,
    generate_naming_hint,
)
from bindkit.models.bindings import Binding
from bindkit.models.enums import COLUMN_DATA_OBJECT_TYPE, Action, MaskType, ResourceType
from bindkit.models.identities import Identity
from bindkit.models.masking import MaskingInformation, TaggedColumn, location_from_resource_name
from bindkit.repositories.datacatalog import DataCatalogRepository, policy_tag_key
from bindkit.session import SyncSession

from .base import BaseExecutor, ExecutionResult, OperationType

logger = logging.getLogger(__name__)

MASKED_READER_ROLE = "roles/bigquerydatapolicy.maskedReader"


def split_ids(value: Optional[str]) -> List[str]:
    """Split a comma-joined id list, ignoring blanks."""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def group_by_location(locations: Dict[str, str]) -> Dict[str, List[str]]:
    """Invert a column -> location mapping, keeping column order."""
    grouped: Dict[str, List[str]] = defaultdict(list)
    for column, location in locations.items():
        grouped[location].append(column)
    return dict(grouped)


@dataclass
class MaskExport:
    """Pairs touched while exporting one mask."""

    actual_names: List[str] = field(default_factory=list)
    external_ids: List[str] = field(default_factory=list)

    def add(self, info: MaskingInformation) -> None:
        self.actual_names.append(info.policy_tag.name)
        self.external_ids.append(info.data_policy.full_name)


class MaskingExecutor(BaseExecutor[DesiredAccessRecord]):
    """Executor for the import and export of column masks."""

    def __init__(
        self,
        repository: DataCatalogRepository,
        session: SyncSession,
        continue_on_error: bool = True,
    ):
        """
        Initialize the masking executor.

        Args:
            repository: Data catalog repository
            session: Sync session; exported data policies are recorded in it
            continue_on_error: Report mask failures as feedback instead of raising
        """
        super().__init__(session, dry_run=False, continue_on_error=continue_on_error)
        self.repository = repository

    def get_resource_type(self) -> str:
        """Get the resource type."""
        return "MASK"

    # =========================================================================
    # Import
    # =========================================================================

    def import_masks(
        self,
        columns: Iterable[TaggedColumn],
        managed_masks: Optional[Set[str]] = None,
    ) -> List[AccessRecord]:
        """
        Build one mask access record per policy tag found on columns.

        Tags without a masking data policy and data policies created by this
        run are skipped.

        Args:
            columns: Columns carrying policy tags
            managed_masks: Data policy names exported in this run

        Returns:
            Mask access records
        """
        managed_masks = managed_masks or set()

        columns_per_tag: Dict[str, List[TaggedColumn]] = defaultdict(list)
        locations: Set[str] = set()
        for column in columns:
            locations.add(column.location)
            for tag in column.policy_tags:
                columns_per_tag[policy_tag_key(tag)].append(column)

        if not columns_per_tag:
            return []

        logger.debug(f"Checking masks of {len(columns_per_tag)} policy tags in locations {sorted(locations)}")
        masks = self.repository.list_data_policies(locations)

        records: List[AccessRecord] = []
        for tag_key, tagged in columns_per_tag.items():
            info = masks.get(tag_key)
            if info is None:
                logger.warning(f"No data policy found for policy tag {tag_key}")
                continue
            if info.data_policy.full_name in managed_masks:
                logger.debug(f"Ignoring mask {info.data_policy.full_name} exported by this run")
                continue

            who = WhoItem()
            for member in self.repository.get_fine_grained_reader_members(info.policy_tag.full_name):
                who.add_identity(Identity.parse(member))

            records.append(AccessRecord(
                external_id=info.data_policy.full_name,
                name=info.policy_tag.name,
                naming_hint=generate_naming_hint(info.policy_tag.name),
                action=Action.MASK,
                type=info.data_policy.mask_type.value,
                who=who,
                what=[
                    WhatItem(resource=column.full_name, resource_type=COLUMN_DATA_OBJECT_TYPE)
                    for column in tagged
                ],
                actual_name=info.policy_tag.name,
            ))

        logger.info(f"Imported {len(records)} masks")
        return records

    # =========================================================================
    # Export
    # =========================================================================

    def export_mask(self, record: DesiredAccessRecord) -> AccessRecordFeedback:
        """
        Create, update or delete the pairs backing a desired mask.

        Args:
            record: Desired mask

        Returns:
            Feedback with the comma-joined tag names and data policy names
        """
        start_time = time.time()
        mask_type = MaskType.parse(record.type)
        export = MaskExport()
        operation = OperationType.DELETE if record.delete else OperationType.UPDATE
        errors: List[str] = []

        try:
            if record.delete:
                self._delete_mask(record, export)
            else:
                self._update_mask(record, mask_type, export)
            self._record(ExecutionResult(
                success=True,
                operation=operation,
                resource_type=self.get_resource_type(),
                resource_name=record.name,
                message=f"{len(export.external_ids)} data policies",
                duration_seconds=time.time() - start_time,
            ))
        except (google_exceptions.GoogleAPICallError, MaskingError) as e:
            result = self._handle_error(operation, record.name, e, time.time() - start_time)
            errors.append(result.message)

        self.session.record_managed_masks(export.external_ids)

        return AccessRecordFeedback(
            access_record_id=record.id,
            actual_name=",".join(export.actual_names),
            external_id=",".join(export.external_ids),
            type=mask_type.value,
            errors=errors,
        )

    def _delete_mask(self, record: DesiredAccessRecord, export: MaskExport) -> None:
        external_ids = split_ids(record.external_id)
        if not external_ids:
            logger.warning(f"No external id for mask {record.name}, assuming it is already deleted")
            return

        export.external_ids.extend(external_ids)
        export.actual_names.extend(split_ids(record.actual_name))

        logger.info(f"Deleting mask {record.name} with {len(external_ids)} data policies")
        for data_policy_name in external_ids:
            self.repository.delete_policy_and_tag(data_policy_name)

    def _update_mask(self, record: DesiredAccessRecord, mask_type: MaskType, export: MaskExport) -> None:
        logger.info(f"Updating mask {record.name}")

        data_policy_locations = {
            location_from_resource_name(name): name for name in split_ids(record.external_id)
        }
        current, deleted = self.repository.get_locations_for_data_objects(record)
        columns_per_location = group_by_location(current)
        deleted_per_location = group_by_location(deleted)

        # Locations without active columns lose their pair
        for location, data_policy_name in data_policy_locations.items():
            if location in columns_per_location:
                continue
            logger.info(f"Removing data policy of {record.name} in location {location}")
            self.repository.delete_policy_and_tag(data_policy_name)

        pairs: Dict[str, MaskingInformation] = {}
        for location in columns_per_location:
            data_policy_name = data_policy_locations.get(location)
            if data_policy_name is not None:
                info = self.repository.update_policy_tag(location, mask_type, record, data_policy_name)
            else:
                logger.info(f"Creating data policy for {record.name} in location {location}")
                info = self.repository.create_policy_tag_with_data_policy(location, mask_type, record)
            pairs[location] = info
            export.add(info)

        for location, info in pairs.items():
            self.repository.update_access(info, record.who, record.deleted_who)
            self.repository.update_what(info, columns_per_location[location], deleted_per_location.get(location, []))

    # =========================================================================
    # Masked reader
    # =========================================================================

    def masked_reader_bindings(self, members: List[str]) -> List[Binding]:
        """
        Bindings granting the masked reader role to members.

        Granted on the configured project, or the organization when no
        project is configured.
        """
        config = self.session.config
        if config.project_id:
            resource, resource_type = config.project_id, ResourceType.PROJECT
        else:
            resource, resource_type = config.organization_datasource_name, ResourceType.ORGANIZATION

        return [
            Binding(member=member, role=MASKED_READER_ROLE, resource=resource, resource_type=resource_type.value)
            for member in members
        ]

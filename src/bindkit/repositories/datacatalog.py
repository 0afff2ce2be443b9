"""
Data catalog repository for BigQuery column masking.

A mask is implemented with three Google Cloud services:

- Data Catalog policy tags, grouped in one bindkit taxonomy per location
- BigQuery data policies, attaching a masking expression to a policy tag
- BigQuery table schemas, attaching policy tags to columns

Readers allowed to see unmasked values hold
``roles/datacatalog.categoryFineGrainedReader`` on the policy tag.
"""

import logging
import re
import secrets
import string
from collections import defaultdict
from typing import Any, Dict, Iterable, Iterator, List, Optional, Set, Tuple

from google.api_core import exceptions as google_exceptions
from google.cloud import bigquery, bigquery_datapolicies_v1, datacatalog_v1
from google.iam.v1 import policy_pb2

from bindkit.errors import MaskingError
from bindkit.models.access import DesiredAccessRecord, WhoItem, who_to_members
from bindkit.models.enums import MaskType
from bindkit.models.masking import DataPolicyInfo, MaskingInformation, PolicyTagInfo, TaggedColumn
from bindkit.session import SyncSession

logger = logging.getLogger(__name__)

FINE_GRAINED_READER_ROLE = "roles/datacatalog.categoryFineGrainedReader"
TAXONOMY_PREFIX = "bindkit_taxonomy_"

_ID_ALPHABET = string.digits + string.ascii_letters
_TAG_ID_LENGTH = 8
_DATA_POLICY_ID_LENGTH = 24
_INVALID_SQL_CHARS = re.compile(r"[^A-Za-z0-9_]")
_PROJECT_SEGMENT = re.compile(r"^projects/[^/]+/")


def random_id(length: int) -> str:
    """Random identifier made of ASCII letters and digits."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(length))


def valid_sql_name(name: str) -> str:
    """Replace characters not allowed in BigQuery identifiers with underscores."""
    cleaned = _INVALID_SQL_CHARS.sub("_", name.strip())
    if not cleaned or cleaned[0].isdigit():
        cleaned = f"_{cleaned}"
    return cleaned


def policy_tag_key(policy_tag_name: str) -> str:
    """
    Project independent key of a policy tag name.

    Data policies reference tags by project number while table schemas use
    the project id, so the project segment is dropped.
    """
    return _PROJECT_SEGMENT.sub("", policy_tag_name).lower()


def _iter_schema_fields(
    fields: Iterable[bigquery.SchemaField],
    prefix: str = "",
) -> Iterator[Tuple[str, bigquery.SchemaField]]:
    """Yield (dotted path, field) for every field, nested records included."""
    for schema_field in fields:
        path = f"{prefix}{schema_field.name}"
        yield path, schema_field
        if schema_field.fields:
            yield from _iter_schema_fields(schema_field.fields, f"{path}.")


def _retag_fields(
    fields: List[Dict[str, Any]],
    add: Set[str],
    remove: Set[str],
    policy_tag: str,
    prefix: str = "",
) -> None:
    """Set or clear policy tags in API representations of schema fields."""
    for schema_field in fields:
        path = f"{prefix}{schema_field['name']}"
        names = (schema_field.get("policyTags") or {}).get("names") or []
        if path in add:
            if not names:
                schema_field["policyTags"] = {"names": [policy_tag]}
        elif path in remove:
            if names:
                schema_field["policyTags"] = {"names": []}
        if schema_field.get("fields"):
            _retag_fields(schema_field["fields"], add, remove, policy_tag, f"{path}.")


class DataCatalogRepository:
    """
    Manages policy tag / data policy pairs and the columns they tag.

    Args:
        policy_tag_client: ``datacatalog_v1.PolicyTagManagerClient``
        data_policy_client: ``bigquery_datapolicies_v1.DataPolicyServiceClient``
        bigquery_client: ``bigquery.Client``
        session: Sync session (project id and call timeout)
    """

    def __init__(
        self,
        policy_tag_client: Any,
        data_policy_client: Any,
        bigquery_client: Any,
        session: SyncSession,
    ):
        self.policy_tag_client = policy_tag_client
        self.data_policy_client = data_policy_client
        self.bigquery_client = bigquery_client
        self.session = session
        self.project_id: str = session.config.project_id or bigquery_client.project
        self._dataset_locations: Dict[str, str] = {}
        self._data_policies: Optional[Dict[str, MaskingInformation]] = None

    @property
    def timeout(self) -> float:
        return self.session.timeout

    # =========================================================================
    # Discovery
    # =========================================================================

    def dataset_locations(self) -> Dict[str, str]:
        """Lower-cased location per ``<project>.<dataset>``, listed once per run."""
        if not self._dataset_locations:
            for item in self.bigquery_client.list_datasets(project=self.project_id, timeout=self.timeout):
                dataset = self.bigquery_client.get_dataset(item.reference, timeout=self.timeout)
                full_name = f"{dataset.project}.{dataset.dataset_id}"
                self._dataset_locations[full_name] = (dataset.location or "").lower()
            logger.debug(f"Found {len(self._dataset_locations)} datasets in project {self.project_id}")
        return self._dataset_locations

    def list_tagged_columns(self) -> List[TaggedColumn]:
        """
        List every column carrying a policy tag in the project.

        Nested fields are reported with their dotted path.
        """
        columns: List[TaggedColumn] = []
        for dataset_name, location in self.dataset_locations().items():
            for item in self.bigquery_client.list_tables(dataset_name, timeout=self.timeout):
                if item.table_type != "TABLE":
                    continue
                table = self.bigquery_client.get_table(item.reference, timeout=self.timeout)
                for path, schema_field in _iter_schema_fields(table.schema):
                    tags = schema_field.policy_tags.names if schema_field.policy_tags else ()
                    if tags:
                        columns.append(TaggedColumn(
                            full_name=f"{table.project}.{table.dataset_id}.{table.table_id}.{path}",
                            policy_tags=list(tags),
                            location=location,
                        ))
        logger.info(f"Found {len(columns)} columns with policy tags in project {self.project_id}")
        return columns

    def list_data_policies(self, locations: Optional[Iterable[str]] = None) -> Dict[str, MaskingInformation]:
        """
        Masking data policies keyed by ``policy_tag_key`` of their tag.

        Args:
            locations: Locations to list, defaults to every dataset location

        Returns:
            Mapping of tag key to masking information
        """
        if self._data_policies is None:
            if locations is None:
                locations = set(self.dataset_locations().values())
            result: Dict[str, MaskingInformation] = {}
            for location in sorted({loc.lower() for loc in locations if loc}):
                self._list_data_policies_for_location(location, result)
            self._data_policies = result
        return self._data_policies

    def _list_data_policies_for_location(self, location: str, result: Dict[str, MaskingInformation]) -> None:
        parent = f"projects/{self.project_id}/locations/{location}"
        logger.info(f"Listing data policies in {parent}")

        masking_type = bigquery_datapolicies_v1.DataPolicy.DataPolicyType.DATA_MASKING_POLICY
        for policy in self.data_policy_client.list_data_policies(parent=parent, timeout=self.timeout):
            if policy.data_policy_type != masking_type:
                continue

            info = self._masking_information(policy)
            if info is None:
                logger.warning(
                    f"Data policy {policy.name} is not associated with an existing policy tag, ignoring it"
                )
                continue

            result[policy_tag_key(policy.policy_tag)] = info

    def _masking_information(self, policy: Any) -> Optional[MaskingInformation]:
        """Combine a data policy with its tag, None if the tag no longer exists."""
        if not policy.policy_tag:
            return None
        try:
            tag = self.policy_tag_client.get_policy_tag(name=policy.policy_tag, timeout=self.timeout)
        except google_exceptions.NotFound:
            return None

        expression = policy.data_masking_policy.predefined_expression
        return MaskingInformation(
            policy_tag=PolicyTagInfo(
                full_name=tag.name,
                name=tag.display_name,
                description=tag.description,
                parent_tag=tag.parent_policy_tag or None,
            ),
            data_policy=DataPolicyInfo(
                full_name=policy.name,
                mask_type=MaskType.parse(getattr(expression, "name", None)),
            ),
        )

    def get_masking_information(self, data_policy_name: str) -> Optional[MaskingInformation]:
        """
        Masking information of an existing data policy.

        Raises:
            google.api_core.exceptions.NotFound: If the data policy does not exist
        """
        policy = self.data_policy_client.get_data_policy(name=data_policy_name, timeout=self.timeout)
        return self._masking_information(policy)

    def get_fine_grained_reader_members(self, policy_tag_name: str) -> List[str]:
        """Members allowed to read unmasked values of a tag's columns."""
        logger.debug(f"Getting IAM policy of policy tag {policy_tag_name}")
        policy = self.policy_tag_client.get_iam_policy(
            request={"resource": policy_tag_name},
            timeout=self.timeout,
        )
        members: List[str] = []
        for binding in policy.bindings:
            if binding.role == FINE_GRAINED_READER_ROLE:
                members.extend(binding.members)
        return members

    def get_locations_for_data_objects(
        self, record: DesiredAccessRecord
    ) -> Tuple[Dict[str, str], Dict[str, str]]:
        """
        Storage location of every column a mask covers or stops covering.

        Returns:
            (location per ``what`` column, location per ``delete_what`` column)

        Raises:
            MaskingError: If a column's dataset is unknown
        """
        datasets = self.dataset_locations()

        def locate(full_name: str, kind: str) -> str:
            dataset = ".".join(full_name.split(".", 2)[:2])
            if dataset not in datasets:
                raise MaskingError(f"{kind} {full_name} not found")
            return datasets[dataset]

        current = {item.resource: locate(item.resource, "data object") for item in record.what}
        deleted = {item.resource: locate(item.resource, "deleted data object") for item in record.delete_what}
        return current, deleted

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def create_policy_tag_with_data_policy(
        self,
        location: str,
        mask_type: MaskType,
        record: DesiredAccessRecord,
    ) -> MaskingInformation:
        """
        Create a policy tag and its masking data policy in a location.

        The tag is created in the location's bindkit taxonomy, which is
        created first when missing. The tag is deleted again if the data
        policy cannot be created.
        """
        location = location.lower()
        parent = f"projects/{self.project_id}/locations/{location}"
        taxonomy = self._get_or_create_taxonomy(parent, location)

        display_name = self.tag_display_name(record)
        tag = self.policy_tag_client.create_policy_tag(
            parent=taxonomy.name,
            policy_tag=datacatalog_v1.PolicyTag(
                display_name=display_name,
                description=record.description,
            ),
            timeout=self.timeout,
        )
        logger.info(f"Created policy tag {tag.name} ({display_name})")

        data_policy_id = random_id(_DATA_POLICY_ID_LENGTH)
        try:
            data_policy = self.data_policy_client.create_data_policy(
                parent=parent,
                data_policy=bigquery_datapolicies_v1.DataPolicy(
                    data_policy_id=data_policy_id,
                    data_policy_type=bigquery_datapolicies_v1.DataPolicy.DataPolicyType.DATA_MASKING_POLICY,
                    policy_tag=tag.name,
                    data_masking_policy=bigquery_datapolicies_v1.DataMaskingPolicy(
                        predefined_expression=self._predefined_expression(mask_type),
                    ),
                ),
                timeout=self.timeout,
            )
        except google_exceptions.GoogleAPICallError:
            logger.error(f"Failed to create data policy for tag {tag.name}, removing the tag")
            self.policy_tag_client.delete_policy_tag(name=tag.name, timeout=self.timeout)
            raise

        logger.info(f"Created data policy {data_policy.name} with mask {mask_type.value}")
        return MaskingInformation(
            policy_tag=PolicyTagInfo(
                full_name=tag.name,
                name=tag.display_name or display_name,
                description=tag.description,
                parent_tag=tag.parent_policy_tag or None,
            ),
            data_policy=DataPolicyInfo(full_name=data_policy.name, mask_type=mask_type),
        )

    def _get_or_create_taxonomy(self, parent: str, location: str) -> Any:
        taxonomy_name = f"{TAXONOMY_PREFIX}{location}"

        found = None
        for taxonomy in self.policy_tag_client.list_taxonomies(parent=parent, timeout=self.timeout):
            if taxonomy.display_name == taxonomy_name:
                if found is not None:
                    raise MaskingError(f"Taxonomy {taxonomy_name} found more than once in {parent}")
                found = taxonomy

        if found is not None:
            return found

        logger.info(f"Creating taxonomy {taxonomy_name} in {parent}")
        return self.policy_tag_client.create_taxonomy(
            parent=parent,
            taxonomy=datacatalog_v1.Taxonomy(
                display_name=taxonomy_name,
                description=f"bindkit managed taxonomy for location {location}",
                activated_policy_types=[
                    datacatalog_v1.Taxonomy.PolicyType.FINE_GRAINED_ACCESS_CONTROL,
                ],
            ),
            timeout=self.timeout,
        )

    def update_policy_tag(
        self,
        location: str,
        mask_type: MaskType,
        record: DesiredAccessRecord,
        data_policy_name: str,
    ) -> MaskingInformation:
        """
        Bring an existing pair in line with a desired mask.

        Falls back to creating a new pair when the data policy's tag is gone.
        """
        info = self.get_masking_information(data_policy_name)
        if info is None:
            logger.warning(f"Policy tag of {data_policy_name} not found, creating a new pair")
            return self.create_policy_tag_with_data_policy(location, mask_type, record)

        display_name = info.policy_tag.name
        if not display_name.startswith(f"{valid_sql_name(record.effective_naming_hint)}_"):
            display_name = self.tag_display_name(record)

        self.policy_tag_client.update_policy_tag(
            policy_tag=datacatalog_v1.PolicyTag(
                name=info.policy_tag.full_name,
                display_name=display_name,
                description=record.description,
                parent_policy_tag=info.policy_tag.parent_tag or "",
            ),
            timeout=self.timeout,
        )

        if info.data_policy.mask_type is not mask_type:
            policy = self.data_policy_client.get_data_policy(name=data_policy_name, timeout=self.timeout)
            policy.data_masking_policy.predefined_expression = self._predefined_expression(mask_type)
            self.data_policy_client.update_data_policy(data_policy=policy, timeout=self.timeout)
            logger.info(f"Changed mask of {data_policy_name} to {mask_type.value}")

        return MaskingInformation(
            policy_tag=info.policy_tag.model_copy(
                update={"name": display_name, "description": record.description}
            ),
            data_policy=info.data_policy.model_copy(update={"mask_type": mask_type}),
        )

    def delete_policy_and_tag(self, data_policy_name: str) -> None:
        """
        Delete a data policy and its tag.

        The tag is only deleted when it lives in a bindkit taxonomy; the
        taxonomy itself is deleted once it holds no tags. A missing data
        policy counts as already deleted.
        """
        try:
            info = self.get_masking_information(data_policy_name)
        except google_exceptions.NotFound:
            logger.warning(f"Data policy {data_policy_name} not found, assuming it is already deleted")
            return

        self.data_policy_client.delete_data_policy(name=data_policy_name, timeout=self.timeout)
        logger.info(f"Deleted data policy {data_policy_name}")

        if info is None:
            return

        taxonomy_name = info.policy_tag.taxonomy
        taxonomy = self.policy_tag_client.get_taxonomy(name=taxonomy_name, timeout=self.timeout)
        if not taxonomy.display_name.startswith(TAXONOMY_PREFIX):
            return

        self.policy_tag_client.delete_policy_tag(name=info.policy_tag.full_name, timeout=self.timeout)
        logger.info(f"Deleted policy tag {info.policy_tag.full_name}")

        taxonomy = self.policy_tag_client.get_taxonomy(name=taxonomy_name, timeout=self.timeout)
        if taxonomy.policy_tag_count == 0:
            self.policy_tag_client.delete_taxonomy(name=taxonomy_name, timeout=self.timeout)
            logger.info(f"Deleted empty taxonomy {taxonomy_name}")

    def update_access(
        self,
        info: MaskingInformation,
        who: WhoItem,
        deleted_who: Optional[WhoItem] = None,
    ) -> None:
        """Synchronize the fine-grained readers of a tag with a desired mask."""
        resource = info.policy_tag.full_name
        policy = self.policy_tag_client.get_iam_policy(request={"resource": resource}, timeout=self.timeout)

        to_delete = set(who_to_members(deleted_who))
        to_add = who_to_members(who)

        updated = policy_pb2.Policy()
        updated.CopyFrom(policy)
        del updated.bindings[:]

        reader_found = False
        for binding in policy.bindings:
            if binding.role != FINE_GRAINED_READER_ROLE:
                updated.bindings.add().CopyFrom(binding)
                continue
            reader_found = True
            members = [m for m in binding.members if m not in to_delete]
            members.extend(m for m in to_add if m not in members)
            updated.bindings.add(role=FINE_GRAINED_READER_ROLE, members=members)

        if not reader_found:
            updated.bindings.add(role=FINE_GRAINED_READER_ROLE, members=to_add)

        self.policy_tag_client.set_iam_policy(
            request={"resource": resource, "policy": updated},
            timeout=self.timeout,
        )
        logger.info(f"Updated fine-grained readers of {resource}")

    def update_what(
        self,
        info: MaskingInformation,
        columns_to_add: Iterable[str],
        columns_to_remove: Iterable[str],
    ) -> None:
        """
        Tag and untag columns, one schema update per table.

        Args:
            info: Pair whose tag is applied
            columns_to_add: ``<project>.<dataset>.<table>.<column>`` names to tag
            columns_to_remove: Column names to untag
        """
        per_table: Dict[str, Dict[str, Set[str]]] = defaultdict(lambda: {"add": set(), "remove": set()})
        for column in columns_to_add:
            table, path = self._split_column(column)
            per_table[table]["add"].add(path)
        for column in columns_to_remove:
            table, path = self._split_column(column)
            per_table[table]["remove"].add(path)

        for table_name, changes in per_table.items():
            table = self.bigquery_client.get_table(table_name, timeout=self.timeout)
            fields = [schema_field.to_api_repr() for schema_field in table.schema]
            _retag_fields(fields, changes["add"], changes["remove"], info.policy_tag.full_name)
            table.schema = [bigquery.SchemaField.from_api_repr(f) for f in fields]
            self.bigquery_client.update_table(table, ["schema"], timeout=self.timeout)
            logger.info(
                f"Updated policy tags on {table_name}: "
                f"{len(changes['add'])} tagged, {len(changes['remove'])} untagged"
            )

    @staticmethod
    def _split_column(column: str) -> Tuple[str, str]:
        """Split a column full name into its table and column path."""
        parts = column.split(".")
        if len(parts) < 4:
            raise MaskingError(f"Invalid column name {column}")
        return ".".join(parts[:3]), ".".join(parts[3:])

    @staticmethod
    def tag_display_name(record: DesiredAccessRecord) -> str:
        """Display name for a new tag, unique within its taxonomy."""
        return f"{valid_sql_name(record.effective_naming_hint)}_{random_id(_TAG_ID_LENGTH)}"

    @staticmethod
    def _predefined_expression(mask_type: MaskType) -> Any:
        return bigquery_datapolicies_v1.DataMaskingPolicy.PredefinedExpression[mask_type.value]

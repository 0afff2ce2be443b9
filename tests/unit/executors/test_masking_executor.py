"""
Unit tests for MaskingExecutor.
"""

import pytest
from google.api_core import exceptions as google_exceptions

from bindkit.config import SyncConfig
from bindkit.executors import MASKED_READER_ROLE, MaskingExecutor
from bindkit.models import Action, MaskType
from bindkit.session import SyncSession
from tests.fixtures import (
    FakeDataCatalogRepository,
    make_column_what,
    make_desired_record,
    make_masking_information,
    make_tagged_column,
)

EU_COLUMN = "analytics-prod.eu_sales.orders.email"
US_COLUMN = "analytics-prod.us_sales.orders.email"
EU_PHONE_COLUMN = "analytics-prod.eu_sales.orders.phone"


@pytest.fixture
def repository() -> FakeDataCatalogRepository:
    """Fake repository with one EU and one US dataset."""
    return FakeDataCatalogRepository({
        "analytics-prod.eu_sales": "eu",
        "analytics-prod.us_sales": "us",
    })


@pytest.fixture
def executor(repository: FakeDataCatalogRepository, masking_session: SyncSession) -> MaskingExecutor:
    """Executor over the fake repository."""
    return MaskingExecutor(repository, masking_session)


def _mask(**kwargs):
    kwargs.setdefault("record_id", "mask1")
    kwargs.setdefault("name", "pii")
    kwargs.setdefault("type", "SHA256")
    return make_desired_record(action=Action.MASK, **kwargs)


class TestExportMask:
    """Tests for creating, updating and deleting masks."""

    def test_new_mask_spanning_locations(
        self, executor: MaskingExecutor, repository: FakeDataCatalogRepository, masking_session: SyncSession
    ) -> None:
        """Test that a mask over EU and US columns gets one pair per location."""
        record = _mask(users=["alice@example.com"], what=[make_column_what(EU_COLUMN), make_column_what(US_COLUMN)])

        feedback = executor.export_mask(record)

        assert feedback.success
        assert feedback.type == "SHA256"
        external_ids = feedback.external_id.split(",")
        assert [name.split("/")[3] for name in external_ids] == ["eu", "us"]
        assert len(feedback.actual_name.split(",")) == 2
        assert [c[0] for c in repository.calls] == [
            "create", "create", "update_access", "update_what", "update_access", "update_what",
        ]
        for info in repository.pairs.values():
            assert info.data_policy.mask_type is MaskType.SHA256
            assert repository.readers[info.policy_tag.full_name] == ["user:alice@example.com"]
        assert masking_session.managed_masks() == set(external_ids)

    def test_update_drops_uncovered_location(
        self, executor: MaskingExecutor, repository: FakeDataCatalogRepository
    ) -> None:
        """Test that a location losing all its columns loses its pair."""
        eu = make_masking_information(location="eu", tag_id="1", data_policy_id="dpeu")
        us = make_masking_information(location="us", tag_id="2", data_policy_id="dpus")
        repository.add_pair(eu)
        repository.add_pair(us)
        record = _mask(
            external_id=f"{eu.data_policy.full_name},{us.data_policy.full_name}",
            what=[make_column_what(EU_COLUMN)],
            delete_what=[make_column_what(US_COLUMN)],
            type="ALWAYS_NULL",
        )

        feedback = executor.export_mask(record)

        assert feedback.external_id == eu.data_policy.full_name
        assert ("delete", us.data_policy.full_name) in repository.calls
        assert ("update", "eu") in repository.calls
        assert repository.pairs[eu.data_policy.full_name].data_policy.mask_type is MaskType.ALWAYS_NULL
        assert repository.tagged[eu.policy_tag.full_name] == {EU_COLUMN}

    def test_column_moved_to_new_location(
        self, executor: MaskingExecutor, repository: FakeDataCatalogRepository
    ) -> None:
        """Test that an EU mask whose second column now lives in US keeps the EU pair and gains a US one."""
        eu = make_masking_information(location="eu", tag_id="1", data_policy_id="dpeu")
        repository.add_pair(eu, readers=["user:alice@example.com"])
        repository.tagged[eu.policy_tag.full_name] = {EU_COLUMN, EU_PHONE_COLUMN}
        record = _mask(
            external_id=eu.data_policy.full_name,
            users=["alice@example.com"],
            groups=["analysts@example.com"],
            what=[make_column_what(EU_COLUMN), make_column_what(US_COLUMN)],
            delete_what=[make_column_what(EU_PHONE_COLUMN)],
        )

        feedback = executor.export_mask(record)

        assert feedback.success
        assert [c for c in repository.calls if c[0] in ("create", "update", "delete")] == [
            ("update", "eu"),
            ("create", "us"),
        ]
        assert repository.pairs[eu.data_policy.full_name].policy_tag == eu.policy_tag
        assert repository.tagged[eu.policy_tag.full_name] == {EU_COLUMN}

        us = next(info for name, info in repository.pairs.items() if name != eu.data_policy.full_name)
        assert us.location == "us"
        assert repository.tagged[us.policy_tag.full_name] == {US_COLUMN}
        assert repository.readers[us.policy_tag.full_name] == [
            "user:alice@example.com",
            "group:analysts@example.com",
        ]
        assert feedback.external_id == f"{eu.data_policy.full_name},{us.data_policy.full_name}"

    def test_pair_without_columns_removed(
        self, executor: MaskingExecutor, repository: FakeDataCatalogRepository
    ) -> None:
        """Test that a pair whose location has no declared columns is deleted."""
        eu = make_masking_information(location="eu", tag_id="1", data_policy_id="dpeu")
        us = make_masking_information(location="us", tag_id="2", data_policy_id="dpus")
        repository.add_pair(eu)
        repository.add_pair(us)
        record = _mask(
            external_id=f"{eu.data_policy.full_name},{us.data_policy.full_name}",
            what=[make_column_what(EU_COLUMN)],
        )

        feedback = executor.export_mask(record)

        assert ("delete", us.data_policy.full_name) in repository.calls
        assert us.data_policy.full_name not in repository.pairs
        assert feedback.external_id == eu.data_policy.full_name

    def test_unknown_type_defaults_to_null(self, executor: MaskingExecutor) -> None:
        """Test that unknown mask types fall back to ALWAYS_NULL."""
        feedback = executor.export_mask(_mask(type="SCRAMBLE", what=[make_column_what(EU_COLUMN)]))
        assert feedback.type == "ALWAYS_NULL"

    def test_delete_mask(self, executor: MaskingExecutor, repository: FakeDataCatalogRepository) -> None:
        """Test that deleting a mask deletes every pair."""
        record = _mask(delete=True, external_id="dp/a, dp/b", actual_name="pii_1,pii_2")

        feedback = executor.export_mask(record)

        assert feedback.success
        assert feedback.external_id == "dp/a,dp/b"
        assert feedback.actual_name == "pii_1,pii_2"
        assert repository.calls == [("delete", "dp/a"), ("delete", "dp/b")]

    def test_delete_without_external_id(self, executor: MaskingExecutor, repository: FakeDataCatalogRepository) -> None:
        """Test that a mask never exported is considered deleted."""
        feedback = executor.export_mask(_mask(delete=True))
        assert feedback.success
        assert feedback.external_id == ""
        assert repository.calls == []

    def test_unknown_dataset(self, executor: MaskingExecutor) -> None:
        """Test that columns in unknown datasets fail the mask."""
        feedback = executor.export_mask(_mask(what=[make_column_what("analytics-prod.hr.people.ssn")]))
        assert not feedback.success
        assert "not found" in feedback.errors[0]

    def test_provider_error(self, executor: MaskingExecutor, repository: FakeDataCatalogRepository) -> None:
        """Test that API errors are reported as feedback."""
        repository.fail_create = google_exceptions.Forbidden("no datapolicies.create")
        feedback = executor.export_mask(_mask(what=[make_column_what(EU_COLUMN)]))
        assert feedback.errors[0].startswith("Permission denied")


class TestImportMasks:
    """Tests for importing masks from tagged columns."""

    def test_one_record_per_tag(
        self, executor: MaskingExecutor, repository: FakeDataCatalogRepository
    ) -> None:
        """Test that columns sharing a tag become one mask record."""
        info = make_masking_information(tag_name="pii_abc12345", mask_type=MaskType.SHA256)
        repository.add_pair(info, readers=["user:alice@example.com", "group:eng@example.com"])
        tag_by_number = "projects/987654/locations/eu/taxonomies/42/policyTags/111"
        columns = [
            make_tagged_column("analytics-prod.eu_sales.orders.email", [tag_by_number]),
            make_tagged_column("analytics-prod.eu_sales.customers.email", [tag_by_number]),
            make_tagged_column("analytics-prod.eu_sales.orders.phone", ["projects/p/locations/eu/taxonomies/9/policyTags/5"]),
        ]

        records = executor.import_masks(columns)

        assert len(records) == 1
        record = records[0]
        assert record.action is Action.MASK
        assert record.type == "SHA256"
        assert record.external_id == info.data_policy.full_name
        assert record.name == "pii_abc12345"
        assert record.who.users == ["alice@example.com"]
        assert record.who.groups == ["eng@example.com"]
        assert [w.resource for w in record.what] == [
            "analytics-prod.eu_sales.orders.email",
            "analytics-prod.eu_sales.customers.email",
        ]
        assert all(w.resource_type == "column" and w.permissions == [] for w in record.what)

    def test_managed_masks_skipped(self, executor: MaskingExecutor, repository: FakeDataCatalogRepository) -> None:
        """Test that masks exported in this run are not imported back."""
        info = make_masking_information()
        repository.add_pair(info)
        records = executor.import_masks([make_tagged_column()], {info.data_policy.full_name})
        assert records == []

    def test_no_columns(self, executor: MaskingExecutor, repository: FakeDataCatalogRepository) -> None:
        """Test that no tagged columns means no data policy listing."""
        assert executor.import_masks([]) == []
        assert repository.calls == []


class TestMaskedReaderBindings:
    """Tests for masked reader grants."""

    def test_on_project(self, executor: MaskingExecutor) -> None:
        """Test that masked readers are granted on the configured project."""
        bindings = executor.masked_reader_bindings(["user:alice@example.com"])
        assert [(b.member, b.role, b.resource, b.resource_type) for b in bindings] == [
            ("user:alice@example.com", MASKED_READER_ROLE, "analytics-prod", "project"),
        ]

    def test_on_organization(self, repository: FakeDataCatalogRepository) -> None:
        """Test that the organization is used without a project."""
        session = SyncSession(SyncConfig(organization_id="1", masking_enabled=True))
        bindings = MaskingExecutor(repository, session).masked_reader_bindings(["group:g@x.com"])
        assert bindings[0].resource == "gcp-org-1"
        assert bindings[0].resource_type == "organization"

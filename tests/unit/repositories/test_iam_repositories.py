"""
Unit tests for the Resource Manager IAM repositories.
"""

import pytest
from google.api_core import exceptions as google_exceptions

from bindkit.errors import OrganizationNotFoundError
from bindkit.models import ResourceType
from bindkit.repositories import FolderRepository, OrganizationRepository, ProjectRepository
from bindkit.session import SyncSession
from tests.fixtures import (
    FakeFoldersClient,
    FakeOrganizationsClient,
    FakeProjectsClient,
    make_binding,
    make_node,
    make_policy,
)


class TestGetPolicy:
    """Tests for policy reads and the session cache."""

    def test_policy_fetched_once(self, session: SyncSession) -> None:
        """Test that a second read is served from the session cache."""
        client = FakeProjectsClient(policies={"projects/p1": make_policy({"roles/viewer": ["user:a@x.com"]})})
        repository = ProjectRepository(client, session)

        first = repository.get_bindings("p1")
        second = repository.get_bindings("p1")

        assert client.get_calls == ["projects/p1"]
        assert first == second
        assert first[0].resource == "p1"
        assert first[0].resource_type == "project"

    def test_forbidden_yields_empty_policy(self, session: SyncSession) -> None:
        """Test that a 403 is treated as no bindings and not cached."""
        client = FakeFoldersClient(forbidden=["folders/9"])
        repository = FolderRepository(client, session)

        assert repository.get_bindings("9") == []
        assert session.get_policy("folders/9") is None

    def test_other_errors_propagate(self, session: SyncSession) -> None:
        """Test that non-403 failures are raised."""
        client = FakeProjectsClient()
        client.get_iam_policy = _raise(google_exceptions.InternalServerError("boom"))
        repository = ProjectRepository(client, session)

        with pytest.raises(google_exceptions.InternalServerError):
            repository.get_policy("p1")


class TestAddBinding:
    """Tests for granting roles."""

    def test_append_to_existing_role(self, session: SyncSession) -> None:
        """Test that a member is appended to an existing role binding."""
        client = FakeProjectsClient(policies={"projects/p1": make_policy({"roles/viewer": ["user:a@x.com"]})})
        repository = ProjectRepository(client, session)

        assert repository.add_binding(make_binding(member="group:g@x.com"))
        assert client.members("projects/p1", "roles/viewer") == ["user:a@x.com", "group:g@x.com"]

    def test_new_role_binding(self, session: SyncSession) -> None:
        """Test that a missing role gets a new binding."""
        client = FakeProjectsClient()
        repository = ProjectRepository(client, session)

        assert repository.add_binding(make_binding(role="roles/bigquery.dataViewer"))
        assert client.members("projects/p1", "roles/bigquery.dataViewer") == ["user:alice@example.com"]

    def test_already_present_is_noop(self, session: SyncSession) -> None:
        """Test that an existing member is not written again."""
        client = FakeProjectsClient(
            policies={"projects/p1": make_policy({"roles/viewer": ["user:Alice@example.com"]})}
        )
        repository = ProjectRepository(client, session)

        assert not repository.add_binding(make_binding())
        assert client.set_calls == []

    def test_written_policy_refreshes_cache(self, session: SyncSession) -> None:
        """Test that the policy returned by a write replaces the cached one."""
        client = FakeProjectsClient(policies={"projects/p1": make_policy()})
        repository = ProjectRepository(client, session)
        repository.get_policy("p1")

        repository.add_binding(make_binding())
        repository.add_binding(make_binding(member="user:bob@example.com"))

        assert client.get_calls == ["projects/p1"]
        assert client.members("projects/p1", "roles/viewer") == ["user:alice@example.com", "user:bob@example.com"]
        assert session.get_policy("projects/p1").etag == client.policies["projects/p1"].etag

    def test_organization_accepts_datasource_name(self, session: SyncSession) -> None:
        """Test that gcp-org-<id> resources resolve to the organization."""
        client = FakeOrganizationsClient()
        repository = OrganizationRepository(client, session)

        repository.add_binding(make_binding(resource="gcp-org-123456789", resource_type="organization"))
        assert client.members("organizations/123456789", "roles/viewer") == ["user:alice@example.com"]

    def test_unreadable_policy_is_not_written(self, session: SyncSession) -> None:
        """Test that a 403 on the read before a write fails the grant without touching the policy."""
        client = FakeProjectsClient(
            policies={"projects/p1": make_policy({
                "roles/owner": ["user:boss@x.com"],
                "roles/viewer": ["group:all@x.com"],
            })},
            forbidden=["projects/p1"],
        )
        repository = ProjectRepository(client, session)

        with pytest.raises(google_exceptions.Forbidden):
            repository.add_binding(make_binding(member="user:new@x.com", role="roles/bigquery.dataViewer"))

        assert client.set_calls == []
        assert client.members("projects/p1", "roles/owner") == ["user:boss@x.com"]

    def test_pull_degradation_does_not_leak_into_writes(self, session: SyncSession) -> None:
        """Test that an empty policy served to a read is not reused by a later write."""
        client = FakeProjectsClient(
            policies={"projects/p1": make_policy({"roles/owner": ["user:boss@x.com"]})},
            forbidden=["projects/p1"],
        )
        repository = ProjectRepository(client, session)
        assert repository.get_bindings("p1") == []

        with pytest.raises(google_exceptions.Forbidden):
            repository.add_binding(make_binding())

        assert client.set_calls == []


class TestRemoveBinding:
    """Tests for revoking roles."""

    def test_remove_member(self, session: SyncSession) -> None:
        """Test that one member is removed, case-insensitively."""
        client = FakeProjectsClient(
            policies={"projects/p1": make_policy({"roles/viewer": ["user:ALICE@example.com", "user:b@x.com"]})}
        )
        repository = ProjectRepository(client, session)

        assert repository.remove_binding(make_binding())
        assert client.members("projects/p1", "roles/viewer") == ["user:b@x.com"]

    def test_last_member_drops_role(self, session: SyncSession) -> None:
        """Test that an emptied role binding is removed from the policy."""
        client = FakeProjectsClient(
            policies={"projects/p1": make_policy({
                "roles/viewer": ["user:alice@example.com"],
                "roles/owner": ["user:o@x.com"],
            })}
        )
        repository = ProjectRepository(client, session)

        assert repository.remove_binding(make_binding())
        assert [b.role for b in client.policies["projects/p1"].bindings] == ["roles/owner"]

    def test_missing_member(self, session: SyncSession) -> None:
        """Test that removing an absent member writes nothing."""
        client = FakeProjectsClient(policies={"projects/p1": make_policy({"roles/viewer": ["user:b@x.com"]})})
        repository = ProjectRepository(client, session)

        assert not repository.remove_binding(make_binding())
        assert client.set_calls == []


class TestOrganizationRepository:
    """Tests for the organization lookup."""

    def test_get_organization(self, session: SyncSession) -> None:
        """Test the root node of the hierarchy."""
        client = FakeOrganizationsClient(display_names={"organizations/123456789": "example.com"})
        node = OrganizationRepository(client, session).get_organization()

        assert node.entry_name == "organizations/123456789"
        assert node.id == "gcp-org-123456789"
        assert node.full_name == "gcp-org-123456789"
        assert node.display_name == "example.com"
        assert node.type is ResourceType.ORGANIZATION
        assert node.parent is None

    def test_client_error_raises_not_found(self, session: SyncSession) -> None:
        """Test that a 4xx on the organization aborts."""
        client = FakeOrganizationsClient(error=google_exceptions.PermissionDenied("denied"))
        with pytest.raises(OrganizationNotFoundError, match="123456789"):
            OrganizationRepository(client, session).get_organization()

    def test_server_error_uses_name(self, session: SyncSession) -> None:
        """Test that a 5xx falls back to the resource name as display name."""
        client = FakeOrganizationsClient(error=google_exceptions.ServiceUnavailable("down"))
        node = OrganizationRepository(client, session).get_organization()
        assert node.display_name == "organizations/123456789"

    def test_resource_name_forms(self, session: SyncSession) -> None:
        """Test the accepted organization id forms."""
        repository = OrganizationRepository(FakeOrganizationsClient(), session)
        assert repository.resource_name("1") == "organizations/1"
        assert repository.resource_name("gcp-org-1") == "organizations/1"
        assert repository.resource_name("organizations/1") == "organizations/1"


class TestListing:
    """Tests for listing folders and projects."""

    def test_list_folders(self, session: SyncSession) -> None:
        """Test that folders carry their number as id and their parent."""
        org = make_node(ResourceType.ORGANIZATION, "123456789")
        client = FakeFoldersClient(children={"organizations/123456789": [("456", "Finance")]})

        folders = list(FolderRepository(client, session).list_folders(org))

        assert len(folders) == 1
        assert folders[0].id == "456"
        assert folders[0].entry_name == "folders/456"
        assert folders[0].display_name == "Finance"
        assert folders[0].parent_id == "gcp-org-123456789"

    def test_list_projects(self, session: SyncSession) -> None:
        """Test that projects carry their project id."""
        folder = make_node(ResourceType.FOLDER, "456")
        client = FakeProjectsClient(children={"folders/456": [("analytics-prod", "Analytics")]})

        projects = list(ProjectRepository(client, session).list_projects(folder))

        assert [p.id for p in projects] == ["analytics-prod"]
        assert projects[0].policy_resource_name == "projects/analytics-prod"
        assert projects[0].parent is folder

    def test_project_owners(self, session: SyncSession) -> None:
        """Test reading the basic role members of a project."""
        client = FakeProjectsClient(policies={"projects/p1": make_policy({
            "roles/owner": ["user:o@x.com"],
            "roles/editor": ["group:e@x.com"],
            "roles/viewer": ["user:v@x.com", "user:w@x.com"],
            "roles/bigquery.admin": ["user:b@x.com"],
        })})
        owners = ProjectRepository(client, session).get_project_owners("p1")

        assert owners.owners == ["user:o@x.com"]
        assert owners.editors == ["group:e@x.com"]
        assert owners.viewers == ["user:v@x.com", "user:w@x.com"]


def _raise(error: Exception):
    def call(*args, **kwargs):
        raise error
    return call

"""
Unit tests for the resource hierarchy walker.
"""

from typing import List

import pytest
from google.api_core import exceptions as google_exceptions

from bindkit.errors import OrganizationNotFoundError
from bindkit.models import ResourceNode, ResourceType
from bindkit.repositories import FolderRepository, OrganizationRepository, ProjectRepository
from bindkit.session import SyncSession
from bindkit.walker import ResourceTreeWalker
from tests.fixtures import FakeFoldersClient, FakeOrganizationsClient, FakeProjectsClient

ORG = "organizations/123456789"


def _walker(session: SyncSession, folders: FakeFoldersClient, projects: FakeProjectsClient, **org_kwargs):
    return ResourceTreeWalker(
        OrganizationRepository(FakeOrganizationsClient(**org_kwargs), session),
        FolderRepository(folders, session),
        ProjectRepository(projects, session),
    )


class TestResourceTreeWalker:
    """Tests for traversal order and error handling."""

    def test_depth_first_projects_before_folders(self, session: SyncSession) -> None:
        """Test that child projects precede child folders at every level."""
        folders = FakeFoldersClient(children={
            ORG: [("1", "Finance"), ("2", "Marketing")],
            "folders/1": [("11", "Reporting")],
        })
        projects = FakeProjectsClient(children={
            ORG: [("root-project", "Root")],
            "folders/1": [("finance-prod", "Finance prod")],
            "folders/11": [("reporting", "Reporting")],
            "folders/2": [("ads", "Ads")],
        })

        visited: List[ResourceNode] = []
        _walker(session, folders, projects).walk(visited.append)

        assert [(n.type.value, n.id) for n in visited] == [
            ("organization", "gcp-org-123456789"),
            ("project", "root-project"),
            ("folder", "1"),
            ("project", "finance-prod"),
            ("folder", "11"),
            ("project", "reporting"),
            ("folder", "2"),
            ("project", "ads"),
        ]
        assert visited[5].parent.id == "11"
        assert visited[5].parent.parent.id == "1"

    def test_client_error_skips_children(self, session: SyncSession) -> None:
        """Test that a 4xx while listing is treated as no children."""
        folders = FakeFoldersClient(
            children={ORG: [("1", "Locked"), ("2", "Open")]},
            errors={"folders/1": google_exceptions.PermissionDenied("denied")},
        )
        projects = FakeProjectsClient(
            children={"folders/2": [("open-project", "Open")]},
            errors={"folders/1": google_exceptions.PermissionDenied("denied")},
        )

        ids = [node.id for node in _walker(session, folders, projects).iter_nodes()]

        assert ids == ["gcp-org-123456789", "1", "2", "open-project"]

    def test_server_error_propagates(self, session: SyncSession) -> None:
        """Test that a 5xx while listing aborts the walk."""
        folders = FakeFoldersClient()
        projects = FakeProjectsClient(errors={ORG: google_exceptions.InternalServerError("boom")})

        with pytest.raises(google_exceptions.InternalServerError):
            list(_walker(session, folders, projects).iter_nodes())

    def test_missing_organization(self, session: SyncSession) -> None:
        """Test that an unreadable organization aborts before any node is visited."""
        visited: List[ResourceNode] = []
        walker = _walker(
            session,
            FakeFoldersClient(),
            FakeProjectsClient(),
            error=google_exceptions.NotFound("no such organization"),
        )

        with pytest.raises(OrganizationNotFoundError):
            walker.walk(visited.append)
        assert visited == []

    def test_visitor_error_aborts(self, session: SyncSession) -> None:
        """Test that an exception raised by the visitor propagates."""
        projects = FakeProjectsClient(children={ORG: [("p1", "P1"), ("p2", "P2")]})
        visited: List[str] = []

        def visit(node: ResourceNode) -> None:
            if node.id == "p1":
                raise RuntimeError("stop")
            visited.append(node.id)

        with pytest.raises(RuntimeError, match="stop"):
            _walker(session, FakeFoldersClient(), projects).walk(visit)
        assert visited == ["gcp-org-123456789"]

    def test_lazy_iteration(self, session: SyncSession) -> None:
        """Test that children are only listed when iterated."""
        folders = FakeFoldersClient()
        projects = FakeProjectsClient()
        nodes = _walker(session, folders, projects).iter_nodes()

        first = next(nodes)

        assert first.type is ResourceType.ORGANIZATION
        assert projects.list_calls == []

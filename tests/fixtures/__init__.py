"""Test fixtures for bindkit."""

from .fakes import (
    FakeDataCatalogRepository,
    FakeFoldersClient,
    FakeOrganizationsClient,
    FakeProjectsClient,
    RecordingFeedbackHandler,
    RecordingHandler,
)
from .model_factories import (
    make_binding,
    make_column_what,
    make_desired_record,
    make_masking_information,
    make_node,
    make_policy,
    make_tagged_column,
    make_what,
)

__all__ = [
    "make_binding",
    "make_column_what",
    "make_desired_record",
    "make_masking_information",
    "make_node",
    "make_policy",
    "make_tagged_column",
    "make_what",
    "FakeDataCatalogRepository",
    "FakeFoldersClient",
    "FakeOrganizationsClient",
    "FakeProjectsClient",
    "RecordingFeedbackHandler",
    "RecordingHandler",
]

"""
bindkit - Building blocks for syncing GCP IAM with a generic access model.

This library keeps platform-neutral access records in sync with the IAM
policy bindings of a GCP organization, its folders and projects, and
manages BigQuery column masks backed by Data Catalog policy tags.

Key Features:
- Depth-first walk of the organization / folder / project hierarchy
- Binding collection with a per-run IAM policy cache
- Binding to access record conversion (per resource role, per identity,
  special group mappings)
- Access record to binding deltas, applied deletions first
- Column mask lifecycle per storage location
- Own-write suppression so pushed bindings are not imported back

Quick Start:
    from google.cloud import resourcemanager_v3

    from bindkit import AccessSyncer, SyncConfig

    config = SyncConfig.from_mapping({
        "gcp-organization-id": "123456789",
        "gcp-project-id": "analytics-prod",
    })

    syncer = AccessSyncer.from_clients(
        config,
        organizations_client=resourcemanager_v3.OrganizationsClient(),
        folders_client=resourcemanager_v3.FoldersClient(),
        projects_client=resourcemanager_v3.ProjectsClient(),
    )

    # Pull: GCP -> access records
    syncer.sync_access_from_target(handler)

    # Push: access records -> GCP
    syncer.sync_access_to_target(desired_records, feedback_handler)
"""

__version__ = "0.1.0"

# =============================================================================
# Configuration and session
# =============================================================================

from bindkit.config import SyncConfig, load_config
from bindkit.session import SyncSession

# =============================================================================
# Models
# =============================================================================

from bindkit.models import (
    AccessRecord,
    AccessRecordFeedback,
    Action,
    Binding,
    BindingDelta,
    DesiredAccessRecord,
    Identity,
    IdentityKind,
    MaskingInformation,
    MaskType,
    ResourceNode,
    ResourceType,
    WhatItem,
    WhoItem,
)

# =============================================================================
# Components
# =============================================================================

from bindkit.collector import BindingCollector
from bindkit.converters import AccessToBindingConverter, BindingToAccessConverter
from bindkit.datasource import DataSourceSyncer
from bindkit.executors import BindingExecutor, ExecutionResult, MaskingExecutor, OperationType
from bindkit.roles import PermissionCatalog, role_to_display_name
from bindkit.syncer import AccessSyncer
from bindkit.walker import ResourceTreeWalker

# =============================================================================
# Errors
# =============================================================================

from bindkit.errors import (
    BindkitError,
    FeedbackError,
    IngestionError,
    MaskingError,
    OrganizationNotFoundError,
    UnsupportedResourceTypeError,
)

__all__ = [
    "__version__",
    # Configuration
    "SyncConfig",
    "SyncSession",
    "load_config",
    # Models
    "AccessRecord",
    "AccessRecordFeedback",
    "Action",
    "Binding",
    "BindingDelta",
    "DesiredAccessRecord",
    "Identity",
    "IdentityKind",
    "MaskingInformation",
    "MaskType",
    "ResourceNode",
    "ResourceType",
    "WhatItem",
    "WhoItem",
    # Components
    "AccessSyncer",
    "AccessToBindingConverter",
    "BindingCollector",
    "BindingExecutor",
    "BindingToAccessConverter",
    "DataSourceSyncer",
    "ExecutionResult",
    "MaskingExecutor",
    "OperationType",
    "PermissionCatalog",
    "ResourceTreeWalker",
    "role_to_display_name",
    # Errors
    "BindkitError",
    "FeedbackError",
    "IngestionError",
    "MaskingError",
    "OrganizationNotFoundError",
    "UnsupportedResourceTypeError",
]

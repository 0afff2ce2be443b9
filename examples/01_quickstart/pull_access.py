"""
Pull Access Example

Walks the organization hierarchy and prints the access records built from
its IAM bindings. Uses application default credentials.
"""

import logging
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from google.cloud import resourcemanager_v3

from bindkit import AccessSyncer, SyncConfig

logging.basicConfig(level=logging.INFO)


class PrintingHandler:
    """Prints every imported access record."""

    def add_access_records(self, *records):
        for record in records:
            members = record.who.users + record.who.groups
            print(f"{record.name}: {len(members)} members, {len(record.what)} resources")


config = SyncConfig.from_env()

syncer = AccessSyncer.from_clients(
    config,
    organizations_client=resourcemanager_v3.OrganizationsClient(),
    folders_client=resourcemanager_v3.FoldersClient(),
    projects_client=resourcemanager_v3.ProjectsClient(),
)
syncer.sync_access_from_target(PrintingHandler())

# Output example (BINDKIT_ORGANIZATION_ID=123456789):
# organization_gcp-org-123456789_roles_viewer: 2 members, 1 resources
# project_analytics-prod_roles_bigquery.dataViewer: 5 members, 1 resources

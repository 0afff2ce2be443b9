"""
Push Access Example

Grants BigQuery data viewer on a project to a user and a group, and
removes a former member. Run with BINDKIT_DRY_RUN=true to only log the
binding changes.
"""

import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from google.cloud import resourcemanager_v3

from bindkit import AccessSyncer, SyncConfig
from bindkit.models import DesiredAccessRecord, WhatItem, WhoItem

logging.basicConfig(level=logging.INFO)


class PrintingFeedbackHandler:
    def add_feedback(self, feedback):
        status = "ok" if feedback.success else "; ".join(feedback.errors)
        print(f"{feedback.access_record_id}: {status}")


analysts = DesiredAccessRecord(
    id="analysts",
    name="Analysts on analytics-prod",
    who=WhoItem(users=["alice@example.com"], groups=["analysts@example.com"]),
    deleted_who=WhoItem(users=["bob@example.com"]),
    what=[
        WhatItem(
            resource="analytics-prod",
            resource_type="project",
            permissions=["roles/bigquery.dataViewer", "roles/bigquery.jobUser"],
        ),
    ],
)

config = SyncConfig.from_env()
syncer = AccessSyncer.from_clients(
    config,
    organizations_client=resourcemanager_v3.OrganizationsClient(),
    folders_client=resourcemanager_v3.FoldersClient(),
    projects_client=resourcemanager_v3.ProjectsClient(),
)
syncer.sync_access_to_target([analysts], PrintingFeedbackHandler())
print(syncer.binding_executor.get_summary())

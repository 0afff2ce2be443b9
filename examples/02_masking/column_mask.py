"""
Column Mask Example

Masks email columns in an EU and a US dataset. One policy tag and data
policy pair is created per location; members of the mask may read the
unmasked values.
"""

import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from google.cloud import bigquery, bigquery_datapolicies_v1, datacatalog_v1, resourcemanager_v3

from bindkit import AccessSyncer, SyncConfig
from bindkit.models import Action, DesiredAccessRecord, WhatItem, WhoItem

logging.basicConfig(level=logging.INFO)


class PrintingFeedbackHandler:
    def add_feedback(self, feedback):
        print(f"{feedback.access_record_id}: tags={feedback.actual_name} policies={feedback.external_id}")
        for error in feedback.errors:
            print(f"  error: {error}")


config = SyncConfig.from_mapping({
    "gcp-organization-id": "123456789",
    "gcp-project-id": "analytics-prod",
    "bq-catalog-enabled": True,
})

email_mask = DesiredAccessRecord(
    id="email-mask",
    name="customer emails",
    action=Action.MASK,
    type="EMAIL_MASK",
    who=WhoItem(groups=["support@example.com"]),
    what=[
        WhatItem(resource="analytics-prod.eu_sales.customers.email", resource_type="column"),
        WhatItem(resource="analytics-prod.us_sales.customers.email", resource_type="column"),
    ],
)

syncer = AccessSyncer.from_clients(
    config,
    organizations_client=resourcemanager_v3.OrganizationsClient(),
    folders_client=resourcemanager_v3.FoldersClient(),
    projects_client=resourcemanager_v3.ProjectsClient(),
    policy_tag_client=datacatalog_v1.PolicyTagManagerClient(),
    data_policy_client=bigquery_datapolicies_v1.DataPolicyServiceClient(),
    bigquery_client=bigquery.Client(project="analytics-prod"),
)
syncer.sync_access_to_target([email_mask], PrintingFeedbackHandler())

# Output example:
# email-mask: tags=customer_emails_a1B2c3D4,customer_emails_Z9y8X7w6
#   policies=projects/analytics-prod/locations/eu/dataPolicies/...,projects/analytics-prod/locations/us/dataPolicies/...

"""
Column masking models.

A mask is backed by one policy tag / data policy pair per storage location.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import Field, computed_field

from .base import BaseSyncModel
from .enums import MaskType


def location_from_resource_name(name: str) -> str:
    """
    Extract the location from a ``projects/<p>/locations/<l>/...`` name.

    Returns an empty string when the name has no location segment.
    """
    parts = name.split("/")
    if len(parts) > 3 and parts[2] == "locations":
        return parts[3].lower()
    return ""


class PolicyTagInfo(BaseSyncModel):
    """A Data Catalog policy tag."""

    full_name: str = Field(..., description="projects/<p>/locations/<l>/taxonomies/<t>/policyTags/<id>")
    name: str = Field(..., description="Display name")
    description: str = ""
    parent_tag: Optional[str] = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def id(self) -> str:
        return self.full_name.rsplit("/", 1)[-1]

    @property
    def taxonomy(self) -> str:
        """Full name of the taxonomy holding this tag."""
        return "/".join(self.full_name.split("/")[:6])


class DataPolicyInfo(BaseSyncModel):
    """A BigQuery data masking policy."""

    full_name: str = Field(..., description="projects/<p>/locations/<l>/dataPolicies/<id>")
    mask_type: MaskType = MaskType.ALWAYS_NULL

    @computed_field  # type: ignore[prop-decorator]
    @property
    def id(self) -> str:
        return self.full_name.rsplit("/", 1)[-1]

    @property
    def name(self) -> str:
        return self.id


class MaskingInformation(BaseSyncModel):
    """A policy tag and the data policy masking the columns it tags."""

    policy_tag: PolicyTagInfo
    data_policy: DataPolicyInfo

    @property
    def location(self) -> str:
        return location_from_resource_name(self.data_policy.full_name)


class TaggedColumn(BaseSyncModel):
    """A BigQuery column carrying one or more policy tags."""

    full_name: str = Field(..., description="<project>.<dataset>.<table>.<column path>")
    policy_tags: List[str] = Field(default_factory=list)
    location: str = ""

    @property
    def dataset(self) -> str:
        """``<project>.<dataset>`` part of the full name."""
        return ".".join(self.full_name.split(".")[:2])

    @property
    def table(self) -> str:
        """``<project>.<dataset>.<table>`` part of the full name."""
        return ".".join(self.full_name.split(".")[:3])

    @property
    def column_path(self) -> str:
        return ".".join(self.full_name.split(".")[3:])

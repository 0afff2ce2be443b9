"""
Configuration for a sync run.

The host loads the raw parameters (dashed keys such as ``gcp-organization-id``)
and hands them over as a mapping; ``SyncConfig.from_mapping`` validates them.
Configurations can also be read from YAML files or ``BINDKIT_*`` environment
variables.

Usage:
    config = SyncConfig.from_mapping({
        "gcp-organization-id": "123456789",
        "gcp-roles-to-group-by-identity": "roles/bigquery.jobUser,roles/viewer",
        "bq-catalog-enabled": "true",
    })

    config = load_config("sync.yml")
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Set, Union

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

# Prefix of the synthetic organization data source name
ORGANIZATION_DATASOURCE_PREFIX = "gcp-org-"

# Raw parameter keys as passed by the host, mapped to field names
RAW_KEYS: Dict[str, str] = {
    "gcp-organization-id": "organization_id",
    "gcp-project-id": "project_id",
    "gcp-roles-to-group-by-identity": "roles_to_group_by_identity",
    "bq-catalog-enabled": "masking_enabled",
    "gcp-masked-reader": "masked_reader",
    "call-timeout-seconds": "call_timeout_seconds",
    "dry-run": "dry_run",
}

# Inverted raw flag: skipping non-applicable permissions means not including them
SKIP_NON_APPLICABLE_KEY = "skip-non-applicable-permissions"

ENV_PREFIX = "BINDKIT_"


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


class SyncConfig(BaseModel):
    """
    Parameters of a sync run.

    Attributes:
        organization_id: Numeric GCP organization id
        project_id: Project used for special group ownership and masked reader grants
        include_non_applicable_permissions: Import roles outside the managed catalog
        roles_to_group_by_identity: Roles imported per identity instead of per resource
        masking_enabled: Whether BigQuery column masking is managed
        masked_reader: Grant the masked reader role to members of every grant
        call_timeout_seconds: Ceiling applied to every Google Cloud API call
        dry_run: Log binding mutations instead of performing them
    """

    organization_id: str = Field(..., min_length=1)
    project_id: Optional[str] = None
    include_non_applicable_permissions: bool = False
    roles_to_group_by_identity: Set[str] = Field(default_factory=set)
    masking_enabled: bool = False
    masked_reader: bool = False
    call_timeout_seconds: float = Field(default=10.0, gt=0)
    dry_run: bool = False

    @field_validator("organization_id", mode="before")
    @classmethod
    def validate_organization_id(cls, v: Any) -> str:
        """Accept ``organizations/<id>`` as well as the bare id."""
        value = str(v).strip()
        if value.startswith("organizations/"):
            value = value[len("organizations/"):]
        return value

    @field_validator("roles_to_group_by_identity", mode="before")
    @classmethod
    def validate_roles(cls, v: Any) -> Set[str]:
        """Split comma separated role lists and drop blanks."""
        if v is None:
            return set()
        if isinstance(v, str):
            v = v.split(",")
        return {role.strip() for role in v if role and role.strip()}

    @property
    def organization_datasource_name(self) -> str:
        """Synthetic id of the organization node, stable across runs."""
        return f"{ORGANIZATION_DATASOURCE_PREFIX}{self.organization_id}"

    @property
    def organization_resource_name(self) -> str:
        return f"organizations/{self.organization_id}"

    @classmethod
    def from_mapping(cls, params: Mapping[str, Any]) -> SyncConfig:
        """
        Build a config from raw host parameters.

        Dashed keys are translated to field names; field names are accepted
        as-is. Unknown keys are ignored.

        Raises:
            pydantic.ValidationError: If required parameters are missing or invalid
        """
        data: Dict[str, Any] = {}
        for key, value in params.items():
            if key in RAW_KEYS:
                data[RAW_KEYS[key]] = value
            elif key == SKIP_NON_APPLICABLE_KEY:
                data["include_non_applicable_permissions"] = not _parse_bool(value)
            elif key in cls.model_fields:
                data[key] = value
            else:
                logger.debug(f"Ignoring unknown config parameter '{key}'")
        return cls.model_validate(data)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> SyncConfig:
        """
        Build a config from ``BINDKIT_*`` environment variables.

        ``BINDKIT_ORGANIZATION_ID`` maps to ``organization_id`` and so on.
        """
        environ = os.environ if environ is None else environ
        data = {
            name: environ[f"{ENV_PREFIX}{name.upper()}"]
            for name in cls.model_fields
            if f"{ENV_PREFIX}{name.upper()}" in environ
        }
        return cls.model_validate(data)


def load_config(path: Union[str, Path]) -> SyncConfig:
    """
    Load a sync config from a YAML file.

    The file may use raw dashed keys or field names.

    Args:
        path: Path to YAML file

    Returns:
        Validated SyncConfig

    Raises:
        FileNotFoundError: If file doesn't exist
        yaml.YAMLError: If YAML parsing fails
        ValidationError: If validation fails
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping")

    config = SyncConfig.from_mapping(data)
    logger.info(f"Loaded sync config for organization {config.organization_id} from {path}")
    return config

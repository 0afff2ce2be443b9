"""
Shared pytest fixtures for bindkit tests.

Provides sync configurations and sessions backed by in-memory state.
"""

from typing import Generator

import pytest

from bindkit.config import SyncConfig
from bindkit.session import SyncSession

ORGANIZATION_ID = "123456789"
PROJECT_ID = "analytics-prod"


@pytest.fixture
def config() -> SyncConfig:
    """Configuration without masking or identity grouping."""
    return SyncConfig(organization_id=ORGANIZATION_ID, project_id=PROJECT_ID)


@pytest.fixture
def masking_config() -> SyncConfig:
    """Configuration with BigQuery masking enabled."""
    return SyncConfig(
        organization_id=ORGANIZATION_ID,
        project_id=PROJECT_ID,
        masking_enabled=True,
    )


@pytest.fixture
def session(config: SyncConfig) -> SyncSession:
    """Fresh session for the default configuration."""
    return SyncSession(config)


@pytest.fixture
def masking_session(masking_config: SyncConfig) -> SyncSession:
    """Fresh session with masking enabled."""
    return SyncSession(masking_config)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> Generator[pytest.MonkeyPatch, None, None]:
    """
    Remove every BINDKIT_* variable for the test duration.

    Yields the monkeypatch so tests can set their own values.
    """
    import os

    for key in list(os.environ):
        if key.startswith("BINDKIT_"):
            monkeypatch.delenv(key)
    yield monkeypatch

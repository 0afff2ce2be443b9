"""
Exceptions raised by bindkit.

Provider failures surface as ``google.api_core.exceptions`` types; the
classes here cover conditions specific to the sync engine.
"""

from typing import List, Optional


class BindkitError(Exception):
    """Base class for all bindkit errors."""


class OrganizationNotFoundError(BindkitError):
    """Raised when the configured organization cannot be read."""

    def __init__(self, organization_id: str, reason: Optional[str] = None):
        self.organization_id = organization_id
        message = f"Organization '{organization_id}' not found"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class UnsupportedResourceTypeError(BindkitError):
    """Raised when a binding targets a resource type without an IAM repository."""

    def __init__(self, resource_type: str):
        self.resource_type = resource_type
        super().__init__(f"Unsupported resource type '{resource_type}'")


class IngestionError(BindkitError):
    """Raised when the host rejects a batch of imported access records."""


class MaskingError(BindkitError):
    """Raised when a masking lifecycle step fails."""


class FeedbackError(BindkitError):
    """Aggregates failures of the feedback handler during a push run."""

    def __init__(self, errors: List[Exception]):
        self.errors = list(errors)
        details = "; ".join(str(e) for e in self.errors)
        super().__init__(f"{len(self.errors)} feedback error(s): {details}")

"""
Base executor class for GCP mutations.

Provides common functionality for all executors including error handling,
dry-run support and result bookkeeping. Retries are left to the Google Cloud
client libraries.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

from google.api_core import exceptions as google_exceptions

from bindkit.session import SyncSession

logger = logging.getLogger(__name__)

T = TypeVar('T')  # Generic type for managed resources


class OperationType(str, Enum):
    """Types of operations that can be performed."""
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    GRANT = "GRANT"
    REVOKE = "REVOKE"
    NO_OP = "NO_OP"
    SKIPPED = "SKIPPED"


@dataclass
class ExecutionResult:
    """Result of an execution operation."""

    success: bool
    operation: OperationType
    resource_type: str
    resource_name: str
    message: str = ""
    error: Optional[Exception] = None
    duration_seconds: float = 0.0
    changes: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """String representation of the result."""
        status = "OK" if self.success else "FAILED"
        return (
            f"[{status}] {self.operation.value} {self.resource_type} "
            f"{self.resource_name}: {self.message}"
        )


class BaseExecutor(ABC, Generic[T]):
    """
    Base class for all executors.

    Provides common functionality including:
    - Error handling with provider specific messages
    - Dry-run mode support
    - Result bookkeeping and summaries
    """

    def __init__(
        self,
        session: SyncSession,
        dry_run: bool = False,
        continue_on_error: bool = True,
    ):
        """
        Initialize the executor.

        Args:
            session: Sync session of the run
            dry_run: If True, only show what would be done
            continue_on_error: Continue execution despite errors
        """
        self.session = session
        self.dry_run = dry_run
        self.continue_on_error = continue_on_error
        self.results: List[ExecutionResult] = []

    @abstractmethod
    def get_resource_type(self) -> str:
        """Get the type of resource this executor handles."""
        pass

    def _record(self, result: ExecutionResult) -> ExecutionResult:
        self.results.append(result)
        return result

    def _handle_error(
        self,
        operation: OperationType,
        resource_name: str,
        error: Exception,
        duration_seconds: float = 0.0,
    ) -> ExecutionResult:
        """
        Handle an error during execution.

        Args:
            operation: The operation that failed
            resource_name: Name of the resource
            error: The exception that occurred
            duration_seconds: Time spent before the failure

        Returns:
            ExecutionResult with error details

        Raises:
            Exception: The original error when continue_on_error is disabled
        """
        if isinstance(error, google_exceptions.Forbidden):
            message = f"Permission denied: {error}. Check that the caller may set IAM policies on this resource."
        elif isinstance(error, google_exceptions.NotFound):
            message = f"Resource not found: {error}"
        elif isinstance(error, (google_exceptions.AlreadyExists, google_exceptions.Conflict)):
            message = f"Resource already exists: {error}"
        elif isinstance(error, google_exceptions.Aborted):
            message = f"Concurrent modification: {error}. The policy changed while it was being updated."
        elif isinstance(error, (google_exceptions.InvalidArgument, google_exceptions.BadRequest)):
            message = f"Invalid parameter: {error}. Check member, role and resource names."
        elif isinstance(error, (google_exceptions.Unauthenticated, google_exceptions.Unauthorized)):
            message = f"Authentication failed: {error}. Check the application default credentials."
        elif isinstance(error, google_exceptions.FailedPrecondition):
            message = f"Precondition failed: {error}"
        elif isinstance(error, (google_exceptions.TooManyRequests, google_exceptions.ResourceExhausted)):
            message = f"Quota exceeded: {error}. Check API quotas."
        elif isinstance(error, google_exceptions.ServiceUnavailable):
            message = f"Service temporarily unavailable: {error}. Try again later."
        else:
            message = str(error)

        result = ExecutionResult(
            success=False,
            operation=operation,
            resource_type=self.get_resource_type(),
            resource_name=resource_name,
            message=message,
            error=error,
            duration_seconds=duration_seconds,
        )

        self.results.append(result)
        logger.error(f"Operation failed: {result}")

        if not self.continue_on_error:
            raise error

        return result

    def get_summary(self) -> str:
        """
        Get a summary of execution results.

        Returns:
            Summary string
        """
        if not self.results:
            return "No operations performed"

        successful = sum(1 for r in self.results if r.success)
        failed = sum(1 for r in self.results if not r.success)

        lines = [
            "Execution Summary:",
            f"  Total operations: {len(self.results)}",
            f"  Successful: {successful}",
            f"  Failed: {failed}"
        ]

        if failed > 0:
            lines.append("\nFailed operations:")
            for result in self.results:
                if not result.success:
                    lines.append(f"  - {result}")

        return "\n".join(lines)

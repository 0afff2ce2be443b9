"""
Binding executor applying binding deltas to IAM policies.

Deletions are applied before additions. Every binding is written on its
own; a failure is reported to the access records that requested the
binding and the remaining bindings are still applied.
"""

import logging
import time
from typing import Callable, Dict, Iterable

from bindkit.errors import UnsupportedResourceTypeError
from bindkit.models.access import AccessRecordFeedback
from bindkit.models.bindings import Binding, BindingDelta
from bindkit.models.enums import ResourceType
from bindkit.repositories.base import IamPolicyRepository
from bindkit.session import SyncSession

from .base import BaseExecutor, ExecutionResult, OperationType

logger = logging.getLogger(__name__)


class BindingExecutor(BaseExecutor[Binding]):
    """Executor for IAM binding grants and revocations."""

    def __init__(
        self,
        repositories: Dict[ResourceType, IamPolicyRepository],
        session: SyncSession,
        dry_run: bool = False,
        continue_on_error: bool = True,
    ):
        """
        Initialize the binding executor.

        Args:
            repositories: IAM repository per resource type
            session: Sync session; successful grants are recorded in it
            dry_run: If True, only log actions without executing
            continue_on_error: Keep applying bindings after a failure
        """
        super().__init__(session, dry_run, continue_on_error)
        self.repositories = repositories

    def get_resource_type(self) -> str:
        """Get the resource type."""
        return "BINDING"

    def _repository_for(self, binding: Binding) -> IamPolicyRepository:
        try:
            return self.repositories[ResourceType(binding.resource_type.lower())]
        except (KeyError, ValueError) as e:
            raise UnsupportedResourceTypeError(binding.resource_type) from e

    def grant(self, binding: Binding) -> ExecutionResult:
        """
        Add a binding to its resource's IAM policy.

        Args:
            binding: The binding to grant

        Returns:
            ExecutionResult indicating success or failure
        """
        start_time = time.time()

        if self.dry_run:
            logger.info(f"[DRY RUN] Would grant {binding}")
            return self._record(ExecutionResult(
                success=True,
                operation=OperationType.GRANT,
                resource_type=self.get_resource_type(),
                resource_name=str(binding),
                message="Would grant (dry run)",
            ))

        try:
            changed = self._repository_for(binding).add_binding(binding)
        except Exception as e:
            return self._handle_error(OperationType.GRANT, str(binding), e, time.time() - start_time)

        self.session.record_managed_binding(binding)
        if changed:
            logger.info(f"Granted {binding}")

        return self._record(ExecutionResult(
            success=True,
            operation=OperationType.GRANT if changed else OperationType.NO_OP,
            resource_type=self.get_resource_type(),
            resource_name=str(binding),
            message="Granted" if changed else "Already granted",
            duration_seconds=time.time() - start_time,
        ))

    def revoke(self, binding: Binding) -> ExecutionResult:
        """
        Remove a binding from its resource's IAM policy.

        Args:
            binding: The binding to revoke

        Returns:
            ExecutionResult indicating success or failure
        """
        start_time = time.time()

        if self.dry_run:
            logger.info(f"[DRY RUN] Would revoke {binding}")
            return self._record(ExecutionResult(
                success=True,
                operation=OperationType.REVOKE,
                resource_type=self.get_resource_type(),
                resource_name=str(binding),
                message="Would revoke (dry run)",
            ))

        try:
            changed = self._repository_for(binding).remove_binding(binding)
        except Exception as e:
            return self._handle_error(OperationType.REVOKE, str(binding), e, time.time() - start_time)

        if changed:
            logger.info(f"Revoked {binding}")

        return self._record(ExecutionResult(
            success=True,
            operation=OperationType.REVOKE if changed else OperationType.NO_OP,
            resource_type=self.get_resource_type(),
            resource_name=str(binding),
            message="Revoked" if changed else "Not present",
            duration_seconds=time.time() - start_time,
        ))

    def apply(
        self,
        delta: BindingDelta,
        feedback: Dict[str, AccessRecordFeedback],
    ) -> Dict[str, AccessRecordFeedback]:
        """
        Apply a binding delta, deletions first.

        Failures are added to the feedback of every record that requested
        the failing binding.

        Args:
            delta: Bindings to delete and add
            feedback: Feedback per access record id, updated in place

        Returns:
            The feedback mapping
        """
        logger.info(
            f"Applying {len(delta.bindings_to_delete)} deletions and "
            f"{len(delta.bindings_to_add)} additions"
        )

        self._apply_all(delta, delta.bindings_to_delete, self.revoke, "revoke", feedback)
        self._apply_all(delta, delta.bindings_to_add, self.grant, "grant", feedback)

        return feedback

    def _apply_all(
        self,
        delta: BindingDelta,
        bindings: Iterable[Binding],
        operation: Callable[[Binding], ExecutionResult],
        verb: str,
        feedback: Dict[str, AccessRecordFeedback],
    ) -> None:
        for binding in bindings:
            result = operation(binding)
            if result.success:
                continue
            for record in delta.records_for(binding):
                record_feedback = feedback.get(record.id)
                if record_feedback is None:
                    record_feedback = AccessRecordFeedback(access_record_id=record.id, actual_name=record.id)
                    feedback[record.id] = record_feedback
                record_feedback.add_error(f"failed to {verb} {binding}: {result.message}")

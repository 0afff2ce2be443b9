"""
Access syncer: the pull and push directions of a sync run.

Pull walks the hierarchy, collects bindings and converts them into access
records (plus mask records when masking is enabled). Push converts desired
access records into binding mutations and routes mask records to the
masking executor.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence

from bindkit.collector import BindingCollector
from bindkit.config import SyncConfig
from bindkit.converters.to_access import BindingToAccessConverter
from bindkit.converters.to_bindings import AccessToBindingConverter, ExtraBindings
from bindkit.errors import FeedbackError, IngestionError
from bindkit.executors.binding_executor import BindingExecutor
from bindkit.executors.masking_executor import MaskingExecutor
from bindkit.models.access import ACL_SET_TYPE, AccessRecord, AccessRecordFeedback, DesiredAccessRecord
from bindkit.models.bindings import Binding
from bindkit.models.enums import Action, ResourceType
from bindkit.repositories.datacatalog import DataCatalogRepository
from bindkit.repositories.folder import FolderRepository
from bindkit.repositories.organization import OrganizationRepository
from bindkit.repositories.project import ProjectRepository
from bindkit.roles import PermissionCatalog
from bindkit.session import SyncSession
from bindkit.walker import ResourceTreeWalker

logger = logging.getLogger(__name__)

MASKING_NOT_SUPPORTED = "masking is not supported in data source"


class AccessRecordHandler(Protocol):
    """Receives access records imported from GCP."""

    def add_access_records(self, *records: AccessRecord) -> None:
        ...


class FeedbackHandler(Protocol):
    """Receives the outcome of every desired access record."""

    def add_feedback(self, feedback: AccessRecordFeedback) -> None:
        ...


class AccessSyncer:
    """
    Entry point for one sync run.

    Use ``AccessSyncer.from_clients`` to wire the components from Google
    Cloud clients, or pass the components directly.
    """

    def __init__(
        self,
        session: SyncSession,
        walker: ResourceTreeWalker,
        collector: BindingCollector,
        to_access: BindingToAccessConverter,
        binding_executor: BindingExecutor,
        masking_executor: Optional[MaskingExecutor] = None,
        to_bindings: Optional[AccessToBindingConverter] = None,
    ):
        self.session = session
        self.walker = walker
        self.collector = collector
        self.to_access = to_access
        self.binding_executor = binding_executor
        self.masking_executor = masking_executor
        if to_bindings is None:
            to_bindings = AccessToBindingConverter(extra_bindings=self._masked_reader_hook())
        self.to_bindings = to_bindings

    @classmethod
    def from_clients(
        cls,
        config: SyncConfig,
        organizations_client: Any,
        folders_client: Any,
        projects_client: Any,
        policy_tag_client: Any = None,
        data_policy_client: Any = None,
        bigquery_client: Any = None,
        catalog: Optional[PermissionCatalog] = None,
        session: Optional[SyncSession] = None,
    ) -> AccessSyncer:
        """
        Wire a syncer from authenticated Google Cloud clients.

        The masking clients are only used when masking is enabled.
        """
        session = session or SyncSession(config)
        organizations = OrganizationRepository(organizations_client, session)
        folders = FolderRepository(folders_client, session)
        projects = ProjectRepository(projects_client, session)
        repositories = {
            ResourceType.ORGANIZATION: organizations,
            ResourceType.FOLDER: folders,
            ResourceType.PROJECT: projects,
        }

        masking_executor = None
        if config.masking_enabled:
            if policy_tag_client is None or data_policy_client is None or bigquery_client is None:
                raise ValueError("Masking requires policy tag, data policy and BigQuery clients")
            repository = DataCatalogRepository(policy_tag_client, data_policy_client, bigquery_client, session)
            masking_executor = MaskingExecutor(repository, session)

        return cls(
            session=session,
            walker=ResourceTreeWalker(organizations, folders, projects),
            collector=BindingCollector(repositories),
            to_access=BindingToAccessConverter(config, catalog, projects),
            binding_executor=BindingExecutor(repositories, session, dry_run=config.dry_run),
            masking_executor=masking_executor,
        )

    @property
    def config(self) -> SyncConfig:
        return self.session.config

    @property
    def masking_supported(self) -> bool:
        return self.config.masking_enabled and self.masking_executor is not None

    def _masked_reader_hook(self) -> Optional[ExtraBindings]:
        if not (self.config.masked_reader and self.masking_supported):
            return None
        return self.masking_executor.masked_reader_bindings

    # =========================================================================
    # Pull
    # =========================================================================

    def collect_bindings(self) -> List[Binding]:
        """Bindings of every node of the hierarchy."""
        bindings: List[Binding] = []
        self.walker.walk(lambda node: bindings.extend(self.collector.bindings(node)))
        logger.info(f"Collected {len(bindings)} bindings")
        return bindings

    def sync_access_from_target(self, handler: AccessRecordHandler) -> None:
        """
        Import GCP access into the access platform.

        Raises:
            IngestionError: If the handler rejects a batch of records
            OrganizationNotFoundError: If the organization cannot be read
        """
        records = self.to_access.convert(
            self.collect_bindings(),
            managed_bindings=self.session.managed_bindings(),
        )
        self._ingest(handler, records)

        if self.masking_supported:
            columns = self.masking_executor.repository.list_tagged_columns()
            masks = self.masking_executor.import_masks(columns, self.session.managed_masks())
            self._ingest(handler, masks)

    def _ingest(self, handler: AccessRecordHandler, records: Sequence[AccessRecord]) -> None:
        if not records:
            return
        try:
            handler.add_access_records(*records)
        except Exception as e:
            raise IngestionError(f"Failed to add {len(records)} access records: {e}") from e

    # =========================================================================
    # Push
    # =========================================================================

    def sync_access_to_target(
        self,
        desired: Iterable[DesiredAccessRecord],
        feedback_handler: FeedbackHandler,
    ) -> Dict[str, AccessRecordFeedback]:
        """
        Apply desired access records to GCP.

        Grant records become binding mutations, mask records go to the
        masking executor and any other action is answered with an error.

        Returns:
            Feedback per access record id

        Raises:
            FeedbackError: If the feedback handler failed for one or more records
        """
        handler_errors: List[Exception] = []
        feedback: Dict[str, AccessRecordFeedback] = {}
        grants: List[DesiredAccessRecord] = []

        for record in desired:
            if record.action is Action.GRANT:
                grants.append(record)
                feedback[record.id] = AccessRecordFeedback(
                    access_record_id=record.id,
                    actual_name=record.id,
                    type=ACL_SET_TYPE,
                )
            elif record.action is Action.MASK:
                if self.masking_supported:
                    mask_feedback = self.masking_executor.export_mask(record)
                else:
                    mask_feedback = AccessRecordFeedback(
                        access_record_id=record.id,
                        actual_name=record.id,
                        errors=[MASKING_NOT_SUPPORTED],
                    )
                feedback[record.id] = mask_feedback
                self._send_feedback(feedback_handler, mask_feedback, handler_errors)
            else:
                unsupported = AccessRecordFeedback(
                    access_record_id=record.id,
                    actual_name=record.id,
                    errors=[f"unsupported action: {record.action.value}"],
                )
                feedback[record.id] = unsupported
                self._send_feedback(feedback_handler, unsupported, handler_errors)

        if grants:
            delta = self.to_bindings.convert(grants)
            grant_feedback = {record.id: feedback[record.id] for record in grants}
            self.binding_executor.apply(delta, grant_feedback)
            for record_feedback in grant_feedback.values():
                self._send_feedback(feedback_handler, record_feedback, handler_errors)

        if handler_errors:
            raise FeedbackError(handler_errors)

        return feedback

    @staticmethod
    def _send_feedback(
        handler: FeedbackHandler,
        feedback: AccessRecordFeedback,
        errors: List[Exception],
    ) -> None:
        try:
            handler.add_feedback(feedback)
        except Exception as e:
            logger.error(f"Failed to report feedback for access record {feedback.access_record_id}: {e}")
            errors.append(e)

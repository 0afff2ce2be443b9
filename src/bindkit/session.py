"""
Per-run sync session.

The session owns the state that lives for the duration of a sync run: the
fetched IAM policies, the bindings written by the push direction and the
data policies created for masks. Every cache has its own lock so pull and
push can run concurrently for different resources.
"""

import logging
import threading
from typing import Any, Dict, Iterable, List, Optional, Set

from bindkit.config import SyncConfig
from bindkit.models.bindings import Binding

logger = logging.getLogger(__name__)


class SyncSession:
    """
    State shared by the components of one sync run.

    Args:
        config: Configuration of the run
    """

    def __init__(self, config: SyncConfig):
        self.config = config
        self._policies: Dict[str, Any] = {}
        self._policy_lock = threading.Lock()
        self._managed_bindings: Dict[Binding, None] = {}
        self._managed_bindings_lock = threading.Lock()
        self._managed_masks: Set[str] = set()
        self._managed_masks_lock = threading.Lock()

    @property
    def timeout(self) -> float:
        """Per-call ceiling for Google Cloud API calls."""
        return self.config.call_timeout_seconds

    # Policy cache

    def get_policy(self, resource_name: str) -> Optional[Any]:
        """Cached policy for a fully-qualified resource name, if fetched before."""
        with self._policy_lock:
            policy = self._policies.get(resource_name)
        if policy is not None:
            logger.debug(f"Policy cache hit for {resource_name}")
        return policy

    def store_policy(self, resource_name: str, policy: Any) -> None:
        with self._policy_lock:
            self._policies[resource_name] = policy

    def clear_policies(self) -> None:
        with self._policy_lock:
            self._policies.clear()

    # Bindings written by the push direction

    def record_managed_binding(self, binding: Binding) -> None:
        with self._managed_bindings_lock:
            self._managed_bindings[binding] = None

    def is_managed_binding(self, binding: Binding) -> bool:
        with self._managed_bindings_lock:
            return binding in self._managed_bindings

    def managed_bindings(self) -> List[Binding]:
        """Snapshot of the bindings written in this run."""
        with self._managed_bindings_lock:
            return list(self._managed_bindings)

    # Data policies created for masks

    def record_managed_masks(self, data_policy_names: Iterable[str]) -> None:
        with self._managed_masks_lock:
            self._managed_masks.update(data_policy_names)

    def managed_masks(self) -> Set[str]:
        with self._managed_masks_lock:
            return set(self._managed_masks)

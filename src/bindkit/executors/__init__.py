"""
Executors for GCP mutations.

Each executor handles one kind of change and records an ExecutionResult
per operation.
"""

from .base import BaseExecutor, ExecutionResult, OperationType
from .binding_executor import BindingExecutor
from .masking_executor import MASKED_READER_ROLE, MaskingExecutor

__all__ = [
    "BaseExecutor",
    "ExecutionResult",
    "OperationType",
    "BindingExecutor",
    "MaskingExecutor",
    "MASKED_READER_ROLE",
]

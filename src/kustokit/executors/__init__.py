"""
Executors submit commands to a cluster and apply change plans.
"""

from .base import ExecutionResult, Executor, execute_with_retry, scalar
from .apply import ApplyEngine, apply, batch_command
from .writers import CapacityPolicyWriter, DatabaseWriter, MetadataWriter, default_writers
from .kusto import KustoExecutor

__all__ = [
    "ExecutionResult",
    "Executor",
    "execute_with_retry",
    "scalar",
    "ApplyEngine",
    "apply",
    "batch_command",
    "CapacityPolicyWriter",
    "DatabaseWriter",
    "MetadataWriter",
    "default_writers",
    "KustoExecutor",
]

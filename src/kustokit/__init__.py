"""
kustokit - Schema-as-code for Azure Data Explorer (Kusto).

This library reconciles Kusto databases with their declared state. The
desired state lives in YAML files; the observed state is loaded from the live
cluster. The planner computes the ordered, idempotent control commands that
close the gap, renders them for review, and the apply engine runs them.

Key Features:
- Tables, functions, materialized views, external tables, continuous
  exports, entity groups, principals and policies
- Deterministic plans with markdown review output
- Unsafe changes are reported but never applied
- Batched apply with async operation polling
- Follower database overrides and cluster capacity policies

Quick Start:
    from kustokit import Orchestrator, RunMode

    orchestrator = Orchestrator()
    report, valid = orchestrator.run("deployments/prod", "Telemetry", RunMode.DIFF)
    print(report)

    # Or plan directly from two documents
    from kustokit import plan, load_database

    desired = load_database("deployments/prod", "Telemetry")
    changes = plan(observed, desired, "Telemetry")
"""

__version__ = "0.1.0"

from kustokit.changes import Change, Comment, applicable_scripts, is_valid, plan
from kustokit.config import EngineSettings
from kustokit.exceptions import (
    AggregateExecutionError,
    CommandRejectedError,
    DesiredStateError,
    ExecutorError,
    KustokitError,
    OperationTimeoutError,
    RegistryError,
    ScriptExecutionError,
    TransientExecutorError,
)
from kustokit.executors import ApplyEngine, ExecutionResult, Executor, KustoExecutor, apply
from kustokit.loaders import default_loaders, load_observed
from kustokit.merge import merge, normalize_database
from kustokit.models import Database, RunMode, Script
from kustokit.orchestrator import Orchestrator, run
from kustokit.yaml_schema import load_database, load_registry, write_database

__all__ = [
    "__version__",
    # Planning
    "Change",
    "Comment",
    "applicable_scripts",
    "is_valid",
    "plan",
    "merge",
    "normalize_database",
    # Config
    "EngineSettings",
    # Errors
    "AggregateExecutionError",
    "CommandRejectedError",
    "DesiredStateError",
    "ExecutorError",
    "KustokitError",
    "OperationTimeoutError",
    "RegistryError",
    "ScriptExecutionError",
    "TransientExecutorError",
    # Execution
    "ApplyEngine",
    "ExecutionResult",
    "Executor",
    "KustoExecutor",
    "apply",
    # Loading
    "default_loaders",
    "load_observed",
    "load_database",
    "load_registry",
    "write_database",
    # Models
    "Database",
    "RunMode",
    "Script",
    # Orchestration
    "Orchestrator",
    "run",
]

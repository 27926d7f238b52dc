"""
Writers run in apply mode, in list order, against one target database.

Each writer has ``write(desired, observed, database_name, executor)`` and
returns the results of the commands it submitted.
"""

import json
import logging
import time
from typing import Callable, List, Optional

from kustokit.changes import plan
from kustokit.config import EngineSettings
from kustokit.models import (
    COMMAND_SERIALIZATION,
    ClusterCapacityPolicy,
    Database,
    ExecutionState,
    bracket_if_identifier,
)

from .apply import ApplyEngine
from .base import ExecutionResult, Executor

logger = logging.getLogger(__name__)


def _completed(command_type: str, command: str) -> ExecutionResult:
    return ExecutionResult(
        operation_id="",
        command_type=command_type,
        command_text=command,
        result=ExecutionState.COMPLETED.value,
    )


class DatabaseWriter:
    """Plans the database changes and applies them."""

    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.settings = settings or EngineSettings()
        self.sleep = sleep

    def write(
        self, desired: Database, observed: Database, database_name: str, executor: Executor
    ) -> List[ExecutionResult]:
        changes = plan(observed, desired, bracket_if_identifier(database_name), self.settings)
        engine = ApplyEngine(executor, self.settings, self.sleep)
        return engine.apply(changes, database_name)


class MetadataWriter:
    """Appends the declared metadata rows to a metadata table."""

    def __init__(self, table: str, folder: str = ""):
        self.table = table
        self.folder = folder

    def command(self, desired: Database) -> str:
        state = json.dumps(COMMAND_SERIALIZATION.dump(desired.metadata))
        return (
            f".set-or-append {self.table} with (folder='{self.folder}') <| "
            f"print Timestamp = now(), Metadata = todynamic(```{state}```) "
            f"| mv-expand Metadata | evaluate bag_unpack(Metadata)"
        )

    def write(
        self, desired: Database, observed: Database, database_name: str, executor: Executor
    ) -> List[ExecutionResult]:
        if not desired.metadata:
            return []
        command = self.command(desired)
        logger.info(f"Writing {len(desired.metadata)} metadata rows to {self.table}")
        executor.execute_admin_command(database_name, command)
        return [_completed("MetadataWriter", command)]


class CapacityPolicyWriter:
    """Applies the cluster capacity policy declared in the registry."""

    def __init__(self, policy: Optional[ClusterCapacityPolicy]):
        self.policy = policy

    def write(
        self, desired: Database, observed: Database, database_name: str, executor: Executor
    ) -> List[ExecutionResult]:
        if self.policy is None:
            logger.info("No capacity policy defined, skipping cluster capacity policy configuration")
            return []
        script = self.policy.create_script()
        logger.info("Applying cluster capacity policy")
        try:
            executor.execute_admin_command("", script.text)
        except Exception as e:
            logger.error(f"Failed to apply cluster capacity policy: {e}")
            raise
        logger.info("Cluster capacity policy applied successfully")
        return [_completed(script.kind, script.text)]


def default_writers(
    settings: EngineSettings,
    capacity_policy: Optional[ClusterCapacityPolicy] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> list:
    """The writer list for one target, in execution order."""
    writers = [DatabaseWriter(settings, sleep), MetadataWriter(settings.metadata_table)]
    if capacity_policy is not None:
        writers.append(CapacityPolicyWriter(capacity_policy))
    return writers

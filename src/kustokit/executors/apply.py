"""
Apply engine.

Applies a change plan to one database. Valid, non-informational scripts are
sorted by their order and submitted in batches through
``.execute database script``. Asynchronous scripts (materialized view
backfills) are submitted on their own and polled until they finish. Failures
are collected and raised once everything has been submitted, so one bad
script doesn't stop unrelated entities from being rolled out.
"""

import logging
import time
from dataclasses import replace
from typing import Callable, List, Optional

from kustokit.changes import Change, applicable_scripts
from kustokit.config import EngineSettings
from kustokit.exceptions import (
    AggregateExecutionError,
    ExecutorError,
    OperationTimeoutError,
    ScriptExecutionError,
)
from kustokit.models import ExecutionState, Script

from .base import ExecutionResult, Executor, execute_with_retry

logger = logging.getLogger(__name__)

BATCH_PREFIX = ".execute database script with (ContinueOnErrors=true) <|"
NO_RESULT_REASON = "no result returned"


def batch_command(scripts: List[Script]) -> str:
    return "\n".join([BATCH_PREFIX] + [script.text for script in scripts])


class ApplyEngine:
    """
    Submits planned scripts and tracks their outcome.

    Args:
        executor: Executor bound to the target cluster
        settings: Poll interval, poll ceiling and retry count
        sleep: Sleep function used between polls, injectable for tests
    """

    def __init__(
        self,
        executor: Executor,
        settings: Optional[EngineSettings] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.executor = executor
        self.settings = settings or EngineSettings()
        self.sleep = sleep

    def apply(self, changes: List[Change], database_name: str) -> List[ExecutionResult]:
        """
        Apply every valid script of a plan.

        Args:
            changes: The plan; it is not modified
            database_name: Database the scripts run in

        Returns:
            One result per submitted script, in submission order

        Raises:
            ScriptExecutionError: If exactly one script failed
            AggregateExecutionError: If several scripts failed
            OperationTimeoutError: If an async operation doesn't finish in time;
                it carries the results and failures collected before it
        """
        scripts = applicable_scripts(changes)
        if not scripts:
            logger.info(f"Nothing to apply to {database_name}")
            return []

        logger.info(f"Applying {len(scripts)} scripts to {database_name}")
        results: List[ExecutionResult] = []
        pending: List[Script] = []
        try:
            for script in scripts:
                if script.is_async:
                    results.extend(self._flush(pending, database_name))
                    pending = []
                    results.append(self._run_async(script, database_name))
                else:
                    pending.append(script)
            results.extend(self._flush(pending, database_name))
        except OperationTimeoutError as timeout:
            # Scripts after the timed out operation are not submitted
            self._log_results(results)
            timeout.attach(results, self.collect_failures(results))
            raise

        self._log_results(results)
        self.raise_for_failures(results)
        return results

    def _flush(self, batch: List[Script], database_name: str) -> List[ExecutionResult]:
        if not batch:
            return []
        command = batch_command(batch)
        logger.info(f"Applying script:\n{command}")
        rows = self.executor.execute_admin_command(database_name, command)
        results = []
        for index, row in enumerate(rows):
            fallback = batch[index].text if index < len(batch) else ""
            result = ExecutionResult.from_row(row, command_text=fallback)
            if not result.is_terminal:
                # A batch returns once every script ran; anything else didn't apply
                result = replace(
                    result,
                    result=ExecutionState.FAILED.value,
                    reason=result.reason or f"no final state reported ({result.result or 'empty'})",
                )
            results.append(result)
        for script in batch[len(rows):]:
            results.append(ExecutionResult(
                operation_id="",
                command_type=script.kind,
                command_text=script.text,
                result=ExecutionState.FAILED.value,
                reason=NO_RESULT_REASON,
            ))
        return results

    def _run_async(self, script: Script, database_name: str) -> ExecutionResult:
        logger.info(f"Submitting async script:\n{script.text}")
        rows = self.executor.execute_admin_command(database_name, script.text)
        if not rows:
            raise ExecutorError("Async command returned no operation id", command=script.text)
        operation_id = str(rows[0].get("OperationId") or next(iter(rows[0].values())))
        return self.poll(operation_id, script, database_name)

    def poll(self, operation_id: str, script: Script, database_name: str) -> ExecutionResult:
        """
        Poll an async operation until it reaches a terminal state.

        Raises:
            OperationTimeoutError: After ``max_polls`` polls without a terminal state
        """
        command = f".show operations {operation_id}"
        for attempt in range(1, self.settings.max_polls + 1):
            rows = execute_with_retry(
                self.executor.execute_admin_command,
                database_name,
                command,
                max_retries=self.settings.max_retries,
                sleep=self.sleep,
            )
            if rows:
                row = rows[0]
                state = ExecutionState.parse(str(row.get("State") or ""))
                if state.is_terminal:
                    logger.info(f"Operation {operation_id} finished as {state.value} after {attempt} polls")
                    return ExecutionResult(
                        operation_id=operation_id,
                        command_type=str(row.get("Operation") or script.kind),
                        command_text=script.text,
                        result=state.value,
                        reason=str(row.get("Status") or ""),
                    )
            self.sleep(self.settings.poll_interval_seconds)

        logger.error(f"Operation {operation_id} did not finish after {self.settings.max_polls} polls")
        raise OperationTimeoutError(operation_id, self.settings.max_polls, command_text=script.text)

    @staticmethod
    def _log_results(results: List[ExecutionResult]) -> None:
        for result in results:
            logger.info(str(result))

    @staticmethod
    def collect_failures(results: List[ExecutionResult]) -> List[ScriptExecutionError]:
        errors = [ScriptExecutionError(result) for result in results if result.is_failure]
        for error in errors:
            logger.error(str(error))
        return errors

    @classmethod
    def raise_for_failures(cls, results: List[ExecutionResult]) -> None:
        errors = cls.collect_failures(results)
        if len(errors) == 1:
            raise errors[0]
        if len(errors) > 1:
            raise AggregateExecutionError(errors, results)


def apply(
    changes: List[Change],
    database_name: str,
    executor: Executor,
    settings: Optional[EngineSettings] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> List[ExecutionResult]:
    """Apply a plan with a one-off ``ApplyEngine``."""
    return ApplyEngine(executor, settings, sleep).apply(changes, database_name)

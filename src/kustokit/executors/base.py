"""
Base executor for Kusto commands.

An ``Executor`` is the wire-level seam of the engine: it runs a query or a
control command against one database and returns the result rows as plain
dictionaries. Everything above it (loaders, apply engine, writers) is written
against this interface so it can be backed by a live cluster or a fake.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional

from typing_extensions import Self

from kustokit.exceptions import ExecutorError, TransientExecutorError
from kustokit.models import ExecutionState

logger = logging.getLogger(__name__)

Row = Dict[str, Any]


@dataclass
class ExecutionResult:
    """Outcome of one submitted script, as reported by the cluster."""

    operation_id: str
    command_type: str
    command_text: str
    result: str
    reason: str = ""

    @classmethod
    def from_row(cls, row: Mapping[str, Any], command_text: str = "") -> "ExecutionResult":
        """Build a result from an ``.execute database script`` row."""
        return cls(
            operation_id=str(row.get("OperationId") or ""),
            command_type=str(row.get("CommandType") or ""),
            command_text=str(row.get("CommandText") or command_text),
            result=str(row.get("Result") or ""),
            reason=str(row.get("Reason") or ""),
        )

    @property
    def state(self) -> ExecutionState:
        return ExecutionState.parse(self.result)

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    @property
    def is_failure(self) -> bool:
        return self.state.is_failure

    def __str__(self) -> str:
        """String representation of the result."""
        status = "❌" if self.is_failure else "✅"
        return (
            f"{status} {self.command_type} ({self.operation_id}): {self.result} "
            f"=> {self.reason} ({self.command_text})"
        )


class Executor(ABC):
    """
    Runs commands against a cluster.

    Implementations raise ``TransientExecutorError`` for retryable failures,
    ``CommandRejectedError`` when the cluster rejects a command and
    ``ExecutorError`` for anything else.
    """

    @abstractmethod
    def execute_query(self, database: str, command: str) -> List[Row]:
        """
        Run a read-only query.

        Args:
            database: Database to run the query in; empty for cluster scope
            command: Query text

        Returns:
            Rows of the primary result
        """
        pass

    @abstractmethod
    def execute_admin_command(self, database: str, command: str) -> List[Row]:
        """
        Run a control command.

        Args:
            database: Database to run the command in; empty for cluster scope
            command: Command text

        Returns:
            Rows of the primary result
        """
        pass

    def close(self) -> None:
        """Release the connection, if the executor holds one."""
        pass

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


def scalar(rows: List[Row]) -> Any:
    """
    First column of the first row.

    Raises:
        ExecutorError: If there are no rows
    """
    if not rows:
        raise ExecutorError("Can't get the value from the result set, because it is empty.")
    return next(iter(rows[0].values()))


def execute_with_retry(
    operation: Callable[..., Any],
    *args: Any,
    max_retries: int = 3,
    sleep: Callable[[float], None] = time.sleep,
    **kwargs: Any,
) -> Any:
    """
    Execute an operation with retry logic.

    Only ``TransientExecutorError`` is retried, with exponential backoff.
    Use it for read-only queries and status polls; mutating commands are
    submitted exactly once.

    Args:
        operation: The operation to execute
        *args: Positional arguments for the operation
        max_retries: Total number of attempts
        sleep: Sleep function, injectable for tests
        **kwargs: Keyword arguments for the operation

    Returns:
        Result of the operation

    Raises:
        TransientExecutorError: If all attempts fail
        ExecutorError: Immediately, for non-transient failures
    """
    last_error: Optional[TransientExecutorError] = None

    for attempt in range(max_retries):
        try:
            return operation(*args, **kwargs)
        except TransientExecutorError as e:
            # Transient errors - retry with backoff
            last_error = e
            if attempt < max_retries - 1:
                wait_time = 2 ** attempt  # Exponential backoff
                logger.warning(
                    f"Attempt {attempt + 1} failed: {e}. "
                    f"Retrying in {wait_time} seconds..."
                )
                sleep(wait_time)
            else:
                logger.error(f"All {max_retries} attempts failed")

    if last_error:
        raise last_error

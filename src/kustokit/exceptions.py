"""
Exception hierarchy for kustokit.

Load errors abort a run before any planning happens. Executor errors are
raised by the wire-level client. Execution errors are collected by the apply
engine and raised once the whole plan has been submitted.
"""

from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, Union

if TYPE_CHECKING:
    from kustokit.executors.base import ExecutionResult


class KustokitError(Exception):
    """Base class for every error raised by kustokit."""


# =============================================================================
# LOAD ERRORS
# =============================================================================

class DesiredStateError(KustokitError):
    """A desired-state document is missing or malformed."""

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path is not None else None
        if self.path is not None:
            message = f"{message} ({self.path})"
        super().__init__(message)


class RegistryError(DesiredStateError):
    """The cluster registry document is missing or malformed."""


# =============================================================================
# EXECUTOR ERRORS
# =============================================================================

class ExecutorError(KustokitError):
    """A command could not be executed against the remote cluster."""

    def __init__(self, message: str, command: Optional[str] = None):
        super().__init__(message)
        self.command = command


class TransientExecutorError(ExecutorError):
    """A retryable failure (throttling, timeouts, temporary unavailability)."""


class CommandRejectedError(ExecutorError):
    """The remote cluster accepted the request but rejected the command."""


# =============================================================================
# EXECUTION ERRORS
# =============================================================================

class ScriptExecutionError(KustokitError):
    """A single script failed during apply."""

    def __init__(self, result: "ExecutionResult"):
        self.result = result
        super().__init__(
            f"Execution failed for command \n{result.command_text} \n"
            f"with reason\n{result.reason}"
        )


class AggregateExecutionError(KustokitError):
    """More than one script failed during apply."""

    def __init__(
        self,
        errors: List[ScriptExecutionError],
        results: Optional[List["ExecutionResult"]] = None,
    ):
        self.errors = errors
        self.results = results or []
        details = "\n---\n".join(str(e) for e in errors)
        super().__init__(f"{len(errors)} scripts failed:\n{details}")


class OperationTimeoutError(KustokitError):
    """
    An asynchronous operation did not reach a terminal state in time.

    When raised from an apply, ``results`` holds what was submitted before
    the timeout and ``errors`` the failures among them.
    """

    def __init__(self, operation_id: str, polls: int, command_text: str = ""):
        self.operation_id = operation_id
        self.polls = polls
        self.command_text = command_text
        self.results: List["ExecutionResult"] = []
        self.errors: List[ScriptExecutionError] = []
        super().__init__(self._message())

    def _message(self) -> str:
        message = f"Operation {self.operation_id} did not complete after {self.polls} polls"
        if self.errors:
            details = "\n---\n".join(str(e) for e in self.errors)
            message += f"\n{len(self.errors)} scripts failed before it:\n{details}"
        return message

    def attach(self, results: List["ExecutionResult"], errors: List[ScriptExecutionError]) -> None:
        """Record what the apply completed before timing out."""
        self.results = list(results)
        self.errors = list(errors)
        self.args = (self._message(),)

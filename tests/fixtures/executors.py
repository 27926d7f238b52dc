"""
In-memory executor for tests.
"""

from collections import deque
from typing import Any, Callable, Deque, List, Optional, Tuple

from kustokit.executors.apply import BATCH_PREFIX
from kustokit.executors.base import Executor, Row


class FakeExecutor(Executor):
    """
    In-memory executor.

    Replies are registered per command fragment: the first fragment contained
    in a command decides the reply. A reply is a list of rows or an exception
    to raise. When several replies are registered for one fragment they are
    consumed in order, and the last one repeats. Unmatched commands go to
    ``fallback`` when one is given and return no rows otherwise.
    """

    def __init__(self, fallback: Optional[Callable[[str], List[Row]]] = None) -> None:
        self.replies: List[Tuple[str, Deque[Any]]] = []
        self.queries: List[Tuple[str, str]] = []
        self.commands: List[Tuple[str, str]] = []
        self.fallback = fallback
        self.closed = False

    def respond(self, fragment: str, *replies: Any) -> "FakeExecutor":
        """Register replies for commands containing ``fragment``."""
        self.replies.append((fragment, deque(replies)))
        return self

    def _reply(self, command: str) -> List[Row]:
        for fragment, queue in self.replies:
            if fragment in command:
                reply = queue.popleft() if len(queue) > 1 else queue[0]
                if isinstance(reply, Exception):
                    raise reply
                return reply
        if self.fallback is not None:
            return self.fallback(command)
        return []

    def execute_query(self, database: str, command: str) -> List[Row]:
        self.queries.append((database, command))
        return self._reply(command)

    def execute_admin_command(self, database: str, command: str) -> List[Row]:
        self.commands.append((database, command))
        return self._reply(command)

    def close(self) -> None:
        self.closed = True

    @property
    def command_texts(self) -> List[str]:
        return [command for _, command in self.commands]


class RecordingSleep:
    """Replacement for time.sleep that records the requested delays."""

    def __init__(self) -> None:
        self.delays: List[float] = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def completed_batch(command: str) -> List[Row]:
    """Fallback reply that completes every line of a script batch."""
    if not command.startswith(BATCH_PREFIX):
        return []
    return [
        {"CommandType": "DatabaseScript", "CommandText": line, "Result": "Completed"}
        for line in command.splitlines()[1:]
    ]

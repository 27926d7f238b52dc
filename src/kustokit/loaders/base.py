"""
Base classes for observed-state loaders.

A loader reads one aspect of a live database and folds it into the observed
``Database`` snapshot. Loaders run sequentially, in list order, against the
same snapshot.
"""

import json
import logging
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel, ValidationError

from kustokit.exceptions import ExecutorError
from kustokit.executors.base import Executor, Row, execute_with_retry
from kustokit.merge import merge_into, merge_values
from kustokit.models import Database

logger = logging.getLogger(__name__)


# =============================================================================
# VALUE HELPERS
# =============================================================================

def parse_dynamic(value: Any) -> Any:
    """Decode a ``dynamic`` column, which the client may return as JSON text."""
    if isinstance(value, str):
        stripped = value.strip()
        if stripped[:1] in ("{", "["):
            return json.loads(stripped)
    return value


def format_timespan(value: Any) -> Any:
    """Render a timespan as ``d.hh:mm:ss``; other values pass through."""
    if not isinstance(value, timedelta):
        return value
    hours, remainder = divmod(value.seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    clock = f"{hours:02}:{minutes:02}:{seconds:02}"
    return f"{value.days}.{clock}" if value.days else clock


def timespan_days(value: Any) -> Optional[int]:
    """Whole days of a timespan given as ``timedelta`` or ``[d.]hh:mm:ss`` text."""
    if value is None or value == "":
        return None
    if isinstance(value, timedelta):
        return value.days
    text = str(value).strip()
    head = text.split(":", 1)[0]
    if "." in head:
        return int(head.split(".", 1)[0])
    return 0


# =============================================================================
# LOADERS
# =============================================================================

class Loader(ABC):
    """
    Base class for observed-state loaders.

    Subclasses must implement ``load``.
    """

    def __init__(self, max_retries: int = 3):
        self.max_retries = max_retries

    @abstractmethod
    def load(self, observed: Database, database_name: str, executor: Executor) -> None:
        """
        Fold live state into the observed snapshot.

        Args:
            observed: Snapshot to update in place
            database_name: Database to read from
            executor: Executor bound to the cluster
        """
        pass

    def query(self, executor: Executor, database_name: str, query: str) -> List[Row]:
        """Run a read-only query, retrying transient failures."""
        return execute_with_retry(
            executor.execute_query,
            database_name,
            query,
            max_retries=self.max_retries,
        )


class BulkEntityLoader(Loader):
    """
    Loads one entity collection from queries returning ``EntityName, Body`` rows.

    Bodies from all queries are merged per entity before they are validated,
    so a query may return a partial body that another query completes. The
    result is then merged into the existing collection.

    Subclasses set ``collection``, ``model`` and ``queries``.
    """

    collection: str = ""
    model: Type[BaseModel] = BaseModel
    queries: List[str] = []

    def load(self, observed: Database, database_name: str, executor: Executor) -> None:
        bodies: Dict[str, Dict[str, Any]] = {}
        for query in self.queries:
            for row in self.query(executor, database_name, query):
                name = row.get("EntityName")
                if not name:
                    continue
                body = parse_dynamic(row.get("Body")) or {}
                bodies[name] = merge_values(bodies.get(name, {}), body)

        existing = getattr(observed, self.collection)
        for name, body in bodies.items():
            try:
                entity = self.model.model_validate(body)
            except ValidationError as e:
                logger.error(f"Unexpected definition of {self.collection} entry {name}: {e}")
                raise ExecutorError(
                    f"Could not read {self.collection} entry {name} from {database_name}: {e}"
                ) from e
            merge_into(existing, name, entity)
        logger.info(f"Loaded {len(bodies)} {self.collection} from {database_name}")

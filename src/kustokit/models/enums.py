"""
Enum definitions for Kusto schema models.

This module contains all enumeration types used throughout the reconciliation engine.
"""

from enum import Enum
from typing import FrozenSet


class EntityKind(str, Enum):
    """Identifies the kind of schema entity a change applies to."""
    DATABASE = "Database"
    PERMISSIONS = "Permissions"
    TABLE = "Table"
    COLUMN = "Column"
    FUNCTION = "Function"
    MATERIALIZED_VIEW = "MaterializedView"
    EXTERNAL_TABLE = "ExternalTable"
    CONTINUOUS_EXPORT = "ContinuousExport"
    ENTITY_GROUP = "EntityGroup"
    FOLLOWER_DATABASE = "FollowerDatabase"
    CLUSTER = "Cluster"

    @property
    def command_noun(self) -> str:
        """Noun used for the entity in `.drop` and policy commands."""
        return _COMMAND_NOUNS[self]


_COMMAND_NOUNS = {
    EntityKind.DATABASE: "database",
    EntityKind.PERMISSIONS: "database",
    EntityKind.TABLE: "table",
    EntityKind.COLUMN: "column",
    EntityKind.FUNCTION: "function",
    EntityKind.MATERIALIZED_VIEW: "materialized-view",
    EntityKind.EXTERNAL_TABLE: "external table",
    EntityKind.CONTINUOUS_EXPORT: "continuous-export",
    EntityKind.ENTITY_GROUP: "entity_group",
    EntityKind.FOLLOWER_DATABASE: "follower database",
    EntityKind.CLUSTER: "cluster",
}


class Operation(str, Enum):
    """Type of mutation a change performs."""
    CREATE = "Create"
    ALTER = "Alter"
    DELETE = "Delete"


class CommentKind(str, Enum):
    """Severity of a comment attached to a change (GitHub alert kinds)."""
    NOTE = "Note"
    TIP = "Tip"
    IMPORTANT = "Important"
    WARNING = "Warning"
    CAUTION = "Caution"


class ExecutionState(str, Enum):
    """State reported by the cluster for a submitted command or operation."""
    COMPLETED = "Completed"
    FAILED = "Failed"
    ABANDONED = "Abandoned"
    BAD_INPUT = "BadInput"
    CANCELED = "Canceled"
    IN_PROGRESS = "InProgress"
    SCHEDULED = "Scheduled"
    THROTTLED = "Throttled"
    SKIPPED = "Skipped"

    @classmethod
    def parse(cls, value: str) -> "ExecutionState":
        """Parse a state string, treating unknown states as still in progress."""
        for state in cls:
            if state.value.lower() == (value or "").lower():
                return state
        return cls.IN_PROGRESS

    @property
    def is_terminal(self) -> bool:
        """True once the operation will not change state again."""
        return self in TERMINAL_STATES

    @property
    def is_failure(self) -> bool:
        """True for terminal states that mean the command did not apply."""
        return self in FAILED_STATES


TERMINAL_STATES: FrozenSet[ExecutionState] = frozenset({
    ExecutionState.COMPLETED,
    ExecutionState.FAILED,
    ExecutionState.ABANDONED,
    ExecutionState.BAD_INPUT,
    ExecutionState.CANCELED,
    ExecutionState.SKIPPED,
})

FAILED_STATES: FrozenSet[ExecutionState] = frozenset({
    ExecutionState.FAILED,
    ExecutionState.ABANDONED,
    ExecutionState.BAD_INPUT,
    ExecutionState.CANCELED,
})


class FollowerModificationKind(str, Enum):
    """How a follower database combines leader and override settings."""
    NONE = "None"
    UNION = "Union"
    REPLACE = "Replace"


class PartitionAssignmentMode(str, Enum):
    """Assignment mode of a hash partition key."""
    DEFAULT = "Default"
    UNIFORM = "Uniform"
    BY_PARTITION = "ByPartition"


class ExternalTableKind(str, Enum):
    """Backing store of an external table."""
    DELTA = "delta"
    SQL = "sql"
    STORAGE = "storage"


class MaterializedViewSourceKind(str, Enum):
    """What a materialized view is defined on."""
    TABLE = "table"
    MATERIALIZED_VIEW = "materialized-view"


class RunMode(str, Enum):
    """Orchestrator mode."""
    DIFF = "diff"
    APPLY = "apply"

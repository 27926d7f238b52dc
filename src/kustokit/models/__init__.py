"""
Kusto schema models.

This package provides all Pydantic models for the schema documents. The models
are organized into logical modules but are all exported from this single
interface for convenience.
"""

# Import all enums
from .enums import (
    EntityKind,
    Operation,
    CommentKind,
    ExecutionState,
    FollowerModificationKind,
    PartitionAssignmentMode,
    ExternalTableKind,
    MaterializedViewSourceKind,
    RunMode,
    TERMINAL_STATES,
    FAILED_STATES,
)

# Import base classes and utilities
from .base import (
    BaseSchemaModel,
    KeyCase,
    SerializationConfig,
    YAML_SERIALIZATION,
    COMMAND_SERIALIZATION,
    bracket_if_identifier,
    to_cluster_url,
)

from .scripts import (
    INFORMATIONAL_ORDER,
    DatabaseScript,
    Deletions,
    Metadata,
    Script,
)

from .principals import AADObject, Entity

from .policies import (
    PartitioningPolicy,
    Policy,
    RetentionAndCachePolicy,
    TablePolicy,
    UpdatePolicy,
)

# Import entity models
from .tables import Table
from .functions import Function
from .materialized_views import MaterializedView
from .external_tables import ExternalTable
from .continuous_exports import ContinuousExport
from .followers import FollowerCache, FollowerDatabase, FollowerPermissions
from .database import PRINCIPAL_ROLES, Database

from .cluster import (
    CAPACITY_POLICY_FIELDS,
    Cluster,
    ClusterCapacityPolicy,
    Clusters,
    capacity_value,
)

__all__ = [
    # Enums
    "EntityKind",
    "Operation",
    "CommentKind",
    "ExecutionState",
    "FollowerModificationKind",
    "PartitionAssignmentMode",
    "ExternalTableKind",
    "MaterializedViewSourceKind",
    "RunMode",
    "TERMINAL_STATES",
    "FAILED_STATES",
    # Base
    "BaseSchemaModel",
    "KeyCase",
    "SerializationConfig",
    "YAML_SERIALIZATION",
    "COMMAND_SERIALIZATION",
    "bracket_if_identifier",
    "to_cluster_url",
    # Scripts
    "INFORMATIONAL_ORDER",
    "DatabaseScript",
    "Deletions",
    "Metadata",
    "Script",
    # Principals
    "AADObject",
    "Entity",
    # Policies
    "PartitioningPolicy",
    "Policy",
    "RetentionAndCachePolicy",
    "TablePolicy",
    "UpdatePolicy",
    # Entities
    "Table",
    "Function",
    "MaterializedView",
    "ExternalTable",
    "ContinuousExport",
    "FollowerCache",
    "FollowerDatabase",
    "FollowerPermissions",
    "PRINCIPAL_ROLES",
    "Database",
    # Cluster
    "CAPACITY_POLICY_FIELDS",
    "Cluster",
    "ClusterCapacityPolicy",
    "Clusters",
    "capacity_value",
]

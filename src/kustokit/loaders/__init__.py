"""
Loaders assemble the observed state of a live database.
"""

from .base import BulkEntityLoader, Loader, format_timespan, parse_dynamic, timespan_days
from .database import (
    CleanupLoader,
    EntityGroupLoader,
    PartitioningPolicyLoader,
    PrincipalLoader,
    RetentionAndCacheLoader,
)
from .entities import (
    ContinuousExportLoader,
    ExternalTableLoader,
    FunctionLoader,
    MaterializedViewLoader,
    TableLoader,
)
from .cluster import load_capacity_policy, load_follower
from .pipeline import default_loaders, load_observed

__all__ = [
    "BulkEntityLoader",
    "Loader",
    "format_timespan",
    "parse_dynamic",
    "timespan_days",
    "CleanupLoader",
    "EntityGroupLoader",
    "PartitioningPolicyLoader",
    "PrincipalLoader",
    "RetentionAndCacheLoader",
    "ContinuousExportLoader",
    "ExternalTableLoader",
    "FunctionLoader",
    "MaterializedViewLoader",
    "TableLoader",
    "load_capacity_policy",
    "load_follower",
    "default_loaders",
    "load_observed",
]

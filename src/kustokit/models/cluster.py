"""
Cluster registry and cluster-level policy models.
"""

from __future__ import annotations

import json
from typing import Any, List, Optional, Tuple

from pydantic import Field

from .base import COMMAND_SERIALIZATION, BaseSchemaModel
from .scripts import Script


class Cluster(BaseSchemaModel):
    """A reconciliation target: a named cluster endpoint."""
    name: str = ""
    url: str = ""


# =============================================================================
# CAPACITY POLICY
# =============================================================================

class IngestionCapacity(BaseSchemaModel):
    cluster_maximum_concurrent_operations: Optional[int] = None
    core_utilization_coefficient: Optional[float] = None


class ExtentsMergeCapacity(BaseSchemaModel):
    minimum_concurrent_operations_per_node: Optional[int] = None
    maximum_concurrent_operations_per_node: Optional[int] = None


class ExtentsPurgeRebuildCapacity(BaseSchemaModel):
    maximum_concurrent_operations_per_node: Optional[int] = None


class ExportCapacity(BaseSchemaModel):
    cluster_maximum_concurrent_operations: Optional[int] = None
    core_utilization_coefficient: Optional[float] = None


class ExtentsPartitionCapacity(BaseSchemaModel):
    cluster_minimum_concurrent_operations: Optional[int] = None
    cluster_maximum_concurrent_operations: Optional[int] = None


class ExtentsRebuildCapacity(BaseSchemaModel):
    cluster_maximum_concurrent_operations: Optional[int] = None
    maximum_concurrent_operations_per_node: Optional[int] = None


class MaterializedViewsCapacity(BaseSchemaModel):
    cluster_maximum_concurrent_operations: Optional[int] = None
    extents_rebuild_capacity: Optional[ExtentsRebuildCapacity] = None


class StoredQueryResultsCapacity(BaseSchemaModel):
    maximum_concurrent_operations_per_db_admin: Optional[int] = None
    core_utilization_coefficient: Optional[float] = None


class StreamingIngestionPostProcessingCapacity(BaseSchemaModel):
    maximum_concurrent_operations_per_node: Optional[int] = None


class PurgeStorageArtifactsCleanupCapacity(BaseSchemaModel):
    maximum_concurrent_operations_per_cluster: Optional[int] = None


class PeriodicStorageArtifactsCleanupCapacity(BaseSchemaModel):
    maximum_concurrent_operations_per_cluster: Optional[int] = None


class QueryAccelerationCapacity(BaseSchemaModel):
    cluster_maximum_concurrent_operations: Optional[int] = None
    core_utilization_coefficient: Optional[float] = None


class GraphSnapshotsCapacity(BaseSchemaModel):
    cluster_maximum_concurrent_operations: Optional[int] = None


class ClusterCapacityPolicy(BaseSchemaModel):
    """
    The cluster capacity policy.

    Every section is optional. ``.alter-merge`` only touches the properties
    present in the payload, so unset sections keep their live values.
    """

    ingestion_capacity: Optional[IngestionCapacity] = None
    extents_merge_capacity: Optional[ExtentsMergeCapacity] = None
    extents_purge_rebuild_capacity: Optional[ExtentsPurgeRebuildCapacity] = None
    export_capacity: Optional[ExportCapacity] = None
    extents_partition_capacity: Optional[ExtentsPartitionCapacity] = None
    materialized_views_capacity: Optional[MaterializedViewsCapacity] = None
    stored_query_results_capacity: Optional[StoredQueryResultsCapacity] = None
    streaming_ingestion_post_processing_capacity: Optional[StreamingIngestionPostProcessingCapacity] = None
    purge_storage_artifacts_cleanup_capacity: Optional[PurgeStorageArtifactsCleanupCapacity] = None
    periodic_storage_artifacts_cleanup_capacity: Optional[PeriodicStorageArtifactsCleanupCapacity] = None
    query_acceleration_capacity: Optional[QueryAccelerationCapacity] = None
    graph_snapshots_capacity: Optional[GraphSnapshotsCapacity] = None

    def to_policy_document(self) -> dict:
        return COMMAND_SERIALIZATION.dump(self)

    def create_script(self) -> Script:
        return Script(
            "AlterMergeClusterCapacityPolicy", 10,
            f".alter-merge cluster policy capacity ```{json.dumps(self.to_policy_document())}```",
        )


# Every comparable leaf of the capacity policy, as (section, property) paths.
CAPACITY_POLICY_FIELDS: List[Tuple[str, ...]] = [
    ("ingestion_capacity", "cluster_maximum_concurrent_operations"),
    ("ingestion_capacity", "core_utilization_coefficient"),
    ("extents_merge_capacity", "minimum_concurrent_operations_per_node"),
    ("extents_merge_capacity", "maximum_concurrent_operations_per_node"),
    ("extents_purge_rebuild_capacity", "maximum_concurrent_operations_per_node"),
    ("export_capacity", "cluster_maximum_concurrent_operations"),
    ("export_capacity", "core_utilization_coefficient"),
    ("extents_partition_capacity", "cluster_minimum_concurrent_operations"),
    ("extents_partition_capacity", "cluster_maximum_concurrent_operations"),
    ("materialized_views_capacity", "cluster_maximum_concurrent_operations"),
    ("materialized_views_capacity", "extents_rebuild_capacity", "cluster_maximum_concurrent_operations"),
    ("materialized_views_capacity", "extents_rebuild_capacity", "maximum_concurrent_operations_per_node"),
    ("stored_query_results_capacity", "maximum_concurrent_operations_per_db_admin"),
    ("stored_query_results_capacity", "core_utilization_coefficient"),
    ("streaming_ingestion_post_processing_capacity", "maximum_concurrent_operations_per_node"),
    ("purge_storage_artifacts_cleanup_capacity", "maximum_concurrent_operations_per_cluster"),
    ("periodic_storage_artifacts_cleanup_capacity", "maximum_concurrent_operations_per_cluster"),
    ("query_acceleration_capacity", "cluster_maximum_concurrent_operations"),
    ("query_acceleration_capacity", "core_utilization_coefficient"),
    ("graph_snapshots_capacity", "cluster_maximum_concurrent_operations"),
]


def capacity_value(policy: Optional[ClusterCapacityPolicy], path: Tuple[str, ...]) -> Any:
    """Read one leaf of a capacity policy, returning None when any section is unset."""
    value: Any = policy
    for part in path:
        if value is None:
            return None
        value = getattr(value, part)
    return value


class Clusters(BaseSchemaModel):
    """The cluster registry of a deployment."""
    connections: List[Cluster] = Field(default_factory=list)
    capacity_policy: Optional[ClusterCapacityPolicy] = None

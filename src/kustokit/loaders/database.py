"""
Loaders for database-level state: principals, default policies, entity
groups, partitioning policies, and the final cleanup pass.
"""

import logging
from typing import Dict, List

from kustokit.executors.base import Executor, scalar
from kustokit.merge import normalize_database
from kustokit.models import (
    AADObject,
    Database,
    Entity,
    PartitioningPolicy,
    Policy,
    RetentionAndCachePolicy,
    TablePolicy,
)

from .base import Loader, format_timespan, parse_dynamic

logger = logging.getLogger(__name__)

# Role as reported by `.show database principals` -> principal list
ROLE_FIELDS: Dict[str, str] = {
    "Admin": "admins",
    "User": "users",
    "Viewer": "viewers",
    "UnrestrictedViewer": "unrestricted_viewers",
    "Ingestor": "ingestors",
    "Monitor": "monitors",
}

LOAD_PRINCIPALS = """
.show database principals
| project id=PrincipalFQN, name=trim(' ', tostring(split(PrincipalDisplayName, '(')[0])), Role=tostring(split(Role, ' ')[-1])
| where Role !startswith 'All'
| project AAObject=bag_pack('name', name, 'id', id), Role
| summarize Users = make_list(AAObject) by Role
"""

LOAD_DEFAULT_RETENTION = (
    ".show database schema as csl script "
    "| where DatabaseSchemaScript contains 'policy retention' and DatabaseSchemaScript startswith '.alter database' "
    "| project Retention = strcat(extract('\\\\\"([0-9]*)\\\\.', 1, DatabaseSchemaScript), 'd')"
)

LOAD_DEFAULT_HOT_CACHE = (
    ".show database schema as csl script "
    "| where DatabaseSchemaScript contains 'policy caching' and DatabaseSchemaScript startswith '.alter database' "
    "| project HotCache = strcat(extract('\\\\(([0-9]*)\\\\.', 1, DatabaseSchemaScript), 'd')"
)

LOAD_ENTITY_GROUPS = (
    ".show entity_groups "
    "| project EntityName = Name, Entities = parse_json(Entities) "
    "| mv-apply Entities to typeof(string) on ("
    "extend Cluster = extract('cluster\\\\([\"|\\'](.*?)[\"|\\']', 1, Entities) "
    "| extend Database = extract('database\\\\([\"|\\'](.*?)[\"|\\']', 1, Entities) "
    "| extend Body = bag_pack_columns(Cluster, Database) "
    "| summarize Body = make_list(Body) by EntityName)"
)

LOAD_PARTITIONING_POLICIES = """
.show database cslschema script
| project tostring(DatabaseSchemaScript)
| where DatabaseSchemaScript contains 'policy partitioning'
| extend parts = split(DatabaseSchemaScript, " ")
| project Kind = tostring(parts[1]), Entity = tostring(parts[2]), Policy = parse_json(tostring(parse_json(tostring(parts[5]))))
| mv-apply Policy.PartitionKeys on (
    project Policy_PartitionKeys,
            ColumName = tostring(Policy_PartitionKeys.ColumnName),
            Kind = toint(Policy_PartitionKeys.Kind),
            MaxPartitionCount = toint(Policy_PartitionKeys.Properties.MaxPartitionCount),
            PartitionAssignmentMode = toint(Policy_PartitionKeys.Properties.PartitionAssignmentMode),
            Reference = todatetime(Policy_PartitionKeys.Properties.Reference),
            RangeSize = totimespan(Policy_PartitionKeys.Properties.RangeSize),
            OverrideCreationTime = Policy_PartitionKeys.Properties.OverrideCreationTime
    | summarize TimePartitionColumn = take_anyif(ColumName, Kind == 2),
                RangeSize = take_anyif(RangeSize, Kind == 2),
                OverrideCreationTime = tobool(take_anyif(OverrideCreationTime, Kind == 2)),
                Reference = take_anyif(Reference, Kind == 2),
                SecondaryPartition = take_anyif(ColumName, Kind == 1),
                PartitionAssignmentMode = take_anyif(PartitionAssignmentMode, Kind == 1),
                MaxPartitionCount = take_anyif(MaxPartitionCount, Kind == 1)
)
| extend EffectiveDateTime = todatetime(Policy.EffectiveDateTime)
| project EntityName = Entity, EntityType = Kind, Body = bag_pack_columns(TimePartitionColumn, RangeSize, OverrideCreationTime, Reference, SecondaryPartition, PartitionAssignmentMode, MaxPartitionCount, EffectiveDateTime)
"""


class PrincipalLoader(Loader):
    """Sets the principal lists of the snapshot, one per database role."""

    def load(self, observed: Database, database_name: str, executor: Executor) -> None:
        rows = self.query(executor, database_name, LOAD_PRINCIPALS)
        principals: Dict[str, List[AADObject]] = {}
        for row in rows:
            users = parse_dynamic(row.get("Users")) or []
            principals[str(row.get("Role"))] = [AADObject.model_validate(user) for user in users]

        for role, field_name in ROLE_FIELDS.items():
            setattr(observed, field_name, principals.get(role, []))
        logger.info(f"Loaded principals of {len(principals)} roles from {database_name}")


class RetentionAndCacheLoader(Loader):
    """Reads the database default retention and hot cache."""

    def load(self, observed: Database, database_name: str, executor: Executor) -> None:
        if observed.default_retention_and_cache is None:
            observed.default_retention_and_cache = RetentionAndCachePolicy()
        default = observed.default_retention_and_cache

        rows = self.query(executor, database_name, LOAD_DEFAULT_RETENTION)
        if rows:
            default.retention = scalar(rows)
        rows = self.query(executor, database_name, LOAD_DEFAULT_HOT_CACHE)
        if rows:
            default.hot_cache = scalar(rows)


class EntityGroupLoader(Loader):
    """Replaces the entity groups of the snapshot with the live ones."""

    def load(self, observed: Database, database_name: str, executor: Executor) -> None:
        groups: Dict[str, List[Entity]] = {}
        for row in self.query(executor, database_name, LOAD_ENTITY_GROUPS):
            members = parse_dynamic(row.get("Body")) or []
            groups[str(row["EntityName"])] = [Entity.model_validate(member) for member in members]
        observed.entity_groups = groups


class PartitioningPolicyLoader(Loader):
    """
    Attaches partitioning policies to tables and materialized views.

    Must run after the table and materialized view loaders; policies of
    entities that weren't loaded are ignored.
    """

    def load(self, observed: Database, database_name: str, executor: Executor) -> None:
        for row in self.query(executor, database_name, LOAD_PARTITIONING_POLICIES):
            name = row.get("EntityName")
            body = parse_dynamic(row.get("Body")) or {}
            body = {key: format_timespan(value) for key, value in body.items() if value is not None}
            policy = PartitioningPolicy.model_validate(body)

            table = observed.tables.get(name)
            if table is not None:
                if table.policies is None:
                    table.policies = TablePolicy()
                table.policies.partitioning = policy
            view = observed.materialized_views.get(name)
            if view is not None:
                if view.policies is None:
                    view.policies = Policy()
                view.policies.partitioning = policy
            if table is None and view is None:
                logger.debug(f"Ignoring partitioning policy of unknown entity {name}")


class CleanupLoader(Loader):
    """Brings the assembled snapshot into canonical form."""

    def load(self, observed: Database, database_name: str, executor: Executor) -> None:
        normalized = normalize_database(observed)
        for field_name in type(observed).model_fields:
            setattr(observed, field_name, getattr(normalized, field_name))

"""
Cluster-scoped loaders: the capacity policy and follower database metadata.
"""

import json
import logging
from typing import Any, Dict, Optional

from kustokit.exceptions import CommandRejectedError
from kustokit.executors.base import Executor, execute_with_retry
from kustokit.models import (
    AADObject,
    ClusterCapacityPolicy,
    FollowerDatabase,
    FollowerModificationKind,
    bracket_if_identifier,
)

from .base import parse_dynamic, timespan_days

logger = logging.getLogger(__name__)

LOAD_CAPACITY_POLICY = ".show cluster policy capacity | project CapacityPolicy = todynamic(Policy)"

LOAD_FOLLOWER = """.show follower database {database}
| extend TableMetadataOverridesJson = parse_json(TableMetadataOverrides)
| mv-apply TableMetadataOverridesJson on (
    project Table = tostring(bag_keys(TableMetadataOverridesJson)[0]), TableMetadataOverridesJson, Fragments = split(TableMetadataOverridesJson, '"')
    | mv-apply Fragments on (
        project Timespan = totimespan(Fragments)
        | where isnotempty(Timespan)
        | limit 1
    )
| summarize CachingPolicies = make_bag(bag_pack(Table, Timespan)),
            DatabaseName = any(DatabaseName),
            LeaderClusterMetadataPath = any(LeaderClusterMetadataPath),
            CachingPolicyOverride = any(CachingPolicyOverride),
            AuthorizedPrincipalsOverride = any(AuthorizedPrincipalsOverride),
            AuthorizedPrincipalsModificationKind = any(AuthorizedPrincipalsModificationKind),
            CachingPoliciesModificationKind = any(CachingPoliciesModificationKind),
            ChildEntities = any(ChildEntities),
            OriginalDatabaseName = any(OriginalDatabaseName),
            IsAutoPrefetchEnabled = any(IsAutoPrefetchEnabled),
            LeaderName = any(LeaderName)
)"""

# Materialized views are reported with this prefix in follower caching overrides
MATERIALIZED_VIEW_PREFIX = "_MV_"

# Role ordinals in AuthorizedPrincipalsOverride
ADMIN_ROLE = 0
VIEWER_ROLE = 2


# =============================================================================
# CAPACITY POLICY
# =============================================================================

def load_capacity_policy(executor: Executor, max_retries: int = 3) -> Optional[ClusterCapacityPolicy]:
    """
    Read the capacity policy of a cluster.

    Returns:
        The policy, or None if the cluster reports none or refuses to show it

    Raises:
        ExecutorError: For transport failures
    """
    try:
        rows = execute_with_retry(
            executor.execute_admin_command, "", LOAD_CAPACITY_POLICY, max_retries=max_retries
        )
    except CommandRejectedError as e:
        logger.warning(f"Capacity policy not available: {e}")
        return None
    if not rows:
        return None

    document = parse_dynamic(next(iter(rows[0].values())))
    if not document:
        return None
    return ClusterCapacityPolicy.model_validate(document)


# =============================================================================
# FOLLOWERS
# =============================================================================

def _modification_kind(value: Any) -> FollowerModificationKind:
    for kind in FollowerModificationKind:
        if kind.value == value:
            return kind
    return FollowerModificationKind.NONE


def _default_hot_cache(value: Any) -> Optional[str]:
    document = parse_dynamic(value)
    if not isinstance(document, dict):
        return None
    days = timespan_days(document.get("DataHotSpan"))
    return f"{days}d" if days is not None else None


def _add_principals(follower: FollowerDatabase, value: Any) -> None:
    try:
        overrides = parse_dynamic(value)
    except json.JSONDecodeError:
        logger.warning("Ignoring unreadable AuthorizedPrincipalsOverride")
        return
    for entry in overrides or []:
        if not isinstance(entry, dict) or not isinstance(entry.get("Principal") or {}, dict):
            logger.warning(f"Ignoring unreadable AuthorizedPrincipalsOverride entry: {entry!r}")
            continue
        principal: Dict[str, Any] = entry.get("Principal") or {}
        principal_id = principal.get("FullyQualifiedName") or principal.get("Id")
        role = entry.get("Role")
        if not principal_id or role is None:
            continue
        aad_object = AADObject(id=principal_id, name=principal.get("DisplayName") or principal_id)
        if role == ADMIN_ROLE:
            follower.permissions.admins.append(aad_object)
        elif role == VIEWER_ROLE:
            follower.permissions.viewers.append(aad_object)


def load_follower(executor: Executor, database_name: str, max_retries: int = 3) -> FollowerDatabase:
    """
    Read the follower overrides of a database on a follower cluster.

    Args:
        executor: Executor bound to the follower cluster
        database_name: Followed database
        max_retries: Attempts for transient failures

    Returns:
        The follower state. If the database isn't a follower there, a default
        object with ``is_follower`` False.
    """
    follower = FollowerDatabase(database_name=database_name)
    query = LOAD_FOLLOWER.format(database=bracket_if_identifier(database_name))
    rows = execute_with_retry(executor.execute_admin_command, "", query, max_retries=max_retries)
    if not rows:
        logger.info(f"{database_name} is not a follower database")
        return follower

    row = rows[0]
    follower.is_follower = True
    follower.permissions.modification_kind = _modification_kind(row.get("AuthorizedPrincipalsModificationKind"))
    follower.permissions.leader_name = row.get("LeaderName") or None
    follower.cache.modification_kind = _modification_kind(row.get("CachingPoliciesModificationKind"))
    follower.cache.default_hot_cache = _default_hot_cache(row.get("CachingPolicyOverride"))

    for key, value in (parse_dynamic(row.get("CachingPolicies")) or {}).items():
        days = timespan_days(value)
        if not key or days is None:
            continue
        if key.startswith(MATERIALIZED_VIEW_PREFIX):
            follower.cache.materialized_views[key[len(MATERIALIZED_VIEW_PREFIX):]] = f"{days}d"
        else:
            follower.cache.tables[key] = f"{days}d"

    _add_principals(follower, row.get("AuthorizedPrincipalsOverride"))
    return follower

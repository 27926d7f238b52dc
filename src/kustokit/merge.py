"""
Merging and normalization of schema documents.

``merge`` lays an overlay document over a base document of the same type.
Only fields explicitly set on the overlay take part, so defaults declared on
the model never clobber values from the base.

``normalize_database`` brings a document into canonical form: legacy policy
fields are folded into ``policies``, settings equal to the database default
are dropped, and query text is whitespace-normalized. Desired and observed
snapshots both pass through it before planning so that equal schemas compare
equal.
"""

import logging
from typing import Any, Dict, Optional, TypeVar

from pydantic import BaseModel

from kustokit.models import (
    Database,
    MaterializedView,
    MaterializedViewSourceKind,
    Policy,
    RetentionAndCachePolicy,
    Table,
    TablePolicy,
)

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


# =============================================================================
# MERGE
# =============================================================================

def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, (str, list, tuple, dict)) and len(value) == 0)


def merge_values(base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deep merge two plain mappings.

    Blank overlay values (None, empty strings, sequences and mappings) are
    ignored. Mappings merge key by key; everything else, sequences included,
    is replaced.
    """
    result = dict(base)
    for key, value in overlay.items():
        if _is_blank(value):
            continue
        current = result.get(key)
        if isinstance(value, dict) and isinstance(current, dict):
            result[key] = merge_values(current, value)
        else:
            result[key] = value
    return result


def merge(base: T, overlay: T) -> T:
    """
    Merge ``overlay`` over ``base`` and return a new model of the base's type.

    Args:
        base: Document providing the starting values
        overlay: Document whose explicitly set, non-blank fields win

    Returns:
        A new model; neither input is modified
    """
    merged = merge_values(
        base.model_dump(exclude_unset=True),
        overlay.model_dump(exclude_unset=True),
    )
    return type(base).model_validate(merged)


def merge_into(collection: Dict[str, T], name: str, entity: T) -> None:
    """Merge an entity into a keyed collection, inserting it if it's new."""
    existing = collection.get(name)
    collection[name] = entity if existing is None else merge(existing, entity)


# =============================================================================
# NORMALIZATION
# =============================================================================

def normalize_kql(text: Optional[str]) -> str:
    """Canonical form of a query: no carriage returns, trailing spaces or blank lines."""
    if not text:
        return ""
    lines = [line.rstrip() for line in text.replace("\r", "").split("\n")]
    return "\n".join(line for line in lines if line).strip()


def _strip_defaults(policy: Policy, default: RetentionAndCachePolicy) -> None:
    if policy.retention is not None and policy.retention == default.retention:
        policy.retention = None
    if policy.hot_cache is not None and policy.hot_cache == default.hot_cache:
        policy.hot_cache = None


def _fold_retention(policy: Policy, legacy: Optional[RetentionAndCachePolicy]) -> None:
    if legacy is None:
        return
    if policy.retention is None:
        policy.retention = legacy.retention
    if policy.hot_cache is None:
        policy.hot_cache = legacy.hot_cache


def _normalize_table(table: Table, default: RetentionAndCachePolicy) -> None:
    if table.policies is None:
        table.policies = TablePolicy()
    policies = table.policies

    _fold_retention(policies, table.retention_and_cache_policy)
    if policies.update_policies is None and table.update_policies is not None:
        policies.update_policies = table.update_policies
    if policies.row_level_security is None and table.row_level_security is not None:
        policies.row_level_security = table.row_level_security
    if "restricted_view_access" not in policies.model_fields_set and table.restricted_view_access is not None:
        policies.restricted_view_access = table.restricted_view_access

    table.retention_and_cache_policy = None
    table.update_policies = None
    table.row_level_security = None
    table.restricted_view_access = None

    _strip_defaults(policies, default)
    for update_policy in policies.update_policies or []:
        update_policy.query = normalize_kql(update_policy.query)


def _normalize_materialized_view(
    view: MaterializedView, default: RetentionAndCachePolicy, view_names: set
) -> None:
    if view.policies is None:
        view.policies = Policy()
    _fold_retention(view.policies, view.retention_and_cache_policy)
    if view.policies.row_level_security is None and view.row_level_security is not None:
        view.policies.row_level_security = view.row_level_security
    view.retention_and_cache_policy = None
    view.row_level_security = None

    _strip_defaults(view.policies, default)
    view.kind = (
        MaterializedViewSourceKind.MATERIALIZED_VIEW
        if view.source in view_names
        else MaterializedViewSourceKind.TABLE
    )
    view.query = normalize_kql(view.query)


def normalize_database(database: Database) -> Database:
    """
    Return the canonical form of a database document.

    The input is left untouched. Applying the function to its own output
    returns an equal document.
    """
    db = database.model_copy(deep=True)
    default = db.default_retention_and_cache

    for table in db.tables.values():
        _normalize_table(table, default)

    view_names = set(db.materialized_views)
    for view in db.materialized_views.values():
        _normalize_materialized_view(view, default, view_names)

    for function in db.functions.values():
        function.body = normalize_kql(function.body)

    for export in db.continuous_exports.values():
        export.query = normalize_kql(export.query)

    return db

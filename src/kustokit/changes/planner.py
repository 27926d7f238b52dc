"""
Change planner.

``plan`` compares an observed database snapshot with the desired document
and returns the ordered list of changes that reconcile them. Planning never
raises for unsafe changes: they are emitted with invalid scripts so they show
up in review but are never applied.

Changes are produced in this order: permissions, database defaults and
scripts, deletions, entity groups, external tables, tables, functions,
materialized views, continuous exports. Execution order across entities is
decided later by the script orders.
"""

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

from kustokit.config import EngineSettings
from kustokit.merge import normalize_database
from kustokit.models import (
    CommentKind,
    Database,
    EntityKind,
    MaterializedView,
    MaterializedViewSourceKind,
    Operation,
    Script,
    Table,
    bracket_if_identifier,
)

from .base import Change, Comment
from .markdown import render_deletion, render_members_change, render_script_diffs
from .permissions import plan_permissions
from .validation import check_scripts, validate_column_order

logger = logging.getLogger(__name__)

ScriptPair = Tuple[Optional[str], Script]

_DAYS = re.compile(r"^\s*(\d+)\s*d\s*$", re.IGNORECASE)


# =============================================================================
# SCRIPT COMPARISON
# =============================================================================

def compare_scripts(
    name: str, current: Optional[object], desired: object
) -> List[ScriptPair]:
    """
    Pair each desired script with the current script of the same kind.

    Scripts whose text is unchanged are dropped.

    Args:
        name: Escaped entity name
        current: Observed entity, or None if it doesn't exist
        desired: Desired entity

    Returns:
        (current text or None, desired script) for every script that differs
    """
    is_new = current is None
    before: Dict[str, Script] = {}
    if current is not None:
        before = {script.kind: script for script in current.create_scripts(name)}

    pairs = []
    for script in desired.create_scripts(name, is_new=is_new):
        previous = before.get(script.kind)
        if previous is not None and previous.text == script.text:
            continue
        pairs.append((previous.text if previous is not None else None, script))
    return pairs


def _plan_collection(
    kind: EntityKind,
    current: Dict[str, object],
    desired: Dict[str, object],
) -> List[Tuple[Change, Optional[object], object, List[ScriptPair]]]:
    logger.info(f"Existing {kind.value}: {', '.join(current)}")
    planned = []
    for name, entity in desired.items():
        existing = current.get(name)
        if existing is not None and existing == entity:
            continue
        if kind is EntityKind.TABLE and existing is None and not entity.columns:
            logger.info(f"Skipping table {name}: a table can't be created without columns")
            continue
        pairs = compare_scripts(bracket_if_identifier(name), existing, entity)
        if not pairs:
            continue
        change = Change(
            entity_kind=kind,
            entity_name=name,
            operation=Operation.CREATE if existing is None else Operation.ALTER,
            scripts=[script for _, script in pairs],
        )
        if existing is None:
            logger.info(f"{name} doesn't exist, created {len(pairs)} scripts to create it")
        else:
            logger.info(f"{name} already exists, created {len(pairs)} scripts to apply the diffs")
        planned.append((change, existing, entity, pairs))
    return planned


# =============================================================================
# DATABASE
# =============================================================================

def _database_scripts(database: Database, database_name: str) -> List[Script]:
    scripts = database.default_retention_and_cache.create_scripts(database_name, "database")
    for script in database.scripts:
        scripts.append(Script.from_database_script(script, kind=f"DatabaseScript:{script.text}"))
    return scripts


def plan_database(observed: Database, desired: Database, database_name: str) -> List[Change]:
    """Plan database default policies and free-form database scripts."""
    before = {script.kind: script for script in _database_scripts(observed, database_name)}
    pairs = []
    for script in _database_scripts(desired, database_name):
        previous = before.get(script.kind)
        if previous is not None and previous.text == script.text:
            continue
        pairs.append((previous.text if previous is not None else None, script))
    if not pairs:
        return []
    check_scripts([script for _, script in pairs])
    return [Change(
        entity_kind=EntityKind.DATABASE,
        entity_name="Database",
        operation=Operation.ALTER,
        scripts=[script for _, script in pairs],
        markdown=render_script_diffs("Database", pairs),
    )]


# =============================================================================
# DELETIONS
# =============================================================================

def deletion_change(kind: EntityKind, name: str, escaped: Optional[str] = None) -> Change:
    """A change holding the single ``.drop`` command for an entity."""
    script = Script("Deletion", 0, f".drop {kind.command_noun} {escaped or bracket_if_identifier(name)}")
    return Change(
        entity_kind=kind,
        entity_name=name,
        operation=Operation.DELETE,
        scripts=[script],
    )


def plan_deletions(observed: Database, desired: Database) -> List[Change]:
    """
    Plan drops for entities that exist but are no longer declared, plus the
    explicitly listed deletions.

    Dependents are dropped before what they read from: continuous exports,
    materialized views, functions, tables, columns, external tables.
    """
    explicit = desired.deletions
    collections = [
        (EntityKind.CONTINUOUS_EXPORT, observed.continuous_exports, desired.continuous_exports,
         explicit.continuous_exports),
        (EntityKind.MATERIALIZED_VIEW, observed.materialized_views, desired.materialized_views,
         explicit.materialized_views),
        (EntityKind.FUNCTION, observed.functions, desired.functions, explicit.functions),
        (EntityKind.TABLE, observed.tables, desired.tables, explicit.tables),
    ]

    changes = []
    for kind, current, wanted, listed in collections:
        names = [name for name in current if name not in wanted]
        names.extend(name for name in listed if name in current and name not in names)
        changes.extend(deletion_change(kind, name) for name in names)

    dropped_tables = {c.entity_name for c in changes if c.entity_kind is EntityKind.TABLE}
    for qualified in explicit.columns:
        table, sep, column = qualified.partition(".")
        if not sep or table in dropped_tables:
            continue
        existing = observed.tables.get(table)
        if existing is None or column not in (existing.columns or {}):
            continue
        escaped = f"{bracket_if_identifier(table)}.{bracket_if_identifier(column)}"
        changes.append(deletion_change(EntityKind.COLUMN, qualified, escaped))

    names = [name for name in observed.external_tables if name not in desired.external_tables]
    names.extend(
        name for name in explicit.external_tables
        if name in observed.external_tables and name not in names
    )
    changes.extend(deletion_change(EntityKind.EXTERNAL_TABLE, name) for name in names)

    for change in changes:
        check_scripts(change.scripts)
        change.markdown = render_deletion(change.entity_name, change.scripts[0])
    if changes:
        logger.info(f"Detected {len(changes)} deletions")
    return changes


# =============================================================================
# ENTITY GROUPS
# =============================================================================

def plan_entity_groups(observed: Database, desired: Database) -> List[Change]:
    changes = []
    for name, members in desired.entity_groups.items():
        wanted = [member.reference for member in members]
        current = [member.reference for member in observed.entity_groups.get(name, [])]
        added = [ref for ref in wanted if ref not in current]
        removed = [ref for ref in current if ref not in wanted]
        if not added and not removed:
            continue
        script = Script(
            "EntityGroup", 3,
            f".create-or-alter entity_group {bracket_if_identifier(name)} ({','.join(wanted)})",
        )
        check_scripts([script])
        changes.append(Change(
            entity_kind=EntityKind.ENTITY_GROUP,
            entity_name=name,
            operation=Operation.ALTER if name in observed.entity_groups else Operation.CREATE,
            scripts=[script],
            markdown=render_members_change(name, added, removed, script),
        ))
    if changes:
        logger.info(f"Detected changes for Entity Groups: {len(changes)}")
    return changes


# =============================================================================
# UNSAFE CHANGE CHECKS
# =============================================================================

def _invalidate(change: Change, reason: str) -> None:
    logger.warning(f"{change.entity_kind.value} {change.entity_name}: {reason}")
    for script in change.scripts:
        script.invalidate(reason)


def check_table(change: Change, current: Optional[Table], desired: Table, settings: EngineSettings) -> None:
    """Reject column type changes and, when enabled, column order violations."""
    if current is None:
        return
    old_columns = current.columns or {}
    for column, column_type in (desired.columns or {}).items():
        old_type = old_columns.get(column)
        if old_type is not None and old_type.lower() != column_type.lower():
            _invalidate(
                change,
                f"Column {column} can't change its type from {old_type} to {column_type}",
            )

    if settings.enable_column_order_validation:
        violation = validate_column_order(current, desired, change.entity_name)
        if violation:
            change.comment = Comment(CommentKind.CAUTION, violation, fails_rollout=True)
            _invalidate(change, f"Column order violation in table {change.entity_name}")


def check_materialized_view(
    change: Change, current: Optional[MaterializedView], desired: MaterializedView
) -> None:
    """Reject changes of the source, which require recreating the view."""
    if current is None:
        return
    if current.source != desired.source:
        _invalidate(
            change,
            f"Materialized view {change.entity_name} can't change its source "
            f"from {current.source} to {desired.source}",
        )
    elif current.kind != desired.kind:
        _invalidate(
            change,
            f"Materialized view {change.entity_name} can't change its source kind "
            f"from {current.kind.value} to {desired.kind.value}",
        )


def _source_hot_cache(view: MaterializedView, desired: Database) -> Optional[str]:
    if view.kind is MaterializedViewSourceKind.TABLE:
        source = desired.tables.get(view.source)
    else:
        source = desired.materialized_views.get(view.source)
    hot_cache = source.policies.hot_cache if source is not None and source.policies else None
    return hot_cache or desired.default_retention_and_cache.hot_cache


def _parse_effective_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def check_backfill(change: Change, view: MaterializedView, desired: Database, now: datetime) -> None:
    """
    Attach a comment to an asynchronous backfill.

    A backfill only succeeds if all data since the effective date is still
    in the source's hot cache.
    """
    if not any(script.kind == "CreateMaterializedViewAsync" for script in change.scripts):
        return

    name = change.entity_name
    hot_cache = _source_hot_cache(view, desired)
    match = _DAYS.match(hot_cache or "")
    effective = _parse_effective_date(view.effective_date_time)
    if match is None or effective is None:
        change.comment = Comment(
            CommentKind.WARNING,
            f"The conditions for backfilling {name} couldn't be validated. Please check for errors!",
        )
        return

    days = int(match.group(1))
    if now - timedelta(days=days) < effective:
        valid_until = effective + timedelta(days=days)
        change.comment = Comment(
            CommentKind.NOTE,
            f"The materialized view {name} is specified to be created with backfill configured. "
            f"All required data is available in hot cache and the rollout is expected to succeed "
            f"as long as it is rolled out before {valid_until:%Y-%m-%d %H:%M}UTC. The rollout will "
            f"be executed asynchronously, depending on the size of the backfill it might take a while.",
        )
    else:
        earliest = (now - timedelta(days=days - 1)).date()
        change.comment = Comment(
            CommentKind.CAUTION,
            f"Not all data for the backfill of {name} is available hot. The backfill will fail! "
            f"Please set the effective Date of the MV to {earliest:%Y-%m-%d} or newer.",
            fails_rollout=True,
        )
        _invalidate(change, f"Backfill data for {name} is no longer in hot cache")


# =============================================================================
# PLAN
# =============================================================================

def plan(
    observed: Database,
    desired: Database,
    database_name: str,
    settings: Optional[EngineSettings] = None,
    now: Optional[datetime] = None,
) -> List[Change]:
    """
    Compute the changes that reconcile ``observed`` with ``desired``.

    Both documents are normalized first; neither is modified.

    Args:
        observed: Snapshot loaded from the cluster
        desired: Desired document
        database_name: Escaped database name used in database-level commands
        settings: Engine settings; defaults apply when omitted
        now: Reference time for backfill checks, defaults to the current UTC time

    Returns:
        Changes in reporting order
    """
    settings = settings or EngineSettings()
    now = now or datetime.now(timezone.utc)
    observed = normalize_database(observed)
    desired = normalize_database(desired)

    changes: List[Change] = []
    changes.extend(plan_permissions(observed, desired, database_name))
    changes.extend(plan_database(observed, desired, database_name))
    changes.extend(plan_deletions(observed, desired))
    changes.extend(plan_entity_groups(observed, desired))

    collections = [
        (EntityKind.EXTERNAL_TABLE, observed.external_tables, desired.external_tables),
        (EntityKind.TABLE, observed.tables, desired.tables),
        (EntityKind.FUNCTION, observed.functions, desired.functions),
        (EntityKind.MATERIALIZED_VIEW, observed.materialized_views, desired.materialized_views),
        (EntityKind.CONTINUOUS_EXPORT, observed.continuous_exports, desired.continuous_exports),
    ]
    for kind, current, wanted in collections:
        for change, existing, entity, pairs in _plan_collection(kind, current, wanted):
            if kind is EntityKind.TABLE:
                check_table(change, existing, entity, settings)
            elif kind is EntityKind.MATERIALIZED_VIEW:
                check_materialized_view(change, existing, entity)
                check_backfill(change, entity, desired, now)
            check_scripts(change.scripts)
            change.markdown = render_script_diffs(change.entity_name, pairs)
            changes.append(change)

    logger.info(f"Planned {len(changes)} changes for database {database_name}")
    return changes

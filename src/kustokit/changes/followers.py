"""
Changes for follower databases.

Followers can't be altered like a leader database. Only the caching
overrides, the principal overrides and the modification kinds may be
changed, each with its own ``follower database`` command.
"""

import logging
from typing import Dict, List

from kustokit.models import (
    EntityKind,
    FollowerDatabase,
    Operation,
    Script,
    bracket_if_identifier,
)

from .base import Change
from .markdown import render_table
from .permissions import plan_follower_role
from .validation import check_scripts

logger = logging.getLogger(__name__)


def _basic_change(name: str, markdown: str, scripts: List[Script]) -> Change:
    check_scripts(scripts)
    return Change(
        entity_kind=EntityKind.FOLLOWER_DATABASE,
        entity_name=name,
        operation=Operation.ALTER,
        scripts=scripts,
        markdown=markdown,
    )


def _caching_changes(
    database: str,
    current: Dict[str, str],
    desired: Dict[str, str],
    label: str,
    noun: str,
) -> List[Change]:
    changes = []

    removed = [name for name in current if name not in desired]
    if removed:
        scripts = [
            Script(
                f"FollowerDelete{label}CachingPolicies", 0,
                f".delete follower database {database} {noun} {bracket_if_identifier(name)} policy caching",
            )
            for name in removed
        ]
        markdown = "\n".join([f"## Delete {label} Caching Policies", ""] + [f"* {name}" for name in removed])
        changes.append(_basic_change(f"Delete{label}CachingPolicy", markdown, scripts))

    changed = [
        (name, current.get(name, "default"), value)
        for name, value in desired.items()
        if current.get(name) != value
    ]
    if changed:
        scripts = [
            Script(
                f"FollowerChange{label}CachingPolicies", 0,
                f".alter follower database {database} {noun} {bracket_if_identifier(name)} "
                f"policy caching hot = {value}",
            )
            for name, _, value in changed
        ]
        markdown = render_table(
            f"Changed {label} Caching Policies",
            [label, "From", "To"],
            [list(row) for row in changed],
        )
        changes.append(_basic_change(f"Change{label}CachingPolicy", markdown, scripts))

    return changes


def plan_follower(observed: FollowerDatabase, desired: FollowerDatabase) -> List[Change]:
    """
    Plan the changes for one follower database.

    Args:
        observed: Follower state loaded from the follower cluster
        desired: Follower state declared in the schema document

    Returns:
        Changes, with every script structurally checked
    """
    database = bracket_if_identifier(desired.database_name)
    changes = []
    changes.extend(_caching_changes(
        database, observed.cache.tables, desired.cache.tables, "Table", "table"
    ))
    changes.extend(_caching_changes(
        database, observed.cache.materialized_views, desired.cache.materialized_views,
        "MV", "materialized-view",
    ))

    current_kind = observed.permissions.modification_kind
    desired_kind = desired.permissions.modification_kind
    if current_kind != desired_kind:
        changes.append(_basic_change(
            "PermissionsModificationKind",
            f"Change Permission-Modification-Kind from {current_kind.value} to {desired_kind.value}",
            [Script(
                "FollowerChangePolicyModificationKind", 0,
                f".alter follower database {database} principals-modification-kind = {desired_kind.value.lower()}",
            )],
        ))

    current_kind = observed.cache.modification_kind
    desired_kind = desired.cache.modification_kind
    if current_kind != desired_kind:
        changes.append(_basic_change(
            "ChangeModificationKind",
            f"Change Caching-Modification-Kind from {current_kind.value} to {desired_kind.value}",
            [Script(
                "FollowerChangePolicyModificationKind", 0,
                f".alter follower database {database} caching-policies-modification-kind = {desired_kind.value.lower()}",
            )],
        ))

    current_hot = observed.cache.default_hot_cache
    desired_hot = desired.cache.default_hot_cache
    if current_hot != desired_hot:
        if desired_hot is not None:
            changes.append(_basic_change(
                "ChangeDefaultHotCache",
                f"From {current_hot} to {desired_hot}",
                [Script(
                    "FollowerChangeDefaultHotCache", 0,
                    f".alter follower database {database} policy caching hot = {desired_hot}",
                )],
            ))
        else:
            changes.append(_basic_change(
                "DeleteDefaultHotCache",
                "Remove Default Hot Cache",
                [Script(
                    "FollowerDeleteDefaultHotCache", 0,
                    f".delete follower database {database} policy caching",
                )],
            ))

    leader_name = desired.permissions.leader_name or observed.permissions.leader_name
    for role in ("admins", "viewers"):
        change = plan_follower_role(
            desired.database_name,
            role,
            getattr(observed.permissions, role),
            getattr(desired.permissions, role),
            leader_name,
        )
        if change is not None:
            changes.append(change)

    logger.info(f"Planned {len(changes)} changes for follower database {desired.database_name}")
    return changes

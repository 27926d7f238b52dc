"""
Principal changes for databases and follower databases.
"""

import logging
from typing import List, Optional, Sequence, Tuple

from kustokit.models import (
    PRINCIPAL_ROLES,
    AADObject,
    Database,
    EntityKind,
    INFORMATIONAL_ORDER,
    Operation,
    Script,
    bracket_if_identifier,
)
from kustokit.models.principals import find_principal

from .base import Change
from .markdown import render_principal_change
from .validation import check_scripts

logger = logging.getLogger(__name__)

# Roles in the order their changes are reported
ROLE_ORDER = ["admins", "unrestricted_viewers", "users", "viewers", "monitors", "ingestors"]


def _quoted_ids(principals: Sequence[AADObject]) -> str:
    ids = sorted((p.id for p in principals), key=str.lower)
    return ",".join(f'"{principal_id}"' for principal_id in ids)


def set_principals_script(database_name: str, role: str, principals: Sequence[AADObject]) -> str:
    if not principals:
        return f".set database {database_name} {role} none"
    return f".set database {database_name} {role} ({_quoted_ids(principals)})"


def diff_principals(
    current: Sequence[AADObject], desired: Sequence[AADObject]
) -> Tuple[List[AADObject], List[AADObject], List[Tuple[AADObject, AADObject]]]:
    """
    Compare two principal lists by id.

    Returns:
        (added, removed, renamed) where renamed pairs keep the same id
    """
    current_ids = {p.id for p in current}
    desired_ids = {p.id for p in desired}
    added = [p for p in desired if p.id not in current_ids]
    removed = [p for p in current if p.id not in desired_ids]
    renamed = []
    for principal in current:
        match = find_principal(list(desired), principal.id)
        if match is not None and match.name != principal.name:
            renamed.append((principal, match))
    return added, removed, renamed


def _renamed_script() -> Script:
    return Script("PermissionRenamed", INFORMATIONAL_ORDER, "// No Database Change")


def plan_role(
    database_name: str, role_field: str, current: Sequence[AADObject], desired: Sequence[AADObject]
) -> Optional[Change]:
    """Plan the change of one role, or None if the role is unchanged."""
    role = PRINCIPAL_ROLES[role_field]
    before = set_principals_script(database_name, role, current)
    after = set_principals_script(database_name, role, desired)
    added, removed, renamed = diff_principals(current, desired)

    scripts = []
    if before != after:
        scripts.append(Script("Permissions", 0, after))
    if renamed:
        scripts.append(_renamed_script())
    if not scripts:
        return None
    check_scripts(scripts)

    title = role_field.replace("_", " ").title().replace(" ", "")
    return Change(
        entity_kind=EntityKind.PERMISSIONS,
        entity_name=title,
        operation=Operation.ALTER,
        scripts=scripts,
        markdown=render_principal_change(title, added, removed, renamed, scripts),
    )


def plan_permissions(observed: Database, desired: Database, database_name: str) -> List[Change]:
    changes = []
    for role_field in ROLE_ORDER:
        change = plan_role(
            database_name, role_field, observed.principals(role_field), desired.principals(role_field)
        )
        if change is not None:
            changes.append(change)
    if changes:
        logger.info(f"Detected {len(changes)} permission changes")
    return changes


# =============================================================================
# FOLLOWER PERMISSIONS
# =============================================================================

def plan_follower_role(
    database_name: str,
    role: str,
    current: Sequence[AADObject],
    desired: Sequence[AADObject],
    leader_name: Optional[str] = None,
) -> Optional[Change]:
    """
    Plan additions and removals of follower principals.

    Followers take ``.add`` / ``.drop`` commands instead of ``.set``; drops
    run before adds.
    """
    added, removed, renamed = diff_principals(current, desired)
    database = bracket_if_identifier(database_name)

    scripts = []
    if removed:
        scripts.append(Script(
            "FollowerPermissionChange", 0,
            f".drop follower database {database} {role} ({_quoted_ids(removed)})",
        ))
    if added:
        suffix = f" '{leader_name}'" if leader_name and leader_name.strip() else ""
        scripts.append(Script(
            "FollowerPermissionChange", 1 if removed else 0,
            f".add follower database {database} {role} ({_quoted_ids(added)}){suffix}",
        ))
    if renamed:
        scripts.append(Script("FollowerPermissionRenamed", INFORMATIONAL_ORDER, "// No Database Change"))
    if not scripts:
        return None
    check_scripts(scripts)

    title = f"{role.title()} (Follower)"
    return Change(
        entity_kind=EntityKind.FOLLOWER_DATABASE,
        entity_name=role.title(),
        operation=Operation.ALTER,
        scripts=scripts,
        markdown=render_principal_change(title, added, removed, renamed, scripts),
    )

"""
Cluster-level changes.
"""

import logging
from typing import List, Optional

from pydantic.alias_generators import to_pascal

from kustokit.models import (
    CAPACITY_POLICY_FIELDS,
    ClusterCapacityPolicy,
    EntityKind,
    Operation,
    capacity_value,
)

from .base import Change
from .validation import check_scripts

logger = logging.getLogger(__name__)


def changed_capacity_fields(
    current: Optional[ClusterCapacityPolicy], desired: ClusterCapacityPolicy
) -> List[str]:
    """
    Describe the capacity properties the desired policy would change.

    Only properties set on the desired policy count, matching the
    ``.alter-merge`` semantics that leave unset properties alone.
    """
    lines = []
    for path in CAPACITY_POLICY_FIELDS:
        new_value = capacity_value(desired, path)
        if new_value is None:
            continue
        old_value = capacity_value(current, path)
        if old_value == new_value:
            continue
        label = ".".join(to_pascal(part) for part in path)
        shown = "Not Set" if old_value is None else old_value
        lines.append(f"- **{label}**: `{shown}` → `{new_value}`")
    return lines


def plan_capacity_policy(
    cluster_name: str,
    current: Optional[ClusterCapacityPolicy],
    desired: Optional[ClusterCapacityPolicy],
) -> List[Change]:
    """Plan the capacity policy change of one cluster."""
    if desired is None:
        logger.info(f"No capacity policy declared for cluster {cluster_name}")
        return []

    changed = changed_capacity_fields(current, desired)
    if not changed:
        return []

    script = desired.create_script()
    check_scripts([script])
    markdown = "## Cluster Capacity Policy Changes\n\n" + "\n".join(changed)
    logger.info(f"Capacity policy of cluster {cluster_name} differs in {len(changed)} properties")
    return [Change(
        entity_kind=EntityKind.CLUSTER,
        entity_name=cluster_name,
        operation=Operation.ALTER,
        scripts=[script],
        markdown=markdown,
    )]

"""
Markdown reports for review and apply runs.
"""

import logging
from typing import Dict, List, Optional

from kustokit.changes import Change, applicable_scripts
from kustokit.models import Cluster

logger = logging.getLogger(__name__)

NO_CHANGES = "No changes detected"


def render_changes(heading: str, changes: List[Change]) -> str:
    """
    Render one report section.

    Comments are listed first as alerts, then each change's markdown.
    """
    lines = [heading]
    for change in changes:
        if change.comment is not None:
            lines.append(change.comment.to_markdown())
    if not changes:
        lines.append(NO_CHANGES)
    for change in changes:
        lines.append(change.markdown)
        lines.append("")
        lines.append("")
    return "\n".join(lines) + "\n"


def render_target(cluster: Cluster, database_name: str, changes: List[Change]) -> str:
    """Section for one target database on one cluster."""
    return render_changes(f"# {cluster.name}/{database_name} ({cluster.url})", changes)


def render_follower(url: str, database_name: str, changes: List[Change]) -> str:
    """Section for one follower database."""
    return render_changes(f"# Changes for follower database {url}/{database_name}\n", changes)


def render_cluster(cluster: Cluster, changes: List[Change]) -> str:
    """Section for the cluster-level changes of one cluster."""
    return render_changes(f"# {cluster.name} ({cluster.url})", changes)


def render_apply_outcomes(outcomes: Dict[str, Optional[Exception]]) -> str:
    """One line per target: ✅ when applied, ❌ with the error otherwise."""
    lines = ["# Apply results", ""]
    for target, error in outcomes.items():
        if error is None:
            lines.append(f"- ✅ {target}")
        else:
            lines.append(f"- ❌ {target}: {error}")
    return "\n".join(lines) + "\n"


def log_planned_scripts(target: str, changes: List[Change]) -> None:
    """Log the scripts an apply run would submit."""
    scripts = "\n".join(script.text for script in applicable_scripts(changes))
    logger.info(f"Following scripts will be applied to {target}:\n{scripts}")

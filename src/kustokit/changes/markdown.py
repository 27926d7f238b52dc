"""
Markdown rendering for change plans.
"""

import difflib
from typing import List, Optional, Sequence, Tuple

from kustokit.models import AADObject, Script

VALID_MARKER = ":green_circle:"
INVALID_MARKER = ":red_circle:"
DELETION_MARKER = ":recycle:"


def marker(script: Script) -> str:
    return VALID_MARKER if script.is_valid else INVALID_MARKER


def unified_diff(before: str, after: str) -> str:
    """Line diff of two script texts, without file headers."""
    lines = difflib.unified_diff(
        before.splitlines(),
        after.splitlines(),
        fromfile="current",
        tofile="desired",
        lineterm="",
        n=3,
    )
    return "\n".join(line for line in lines if not line.startswith(("---", "+++")))


def _diagnostics(script: Script) -> List[str]:
    return [f"- {diagnostic}" for diagnostic in script.diagnostics]


def render_script_diffs(title: str, pairs: Sequence[Tuple[Optional[str], Script]]) -> str:
    """
    Render a change whose scripts replace earlier versions.

    Args:
        title: Section heading, usually the entity name
        pairs: (previous text or None when new, planned script)
    """
    lines = [f"## {title}", ""]
    for before, script in pairs:
        action = "Add" if before is None else "Change"
        lines.append(f"{marker(script)} **{script.kind}** ({action})")
        lines.append("")
        lines.append("```diff")
        lines.append(unified_diff(before or "", script.text))
        lines.append("```")
        lines.extend(_diagnostics(script))
        lines.append("")
    return "\n".join(lines)


def render_deletion(title: str, script: Script) -> str:
    return "\n".join([
        f"## {title}",
        "",
        f"{DELETION_MARKER} {marker(script)}",
        "",
        "```kql",
        script.text,
        "```",
        *_diagnostics(script),
        "",
    ])


def _principal_line(label: str, principals: Sequence[str]) -> List[str]:
    if not principals:
        return []
    return [f"**{label}:** " + "<br>".join(principals)]


def render_principal_change(
    title: str,
    added: Sequence[AADObject],
    removed: Sequence[AADObject],
    renamed: Sequence[Tuple[AADObject, AADObject]],
    scripts: Sequence[Script],
) -> str:
    """Render a principal list change as Added / Removed / Changed rows plus its commands."""
    lines = [f"## {title}", ""]
    lines.extend(_principal_line("Added", [str(p) for p in added]))
    lines.extend(_principal_line("Removed", [str(p) for p in removed]))
    lines.extend(_principal_line(
        "Changed", [f"{old.name} => {new.name} ({new.id})" for old, new in renamed]
    ))
    lines.append("")
    for script in scripts:
        lines.append(marker(script))
        lines.append("")
        lines.append("```kql")
        lines.append(script.text)
        lines.append("```")
        lines.extend(_diagnostics(script))
        lines.append("")
    return "\n".join(lines)


def render_members_change(
    title: str, added: Sequence[str], removed: Sequence[str], script: Script
) -> str:
    """Render a change to a list of plain members, such as entity group references."""
    lines = [f"## {title}", ""]
    lines.extend(_principal_line("Added", added))
    lines.extend(_principal_line("Removed", removed))
    lines.extend(["", marker(script), "", "```kql", script.text, "```"])
    lines.extend(_diagnostics(script))
    lines.append("")
    return "\n".join(lines)


def render_table(title: str, header: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    """Render a plain markdown table under a heading."""
    lines = [f"## {title}", "", " | ".join(header), " | ".join("--" for _ in header)]
    lines.extend(" | ".join(row) for row in rows)
    lines.append("")
    return "\n".join(lines)

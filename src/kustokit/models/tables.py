"""
Table model.

Columns are an ordered ``name -> type`` mapping. Policies live in the nested
``policies`` object; the top-level ``retention_and_cache_policy``,
``update_policies``, ``row_level_security`` and ``restricted_view_access``
fields are legacy shapes kept so old documents still load. Normalization
moves them into ``policies``.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from .base import BaseSchemaModel, bracket_if_identifier
from .policies import RetentionAndCachePolicy, TablePolicy, UpdatePolicy, without_resets
from .scripts import DatabaseScript, Script


def render_columns(columns: Dict[str, str]) -> str:
    """Render columns as ``name:type`` pairs for create commands."""
    return ", ".join(f"{bracket_if_identifier(name)}:{kind}" for name, kind in columns.items())


def _quote(value: Optional[str]) -> str:
    return (value or "").replace("'", "\\'")


class Table(BaseSchemaModel):
    """A table with its columns and policies."""

    folder: Optional[str] = None
    doc_string: Optional[str] = None
    columns: Optional[Dict[str, str]] = None
    policies: Optional[TablePolicy] = None
    scripts: Optional[List[DatabaseScript]] = None

    # Legacy shapes, folded into policies by normalization
    retention_and_cache_policy: Optional[RetentionAndCachePolicy] = None
    update_policies: Optional[List[UpdatePolicy]] = None
    row_level_security: Optional[str] = None
    restricted_view_access: Optional[bool] = None

    def create_scripts(self, name: str, is_new: bool = False) -> List[Script]:
        """
        Render the scripts that bring a table to this definition.

        New tables skip commands that would only reassert an empty setting.

        Args:
            name: Escaped table name
            is_new: True if the table does not exist yet

        Returns:
            Scripts, one per kind
        """
        scripts = []
        if self.columns:
            scripts.append(Script(
                "CreateMergeTable", 30,
                f".create-merge table {name} ({render_columns(self.columns)})",
            ))
        if not is_new or self.folder:
            scripts.append(Script("TableFolder", 31, f".alter table {name} folder '{_quote(self.folder)}'"))
        if not is_new or self.doc_string:
            scripts.append(Script("TableDocString", 31, f".alter table {name} docstring '{_quote(self.doc_string)}'"))
        if self.policies is not None:
            policy_scripts = self.policies.create_scripts(name)
            if is_new:
                policy_scripts = without_resets(policy_scripts)
            scripts.extend(policy_scripts)
        for script in self.scripts or []:
            scripts.append(Script.from_database_script(script, kind=f"DatabaseScript:{script.text}"))
        return scripts

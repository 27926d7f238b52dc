"""
Materialized view model.
"""

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import field_validator

from .base import BaseSchemaModel
from .enums import MaterializedViewSourceKind
from .policies import Policy, RetentionAndCachePolicy, _coerce_timestamp, without_resets
from .scripts import Script


class MaterializedView(BaseSchemaModel):
    """
    A materialized view over a table or another materialized view.

    A new view with ``backfill`` set is created asynchronously so existing
    source data is aggregated; the command is polled until it completes.
    """

    source: str
    kind: MaterializedViewSourceKind = MaterializedViewSourceKind.TABLE
    folder: Optional[str] = None
    doc_string: Optional[str] = None
    effective_date_time: Optional[str] = None
    lookback: Optional[str] = None
    update_extents_creation_time: Optional[bool] = None
    backfill: Optional[bool] = None
    auto_update_schema: bool = False
    dimension_tables: Optional[List[str]] = None
    query: str = ""
    policies: Optional[Policy] = None

    # Legacy shapes, folded into policies by normalization
    retention_and_cache_policy: Optional[RetentionAndCachePolicy] = None
    row_level_security: Optional[str] = None

    @field_validator("effective_date_time", mode="before")
    @classmethod
    def _timestamp_as_text(cls, v: Any) -> Any:
        return _coerce_timestamp(v)

    @property
    def order(self) -> int:
        """Views on views are created after the views they read from."""
        return 41 if self.kind is MaterializedViewSourceKind.MATERIALIZED_VIEW else 40

    def _properties(self, async_setup: bool) -> str:
        values = [
            ("folder", self.folder),
            ("docString", self.doc_string),
        ]
        if async_setup:
            values.append(("effectiveDateTime", self.effective_date_time))
        values.extend([
            ("lookback", self.lookback),
            ("updateExtentsCreationTime", self.update_extents_creation_time),
        ])
        if async_setup:
            values.append(("backfill", self.backfill))
        values.append(("autoUpdateSchema", self.auto_update_schema))

        rendered = []
        for key, value in values:
            if value is None or (isinstance(value, str) and not value.strip()):
                continue
            if isinstance(value, bool):
                rendered.append(f"{key}={str(value).lower()}")
            else:
                rendered.append(f"{key}=```{value}```")
        if self.dimension_tables:
            tables = ", ".join(f"'{t}'" for t in self.dimension_tables)
            rendered.append(f"dimensionTables=dynamic([{tables}])")
        return ", ".join(rendered)

    def create_scripts(self, name: str, is_new: bool = False) -> List[Script]:
        async_setup = is_new and self.backfill is True
        properties = self._properties(async_setup)
        target = f"{name} on {self.kind.value} {self.source} {{ {self.query} }}"
        if async_setup:
            scripts = [Script(
                "CreateMaterializedViewAsync", self.order,
                f".create async ifnotexists materialized-view with ({properties}) {target}",
                is_async=True,
            )]
        else:
            scripts = [Script(
                "CreateAlterMaterializedView", self.order,
                f".create-or-alter materialized-view with ({properties}) {target}",
            )]
        if self.policies is not None:
            policy_scripts = self.policies.create_scripts(name, "materialized-view")
            if is_new:
                policy_scripts = without_resets(policy_scripts)
            scripts.extend(policy_scripts)
        return scripts

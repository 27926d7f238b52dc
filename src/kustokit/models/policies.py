"""
Policy models for tables and materialized views.

``Policy`` holds the settings every entity supports (retention, hot cache,
row level security, partitioning). ``TablePolicy`` adds update policies and
restricted view access. ``RetentionAndCachePolicy`` is both the database
default and the legacy per-entity shape that normalization folds into
``Policy``.
"""

from __future__ import annotations

import json
import logging
from datetime import date, datetime
from typing import Any, List, Optional

from pydantic import field_validator

from .base import COMMAND_SERIALIZATION, BaseSchemaModel
from .enums import PartitionAssignmentMode
from .scripts import Script

logger = logging.getLogger(__name__)

# Defaults used when a partitioning policy does not pin its timestamps.
# Fixed values keep planning deterministic across runs.
DEFAULT_PARTITION_REFERENCE = "1970-01-01T00:00:00"
DEFAULT_PARTITION_EFFECTIVE_DATE = "1970-01-01"
DEFAULT_RANGE_SIZE = "1.00:00:00"
DEFAULT_MAX_PARTITION_COUNT = 128


def _coerce_timestamp(value: Any) -> Any:
    """YAML parses bare dates into date objects; keep timestamps textual."""
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def format_timestamp(value: str, fmt: str) -> str:
    """Reformat an ISO timestamp, returning the input if it can't be parsed."""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"Could not parse timestamp '{value}', using it verbatim")
        return value
    return parsed.strftime(fmt)


class RetentionAndCachePolicy(BaseSchemaModel):
    """Soft-delete retention and hot cache span, as ``"30d"`` style durations."""

    retention: Optional[str] = None
    hot_cache: Optional[str] = None

    def create_scripts(self, name: str, entity: str = "database") -> List[Script]:
        scripts = []
        if self.retention is not None:
            scripts.append(Script(
                "SoftDelete", 60,
                f".alter-merge {entity} {name} policy retention softdelete = {self.retention}",
            ))
        if self.hot_cache is not None:
            scripts.append(Script(
                "HotCache", 70,
                f".alter {entity} {name} policy caching hot = {self.hot_cache}",
            ))
        return scripts


class UpdatePolicy(BaseSchemaModel):
    """An update policy that feeds a table from a source table query."""

    is_enabled: bool = True
    propagate_ingestion_properties: bool = True
    source: str
    query: str
    is_transactional: bool = False
    managed_identity: Optional[str] = None


class PartitioningPolicy(BaseSchemaModel):
    """
    Data partitioning policy.

    A uniform-range key on ``time_partition_column`` is always emitted. A hash
    key on ``secondary_partition`` is added when one is configured.
    """

    time_partition_column: Optional[str] = None
    range_size: str = DEFAULT_RANGE_SIZE
    override_creation_time: Optional[bool] = None
    reference: Optional[str] = None
    secondary_partition: Optional[str] = None
    partition_assignment_mode: Optional[PartitionAssignmentMode] = None
    max_partition_count: Optional[int] = None
    effective_date_time: Optional[str] = None

    @field_validator("reference", "effective_date_time", mode="before")
    @classmethod
    def _timestamps_as_text(cls, v: Any) -> Any:
        return _coerce_timestamp(v)

    @field_validator("partition_assignment_mode", mode="before")
    @classmethod
    def _mode_from_ordinal(cls, v: Any) -> Any:
        # Live policies report the assignment mode as an ordinal
        if isinstance(v, int) and not isinstance(v, bool):
            return list(PartitionAssignmentMode)[v]
        return v

    def to_policy_document(self) -> dict:
        keys = [{
            "ColumnName": self.time_partition_column,
            "Kind": "UniformRange",
            "Properties": {
                "Reference": format_timestamp(
                    self.reference or DEFAULT_PARTITION_REFERENCE, "%Y-%m-%dT%H:%M:%S"
                ),
                "RangeSize": self.range_size,
                "OverrideCreationTime": self.override_creation_time is True,
            },
        }]
        if self.secondary_partition and self.secondary_partition.strip():
            keys.append({
                "ColumnName": self.secondary_partition,
                "Kind": "Hash",
                "Properties": {
                    "Function": "XxHash64",
                    "MaxPartitionCount": self.max_partition_count or DEFAULT_MAX_PARTITION_COUNT,
                    "PartitionAssignmentMode": (
                        self.partition_assignment_mode or PartitionAssignmentMode.DEFAULT
                    ).value,
                },
            })
        return {
            "EffectiveDateTime": format_timestamp(
                self.effective_date_time or DEFAULT_PARTITION_EFFECTIVE_DATE, "%Y-%m-%d"
            ),
            "PartitionKeys": keys,
        }

    def create_script(self, name: str, entity: str) -> Script:
        document = json.dumps(self.to_policy_document())
        return Script(
            "PartitioningPolicy", 50,
            f".alter {entity} {name} policy partitioning ```{document}```",
        )


class Policy(BaseSchemaModel):
    """Policies shared by tables and materialized views."""

    retention: Optional[str] = None
    hot_cache: Optional[str] = None
    partitioning: Optional[PartitioningPolicy] = None
    row_level_security: Optional[str] = None

    def create_scripts(self, name: str, entity: str) -> List[Script]:
        scripts = RetentionAndCachePolicy(
            retention=self.retention, hot_cache=self.hot_cache
        ).create_scripts(name, entity)
        if self.row_level_security:
            scripts.append(Script(
                "RowLevelSecurity", 57,
                f".alter {entity} {name} policy row_level_security enable ```{self.row_level_security}```",
            ))
        else:
            scripts.append(Script(
                "RowLevelSecurity", 52,
                f".delete {entity} {name} policy row_level_security",
            ))
        if self.partitioning is not None:
            scripts.append(self.partitioning.create_script(name, entity))
        return scripts


class TablePolicy(Policy):
    """Table policies, adding update policies and restricted view access."""

    update_policies: Optional[List[UpdatePolicy]] = None
    restricted_view_access: bool = False

    def create_scripts(self, name: str, entity: str = "table") -> List[Script]:
        scripts = super().create_scripts(name, entity)
        if self.update_policies is not None:
            payload = json.dumps(COMMAND_SERIALIZATION.dump(self.update_policies))
            # An empty list clears the policy, which must happen before sources change
            order = 59 if self.update_policies else 50
            scripts.append(Script(
                "TableUpdatePolicy", order,
                f".alter table {name} policy update ```{payload}```",
            ))
        if self.restricted_view_access:
            scripts.append(Script(
                "RestrictedViewAccess", 58,
                f".alter table {name} policy restricted_view_access true",
            ))
        else:
            scripts.append(Script(
                "RestrictedViewAccess", 51,
                f".alter table {name} policy restricted_view_access false",
            ))
        return scripts



# Scripts that only reset a setting to its default
_RESET_SCRIPTS = {("RowLevelSecurity", 52), ("RestrictedViewAccess", 51)}


def without_resets(scripts: List[Script]) -> List[Script]:
    """Drop reset-to-default scripts, which are no-ops for entities that don't exist yet."""
    return [s for s in scripts if (s.kind, s.order) not in _RESET_SCRIPTS]

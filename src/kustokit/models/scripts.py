"""
Script models.

A ``Script`` is one literal, idempotent control command produced by the
planner, annotated with its category, execution order, async flag and
validity. ``DatabaseScript`` is the user-declared free-form variant that lives
in desired-state documents.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from pydantic import Field

from .base import BaseSchemaModel

# Orders with special meaning
INFORMATIONAL_ORDER = -1


class DatabaseScript(BaseSchemaModel):
    """A free-form script declared in a desired-state document."""
    text: str
    order: int = 0


@dataclass
class Script:
    """
    A planned control command.

    Attributes:
        kind: Category used to pair old and new scripts of the same entity
        order: Cross-entity execution order; negative orders are never applied
        text: The command text
        is_async: Submitted on its own and polled to completion
        is_valid: False marks a script that is reported but never applied
        diagnostics: Reasons a script was marked invalid
    """

    kind: str
    order: int
    text: str
    is_async: bool = False
    is_valid: bool = True
    diagnostics: List[str] = field(default_factory=list)

    @classmethod
    def from_database_script(cls, script: DatabaseScript, kind: str = "DatabaseScript") -> "Script":
        return cls(kind=kind, order=script.order, text=script.text)

    @property
    def is_informational(self) -> bool:
        """Informational scripts are shown in reports but never executed."""
        return self.order < 0

    def invalidate(self, reason: str) -> None:
        """Mark the script as excluded from apply, recording why."""
        self.is_valid = False
        if reason not in self.diagnostics:
            self.diagnostics.append(reason)


class Metadata(BaseSchemaModel):
    """A free-form metadata row attached to an entity."""
    entity_name: str
    entity_type: str
    value: str = ""
    type: str = ""


class Deletions(BaseSchemaModel):
    """Explicit deletions, including single columns as ``Table.Column``."""
    tables: List[str] = Field(default_factory=list)
    columns: List[str] = Field(default_factory=list)
    functions: List[str] = Field(default_factory=list)
    materialized_views: List[str] = Field(default_factory=list)
    continuous_exports: List[str] = Field(default_factory=list)
    external_tables: List[str] = Field(default_factory=list)

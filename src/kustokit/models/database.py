"""
The database document.

A ``Database`` is both the desired state read from YAML and the observed
state assembled by the loaders from a live cluster.
"""

from __future__ import annotations

from typing import Dict, List

from pydantic import Field

from .base import BaseSchemaModel
from .continuous_exports import ContinuousExport
from .external_tables import ExternalTable
from .followers import FollowerDatabase
from .functions import Function
from .materialized_views import MaterializedView
from .policies import RetentionAndCachePolicy
from .principals import AADObject, Entity
from .scripts import DatabaseScript, Deletions, Metadata
from .tables import Table

# Principal lists and the database role each one maps to
PRINCIPAL_ROLES: Dict[str, str] = {
    "admins": "admins",
    "users": "users",
    "viewers": "viewers",
    "unrestricted_viewers": "unrestrictedviewers",
    "ingestors": "ingestors",
    "monitors": "monitors",
}


class Database(BaseSchemaModel):
    """Schema document of one database."""

    name: str = ""
    team: str = ""
    default_retention_and_cache: RetentionAndCachePolicy = Field(default_factory=RetentionAndCachePolicy)

    admins: List[AADObject] = Field(default_factory=list)
    users: List[AADObject] = Field(default_factory=list)
    viewers: List[AADObject] = Field(default_factory=list)
    unrestricted_viewers: List[AADObject] = Field(default_factory=list)
    ingestors: List[AADObject] = Field(default_factory=list)
    monitors: List[AADObject] = Field(default_factory=list)

    tables: Dict[str, Table] = Field(default_factory=dict)
    functions: Dict[str, Function] = Field(default_factory=dict)
    materialized_views: Dict[str, MaterializedView] = Field(default_factory=dict)
    external_tables: Dict[str, ExternalTable] = Field(default_factory=dict)
    continuous_exports: Dict[str, ContinuousExport] = Field(default_factory=dict)
    entity_groups: Dict[str, List[Entity]] = Field(default_factory=dict)
    followers: Dict[str, FollowerDatabase] = Field(default_factory=dict)

    scripts: List[DatabaseScript] = Field(default_factory=list)
    metadata: List[Metadata] = Field(default_factory=list)
    deletions: Deletions = Field(default_factory=Deletions)

    def principals(self, field_name: str) -> List[AADObject]:
        """Principal list by field name, e.g. ``unrestricted_viewers``."""
        return getattr(self, field_name)

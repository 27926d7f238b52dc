"""
Follower database models.

A follower database is a read-only attachment of a leader database on another
cluster. The follower can override the leader's caching policies and
authorized principals; the modification kind decides whether overrides are
merged with (Union) or replace (Replace) the leader's settings.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import Field

from .base import BaseSchemaModel
from .enums import FollowerModificationKind
from .principals import AADObject


class FollowerCache(BaseSchemaModel):
    """Caching overrides of a follower database."""
    default_hot_cache: Optional[str] = None
    modification_kind: FollowerModificationKind = FollowerModificationKind.NONE
    tables: Dict[str, str] = Field(default_factory=dict)
    materialized_views: Dict[str, str] = Field(default_factory=dict)


class FollowerPermissions(BaseSchemaModel):
    """Principal overrides of a follower database."""
    modification_kind: FollowerModificationKind = FollowerModificationKind.NONE
    admins: List[AADObject] = Field(default_factory=list)
    viewers: List[AADObject] = Field(default_factory=list)
    leader_name: Optional[str] = None


class FollowerDatabase(BaseSchemaModel):
    """A follower of the database, keyed by the follower cluster url."""
    database_name: str = ""
    cache: FollowerCache = Field(default_factory=FollowerCache)
    permissions: FollowerPermissions = Field(default_factory=FollowerPermissions)
    is_follower: bool = False

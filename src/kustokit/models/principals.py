"""
Principal models.

Database roles are assigned to Azure AD objects identified by their fully
qualified id (``aadapp=...``, ``aaduser=...``, ``aadgroup=...``).
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import AliasChoices, Field

from .base import BaseSchemaModel


class AADObject(BaseSchemaModel):
    """An Azure AD principal with a display name."""

    id: str
    name: str = Field(
        default="",
        validation_alias=AliasChoices("name", "Name", "displayName", "DisplayName", "display_name"),
        serialization_alias="name",
    )

    def __str__(self) -> str:
        return f"{self.name} ({self.id})"


class Entity(BaseSchemaModel):
    """A member of an entity group."""
    cluster: str
    database: str

    @property
    def reference(self) -> str:
        """The member as used in `.create-or-alter entity_group`."""
        return f"cluster('{self.cluster}').database('{self.database}')"


def find_principal(principals: List[AADObject], principal_id: str) -> Optional[AADObject]:
    """Find a principal by id."""
    for principal in principals:
        if principal.id == principal_id:
            return principal
    return None

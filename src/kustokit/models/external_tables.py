"""
External table model.

External tables point at delta lakes, SQL tables or blob storage. Each kind
has its own required fields; a definition missing one still renders a script,
but the script is marked invalid so it shows up in the diff without being
applied.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import AliasChoices, Field

from .base import BaseSchemaModel
from .enums import ExternalTableKind
from .scripts import Script
from .tables import render_columns


def _file_extension(value: Optional[str]) -> str:
    if not value or not value.strip():
        return ""
    return value if value.startswith(".") else f".{value}"


def _flag(value: bool) -> str:
    return str(value).lower()


class ExternalTable(BaseSchemaModel):
    """An external table of kind delta, sql or storage."""

    kind: ExternalTableKind
    schema_: Optional[Dict[str, str]] = Field(
        default=None,
        validation_alias=AliasChoices("schema", "Schema", "schema_"),
        serialization_alias="schema",
    )
    folder: Optional[str] = None
    doc_string: Optional[str] = None
    connection_string: Optional[str] = None

    # Storage properties
    partitions: Optional[str] = None
    path_format: Optional[str] = None
    data_format: Optional[str] = None
    name_prefix: Optional[str] = None
    encoding: Optional[str] = None
    file_extensions: Optional[str] = None
    include_headers: bool = False
    compressed: bool = False

    # SQL properties
    sql_table: Optional[str] = None
    sql_dialect: Optional[str] = None
    fire_triggers: bool = False
    create_if_not_exists: bool = False
    primary_key: Optional[str] = None

    def validate_configuration(self) -> List[str]:
        """Return the problems that prevent this definition from being created."""
        errors = []
        has_schema = bool(self.schema_)
        has_connection = bool(self.connection_string and self.connection_string.strip())
        if self.kind in (ExternalTableKind.DELTA, ExternalTableKind.STORAGE):
            if not (self.data_format and self.data_format.strip()):
                errors.append("dataFormat can't be empty")
        if self.kind in (ExternalTableKind.SQL, ExternalTableKind.STORAGE):
            if not has_schema:
                errors.append("schema can't be empty")
            if not has_connection:
                errors.append("connectionString can't be empty")
        if self.kind is ExternalTableKind.SQL and not (self.sql_table and self.sql_table.strip()):
            errors.append("sqlTable can't be empty")
        return errors

    def create_scripts(self, name: str, is_new: bool = False) -> List[Script]:
        renderers = {
            ExternalTableKind.DELTA: self._delta_script,
            ExternalTableKind.SQL: self._sql_script,
            ExternalTableKind.STORAGE: self._storage_script,
        }
        script = Script("ExternalTable", 22, renderers[self.kind](name))
        for error in self.validate_configuration():
            script.invalidate(f"External table {name}: {error}")
        return [script]

    def _header(self, name: str) -> List[str]:
        lines = [f".create-or-alter external table {name}"]
        if self.schema_:
            lines.append(f"({render_columns(self.schema_)})")
        return lines

    def _delta_script(self, name: str) -> str:
        lines = self._header(name)
        lines.append("kind=delta")
        lines.append(f"(h@'{self.connection_string or ''}')")
        lines.append(
            f"with(folder='{self.folder or ''}', docString='{self.doc_string or ''}', "
            f"fileExtension='{_file_extension(self.file_extensions)}')"
        )
        return "\n".join(lines)

    def _sql_script(self, name: str) -> str:
        lines = self._header(name)
        lines.append("kind=sql")
        lines.append(f"table={self.sql_table or ''}")
        lines.append(f"(h@'{self.connection_string or ''}')")
        options = [
            f"folder='{self.folder or ''}'",
            f"docString='{self.doc_string or ''}'",
            f"createifnotexists={_flag(self.create_if_not_exists)}",
            f"fireTriggers={_flag(self.fire_triggers)}",
        ]
        if self.create_if_not_exists and self.primary_key:
            options.append(f"primaryKey='{self.primary_key}'")
        if self.sql_dialect:
            options.append(f"sqlDialect='{self.sql_dialect}'")
        lines.append(f"with({', '.join(options)})")
        return "\n".join(lines)

    def _storage_script(self, name: str) -> str:
        lines = self._header(name)
        lines.append("kind=storage")
        if self.partitions:
            lines.append(f"partition by ({self.partitions})")
        if self.path_format:
            lines.append(f"pathformat=({self.path_format})")
        lines.append(f"dataformat={self.data_format or ''}")
        lines.append(f"(h@'{self.connection_string or ''}')")
        options = [
            f"folder='{self.folder or ''}'",
            f"docString='{self.doc_string or ''}'",
            f"fileExtension='{_file_extension(self.file_extensions)}'",
            f"compressed={_flag(self.compressed)}",
        ]
        if self.include_headers:
            options.append("includeHeaders=true")
        if self.encoding:
            options.append(f"encoding={self.encoding}")
        if self.name_prefix:
            options.append(f"namePrefix={self.name_prefix}")
        lines.append(f"with({', '.join(options)})")
        return "\n".join(lines)

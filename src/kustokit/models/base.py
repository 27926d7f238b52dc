"""
Base classes and utilities for Kusto schema models.

This module contains the shared pydantic configuration, the alias scheme used
to read both YAML documents (camelCase) and live query rows (PascalCase), and
the explicit serialization configuration used when writing models back out.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict

from pydantic import AliasChoices, AliasGenerator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel, to_pascal

# Configure logging
logger = logging.getLogger(__name__)

# =============================================================================
# IDENTIFIERS
# =============================================================================

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Keywords that cannot be used as bare entity names in control commands
KQL_RESERVED_WORDS = frozenset({
    "and", "as", "by", "cluster", "database", "external", "false", "from",
    "function", "let", "materialized", "not", "null", "on", "or", "policy",
    "print", "project", "table", "to", "true", "view", "where", "with",
})


def bracket_if_identifier(name: str) -> str:
    """
    Escape a name for use in a control command.

    Plain identifiers are returned unchanged. Names containing other
    characters, or colliding with a keyword, are wrapped as ``['name']``.
    """
    if name.startswith("[") and name.endswith("]"):
        return name
    if _IDENTIFIER.match(name) and name.lower() not in KQL_RESERVED_WORDS:
        return name
    escaped = name.replace("'", "\\'")
    return f"['{escaped}']"


def to_cluster_url(cluster: str) -> str:
    """Expand a short cluster name to its https endpoint."""
    if cluster.startswith("https"):
        return cluster
    return f"https://{cluster}.kusto.windows.net"


# =============================================================================
# ALIASES
# =============================================================================

def _validation_alias(field_name: str) -> AliasChoices:
    return AliasChoices(to_camel(field_name), to_pascal(field_name), field_name)


SCHEMA_ALIASES = AliasGenerator(
    validation_alias=_validation_alias,
    serialization_alias=to_camel,
)

# =============================================================================
# BASE CONFIGURATION
# =============================================================================

class BaseSchemaModel(BaseModel):
    """
    Base model for all schema objects with common configuration.

    Fields are declared in snake_case. Input accepts the camelCase spelling
    used in YAML, the PascalCase spelling returned by the cluster, and the
    field name itself. Mapping keys such as column names are data and are
    never converted.
    """

    model_config = ConfigDict(
        alias_generator=SCHEMA_ALIASES,
        validate_assignment=False,  # Disabled for performance
        validate_default=True,  # Validate defaults once
        populate_by_name=True,  # Allow field population by name
        use_enum_values=False,  # Keep enums as enum objects
        str_strip_whitespace=True,  # Strip whitespace from strings
        extra="ignore",  # Live rows carry columns we don't model
    )


# =============================================================================
# SERIALIZATION
# =============================================================================

class KeyCase(str, Enum):
    """Key spelling used when serializing models."""
    CAMEL = "camel"
    PASCAL = "pascal"


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, (str, list, dict)) and len(value) == 0)


@dataclass(frozen=True)
class SerializationConfig:
    """
    Immutable serialization settings.

    One value is constructed per purpose (YAML files, JSON command payloads)
    and handed to whichever component needs it.

    Attributes:
        key_case: camelCase or PascalCase keys for model fields
        exclude_none: Drop fields whose value is None
        exclude_defaults: Drop fields equal to their declared default
        exclude_empty: Drop empty strings, lists and mappings
    """

    key_case: KeyCase = KeyCase.CAMEL
    exclude_none: bool = True
    exclude_defaults: bool = False
    exclude_empty: bool = False

    def key_for(self, field_name: str) -> str:
        """Spell a snake_case field name in the configured case."""
        # Trailing underscores avoid clashes with BaseModel attributes
        field_name = field_name.rstrip("_")
        if self.key_case is KeyCase.PASCAL:
            return to_pascal(field_name)
        return to_camel(field_name)

    def dump(self, value: Any) -> Any:
        """Convert a model (or nested values) into plain python data."""
        if isinstance(value, BaseModel):
            data = value.model_dump(
                exclude_none=self.exclude_none,
                exclude_defaults=self.exclude_defaults,
            )
            return self._rekey(value, data)
        if isinstance(value, dict):
            return {k: self.dump(v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [self.dump(v) for v in value]
        if isinstance(value, Enum):
            return value.value
        return value

    def _rekey(self, model: BaseModel, data: Dict[str, Any]) -> Dict[str, Any]:
        # model_dump keys by field name; the source model tells which values are models
        result: Dict[str, Any] = {}
        for name, item in data.items():
            converted = self._convert(getattr(model, name), item)
            if self.exclude_empty and _is_empty(converted):
                continue
            result[self.key_for(name)] = converted
        return result

    def _convert(self, source: Any, item: Any) -> Any:
        if isinstance(source, BaseModel):
            return self._rekey(source, item)
        if isinstance(source, dict):
            return {k: self._convert(source[k], v) for k, v in item.items()}
        if isinstance(source, (list, tuple)):
            return [self._convert(s, i) for s, i in zip(source, item)]
        if isinstance(item, Enum):
            return item.value
        return item


# Compact camelCase documents for YAML files
YAML_SERIALIZATION = SerializationConfig(
    key_case=KeyCase.CAMEL,
    exclude_none=True,
    exclude_defaults=True,
    exclude_empty=True,
)

# PascalCase JSON payloads embedded in control commands
COMMAND_SERIALIZATION = SerializationConfig(key_case=KeyCase.PASCAL, exclude_none=True)


__all__ = [
    "BaseSchemaModel",
    "KeyCase",
    "SerializationConfig",
    "YAML_SERIALIZATION",
    "COMMAND_SERIALIZATION",
    "bracket_if_identifier",
    "to_cluster_url",
]

"""
Engine settings.

Settings are an immutable value constructed once per run and passed to the
components that need them. ``EngineSettings.from_env()`` reads overrides from
``KUSTOKIT_*`` environment variables.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

# Table that receives declared metadata rows on apply
DEFAULT_METADATA_TABLE = os.getenv('KUSTOKIT_METADATA_TABLE', 'SchemaMetadata')

_TRUE_VALUES = {"true", "1", "yes"}
_FALSE_VALUES = {"false", "0", "no"}


def parse_bool(value: Optional[str], default: bool = False) -> bool:
    """Parse a boolean environment value, accepting true/false and 1/0."""
    if value is None or value.strip() == "":
        return default
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    logger.warning(f"Unrecognized boolean value '{value}', using default {default}")
    return default


class EngineSettings(BaseModel):
    """
    Tunables for planning, applying and writing desired state.

    Attributes:
        poll_interval_seconds: Fixed delay between status polls of an async operation
        max_polls: Hard ceiling on status polls before the run times out
        max_retries: Attempts for read-only queries that fail transiently
        min_file_lines: Entities serialised to at least this many lines get their own file
        enable_column_order_validation: Reject tables that insert new columns mid-schema
        metadata_table: Table that receives declared metadata rows
    """

    model_config = ConfigDict(frozen=True)

    poll_interval_seconds: float = Field(default=1.0, ge=0)
    max_polls: int = Field(default=3600, ge=1)
    max_retries: int = Field(default=3, ge=1)
    min_file_lines: int = Field(default=5, ge=1)
    enable_column_order_validation: bool = False
    metadata_table: str = DEFAULT_METADATA_TABLE

    @classmethod
    def from_env(cls) -> "EngineSettings":
        """Build settings from KUSTOKIT_* environment variables."""
        values = {}
        if os.getenv('KUSTOKIT_POLL_INTERVAL_SECONDS'):
            values['poll_interval_seconds'] = float(os.environ['KUSTOKIT_POLL_INTERVAL_SECONDS'])
        if os.getenv('KUSTOKIT_MAX_POLLS'):
            values['max_polls'] = int(os.environ['KUSTOKIT_MAX_POLLS'])
        if os.getenv('KUSTOKIT_MAX_RETRIES'):
            values['max_retries'] = int(os.environ['KUSTOKIT_MAX_RETRIES'])
        if os.getenv('KUSTOKIT_MIN_FILE_LINES'):
            values['min_file_lines'] = int(os.environ['KUSTOKIT_MIN_FILE_LINES'])
        values['enable_column_order_validation'] = parse_bool(
            os.getenv('KUSTOKIT_ENABLE_COLUMN_VALIDATION')
        )
        return cls(**values)


__all__ = ["EngineSettings", "parse_bool", "DEFAULT_METADATA_TABLE"]

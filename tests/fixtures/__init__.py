"""Test fixtures for kustokit."""

from .executors import FakeExecutor, RecordingSleep, completed_batch
from .model_factories import (
    make_change,
    make_continuous_export,
    make_database,
    make_external_table,
    make_function,
    make_materialized_view,
    make_principal,
    make_result_row,
    make_script,
    make_table,
)

__all__ = [
    "FakeExecutor",
    "RecordingSleep",
    "completed_batch",
    "make_change",
    "make_continuous_export",
    "make_database",
    "make_external_table",
    "make_function",
    "make_materialized_view",
    "make_principal",
    "make_result_row",
    "make_script",
    "make_table",
]

"""
Unit tests for the shared model configuration.

Tests name escaping, input aliases and explicit serialization settings.
"""

from typing import Dict, List, Optional

import pytest
from pydantic import Field

from kustokit.models import (
    COMMAND_SERIALIZATION,
    BaseSchemaModel,
    YAML_SERIALIZATION,
    ExecutionState,
    ExternalTableKind,
    Function,
    KeyCase,
    SerializationConfig,
    Table,
    UpdatePolicy,
    bracket_if_identifier,
    to_cluster_url,
)
from tests.fixtures import make_external_table


class _Cache(BaseSchemaModel):
    hot_span: Optional[str] = None
    state: Optional[ExecutionState] = None


class _Holder(BaseSchemaModel):
    display_name: str = ""
    caches: List[_Cache] = []
    by_column: Dict[str, _Cache] = {}
    primary: _Cache = Field(default_factory=_Cache)


class TestBracketIfIdentifier:
    """Tests for entity name escaping."""

    def test_plain_identifier_unchanged(self) -> None:
        """Plain identifiers are used as they are."""
        assert bracket_if_identifier("Events") == "Events"
        assert bracket_if_identifier("_raw_events2") == "_raw_events2"

    def test_special_characters_bracketed(self) -> None:
        """Names with other characters are bracketed."""
        assert bracket_if_identifier("my-table") == "['my-table']"
        assert bracket_if_identifier("1st") == "['1st']"

    def test_keyword_bracketed(self) -> None:
        """Keywords can't be used bare."""
        assert bracket_if_identifier("table") == "['table']"
        assert bracket_if_identifier("Database") == "['Database']"

    def test_already_bracketed_unchanged(self) -> None:
        """Escaping twice is a no-op."""
        assert bracket_if_identifier("['my-table']") == "['my-table']"

    def test_quote_escaped(self) -> None:
        """Single quotes inside the name are escaped."""
        assert bracket_if_identifier("it's") == "['it\\'s']"


class TestToClusterUrl:
    """Tests for cluster url expansion."""

    def test_short_name_expanded(self) -> None:
        """A short name becomes a kusto.windows.net endpoint."""
        assert to_cluster_url("help") == "https://help.kusto.windows.net"

    def test_url_unchanged(self) -> None:
        """Full urls are kept."""
        url = "https://prod.westeurope.kusto.windows.net"
        assert to_cluster_url(url) == url


class TestAliases:
    """Tests for the accepted input spellings."""

    def test_camel_case_accepted(self) -> None:
        """YAML documents use camelCase."""
        table = Table.model_validate({"docString": "raw events", "folder": "raw"})
        assert table.doc_string == "raw events"
        assert table.folder == "raw"

    def test_pascal_case_accepted(self) -> None:
        """Live query rows use PascalCase."""
        function = Function.model_validate({"DocString": "d", "Body": "T", "SkipValidation": True})
        assert function.doc_string == "d"
        assert function.body == "T"
        assert function.skip_validation is True

    def test_field_name_accepted(self) -> None:
        """Field names work as well."""
        table = Table.model_validate({"doc_string": "d"})
        assert table.doc_string == "d"

    def test_column_names_not_converted(self) -> None:
        """Mapping keys are data and keep their spelling."""
        table = Table.model_validate({"columns": {"event_time": "datetime", "UserId": "string"}})
        assert list(table.columns) == ["event_time", "UserId"]

    def test_strings_stripped(self) -> None:
        """Surrounding whitespace is dropped."""
        function = Function(body="  T | take 1 \n")
        assert function.body == "T | take 1"

    def test_unknown_fields_ignored(self) -> None:
        """Live rows carry extra columns."""
        function = Function.model_validate({"Body": "T", "Kind": "Stored"})
        assert function.body == "T"


class TestSerializationConfig:
    """Tests for explicit serialization settings."""

    def test_key_for_camel(self) -> None:
        """camelCase is the default spelling."""
        assert SerializationConfig().key_for("doc_string") == "docString"

    def test_key_for_pascal(self) -> None:
        """PascalCase is used for command payloads."""
        config = SerializationConfig(key_case=KeyCase.PASCAL)
        assert config.key_for("doc_string") == "DocString"

    def test_key_for_strips_trailing_underscore(self) -> None:
        """Fields renamed to avoid clashes serialize under their real name."""
        assert SerializationConfig().key_for("schema_") == "schema"

    def test_yaml_drops_defaults_and_empty(self) -> None:
        """YAML documents only contain what differs from the defaults."""
        assert YAML_SERIALIZATION.dump(Function(body="T")) == {"body": "T"}

    def test_yaml_dumps_enum_values(self) -> None:
        """Enums are written as their values."""
        dumped = YAML_SERIALIZATION.dump(make_external_table(ExternalTableKind.STORAGE))
        assert dumped["kind"] == "storage"
        assert dumped["schema"] == {"Timestamp": "datetime", "Name": "string"}

    def test_command_payload_pascal_case(self) -> None:
        """Command payloads use PascalCase and keep defaults."""
        policy = UpdatePolicy(source="Raw", query="Raw | take 1")
        assert COMMAND_SERIALIZATION.dump(policy) == {
            "IsEnabled": True,
            "PropagateIngestionProperties": True,
            "Source": "Raw",
            "Query": "Raw | take 1",
            "IsTransactional": False,
        }

    def test_nested_models_rekeyed(self) -> None:
        """Nested models are respelled, mapping keys are kept as they are."""
        holder = _Holder(
            display_name="x",
            caches=[_Cache(hot_span="1d", state=ExecutionState.COMPLETED)],
            by_column={"event_time": _Cache(hot_span="2d")},
        )
        assert COMMAND_SERIALIZATION.dump(holder) == {
            "DisplayName": "x",
            "Caches": [{"HotSpan": "1d", "State": "Completed"}],
            "ByColumn": {"event_time": {"HotSpan": "2d"}},
            "Primary": {},
        }

    def test_yaml_prunes_nested_defaults(self) -> None:
        """Defaults and empty values are dropped at every level."""
        holder = _Holder(by_column={"event_time": _Cache(hot_span="2d")}, primary=_Cache())
        assert YAML_SERIALIZATION.dump(holder) == {"byColumn": {"event_time": {"hotSpan": "2d"}}}

    def test_config_is_immutable(self) -> None:
        """Settings can't be changed after construction."""
        with pytest.raises(Exception):
            YAML_SERIALIZATION.exclude_none = False  # type: ignore[misc]


class TestExecutionState:
    """Tests for ExecutionState parsing."""

    def test_parse_case_insensitive(self) -> None:
        """States are matched regardless of case."""
        assert ExecutionState.parse("completed") is ExecutionState.COMPLETED

    def test_unknown_state_in_progress(self) -> None:
        """Unknown states keep an operation polling."""
        assert ExecutionState.parse("Warming") is ExecutionState.IN_PROGRESS
        assert ExecutionState.parse("") is ExecutionState.IN_PROGRESS

    def test_terminal_and_failure(self) -> None:
        """Failures are terminal; completion is terminal but not a failure."""
        assert ExecutionState.FAILED.is_terminal
        assert ExecutionState.FAILED.is_failure
        assert ExecutionState.COMPLETED.is_terminal
        assert not ExecutionState.COMPLETED.is_failure
        assert not ExecutionState.IN_PROGRESS.is_terminal

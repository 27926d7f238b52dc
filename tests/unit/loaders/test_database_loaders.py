"""
Unit tests for database-level loaders and the loading pipeline.
"""

import json
from datetime import timedelta

from kustokit.config import EngineSettings
from kustokit.loaders import (
    CleanupLoader,
    EntityGroupLoader,
    PartitioningPolicyLoader,
    PrincipalLoader,
    RetentionAndCacheLoader,
    TableLoader,
    default_loaders,
    format_timespan,
    load_observed,
    parse_dynamic,
    timespan_days,
)
from kustokit.loaders.database import (
    LOAD_DEFAULT_HOT_CACHE,
    LOAD_DEFAULT_RETENTION,
    LOAD_ENTITY_GROUPS,
    LOAD_PARTITIONING_POLICIES,
    LOAD_PRINCIPALS,
)
from kustokit.loaders.entities import LOAD_TABLES
from kustokit.models import Database, RetentionAndCachePolicy
from tests.fixtures import FakeExecutor, make_database, make_materialized_view, make_principal, make_table


class TestValueHelpers:
    """Tests for the value helpers."""

    def test_parse_dynamic(self) -> None:
        """JSON text is decoded, other values pass through."""
        assert parse_dynamic('{"a": 1}') == {"a": 1}
        assert parse_dynamic("[1]") == [1]
        assert parse_dynamic("plain") == "plain"
        assert parse_dynamic({"a": 1}) == {"a": 1}

    def test_format_timespan(self) -> None:
        """Timespans render like the cluster writes them."""
        assert format_timespan(timedelta(days=1)) == "1.00:00:00"
        assert format_timespan(timedelta(hours=2, minutes=5)) == "02:05:00"
        assert format_timespan("1.00:00:00") == "1.00:00:00"

    def test_timespan_days(self) -> None:
        """Whole days are read from text and timedelta."""
        assert timespan_days("3.00:00:00") == 3
        assert timespan_days("12:00:00") == 0
        assert timespan_days(timedelta(days=2, hours=1)) == 2
        assert timespan_days(None) is None


class TestPrincipalLoader:
    """Tests for PrincipalLoader."""

    def test_roles_mapped(self, fake_executor: FakeExecutor) -> None:
        """Every role is set, missing roles become empty."""
        fake_executor.respond(LOAD_PRINCIPALS, [
            {"Role": "Admin", "Users": [{"name": "Alice", "id": "aaduser=alice@contoso.com"}]},
            {"Role": "Monitor", "Users": json.dumps([{"name": "Ops", "id": "aadgroup=ops@contoso.com"}])},
        ])
        observed = Database(users=[make_principal("aaduser=stale")])

        PrincipalLoader().load(observed, "Telemetry", fake_executor)

        assert [p.id for p in observed.admins] == ["aaduser=alice@contoso.com"]
        assert observed.admins[0].name == "Alice"
        assert [p.id for p in observed.monitors] == ["aadgroup=ops@contoso.com"]
        assert observed.users == []
        assert observed.viewers == []


class TestRetentionAndCacheLoader:
    """Tests for RetentionAndCacheLoader."""

    def test_defaults_read(self, fake_executor: FakeExecutor) -> None:
        """Retention and hot cache come from the schema script."""
        fake_executor.respond(LOAD_DEFAULT_RETENTION, [{"Retention": "365d"}])
        fake_executor.respond(LOAD_DEFAULT_HOT_CACHE, [{"HotCache": "31d"}])
        observed = Database()
        RetentionAndCacheLoader().load(observed, "Telemetry", fake_executor)
        assert observed.default_retention_and_cache == RetentionAndCachePolicy(retention="365d", hot_cache="31d")

    def test_missing_values_unset(self, fake_executor: FakeExecutor) -> None:
        """Databases without explicit policies keep them unset."""
        observed = Database()
        RetentionAndCacheLoader().load(observed, "Telemetry", fake_executor)
        assert observed.default_retention_and_cache.retention is None
        assert observed.default_retention_and_cache.hot_cache is None


class TestEntityGroupLoader:
    """Tests for EntityGroupLoader."""

    def test_groups_replaced(self, fake_executor: FakeExecutor) -> None:
        """The live groups replace whatever the snapshot held."""
        fake_executor.respond(LOAD_ENTITY_GROUPS, [
            {"EntityName": "Shared", "Body": [{"Cluster": "help", "Database": "Samples"}]},
        ])
        observed = Database(entity_groups={"Stale": []})
        EntityGroupLoader().load(observed, "Telemetry", fake_executor)
        assert list(observed.entity_groups) == ["Shared"]
        assert observed.entity_groups["Shared"][0].reference == "cluster('help').database('Samples')"


class TestPartitioningPolicyLoader:
    """Tests for PartitioningPolicyLoader."""

    def _row(self, name: str) -> dict:
        return {"EntityName": name, "EntityType": "table", "Body": {
            "TimePartitionColumn": "Timestamp",
            "RangeSize": timedelta(days=1),
            "OverrideCreationTime": False,
            "Reference": "2024-01-01T00:00:00",
            "SecondaryPartition": None,
            "PartitionAssignmentMode": None,
            "MaxPartitionCount": None,
            "EffectiveDateTime": "2024-01-01T00:00:00",
        }}

    def test_attached_to_table(self, fake_executor: FakeExecutor) -> None:
        """Policies attach to loaded tables."""
        fake_executor.respond(LOAD_PARTITIONING_POLICIES, [self._row("Events")])
        observed = Database(tables={"Events": make_table()})
        PartitioningPolicyLoader().load(observed, "Telemetry", fake_executor)
        policy = observed.tables["Events"].policies.partitioning
        assert policy.time_partition_column == "Timestamp"
        assert policy.range_size == "1.00:00:00"
        assert policy.secondary_partition is None

    def test_attached_to_view(self, fake_executor: FakeExecutor) -> None:
        """Policies attach to loaded materialized views."""
        fake_executor.respond(LOAD_PARTITIONING_POLICIES, [self._row("Summary")])
        observed = Database(materialized_views={"Summary": make_materialized_view()})
        PartitioningPolicyLoader().load(observed, "Telemetry", fake_executor)
        assert observed.materialized_views["Summary"].policies.partitioning.range_size == "1.00:00:00"

    def test_unknown_entity_ignored(self, fake_executor: FakeExecutor) -> None:
        """Policies of entities that weren't loaded are dropped."""
        fake_executor.respond(LOAD_PARTITIONING_POLICIES, [self._row("Missing")])
        observed = Database()
        PartitioningPolicyLoader().load(observed, "Telemetry", fake_executor)
        assert observed.tables == {}


class TestCleanupLoader:
    """Tests for CleanupLoader."""

    def test_normalizes_in_place(self, fake_executor: FakeExecutor) -> None:
        """The snapshot object itself is brought into canonical form."""
        observed = make_database(tables={
            "Events": make_table(retention_and_cache_policy=RetentionAndCachePolicy(retention="30d", hot_cache="1d")),
        })
        CleanupLoader().load(observed, "Telemetry", fake_executor)
        table = observed.tables["Events"]
        assert table.retention_and_cache_policy is None
        assert table.policies.retention is None
        assert table.policies.hot_cache == "1d"


class TestPipeline:
    """Tests for default_loaders and load_observed."""

    def test_default_order(self) -> None:
        """Partitioning runs after entities, cleanup runs last."""
        loaders = default_loaders(EngineSettings(max_retries=5))
        names = [type(loader).__name__ for loader in loaders]
        assert names[0] == "PrincipalLoader"
        assert names.index("PartitioningPolicyLoader") > names.index("MaterializedViewLoader")
        assert names[-1] == "CleanupLoader"
        assert all(loader.max_retries == 5 for loader in loaders)

    def test_empty_database(self, fake_executor: FakeExecutor) -> None:
        """A database without entities loads as an empty snapshot."""
        observed = load_observed(fake_executor, "Telemetry")
        assert observed.name == "Telemetry"
        assert observed.tables == {}
        assert observed.admins == []

    def test_custom_loaders(self, fake_executor: FakeExecutor) -> None:
        """Only the given loaders run."""
        fake_executor.respond(LOAD_TABLES, [{"EntityName": "Events", "Body": {"Folder": "raw"}}])
        observed = load_observed(fake_executor, "Telemetry", [TableLoader()])
        assert observed.tables["Events"].folder == "raw"
        assert len(fake_executor.queries) == len(TableLoader.queries)

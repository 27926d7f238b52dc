"""
Unit tests for the scripts rendered by entity models.

Tests tables, functions, materialized views, external tables and continuous
exports.
"""

from kustokit.models import (
    ExternalTableKind,
    Function,
    MaterializedViewSourceKind,
    TablePolicy,
)
from kustokit.models.functions import bracket_parameters, split_top_level
from tests.fixtures import (
    make_continuous_export,
    make_external_table,
    make_function,
    make_materialized_view,
    make_table,
)


class TestTableScripts:
    """Tests for Table.create_scripts."""

    def test_new_table_only_creates_columns(self) -> None:
        """A new table without folder or docstring needs a single command."""
        scripts = make_table().create_scripts("Events", is_new=True)
        assert [s.kind for s in scripts] == ["CreateMergeTable"]
        assert scripts[0].text == ".create-merge table Events (Timestamp:datetime, Name:string)"
        assert scripts[0].order == 30

    def test_existing_table_resets_folder_and_docstring(self) -> None:
        """Existing tables always assert folder and docstring."""
        scripts = make_table().create_scripts("Events")
        texts = [s.text for s in scripts]
        assert ".alter table Events folder ''" in texts
        assert ".alter table Events docstring ''" in texts

    def test_folder_quoted(self) -> None:
        """Quotes in the folder are escaped."""
        scripts = make_table(folder="it's raw").create_scripts("Events", is_new=True)
        assert scripts[1].text == ".alter table Events folder 'it\\'s raw'"

    def test_column_names_escaped(self) -> None:
        """Column names that aren't identifiers are bracketed."""
        scripts = make_table(columns={"event-time": "datetime"}).create_scripts("Events", is_new=True)
        assert scripts[0].text == ".create-merge table Events (['event-time']:datetime)"

    def test_new_table_skips_policy_resets(self) -> None:
        """Resetting a policy to its default is pointless for a new table."""
        table = make_table(policies=TablePolicy(retention="90d"))
        kinds = [s.kind for s in table.create_scripts("Events", is_new=True)]
        assert "SoftDelete" in kinds
        assert "RowLevelSecurity" not in kinds
        assert "RestrictedViewAccess" not in kinds

    def test_existing_table_keeps_policy_resets(self) -> None:
        """Existing tables get the reset commands."""
        table = make_table(policies=TablePolicy())
        kinds = [s.kind for s in table.create_scripts("Events")]
        assert "RowLevelSecurity" in kinds
        assert "RestrictedViewAccess" in kinds


class TestFunctionScripts:
    """Tests for Function.create_scripts."""

    def test_create_or_alter(self) -> None:
        """Properties are rendered in a fixed order."""
        scripts = make_function(body="T | take 1", folder="reports").create_scripts("Top")
        assert len(scripts) == 1
        assert scripts[0].text == (
            ".create-or-alter function with(skipvalidation=false, view=false, "
            "folder=```reports```, docstring=``````) Top() { T | take 1 }"
        )
        assert scripts[0].order == 40

    def test_parameters_escaped(self) -> None:
        """Parameter names that are keywords are bracketed."""
        function = Function(parameters="table:string, limit:int", body="T")
        text = function.create_scripts("F")[0].text
        assert "F(['table']:string, limit:int)" in text

    def test_view_flag(self) -> None:
        """Views are flagged in the properties."""
        text = Function(view=True, body="T").create_scripts("V")[0].text
        assert "view=true" in text


class TestParameterSplitting:
    """Tests for parameter list helpers."""

    def test_split_ignores_nested_separators(self) -> None:
        """Commas inside brackets don't split."""
        parts = split_top_level("a:dynamic = dynamic([1,2]), b:int")
        assert [p.strip() for p in parts] == ["a:dynamic = dynamic([1,2])", "b:int"]

    def test_split_ignores_quoted_separators(self) -> None:
        """Commas inside strings don't split."""
        parts = split_top_level("a:string = ',', b:int")
        assert len(parts) == 2

    def test_bracket_parameters(self) -> None:
        """Each parameter name is escaped on its own."""
        assert bracket_parameters("x:string, y:int") == "x:string, y:int"
        assert bracket_parameters("my-x:string") == "['my-x']:string"


class TestMaterializedViewScripts:
    """Tests for MaterializedView.create_scripts."""

    def test_new_backfill_is_async(self) -> None:
        """New views with backfill are created asynchronously."""
        view = make_materialized_view(backfill=True)
        scripts = view.create_scripts("Summary", is_new=True)
        assert len(scripts) == 1
        assert scripts[0].kind == "CreateMaterializedViewAsync"
        assert scripts[0].is_async
        assert scripts[0].text == (
            ".create async ifnotexists materialized-view with (backfill=true, autoUpdateSchema=false) "
            "Summary on table Events { Events | summarize count() by Name }"
        )

    def test_existing_view_create_or_alter(self) -> None:
        """Existing views are altered synchronously, without backfill."""
        view = make_materialized_view(backfill=True, folder="views")
        scripts = view.create_scripts("Summary")
        assert scripts[0].kind == "CreateAlterMaterializedView"
        assert not scripts[0].is_async
        assert scripts[0].text.startswith(
            ".create-or-alter materialized-view with (folder=```views```, autoUpdateSchema=false) Summary"
        )

    def test_view_on_view_ordered_later(self) -> None:
        """Views reading from views are created after their source."""
        assert make_materialized_view().order == 40
        view = make_materialized_view(kind=MaterializedViewSourceKind.MATERIALIZED_VIEW)
        assert view.order == 41
        assert "on materialized-view Events" in view.create_scripts("Nested")[0].text

    def test_dimension_tables(self) -> None:
        """Dimension tables are rendered as a dynamic array."""
        view = make_materialized_view(dimension_tables=["Users", "Devices"])
        text = view.create_scripts("Summary")[0].text
        assert "dimensionTables=dynamic(['Users', 'Devices'])" in text


class TestExternalTableScripts:
    """Tests for ExternalTable.create_scripts."""

    def test_storage_script(self) -> None:
        """Storage tables render schema, format and connection."""
        table = make_external_table(ExternalTableKind.STORAGE, file_extensions="csv", include_headers=True)
        script = table.create_scripts("Archive")[0]
        lines = script.text.split("\n")
        assert lines[0] == ".create-or-alter external table Archive"
        assert lines[1] == "(Timestamp:datetime, Name:string)"
        assert "kind=storage" in lines
        assert "dataformat=parquet" in lines
        assert "fileExtension='.csv'" in lines[-1]
        assert "includeHeaders=true" in lines[-1]
        assert script.is_valid

    def test_storage_partitions_and_path_format(self) -> None:
        """Partitions and path format are rendered when set."""
        table = make_external_table(
            ExternalTableKind.STORAGE,
            partitions="Day:datetime = bin(Timestamp, 1d)",
            path_format='"day=" datetime_pattern("yyyyMMdd", Day)',
        )
        text = table.create_scripts("Archive")[0].text
        assert "partition by (Day:datetime = bin(Timestamp, 1d))" in text
        assert 'pathformat=("day=" datetime_pattern("yyyyMMdd", Day))' in text

    def test_sql_script(self) -> None:
        """SQL tables render the target table and SQL options."""
        table = make_external_table(ExternalTableKind.SQL, create_if_not_exists=True, primary_key="Id")
        text = table.create_scripts("Mirror")[0].text
        assert "kind=sql" in text
        assert "table=dbo.Events" in text
        assert "createifnotexists=true" in text
        assert "primaryKey='Id'" in text

    def test_delta_script(self) -> None:
        """Delta tables don't need a schema."""
        script = make_external_table(ExternalTableKind.DELTA).create_scripts("Lake")[0]
        assert "kind=delta" in script.text
        assert script.is_valid

    def test_missing_fields_invalidate(self) -> None:
        """Incomplete definitions still render, but can't be applied."""
        table = make_external_table(ExternalTableKind.STORAGE, data_format=None, schema_=None)
        script = table.create_scripts("Archive")[0]
        assert not script.is_valid
        assert "External table Archive: dataFormat can't be empty" in script.diagnostics
        assert "External table Archive: schema can't be empty" in script.diagnostics

    def test_sql_requires_table(self) -> None:
        """SQL tables need the target table."""
        table = make_external_table(ExternalTableKind.SQL, sql_table=None)
        assert table.validate_configuration() == ["sqlTable can't be empty"]


class TestContinuousExportScripts:
    """Tests for ContinuousExport.create_scripts."""

    def test_create_or_alter(self) -> None:
        """Options are rendered before the query."""
        script = make_continuous_export().create_scripts("Export")[0]
        assert script.text == (
            ".create-or-alter continuous-export Export to table EventsArchive with "
            "(forcedLatency=0m, intervalBetweenRuns=60m, sizeLimit=0, distributed=false) <| Events"
        )
        assert script.order == 120

    def test_managed_identity(self) -> None:
        """A managed identity is added when set."""
        text = make_continuous_export(managed_identity="system").create_scripts("Export")[0].text
        assert "managedIdentity='system'" in text

"""
Unit tests for script and column order checks.
"""

from kustokit.changes import check_scripts, validate_column_order, validate_script
from tests.fixtures import make_script, make_table


class TestValidateScript:
    """Tests for validate_script."""

    def test_well_formed(self) -> None:
        """A balanced control command passes."""
        script = make_script(text=".create-merge table Events (Timestamp:datetime)")
        assert validate_script(script) == []

    def test_empty(self) -> None:
        """Empty scripts are rejected."""
        assert validate_script(make_script(text="  ")) == ["Script is empty"]

    def test_not_a_control_command(self) -> None:
        """Queries aren't accepted."""
        assert validate_script(make_script(text="Events | take 1")) == ["Script is not a control command"]

    def test_unclosed_bracket(self) -> None:
        """Unclosed brackets are reported."""
        diagnostics = validate_script(make_script(text=".create table T (a:string"))
        assert len(diagnostics) == 1
        assert diagnostics[0].startswith("Unclosed '('")

    def test_unbalanced_closer(self) -> None:
        """A closer without opener is reported."""
        diagnostics = validate_script(make_script(text=".create table T a:string)"))
        assert diagnostics[0].startswith("Unbalanced ')'")

    def test_fenced_text_skipped(self) -> None:
        """Brackets inside triple backticks don't count."""
        assert validate_script(make_script(text=".alter table T policy update ```[(```")) == []

    def test_unterminated_fence(self) -> None:
        """A fence must be closed."""
        diagnostics = validate_script(make_script(text=".alter table T policy update ```[]"))
        assert diagnostics[0].startswith("Unterminated ``` block")

    def test_string_literals_skipped(self) -> None:
        """Brackets inside strings don't count, escaped quotes stay inside."""
        assert validate_script(make_script(text=".alter table T docstring 'it\\'s ('")) == []

    def test_verbatim_string(self) -> None:
        """Backslashes in verbatim strings don't escape."""
        assert validate_script(make_script(text=".create external table X (h@'c:\\')")) == []

    def test_unterminated_string(self) -> None:
        """Strings must be closed."""
        diagnostics = validate_script(make_script(text=".alter table T docstring 'open"))
        assert diagnostics[0].startswith("Unterminated string")

    def test_comment_lines_skipped(self) -> None:
        """Text after // is ignored."""
        assert validate_script(make_script(text=".show tables // (")) == []

    def test_comment_only_must_be_informational(self) -> None:
        """Comment-only scripts may only be informational."""
        assert validate_script(make_script(text="// note", order=-1)) == []
        assert validate_script(make_script(text="// note")) == ["Comment-only scripts must be informational"]


class TestCheckScripts:
    """Tests for check_scripts."""

    def test_invalidates_bad_scripts(self) -> None:
        """Bad scripts are marked invalid with the diagnostic."""
        good = make_script(text=".show tables")
        bad = make_script(text=".show tables (")
        check_scripts([good, bad])
        assert good.is_valid
        assert not bad.is_valid
        assert bad.diagnostics[0].startswith("Unclosed")


class TestValidateColumnOrder:
    """Tests for validate_column_order."""

    def test_appended_columns_ok(self) -> None:
        """New columns at the end are fine."""
        old = make_table(columns={"A": "string", "B": "string"})
        new = make_table(columns={"A": "string", "B": "string", "C": "string"})
        assert validate_column_order(old, new, "T") is None

    def test_inserted_column_reported(self) -> None:
        """Existing columns after new ones are a violation."""
        old = make_table(columns={"A": "string", "B": "string"})
        new = make_table(columns={"New": "string", "A": "string", "B": "string"})
        message = validate_column_order(old, new, "T")
        assert message.startswith("Column order violation detected in table 'T'.")
        assert "(A, B)" in message
        assert "(New)" in message

    def test_new_table_ok(self) -> None:
        """New tables have no order to keep."""
        assert validate_column_order(None, make_table(), "T") is None

    def test_no_new_columns_ok(self) -> None:
        """Reordering without additions isn't checked."""
        old = make_table(columns={"A": "string", "B": "string"})
        new = make_table(columns={"B": "string", "A": "string"})
        assert validate_column_order(old, new, "T") is None

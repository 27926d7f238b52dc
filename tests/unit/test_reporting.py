"""
Unit tests for the markdown reports.
"""

from kustokit.changes import Change, Comment
from kustokit.models import Cluster, CommentKind, EntityKind, Operation
from kustokit.reporting import (
    NO_CHANGES,
    render_apply_outcomes,
    render_changes,
    render_follower,
    render_target,
)


def _change(markdown: str, comment: Comment = None) -> Change:
    return Change(
        entity_kind=EntityKind.TABLE,
        entity_name="Events",
        operation=Operation.CREATE,
        markdown=markdown,
        comment=comment,
    )


class TestRenderChanges:
    """Tests for render_changes."""

    def test_no_changes(self) -> None:
        """An empty plan says so."""
        assert render_changes("# prod", []) == f"# prod\n{NO_CHANGES}\n"

    def test_comments_before_changes(self) -> None:
        """Comments are listed as alerts ahead of the change sections."""
        changes = [
            _change("## Table Events"),
            _change("## Table Other", Comment(CommentKind.WARNING, "Check the backfill")),
        ]
        report = render_changes("# prod", changes)
        assert report.startswith("# prod\n> [!WARNING]\n> Check the backfill\n")
        assert report.index("[!WARNING]") < report.index("## Table Events")
        assert report.index("## Table Events") < report.index("## Table Other")
        assert NO_CHANGES not in report


class TestHeadings:
    """Tests for the section headings."""

    def test_target(self) -> None:
        """Targets are named by cluster, database and url."""
        cluster = Cluster(name="prod", url="https://prod.kusto.windows.net")
        report = render_target(cluster, "Telemetry", [])
        assert report.startswith("# prod/Telemetry (https://prod.kusto.windows.net)\n")

    def test_follower(self) -> None:
        """Followers are named by url and database."""
        report = render_follower("https://f.kusto.windows.net", "Telemetry", [])
        assert report.startswith("# Changes for follower database https://f.kusto.windows.net/Telemetry\n")


class TestRenderApplyOutcomes:
    """Tests for render_apply_outcomes."""

    def test_outcomes(self) -> None:
        """Each target is listed with its outcome."""
        report = render_apply_outcomes({
            "prod/Telemetry": None,
            "test/Telemetry": RuntimeError("boom"),
        })
        assert report == "# Apply results\n\n- ✅ prod/Telemetry\n- ❌ test/Telemetry: boom\n"

"""
Shared pytest fixtures for kustokit tests.

Provides a scripted fake executor, environment management and a sample
deployment folder.
"""

import os
from pathlib import Path
from typing import Dict, Generator

import pytest

from tests.fixtures import FakeExecutor, RecordingSleep


@pytest.fixture
def fake_executor() -> FakeExecutor:
    """A fresh fake executor."""
    return FakeExecutor()


@pytest.fixture
def no_sleep() -> RecordingSleep:
    """A sleep function that returns immediately."""
    return RecordingSleep()


@pytest.fixture
def clean_env() -> Generator[None, None, None]:
    """
    Fixture that removes KUSTOKIT_* variables for the test duration.

    Restores the original values after the test completes.
    """
    saved: Dict[str, str] = {k: v for k, v in os.environ.items() if k.startswith("KUSTOKIT_")}
    for key in saved:
        del os.environ[key]
    yield
    for key in [k for k in os.environ if k.startswith("KUSTOKIT_")]:
        del os.environ[key]
    os.environ.update(saved)


@pytest.fixture
def deployment(tmp_path: Path) -> Path:
    """
    A deployment folder with one cluster and a small database.

    Layout:
        clusters.yml
        Telemetry/database.yml
        Telemetry/functions/Summarize.yml
    """
    (tmp_path / "clusters.yml").write_text(
        "connections:\n"
        "  - name: prod\n"
        "    url: https://prod.kusto.windows.net\n"
    )
    database = tmp_path / "Telemetry"
    (database / "functions").mkdir(parents=True)
    (database / "database.yml").write_text(
        "defaultRetentionAndCache:\n"
        "  retention: 30d\n"
        "  hotCache: 7d\n"
        "admins:\n"
        "  - id: aadgroup=admins@contoso.com\n"
        "    name: Admins\n"
        "tables:\n"
        "  Events:\n"
        "    folder: raw\n"
        "    columns:\n"
        "      Timestamp: datetime\n"
        "      Name: string\n"
        "functions:\n"
        "  Summarize:\n"
        "    folder: reports\n"
    )
    (database / "functions" / "Summarize.yml").write_text(
        "body: |\n"
        "  Events\n"
        "  | summarize count() by Name\n"
    )
    return tmp_path

"""
Integration test fixtures for kustokit.

Provides a live executor and cleanup of created tables. Every test in this
folder is skipped unless KUSTOKIT_TEST_CLUSTER_URL names a cluster the Azure
CLI login can reach; KUSTOKIT_TEST_DATABASE names the scratch database
(default ``kustokit_test``).
"""

import logging
import os
import uuid
from dataclasses import dataclass, field
from typing import Generator, List

import pytest

from kustokit.exceptions import ExecutorError
from kustokit.executors import KustoExecutor
from kustokit.models import bracket_if_identifier

logger = logging.getLogger(__name__)

CLUSTER_URL = os.getenv("KUSTOKIT_TEST_CLUSTER_URL", "")
DATABASE = os.getenv("KUSTOKIT_TEST_DATABASE", "kustokit_test")


def pytest_collection_modifyitems(config: pytest.Config, items: List[pytest.Item]) -> None:
    skip = pytest.mark.skip(reason="KUSTOKIT_TEST_CLUSTER_URL not set")
    for item in items:
        if "integration" in item.nodeid.split("/"):
            item.add_marker(pytest.mark.integration)
            if not CLUSTER_URL:
                item.add_marker(skip)


@dataclass
class ResourceTracker:
    """Tracks created tables for cleanup after tests."""

    tables: List[str] = field(default_factory=list)

    def add_table(self, name: str) -> None:
        """Track a table for cleanup."""
        if name not in self.tables:
            self.tables.append(name)


@pytest.fixture(scope="session")
def database_name() -> str:
    return DATABASE


@pytest.fixture(scope="session")
def kusto_executor(database_name: str) -> Generator[KustoExecutor, None, None]:
    """
    Session-scoped executor for the test cluster.

    Skips the session when the cluster can't be reached.
    """
    executor = KustoExecutor(CLUSTER_URL)
    try:
        executor.execute_query(database_name, "print 1")
        logger.info(f"Connected to {executor.cluster_url}/{database_name}")
    except ExecutorError as e:
        executor.close()
        pytest.skip(f"Could not connect to {CLUSTER_URL}: {e}")
    yield executor
    executor.close()


@pytest.fixture
def test_prefix() -> str:
    """Unique prefix for entities created by one test."""
    return f"kustokit_{uuid.uuid4().hex[:8]}"


@pytest.fixture
def resource_tracker() -> ResourceTracker:
    """Fixture that provides a resource tracker for the test."""
    return ResourceTracker()


@pytest.fixture(autouse=True)
def cleanup_resources(
    request: pytest.FixtureRequest,
    resource_tracker: ResourceTracker,
    database_name: str,
) -> Generator[None, None, None]:
    """
    Drops tracked tables after each test.

    Failed cleanups are logged but don't fail the test.
    """
    yield
    if not resource_tracker.tables:
        return
    executor: KustoExecutor = request.getfixturevalue("kusto_executor")
    for name in reversed(resource_tracker.tables):
        try:
            executor.execute_admin_command(database_name, f".drop table {bracket_if_identifier(name)} ifexists")
            logger.info(f"Cleaned up table: {name}")
        except ExecutorError as e:
            logger.warning(f"Failed to cleanup table {name}: {e}")

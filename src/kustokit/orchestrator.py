"""
Run orchestration.

The orchestrator ties the pieces together for one deployment folder:

    <deployment>/clusters.yml        targets, in rollout order
    <deployment>/<database>/...      the desired state

Diff mode plans every target and reports the changes. Apply mode runs the
writers against every target, recording failures per target and moving on
to the next one.
"""

import logging
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from kustokit.changes import Change, applicable_scripts, is_valid, plan, plan_capacity_policy, plan_follower
from kustokit.config import EngineSettings
from kustokit.executors import ExecutionResult, Executor, KustoExecutor, default_writers
from kustokit.loaders import Loader, default_loaders, load_capacity_policy, load_follower, load_observed
from kustokit.models import Clusters, Database, FollowerDatabase, RunMode, bracket_if_identifier
from kustokit.reporting import (
    log_planned_scripts,
    render_apply_outcomes,
    render_cluster,
    render_follower,
    render_target,
)
from kustokit.yaml_schema import load_database, load_registry, write_database

logger = logging.getLogger(__name__)

ExecutorFactory = Callable[[str], Executor]


def _deployment_folder(path: Union[str, Path]) -> Path:
    path = Path(path)
    return path.parent if path.is_file() else path


class Orchestrator:
    """
    Runs diff, apply, import and cluster diff for a deployment.

    Args:
        executor_factory: Builds an executor for a cluster url
        settings: Engine settings, defaults to ``EngineSettings.from_env()``
        loaders: Builds the loader list for one target
        sleep: Sleep function used while polling, injectable for tests
        now: Fixed reference time for planning, injectable for tests
    """

    def __init__(
        self,
        executor_factory: ExecutorFactory = KustoExecutor,
        settings: Optional[EngineSettings] = None,
        loaders: Optional[Callable[[EngineSettings], List[Loader]]] = None,
        sleep: Callable[[float], None] = time.sleep,
        now: Optional[datetime] = None,
    ):
        self.executor_factory = executor_factory
        self.settings = settings or EngineSettings.from_env()
        self.loaders = loaders or default_loaders
        self.sleep = sleep
        self.now = now

    # =========================================================================
    # DIFF
    # =========================================================================

    def diff(self, deployment: Union[str, Path], database_name: str) -> Tuple[str, bool]:
        """
        Plan every target and render the review report.

        Returns:
            (markdown report, True if every plan is valid)
        """
        folder = _deployment_folder(deployment)
        registry = load_registry(folder)
        desired = load_database(folder, database_name)
        escaped = bracket_if_identifier(database_name)

        sections = []
        valid = True
        for cluster in registry.connections:
            logger.info(f"Generating diff markdown for {folder / database_name} => {cluster.url}/{escaped}")
            with self.executor_factory(cluster.url) as executor:
                observed = load_observed(executor, database_name, self.loaders(self.settings))
            changes = plan(observed, desired, escaped, self.settings, self.now)
            valid = valid and is_valid(changes)
            sections.append(render_target(cluster, escaped, changes))
            log_planned_scripts(cluster.url, changes)

        for url, follower in desired.followers.items():
            changes = self._plan_follower(url, follower, database_name)
            valid = valid and is_valid(changes)
            sections.append(render_follower(url, follower.database_name or database_name, changes))

        return "".join(sections), valid

    def _plan_follower(self, url: str, follower: FollowerDatabase, database_name: str) -> List[Change]:
        name = follower.database_name or database_name
        logger.info(f"Generating diff markdown for follower {url}/{name}")
        desired = follower.model_copy(update={"database_name": name})
        with self.executor_factory(url) as executor:
            observed = load_follower(executor, name, self.settings.max_retries)
        return plan_follower(observed, desired)

    # =========================================================================
    # APPLY
    # =========================================================================

    def apply(self, deployment: Union[str, Path], database_name: str) -> Tuple[str, bool]:
        """
        Apply the desired state to every target.

        A failing target is recorded and the run continues with the next
        one.

        Returns:
            (markdown report of per-target outcomes, True if every target succeeded)
        """
        folder = _deployment_folder(deployment)
        registry = load_registry(folder)
        desired = load_database(folder, database_name)

        outcomes: Dict[str, Optional[Exception]] = {}
        for cluster in registry.connections:
            target = f"{cluster.name}/{database_name} ({cluster.url})"
            logger.info(f"Generating and applying script for {folder / database_name} => {target}")
            outcomes[target] = self._record(self._apply_target, cluster.url, registry, desired, database_name)

        for url, follower in desired.followers.items():
            name = follower.database_name or database_name
            target = f"follower {url}/{name}"
            outcomes[target] = self._record(self._apply_follower, url, follower, database_name)

        valid = all(error is None for error in outcomes.values())
        return render_apply_outcomes(outcomes), valid

    @staticmethod
    def _record(action: Callable[..., object], *args: Any) -> Optional[Exception]:
        try:
            action(*args)
        except Exception as e:
            logger.error(f"Apply failed: {e}")
            return e
        return None

    def _apply_target(
        self, url: str, registry: Clusters, desired: Database, database_name: str
    ) -> List[ExecutionResult]:
        results: List[ExecutionResult] = []
        writers = default_writers(self.settings, registry.capacity_policy, self.sleep)
        with self.executor_factory(url) as executor:
            observed = load_observed(executor, database_name, self.loaders(self.settings))
            for writer in writers:
                results.extend(writer.write(desired, observed, database_name, executor))
        return results

    def _apply_follower(self, url: str, follower: FollowerDatabase, database_name: str) -> List[str]:
        # Follower commands are cluster scoped and run one at a time
        changes = self._plan_follower(url, follower, database_name)
        submitted = []
        with self.executor_factory(url) as executor:
            for script in applicable_scripts(changes):
                logger.info(f"Applying follower script:\n{script.text}")
                executor.execute_admin_command("", script.text)
                submitted.append(script.text)
        return submitted

    # =========================================================================
    # IMPORT AND CLUSTER DIFF
    # =========================================================================

    def import_database(
        self, deployment: Union[str, Path], database_name: str, include_columns: bool = False
    ) -> Path:
        """
        Write the live state of the first target to the desired-state folder.

        Args:
            deployment: Deployment folder
            database_name: Database to import
            include_columns: Keep table columns; they are dropped by default

        Returns:
            Path of the written database.yml
        """
        folder = _deployment_folder(deployment)
        registry = load_registry(folder)
        if not registry.connections:
            raise ValueError(f"No clusters to import from in {folder}")

        cluster = registry.connections[0]
        logger.info(f"Importing {database_name} from {cluster.url}")
        with self.executor_factory(cluster.url) as executor:
            observed = load_observed(executor, database_name, self.loaders(self.settings))
        if not include_columns:
            for table in observed.tables.values():
                table.columns = None
        return write_database(observed, folder, database_name, self.settings)

    def diff_clusters(self, deployment: Union[str, Path]) -> Tuple[str, bool]:
        """
        Compare the declared capacity policy with every cluster's live policy.

        Returns:
            (markdown report, True)
        """
        folder = _deployment_folder(deployment)
        registry = load_registry(folder)
        sections = []
        for cluster in registry.connections:
            logger.info(f"Generating cluster diff for {cluster.name}")
            with self.executor_factory(cluster.url) as executor:
                current = load_capacity_policy(executor, self.settings.max_retries)
            changes = plan_capacity_policy(cluster.name, current, registry.capacity_policy)
            sections.append(render_cluster(cluster, changes))
        # Capacity differences never invalidate the run
        return "".join(sections), True

    def run(self, deployment: Union[str, Path], database_name: str, mode: RunMode) -> Tuple[str, bool]:
        """Run diff or apply mode."""
        if RunMode(mode) is RunMode.APPLY:
            return self.apply(deployment, database_name)
        return self.diff(deployment, database_name)


def run(
    registry_path: Union[str, Path],
    database_name: str,
    mode: RunMode = RunMode.DIFF,
    executor_factory: ExecutorFactory = KustoExecutor,
    settings: Optional[EngineSettings] = None,
) -> Tuple[str, bool]:
    """
    Run diff or apply for one database across the registered clusters.

    Args:
        registry_path: clusters.yml or the deployment folder holding it
        database_name: Database folder below the deployment
        mode: ``diff`` or ``apply``
        executor_factory: Builds an executor for a cluster url
        settings: Engine settings, defaults to ``EngineSettings.from_env()``

    Returns:
        (markdown report, validity)
    """
    return Orchestrator(executor_factory, settings).run(registry_path, database_name, mode)

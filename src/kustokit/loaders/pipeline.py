"""
Observed-state loading pipeline.
"""

import logging
from typing import List, Optional

from kustokit.config import EngineSettings
from kustokit.executors.base import Executor
from kustokit.models import Database

from .base import Loader
from .database import (
    CleanupLoader,
    EntityGroupLoader,
    PartitioningPolicyLoader,
    PrincipalLoader,
    RetentionAndCacheLoader,
)
from .entities import (
    ContinuousExportLoader,
    ExternalTableLoader,
    FunctionLoader,
    MaterializedViewLoader,
    TableLoader,
)

logger = logging.getLogger(__name__)


def default_loaders(settings: Optional[EngineSettings] = None) -> List[Loader]:
    """The loader list, in execution order."""
    retries = (settings or EngineSettings()).max_retries
    return [
        PrincipalLoader(retries),
        RetentionAndCacheLoader(retries),
        TableLoader(retries),
        FunctionLoader(retries),
        MaterializedViewLoader(retries),
        ExternalTableLoader(retries),
        ContinuousExportLoader(retries),
        EntityGroupLoader(retries),
        # Attaches to tables and views loaded above
        PartitioningPolicyLoader(retries),
        CleanupLoader(retries),
    ]


def load_observed(
    executor: Executor,
    database_name: str,
    loaders: Optional[List[Loader]] = None,
) -> Database:
    """
    Assemble the observed snapshot of a live database.

    Args:
        executor: Executor bound to the cluster
        database_name: Database to load
        loaders: Loaders to run, defaults to ``default_loaders()``

    Returns:
        The observed database

    Raises:
        ExecutorError: If a query fails
    """
    observed = Database(name=database_name)
    for loader in loaders if loaders is not None else default_loaders():
        logger.debug(f"Running {type(loader).__name__} for {database_name}")
        loader.load(observed, database_name, executor)
    logger.info(
        f"Loaded {database_name}: {len(observed.tables)} tables, {len(observed.functions)} functions, "
        f"{len(observed.materialized_views)} materialized views"
    )
    return observed

"""
Executor backed by the official ``azure-kusto-data`` client.
"""

import logging
from typing import List, Optional

from azure.kusto.data import KustoClient, KustoConnectionStringBuilder
from azure.kusto.data.exceptions import KustoError, KustoServiceError, KustoThrottlingError

from kustokit.exceptions import CommandRejectedError, ExecutorError, TransientExecutorError
from kustokit.models import to_cluster_url

from .base import Executor, Row

logger = logging.getLogger(__name__)

# HTTP statuses worth retrying
TRANSIENT_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})


class KustoExecutor(Executor):
    """
    Runs commands through a ``KustoClient``.

    Authenticates with the Azure CLI login unless a connection string
    builder is given.

    Args:
        cluster: Cluster url or short cluster name
        connection: Optional prepared connection string builder
    """

    def __init__(self, cluster: str, connection: Optional[KustoConnectionStringBuilder] = None):
        self.cluster_url = to_cluster_url(cluster)
        connection = connection or KustoConnectionStringBuilder.with_az_cli_authentication(self.cluster_url)
        self.client = KustoClient(connection)

    def execute_query(self, database: str, command: str) -> List[Row]:
        try:
            response = self.client.execute_query(database or None, command)
        except KustoError as e:
            self._handle_error(e, command)
        return self._rows(response)

    def execute_admin_command(self, database: str, command: str) -> List[Row]:
        try:
            response = self.client.execute_mgmt(database or None, command)
        except KustoError as e:
            self._handle_error(e, command)
        return self._rows(response)

    def close(self) -> None:
        self.client.close()

    @staticmethod
    def _rows(response) -> List[Row]:
        if not response.primary_results:
            return []
        return [row.to_dict() for row in response.primary_results[0]]

    def _handle_error(self, error: KustoError, command: str) -> None:
        """Translate a client error into the executor taxonomy and raise it."""
        if isinstance(error, KustoThrottlingError):
            logger.warning(f"Request throttled by {self.cluster_url}: {error}")
            raise TransientExecutorError(f"Throttled: {error}", command=command) from error
        if isinstance(error, KustoServiceError):
            status = getattr(getattr(error, "http_response", None), "status_code", None)
            if status in TRANSIENT_STATUS_CODES:
                logger.warning(f"Transient failure ({status}) from {self.cluster_url}: {error}")
                raise TransientExecutorError(f"Service unavailable: {error}", command=command) from error
            logger.error(f"Command rejected by {self.cluster_url}: {error}")
            raise CommandRejectedError(f"Command rejected: {error}", command=command) from error
        logger.error(f"Request to {self.cluster_url} failed: {error}")
        raise ExecutorError(str(error), command=command) from error

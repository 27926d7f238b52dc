"""
Cluster registry loader.

The registry (``<deployment>/clusters.yml``) lists the clusters a database is
rolled out to, in order, and optionally the capacity policy every cluster
should carry:

    connections:
      - name: prod-eu
        url: https://prod-eu.westeurope.kusto.windows.net
    capacityPolicy:
      ingestionCapacity:
        clusterMaximumConcurrentOperations: 512
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Union

from pydantic import ValidationError

from kustokit.exceptions import DesiredStateError, RegistryError
from kustokit.models import Clusters

from .loader import read_yaml

logger = logging.getLogger(__name__)

REGISTRY_FILE = "clusters.yml"


def _check_connections(clusters: Clusters, path: Path) -> None:
    for index, cluster in enumerate(clusters.connections):
        if not cluster.name.strip():
            raise RegistryError(f"Cluster at index {index} is missing a required 'name' property.", path)
        if not cluster.url.strip():
            raise RegistryError(f"Cluster '{cluster.name}' is missing a required 'url' property.", path)


def load_registry(path: Union[str, Path]) -> Clusters:
    """
    Load a cluster registry.

    Args:
        path: The registry file, or the deployment folder containing clusters.yml

    Returns:
        The registry

    Raises:
        RegistryError: If the file is missing, empty or malformed
    """
    path = Path(path)
    if path.is_dir():
        path = path / REGISTRY_FILE

    try:
        data = read_yaml(path)
    except DesiredStateError as e:
        raise RegistryError(f"Failed to read cluster registry: {e}", path) from e
    if not data:
        raise RegistryError("Clusters file is empty", path)

    try:
        clusters = Clusters.model_validate(data)
    except ValidationError as e:
        raise RegistryError(f"Failed to parse clusters file: {e}", path) from e
    _check_connections(clusters, path)

    logger.info(f"Loaded {len(clusters.connections)} clusters from {path}")
    return clusters

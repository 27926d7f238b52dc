"""
Desired-state documents on disk.

A database lives in ``<deployment>/<database>/``:

    database.yml                 the database document
    tables/<name>.yml            optional per-entity overlays, one folder
    functions/<name>.yml         per entity collection
    materialized-views/<name>.yml
    external-tables/<name>.yml
    continuous-exports/<name>.yml
    followers/<name>.yml

An overlay is merged over the inline entity of the same name. Writing splits
the document the same way: entities whose YAML spans at least
``min_file_lines`` lines get their own file.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Type, Union

import yaml
from pydantic import BaseModel, ValidationError

from kustokit.config import EngineSettings
from kustokit.exceptions import DesiredStateError
from kustokit.merge import merge_values
from kustokit.models import (
    YAML_SERIALIZATION,
    ContinuousExport,
    Database,
    ExternalTable,
    FollowerDatabase,
    Function,
    MaterializedView,
    Table,
)

from .dumper import dump_yaml

logger = logging.getLogger(__name__)

DATABASE_FILE = "database.yml"


@dataclass(frozen=True)
class EntityFolder:
    """Where one entity collection keeps its per-entity files."""

    folder: str
    collection: str
    model: Type[BaseModel]


ENTITY_FOLDERS: List[EntityFolder] = [
    EntityFolder("tables", "tables", Table),
    EntityFolder("functions", "functions", Function),
    EntityFolder("materialized-views", "materialized_views", MaterializedView),
    EntityFolder("external-tables", "external_tables", ExternalTable),
    EntityFolder("continuous-exports", "continuous_exports", ContinuousExport),
    EntityFolder("followers", "followers", FollowerDatabase),
]


def read_yaml(path: Path) -> Dict[str, Any]:
    """
    Read a YAML mapping.

    Raises:
        DesiredStateError: If the file is missing, unparsable or not a mapping
    """
    if not path.exists():
        raise DesiredStateError("File not found", path)

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise DesiredStateError(f"Invalid YAML: {e}", path) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise DesiredStateError(f"Expected a mapping, got {type(data).__name__}", path)
    return data


def _validate(model: Type[BaseModel], data: Dict[str, Any], path: Path) -> Any:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise DesiredStateError(f"Invalid {model.__name__} definition: {e}", path) from e


def _load_overlays(database: Database, base_path: Path) -> None:
    for entity_folder in ENTITY_FOLDERS:
        folder = base_path / entity_folder.folder
        if not folder.is_dir():
            continue
        collection = getattr(database, entity_folder.collection)
        for path in sorted(folder.glob("*.yml")):
            name = path.stem
            data = read_yaml(path)
            existing = collection.get(name)
            if existing is not None:
                data = merge_values(existing.model_dump(by_alias=True, exclude_unset=True), data)
            collection[name] = _validate(entity_folder.model, data, path)
            logger.debug(f"Loaded {entity_folder.collection} overlay {path}")


def load_database(deployment: Union[str, Path], database_name: str) -> Database:
    """
    Load the desired state of a database.

    Args:
        deployment: Deployment folder
        database_name: Database folder below the deployment

    Returns:
        The database document with all overlays merged

    Raises:
        DesiredStateError: If any file is missing or malformed
    """
    base_path = Path(deployment) / database_name
    path = base_path / DATABASE_FILE
    database = _validate(Database, read_yaml(path), path)
    _load_overlays(database, base_path)
    if not database.name:
        database.name = database_name

    logger.info(
        f"Loaded desired state of {database_name} from {base_path}: "
        f"{len(database.tables)} tables, {len(database.functions)} functions, "
        f"{len(database.materialized_views)} materialized views"
    )
    return database


def write_database(
    database: Database,
    deployment: Union[str, Path],
    database_name: str,
    settings: Optional[EngineSettings] = None,
) -> Path:
    """
    Write a database document to disk.

    The input is left untouched.

    Args:
        database: Document to write
        deployment: Deployment folder
        database_name: Database folder below the deployment
        settings: Supplies ``min_file_lines``

    Returns:
        Path of the written database.yml
    """
    min_file_lines = (settings or EngineSettings()).min_file_lines
    clone = database.model_copy(deep=True)
    base_path = Path(deployment) / database_name
    base_path.mkdir(parents=True, exist_ok=True)

    for entity_folder in ENTITY_FOLDERS:
        collection = getattr(clone, entity_folder.collection)
        for name in list(collection):
            text = dump_yaml(YAML_SERIALIZATION.dump(collection[name]))
            if text.count("\n") + 1 < min_file_lines:
                continue
            folder = base_path / entity_folder.folder
            folder.mkdir(exist_ok=True)
            (folder / f"{name}.yml").write_text(text, encoding="utf-8")
            del collection[name]

    path = base_path / DATABASE_FILE
    path.write_text(dump_yaml(YAML_SERIALIZATION.dump(clone)), encoding="utf-8")
    logger.info(f"Wrote {database_name} to {base_path}")
    return path

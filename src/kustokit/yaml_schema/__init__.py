"""
YAML desired-state documents and the cluster registry.
"""

from .dumper import SchemaDumper, dump_yaml
from .loader import ENTITY_FOLDERS, EntityFolder, load_database, read_yaml, write_database
from .registry import REGISTRY_FILE, load_registry

__all__ = [
    "SchemaDumper",
    "dump_yaml",
    "ENTITY_FOLDERS",
    "EntityFolder",
    "load_database",
    "read_yaml",
    "write_database",
    "REGISTRY_FILE",
    "load_registry",
]

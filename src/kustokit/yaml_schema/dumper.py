"""
YAML output for schema documents.
"""

from typing import Any

import yaml


class SchemaDumper(yaml.SafeDumper):
    """
    Safe dumper that writes multiline strings as literal blocks.

    Queries and function bodies stay readable in the written files.
    """

    def increase_indent(self, flow: bool = False, indentless: bool = False) -> Any:
        # Indent sequences under their parent key
        return super().increase_indent(flow, False)


def _represent_str(dumper: yaml.SafeDumper, value: str) -> yaml.ScalarNode:
    if "\n" in value:
        return dumper.represent_scalar("tag:yaml.org,2002:str", value, style="|")
    return dumper.represent_scalar("tag:yaml.org,2002:str", value)


SchemaDumper.add_representer(str, _represent_str)


def dump_yaml(data: Any) -> str:
    """Serialize plain data to YAML, keeping key order."""
    return yaml.dump(
        data,
        Dumper=SchemaDumper,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
        indent=2,
    )

"""
Stored function model.
"""

from __future__ import annotations

from typing import List

from .base import BaseSchemaModel, bracket_if_identifier
from .scripts import Script


def split_top_level(text: str, separator: str = ",") -> List[str]:
    """Split on a separator, ignoring separators nested in brackets or strings."""
    parts: List[str] = []
    depth = 0
    quote = ""
    current = []
    for char in text:
        if quote:
            if char == quote:
                quote = ""
        elif char in "'\"":
            quote = char
        elif char in "([{":
            depth += 1
        elif char in ")]}":
            depth -= 1
        elif char == separator and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    if "".join(current).strip():
        parts.append("".join(current))
    return parts


def bracket_parameters(parameters: str) -> str:
    """Escape every parameter name in a ``name:type, ...`` parameter list."""
    rendered = []
    for parameter in split_top_level(parameters):
        name, sep, rest = parameter.strip().partition(":")
        rendered.append(f"{bracket_if_identifier(name.strip())}{sep}{rest}")
    return ", ".join(rendered)


def _triple(value: str) -> str:
    return f"```{value}```"


class Function(BaseSchemaModel):
    """A stored function (or view when ``view`` is set)."""

    skip_validation: bool = False
    view: bool = False
    folder: str = ""
    doc_string: str = ""
    parameters: str = ""
    body: str = ""

    def create_scripts(self, name: str, is_new: bool = False) -> List[Script]:
        properties = ", ".join([
            f"skipvalidation={str(self.skip_validation).lower()}",
            f"view={str(self.view).lower()}",
            f"folder={_triple(self.folder)}",
            f"docstring={_triple(self.doc_string)}",
        ])
        parameters = bracket_parameters(self.parameters) if self.parameters.strip() else ""
        return [Script(
            "CreateOrAlterFunction", 40,
            f".create-or-alter function with({properties}) {name}({parameters}) {{ {self.body} }}",
        )]

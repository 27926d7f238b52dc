"""
Checks applied to planned changes.

Script checks are shallow: a script must be non-empty, must be a
control command (or an informational ``//`` line), and its brackets and
quotes must balance. Text inside string literals, triple-backtick blocks and
``//`` comments is skipped.

Column order checks catch tables whose new columns are inserted between
existing ones. Kusto keeps ordinal positions on ``.create-merge``, so such a
change silently breaks update policies that project by position.
"""

import logging
from typing import List, Optional

from kustokit.models import Script, Table

logger = logging.getLogger(__name__)

_CLOSERS = {")": "(", "]": "[", "}": "{"}
_FENCE = "```"


def _scan(text: str) -> List[str]:
    errors = []
    stack = []
    i = 0
    length = len(text)
    while i < length:
        char = text[i]
        if text.startswith(_FENCE, i):
            end = text.find(_FENCE, i + 3)
            if end < 0:
                errors.append(f"Unterminated ``` block starting at {i}")
                return errors
            i = end + 3
            continue
        if text.startswith("//", i):
            end = text.find("\n", i)
            i = length if end < 0 else end + 1
            continue
        if char in "'\"":
            verbatim = i > 0 and text[i - 1] == "@"
            j = i + 1
            while j < length:
                if text[j] == "\\" and not verbatim:
                    j += 2
                    continue
                if text[j] == char:
                    break
                j += 1
            if j >= length:
                errors.append(f"Unterminated string starting at {i}")
                return errors
            i = j + 1
            continue
        if char in "([{":
            stack.append((char, i))
        elif char in _CLOSERS:
            if not stack or stack[-1][0] != _CLOSERS[char]:
                errors.append(f"Unbalanced '{char}' at {i}")
                return errors
            stack.pop()
        i += 1
    for opener, position in stack:
        errors.append(f"Unclosed '{opener}' at {position}")
    return errors


def validate_script(script: Script) -> List[str]:
    """
    Check a script's structure.

    Returns:
        Diagnostics; an empty list means the script looks well formed
    """
    text = script.text.strip()
    if not text:
        return ["Script is empty"]
    if text.startswith("//"):
        if script.is_informational:
            return []
        return ["Comment-only scripts must be informational"]
    if not text.startswith("."):
        return ["Script is not a control command"]
    return _scan(text)


def check_scripts(scripts: List[Script]) -> None:
    """Invalidate every script that fails the structural check."""
    for script in scripts:
        for diagnostic in validate_script(script):
            logger.warning(f"Script {script.kind} failed validation: {diagnostic}")
            script.invalidate(diagnostic)


def validate_column_order(old: Optional[Table], new: Table, name: str) -> Optional[str]:
    """
    Check that new columns are only appended after the existing ones.

    Returns:
        A description of the violation, or None when the order is fine
    """
    if not new.columns or old is None or not old.columns:
        return None

    existing = set(old.columns)
    proposed = list(new.columns)
    added = [column for column in proposed if column not in existing]
    if not added:
        return None

    first_added = proposed.index(added[0])
    misplaced = [column for column in proposed[first_added + 1:] if column in existing]
    if not misplaced:
        return None

    return (
        f"Column order violation detected in table '{name}'. "
        f"New columns must be appended to the end of the table definition. "
        f"Found existing columns ({', '.join(misplaced)}) positioned after new columns "
        f"({', '.join(added)}). Existing columns keep their ordinal positions, so update "
        f"policies that rely on column order will fail. Move all new columns to the end "
        f"of the columns list."
    )

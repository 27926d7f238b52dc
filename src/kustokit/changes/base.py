"""
Change plan types.

A plan is an ordered list of ``Change`` objects, one per entity (or per
principal role, follower setting, deletion). Each change carries the scripts
that bring the target to the desired state and the markdown shown in review.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from kustokit.models import CommentKind, EntityKind, Operation, Script


@dataclass
class Comment:
    """A review note attached to a change, rendered as a GitHub alert."""

    kind: CommentKind
    text: str
    fails_rollout: bool = False

    def to_markdown(self) -> str:
        return f"> [!{self.kind.value.upper()}]\n> {self.text}\n"


@dataclass
class Change:
    """
    The difference for a single entity.

    Attributes:
        entity_kind: Kind of entity the scripts mutate
        entity_name: Entity the change applies to
        operation: Create, Alter or Delete
        scripts: Scripts to run, in planning order
        markdown: Rendered review section
        comment: Optional review note
    """

    entity_kind: EntityKind
    entity_name: str
    operation: Operation
    scripts: List[Script] = field(default_factory=list)
    markdown: str = ""
    comment: Optional[Comment] = None

    @property
    def is_valid(self) -> bool:
        """True if every script may be applied and no comment blocks the rollout."""
        if self.comment is not None and self.comment.fails_rollout:
            return False
        return all(script.is_valid for script in self.scripts)

    def __str__(self) -> str:
        status = "✅" if self.is_valid else "❌"
        return (
            f"{status} {self.operation.value} {self.entity_kind.value} "
            f"{self.entity_name}: {len(self.scripts)} script(s)"
        )


def is_valid(changes: Iterable[Change]) -> bool:
    """Verdict for a plan: valid unless some script is invalid or a comment fails the rollout."""
    return all(change.is_valid for change in changes)


def applicable_scripts(changes: Iterable[Change]) -> List[Script]:
    """Valid, non-informational scripts in stable execution order."""
    scripts = [
        script
        for change in changes
        for script in change.scripts
        if script.is_valid and not script.is_informational
    ]
    return sorted(scripts, key=lambda s: s.order)

"""
Change planning: compare observed and desired state and produce reviewable,
ordered scripts.
"""

from .base import Change, Comment, applicable_scripts, is_valid
from .cluster import plan_capacity_policy
from .followers import plan_follower
from .planner import plan
from .validation import check_scripts, validate_column_order, validate_script

__all__ = [
    "Change",
    "Comment",
    "applicable_scripts",
    "is_valid",
    "plan",
    "plan_capacity_policy",
    "plan_follower",
    "check_scripts",
    "validate_column_order",
    "validate_script",
]

"""Action helpers orchestrating git operations for each workflow step."""

from .rebase import rebase_solution
from .regenerate import checkout_main, regenerate_exercise
from .safety import create_backup_ref, ensure_no_operation_in_progress
from .sync import push_with_lease

__all__ = [
    "checkout_main",
    "create_backup_ref",
    "ensure_no_operation_in_progress",
    "push_with_lease",
    "rebase_solution",
    "regenerate_exercise",
]

"""Git related helpers for coursesync."""

from coursesync.git.facade import GitCommandError, GitFacade
from coursesync.git.observe import RepoObserver
from coursesync.git.parse import (
    DEFAULT_BRANCH_PATTERN,
    parse_ref_listing,
    select_course_branches,
    short_branch_name,
)

__all__ = [
    "DEFAULT_BRANCH_PATTERN",
    "GitCommandError",
    "GitFacade",
    "RepoObserver",
    "parse_ref_listing",
    "select_course_branches",
    "short_branch_name",
]

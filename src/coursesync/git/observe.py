from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from coursesync.core.models import DEFAULT_SOLUTION_SUFFIX, CourseBranches, RepoCursor
from coursesync.git.parse import (
    DEFAULT_BRANCH_PATTERN,
    parse_ref_listing,
    select_course_branches,
)

if TYPE_CHECKING:
    from coursesync.git.facade import GitFacade

_BRANCH_REF_ROOTS = ("refs/heads", "refs/remotes")

# Markers git leaves in its directory while a sequencer operation is paused.
_IN_PROGRESS_MARKERS: tuple[tuple[str, str], ...] = (
    ("rebase-merge", "rebase"),
    ("rebase-apply", "rebase"),
    ("CHERRY_PICK_HEAD", "cherry-pick"),
    ("MERGE_HEAD", "merge"),
)


class RepoObserver:
    """Read-only inspection of the repository the workflow operates on."""

    def __init__(self, facade: GitFacade) -> None:
        """Initialise the observer with a facade used for read-only commands."""
        self._facade = facade
        self._repo_path = Path(facade.repo_path)

    @property
    def repo_path(self) -> Path:
        """Return the repository root being observed."""
        return self._repo_path

    def discover_branches(
        self,
        *,
        pattern: str = DEFAULT_BRANCH_PATTERN,
        solution_suffix: str = DEFAULT_SOLUTION_SUFFIX,
    ) -> CourseBranches:
        """List local and remote-tracking course branches."""
        result = self._facade.list_refs(*_BRANCH_REF_ROOTS)
        refs = parse_ref_listing(result.stdout or "")
        names = select_course_branches(refs, pattern)
        return CourseBranches(names=tuple(names), solution_suffix=solution_suffix)

    def cursor(self) -> RepoCursor:
        """Return the branch currently checked out, ``None`` on a detached HEAD."""
        result = self._facade.run(["git", "branch", "--show-current"], check=False)
        branch = (result.stdout or "").strip()
        return RepoCursor(branch=branch or None)

    def git_dir(self) -> Path:
        """Return the absolute path of the repository's git directory."""
        result = self._facade.run(["git", "rev-parse", "--absolute-git-dir"])
        return Path((result.stdout or "").strip())

    def operation_in_progress(self) -> str | None:
        """Return the name of a paused rebase/cherry-pick/merge, if any."""
        git_dir = self.git_dir()
        for marker, operation in _IN_PROGRESS_MARKERS:
            if (git_dir / marker).exists():
                return operation
        return None

    def commit_id(self, ref: str) -> str:
        """Resolve ``ref`` to the commit it points at."""
        return self._facade.rev_parse(ref)

    def has_local_branch(self, branch: str) -> bool:
        """Return whether ``refs/heads/<branch>`` exists."""
        result = self._facade.run(
            ["git", "show-ref", "--verify", "--quiet", f"refs/heads/{branch}"],
            check=False,
        )
        return result.returncode == 0


__all__ = ["RepoObserver"]

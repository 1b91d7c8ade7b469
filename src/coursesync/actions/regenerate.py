"""Regeneration of exercise branches from their solution branches."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .safety import create_backup_ref

if TYPE_CHECKING:
    from collections.abc import Callable

    from coursesync.git.facade import GitFacade
    from coursesync.git.observe import RepoObserver
    from coursesync.io.logging import StructuredLogger


def regenerate_exercise(
    facade: GitFacade,
    observer: RepoObserver,
    logger: StructuredLogger,
    branch: str,
    solution: str,
    *,
    commit_id: str | None = None,
    on_commit: Callable[[str], None] | None = None,
    backup: bool = True,
) -> str:
    """Recreate ``branch`` on top of ``solution`` and replay its unique commit.

    The unique commit is the commit ``branch`` points at before regeneration,
    unless ``commit_id`` carries one recorded by an earlier attempt.
    ``on_commit`` receives the commit before anything is deleted. Returns the
    replayed commit id.
    """
    commit = commit_id or observer.commit_id(branch)
    if on_commit is not None:
        on_commit(commit)

    logger.info(
        "recreating exercise branch; if the cherry-pick fails, resolve conflicts then continue it",
        branch=branch,
        solution=solution,
        commit=commit,
    )
    facade.checkout(solution)
    if backup:
        create_backup_ref(facade, logger, branch, commit)
    if observer.has_local_branch(branch):
        facade.delete_branch(branch, force=True)
    facade.checkout(branch, create=True)
    facade.cherry_pick(commit)
    return commit


def checkout_main(facade: GitFacade, logger: StructuredLogger, main_branch: str) -> None:
    """Leave the working tree on ``main_branch``."""
    logger.info("checking out main branch", branch=main_branch)
    facade.checkout(main_branch)

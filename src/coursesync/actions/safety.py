"""Safety-focused git actions."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from coursesync.core.models import ConfigurationError

if TYPE_CHECKING:
    from coursesync.git.facade import GitFacade
    from coursesync.git.observe import RepoObserver
    from coursesync.io.logging import StructuredLogger


_BACKUP_PREFIX = "refs/backup/coursesync"


def _timestamp() -> str:
    return datetime.now(UTC).strftime("%Y%m%dT%H%M%SZ")


def create_backup_ref(
    facade: GitFacade,
    logger: StructuredLogger,
    branch: str,
    commit: str,
) -> str:
    """Point a timestamped backup ref for ``branch`` at ``commit`` and return its name."""
    ref_name = f"{_BACKUP_PREFIX}/{_timestamp()}/{branch}"
    facade.run(["git", "update-ref", ref_name, commit])
    logger.info("created backup ref", ref=ref_name, sha=commit, branch=branch)
    return ref_name


def ensure_no_operation_in_progress(observer: RepoObserver, logger: StructuredLogger) -> None:
    """Refuse to go on while git is in the middle of a rebase, cherry-pick or merge."""
    operation = observer.operation_in_progress()
    if operation is None:
        return
    logger.error("git operation in progress", operation=operation)
    msg = (
        f"A {operation} is in progress in {observer.repo_path}; "
        f"finish it with `git {operation} --continue` or abort it first."
    )
    raise ConfigurationError(msg)

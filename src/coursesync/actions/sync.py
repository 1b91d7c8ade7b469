"""Synchronisation related git actions."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from coursesync.git.facade import GitFacade
    from coursesync.io.logging import StructuredLogger


_DEFAULT_REMOTE = "origin"


def push_with_lease(
    facade: GitFacade,
    logger: StructuredLogger,
    branch: str,
    *,
    remote: str = _DEFAULT_REMOTE,
) -> None:
    """Force-push ``branch`` to ``remote``, refusing if the remote ref moved."""
    logger.info("force-pushing branch with lease", branch=branch, remote=remote)
    facade.push_with_lease(remote=remote, refspecs=[branch])

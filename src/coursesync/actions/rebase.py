"""Rebase related actions."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from coursesync.git.facade import GitFacade
    from coursesync.io.logging import StructuredLogger


def rebase_solution(
    facade: GitFacade,
    logger: StructuredLogger,
    branch: str,
    upstream: str,
    *,
    interactive: bool = True,
    update_refs: bool = True,
) -> None:
    """Check out ``branch`` and rebase it onto ``upstream``.

    With ``update_refs`` every branch pointing into the rebased chain (the
    earlier solution branches) is moved to the rewritten commits as well.
    An interactive rebase keeps the terminal attached so the operator can
    edit the todo list and resolve conflicts. A conflict surfaces as
    :class:`~coursesync.git.facade.GitCommandError`; the operator then
    finishes with ``git rebase --continue``.
    """
    opts: list[str] = []
    if interactive:
        opts.append("--interactive")
    if update_refs:
        opts.append("--update-refs")

    logger.info(
        "rebasing solution branch; if conflicts occur, resolve them and continue the rebase",
        branch=branch,
        upstream=upstream,
        opts=opts,
    )
    facade.checkout(branch)
    facade.rebase(upstream, opts=opts or None, capture_output=not interactive)

"""Git command execution facade."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, MutableSequence, Sequence
    from coursesync.io.logging import StructuredLogger



class GitCommandError(RuntimeError):
    """Raised when a git command exits with a non-zero status."""

    def __init__(
        self,
        command: Sequence[str],
        returncode: int,
        stdout: str,
        stderr: str,
    ) -> None:
        """Initialise the error with details from a git command invocation."""
        self.command = tuple(command)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(f"`{' '.join(self.command)}` failed with exit status {returncode}")

    @property
    def subcommand(self) -> str | None:
        """Return the git subcommand (``rebase``, ``cherry-pick``...) that failed."""
        if len(self.command) > 1 and self.command[0] == "git":
            return self.command[1]
        return None


class GitFacade:
    """Run git in one repository, recording every command issued.

    In dry-run mode commands are logged and recorded but never spawned, and
    every call reports success with empty output.
    """

    def __init__(
        self,
        repo_path: Path,
        logger: StructuredLogger,
        *,
        dry_run: bool = False,
        env: Mapping[str, str] | None = None,
    ) -> None:
        """Create a facade bound to a repository root and logger."""
        self._repo_path = Path(repo_path)
        self._logger = logger
        self._dry_run = dry_run
        self._env = dict(env or {})
        self._command_history: MutableSequence[dict[str, object]] = []
        self._subprocess_run: Callable[
            ..., subprocess.CompletedProcess[str],
        ] = subprocess.run

    @property
    def repo_path(self) -> Path:
        """Return the repository root for the facade."""
        return self._repo_path

    @property
    def dry_run(self) -> bool:
        """Return whether the facade operates in dry-run mode."""
        return self._dry_run

    @property
    def command_history(self) -> Sequence[dict[str, object]]:
        """Return an immutable view of recorded commands."""
        return tuple(self._command_history)

    def run(
        self,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        timeout: float | None = None,
        check: bool = True,
        capture_output: bool = True,
    ) -> subprocess.CompletedProcess[str]:
        """Execute a git command while handling dry-run and logging.

        ``capture_output=False`` lets the command talk to the terminal, which
        interactive commands such as ``git rebase --interactive`` need; the
        returned ``stdout`` and ``stderr`` are then ``None``.
        """
        command = tuple(str(part) for part in args)
        working_dir = Path(cwd) if cwd is not None else self._repo_path
        entry: dict[str, object] = {
            "command": list(command),
            "cwd": str(working_dir),
            "interactive": not capture_output,
            "dry_run": self._dry_run,
        }
        self._logger.info(
            "executing git command",
            command=list(command),
            cwd=str(working_dir),
            dry_run=self._dry_run,
        )
        if self._dry_run:
            self._command_history.append({**entry, "returncode": 0})
            return subprocess.CompletedProcess(command, 0, stdout="", stderr="")

        completed = self._subprocess_run(
            command,
            cwd=str(working_dir),
            capture_output=capture_output,
            text=True,
            timeout=timeout,
            check=False,
            env=self._env or None,
        )
        self._command_history.append({**entry, "returncode": completed.returncode})
        if completed.stdout:
            self._logger.debug("git stdout", stdout=completed.stdout)
        if completed.stderr:
            self._logger.debug("git stderr", stderr=completed.stderr)
        if check and completed.returncode != 0:
            raise GitCommandError(
                command,
                completed.returncode,
                completed.stdout or "",
                completed.stderr or "",
            )
        return completed

    def list_refs(self, *patterns: str) -> subprocess.CompletedProcess[str]:
        """List full ref names below ``patterns`` (all refs when omitted)."""
        command: list[str] = ["git", "for-each-ref", "--format=%(refname)"]
        command.extend(patterns)
        return self.run(command)

    def rev_parse(self, ref: str) -> str:
        """Resolve ``ref`` to a commit id."""
        return self.run(["git", "rev-parse", "--verify", ref]).stdout.strip()

    def checkout(self, branch: str, *, create: bool = False) -> subprocess.CompletedProcess[str]:
        """Switch the working tree to ``branch``, creating it at HEAD when asked."""
        command: list[str] = ["git", "checkout"]
        if create:
            command.append("-b")
        command.append(branch)
        return self.run(command)

    def delete_branch(self, branch: str, *, force: bool = False) -> subprocess.CompletedProcess[str]:
        """Delete a local branch, even when unmerged if ``force`` is set."""
        return self.run(["git", "branch", "-D" if force else "-d", branch])

    def cherry_pick(self, commit: str) -> subprocess.CompletedProcess[str]:
        """Replay ``commit`` on top of the current branch."""
        return self.run(["git", "cherry-pick", commit])

    def rebase(
        self,
        upstream: str,
        *,
        opts: Sequence[str] | None = None,
        capture_output: bool = True,
    ) -> subprocess.CompletedProcess[str]:
        """Rebase the current branch onto ``upstream``."""
        command: list[str] = ["git", "rebase"]
        if opts:
            command.extend(opts)
        command.append(upstream)
        return self.run(command, capture_output=capture_output)

    def push_with_lease(self, remote: str, refspecs: Sequence[str]) -> subprocess.CompletedProcess[str]:
        """Force-push ``refspecs``, refusing when the remote ref moved since the last fetch."""
        return self.run(["git", "push", "--force-with-lease", remote, *refspecs])


__all__ = ["GitCommandError", "GitFacade"]

"""Shared fixtures for the coursesync test suite."""
from __future__ import annotations
import io
import subprocess
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

import pytest
from coursesync.git.facade import GitFacade
from coursesync.io.logging import StructuredLogger

@dataclass(frozen=True)
class GitResponse:
    """Represents a scripted response for a git command."""

    stdout: str = ""
    stderr: str = ""
    returncode: int = 0

Script = dict[tuple[str, ...], "list[GitResponse] | GitResponse"]

class ScriptQueue:
    """Queue managing scripted git responses for :class:`FakeGitFacade`."""

    def __init__(self) -> None:
        """Initialise an empty script queue."""
        self._scripts: deque[dict[tuple[str, ...], deque[GitResponse]]] = deque()
    def push(self, script: Script) -> None:
        """Append a new script that will be consumed by the next facade instance."""
        self._scripts.append(prepare_script(script))
    def pop(self) -> dict[tuple[str, ...], deque[GitResponse]]:
        """Return the next script or an empty script when none are queued."""
        if not self._scripts:
            return {}
        return self._scripts.popleft()
    def clear(self) -> None:
        """Remove all queued scripts."""
        self._scripts.clear()

def prepare_script(script: Script) -> dict[tuple[str, ...], deque[GitResponse]]:
    """Normalise a script so every command maps to a queue of responses."""
    prepared: dict[tuple[str, ...], deque[GitResponse]] = {}
    for command, responses in script.items():
        if isinstance(responses, GitResponse):
            prepared[command] = deque([responses])
        else:
            prepared[command] = deque(responses)
    return prepared

class FakeGitFacade(GitFacade):
    """Test double for :class:`coursesync.git.facade.GitFacade`.

    Only ``run`` is replaced, so the helper methods build their real command
    lines. Unscripted commands succeed with empty output unless ``strict``.
    """

    script_queue: ScriptQueue | None = None
    instances: list[FakeGitFacade] = []
    def __init__(
        self,
        repo_path: Path,
        logger: Any,
        *,
        dry_run: bool = False,
        env: dict[str, str] | None = None,
        script: Script | None = None,
        strict: bool = False,
    ) -> None:
        """Initialise the facade with scripted responses."""
        super().__init__(repo_path, logger, dry_run=dry_run, env=env)
        if script is not None:
            self._script = prepare_script(script)
        else:
            self._script = self.script_queue.pop() if self.script_queue is not None else {}
        self._strict = strict
        self.interactive_calls: list[tuple[str, ...]] = []
        FakeGitFacade.instances.append(self)
        self._subprocess_run = self._scripted_run
    @property
    def commands(self) -> list[tuple[str, ...]]:
        """Return the recorded commands as tuples."""
        return [tuple(entry["command"]) for entry in self.command_history]  # type: ignore[arg-type]
    def _scripted_run(
        self, command: tuple[str, ...], **kwargs: Any,
    ) -> subprocess.CompletedProcess[str]:
        """Answer ``command`` from the script instead of spawning git."""
        if not kwargs.get("capture_output", True):
            self.interactive_calls.append(command)
        response = self._resolve_response(command)
        return subprocess.CompletedProcess(
            command,
            response.returncode,
            stdout=response.stdout,
            stderr=response.stderr,
        )
    def _resolve_response(self, command: tuple[str, ...]) -> GitResponse:
        """Retrieve the scripted response for ``command``."""
        if command not in self._script:
            if self._strict:
                message = f"Unexpected git command: {command}"
                raise AssertionError(message)
            return GitResponse()
        responses = self._script[command]
        return responses.popleft() if len(responses) > 1 else responses[0]

@pytest.fixture
def logger() -> StructuredLogger:
    """Provide a structured logger backed by an in-memory stream."""
    return StructuredLogger(name="test", stream=io.StringIO())

@pytest.fixture
def response() -> type[GitResponse]:
    """Expose :class:`GitResponse` to test modules."""
    return GitResponse

@pytest.fixture
def fake_facade(tmp_path: Path, logger: StructuredLogger) -> Callable[..., FakeGitFacade]:
    """Return a factory building scripted facades bound to ``tmp_path``."""

    def factory(
        script: Script | None = None, *, dry_run: bool = False, strict: bool = False,
    ) -> FakeGitFacade:
        return FakeGitFacade(tmp_path, logger, dry_run=dry_run, script=script or {}, strict=strict)

    return factory

@pytest.fixture
def configure_fake_git_facade(monkeypatch: pytest.MonkeyPatch) -> Iterator[ScriptQueue]:
    """Patch :class:`GitFacade` in the CLI runtime with a scripted fake."""
    queue = ScriptQueue()
    FakeGitFacade.script_queue = queue
    FakeGitFacade.instances = []
    monkeypatch.setattr("coursesync.cli.runtime.GitFacade", FakeGitFacade)
    yield queue
    queue.clear()
    FakeGitFacade.script_queue = None
    FakeGitFacade.instances = []

@pytest.fixture
def scripted_facades(configure_fake_git_facade: ScriptQueue) -> list[FakeGitFacade]:
    """Return the facades built by the CLI, observer first then actions."""
    del configure_fake_git_facade
    return FakeGitFacade.instances

@pytest.fixture
def git_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Prepare git identity and configuration for isolated repositories."""
    config_file = tmp_path / "gitconfig"
    config_file.write_text(
        """
[user]
    name = Test User
    email = test@example.com
[init]
    defaultBranch = main
[advice]
    detachedHead = false
        """.strip()
        + "\n",
        encoding="utf-8",
    )

    env = {
        "GIT_CONFIG_GLOBAL": str(config_file),
        "GIT_CONFIG_NOSYSTEM": "1",
        "GIT_AUTHOR_NAME": "Test User",
        "GIT_AUTHOR_EMAIL": "test@example.com",
        "GIT_COMMITTER_NAME": "Test User",
        "GIT_COMMITTER_EMAIL": "test@example.com",
        "GIT_EDITOR": "true",
        "GIT_SEQUENCE_EDITOR": "true",
    }
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    return env

__all__ = ["FakeGitFacade", "GitResponse", "ScriptQueue"]

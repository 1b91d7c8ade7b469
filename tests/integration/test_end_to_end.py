"""End-to-end runs of the coursesync CLI against real git repositories."""

from __future__ import annotations

import subprocess
from typing import TYPE_CHECKING

import pytest
from typer.testing import CliRunner

from coursesync.cli.main import app

if TYPE_CHECKING:
    from pathlib import Path


runner = CliRunner()
LESSONS = ("01-intro", "02-loops")


def _git(repo: Path, *args: str, check: bool = True) -> subprocess.CompletedProcess[str]:
    return subprocess.run(("git", *args), cwd=repo, check=check, capture_output=True, text=True)


def _rev(repo: Path, ref: str) -> str:
    return _git(repo, "rev-parse", ref).stdout.strip()


def _commit_file(repo: Path, name: str, content: str, message: str) -> None:
    (repo / name).write_text(content, encoding="utf-8")
    _git(repo, "add", name)
    _git(repo, "commit", "-m", message)


def _init_repo(tmp_path: Path) -> Path:
    repo = tmp_path / "course"
    repo.mkdir()
    _git(repo, "init")
    _commit_file(repo, "README.md", "Course\n", "initial")
    return repo


def _build_course(repo: Path) -> None:
    """Stack solution branches on main, each with an exercise commit on top."""
    base = "main"
    for lesson in LESSONS:
        module = f"{lesson[3:]}.py"
        _git(repo, "checkout", "-b", f"{lesson}-solution", base)
        _commit_file(repo, module, "def solve():\n    return 42\n", f"{lesson} solution")
        _git(repo, "checkout", "-b", lesson)
        _commit_file(repo, module, "def solve():\n    raise NotImplementedError\n", f"{lesson} exercise")
        base = f"{lesson}-solution"
    _git(repo, "checkout", "main")


@pytest.fixture
def course_repo(tmp_path: Path, git_env: dict[str, str]) -> Path:
    """Create a two-lesson course repository whose main moved after the branches were cut."""
    del git_env
    repo = _init_repo(tmp_path)
    _build_course(repo)
    _commit_file(repo, "CONTRIBUTING.md", "Be nice.\n", "docs update on main")
    return repo


@pytest.mark.integration
def test_default_mode_rebases_and_regenerates(course_repo: Path) -> None:
    """Every course branch ends up on top of main with exercises one commit past their solution."""
    diffs_before = {
        lesson: _git(course_repo, "diff", f"{lesson}-solution", lesson).stdout for lesson in LESSONS
    }

    result = runner.invoke(app, ["--repo", str(course_repo)])

    assert result.exit_code == 0, result.output
    assert _git(course_repo, "branch", "--show-current").stdout.strip() == "main"
    for lesson in LESSONS:
        for branch in (lesson, f"{lesson}-solution"):
            assert _git(course_repo, "merge-base", "--is-ancestor", "main", branch, check=False).returncode == 0
        count = _git(course_repo, "rev-list", "--count", f"{lesson}-solution..{lesson}").stdout.strip()
        assert count == "1"
        assert _rev(course_repo, f"{lesson}~1") == _rev(course_repo, f"{lesson}-solution")
        assert _git(course_repo, "diff", f"{lesson}-solution", lesson).stdout == diffs_before[lesson]
    backups = _git(course_repo, "for-each-ref", "--format=%(refname)", "refs/backup/coursesync").stdout
    assert len(backups.split()) == len(LESSONS)
    assert not (course_repo / ".git" / "coursesync-checkpoint.json").exists()


@pytest.mark.integration
def test_force_mode_pushes_with_lease(course_repo: Path, tmp_path: Path) -> None:
    """-f pushes each course branch to origin, replacing rewritten history."""
    remote = tmp_path / "remote.git"
    subprocess.run(("git", "init", "--bare", str(remote)), check=True, capture_output=True)
    _git(course_repo, "remote", "add", "origin", str(remote))
    _git(course_repo, "push", "origin", "main", *LESSONS, *(f"{lesson}-solution" for lesson in LESSONS))
    _git(course_repo, "fetch", "origin")

    _git(course_repo, "checkout", "01-intro")
    _git(course_repo, "commit", "--amend", "-m", "01-intro exercise (reworded)")
    _git(course_repo, "checkout", "main")

    result = runner.invoke(app, ["-F", "--repo", str(course_repo)])

    assert result.exit_code == 0, result.output
    remote_head = subprocess.run(
        ("git", "rev-parse", "01-intro"), cwd=remote, check=True, capture_output=True, text=True,
    ).stdout.strip()
    assert remote_head == _rev(course_repo, "01-intro")


@pytest.mark.integration
def test_no_solution_branches(tmp_path: Path, git_env: dict[str, str]) -> None:
    """A repository without solution branches is rejected before any change."""
    del git_env
    repo = _init_repo(tmp_path)
    _git(repo, "branch", "01-intro")

    result = runner.invoke(app, ["--repo", str(repo)])

    assert result.exit_code == 1
    assert "No solution branches found." in result.output
    assert _git(repo, "branch", "--show-current").stdout.strip() == "main"


@pytest.mark.integration
def test_cherry_pick_conflict_then_resume(tmp_path: Path, git_env: dict[str, str]) -> None:
    """A conflicting exercise commit pauses the run until the operator resolves it."""
    del git_env
    repo = _init_repo(tmp_path)
    _git(repo, "checkout", "-b", "01-intro-solution")
    _commit_file(repo, "intro.py", "print('hello')\n", "intro solution")
    _git(repo, "checkout", "-b", "01-intro")
    _commit_file(repo, "README.md", "Course: exercise instructions\n", "intro exercise")
    _git(repo, "checkout", "main")
    _commit_file(repo, "README.md", "Course: updated on main\n", "readme update")
    exercise_commit = _rev(repo, "01-intro")

    interrupted = runner.invoke(app, ["--repo", str(repo)])

    assert interrupted.exit_code != 0
    assert "git cherry-pick --continue" in interrupted.output
    assert (repo / ".git" / "CHERRY_PICK_HEAD").exists()
    assert (repo / ".git" / "coursesync-checkpoint.json").exists()

    blocked = runner.invoke(app, ["--repo", str(repo), "--resume"])
    assert blocked.exit_code == 1
    assert "cherry-pick is in progress" in blocked.output

    (repo / "README.md").write_text("Course: exercise instructions\n", encoding="utf-8")
    _git(repo, "add", "README.md")
    _git(repo, "cherry-pick", "--continue")

    resumed = runner.invoke(app, ["--repo", str(repo), "--resume"])

    assert resumed.exit_code == 0, resumed.output
    assert _git(repo, "branch", "--show-current").stdout.strip() == "main"
    assert _rev(repo, "01-intro~1") == _rev(repo, "01-intro-solution")
    assert _rev(repo, "01-intro") != exercise_commit
    assert _git(repo, "merge-base", "--is-ancestor", "main", "01-intro", check=False).returncode == 0
    assert not (repo / ".git" / "coursesync-checkpoint.json").exists()


@pytest.mark.integration
def test_rebase_conflict_then_resume(tmp_path: Path, git_env: dict[str, str]) -> None:
    """A conflicting solution rebase pauses until the operator continues it."""
    del git_env
    repo = _init_repo(tmp_path)
    _git(repo, "checkout", "-b", "01-intro-solution")
    _commit_file(repo, "README.md", "Course: intro solution notes\n", "intro solution readme")
    _commit_file(repo, "intro.py", "print('hello')\n", "intro solution")
    _git(repo, "checkout", "-b", "01-intro")
    _commit_file(repo, "intro.py", "raise NotImplementedError\n", "intro exercise")
    _git(repo, "checkout", "main")
    _commit_file(repo, "README.md", "Course: updated on main\n", "readme update")

    interrupted = runner.invoke(app, ["--repo", str(repo)])

    assert interrupted.exit_code != 0
    assert "git rebase --continue" in interrupted.output
    assert (repo / ".git" / "rebase-merge").exists()

    blocked = runner.invoke(app, ["--repo", str(repo), "--resume"])
    assert blocked.exit_code == 1
    assert "rebase is in progress" in blocked.output

    (repo / "README.md").write_text("Course: intro solution notes\n", encoding="utf-8")
    _git(repo, "add", "README.md")
    _git(repo, "rebase", "--continue")

    resumed = runner.invoke(app, ["--repo", str(repo), "--resume"])

    assert resumed.exit_code == 0, resumed.output
    assert _git(repo, "branch", "--show-current").stdout.strip() == "main"
    for branch in ("01-intro-solution", "01-intro"):
        assert _git(repo, "merge-base", "--is-ancestor", "main", branch, check=False).returncode == 0
    assert _rev(repo, "01-intro~1") == _rev(repo, "01-intro-solution")
    assert not (repo / ".git" / "coursesync-checkpoint.json").exists()


@pytest.mark.integration
def test_refused_rebase_is_retried_on_resume(course_repo: Path) -> None:
    """A rebase git refuses over unstaged changes is rerun, not skipped, on resume."""
    (course_repo / "README.md").write_text("Course, edited locally\n", encoding="utf-8")

    refused = runner.invoke(app, ["--repo", str(course_repo)])

    assert refused.exit_code != 0
    assert "git rebase --continue" not in refused.output
    assert not (course_repo / ".git" / "rebase-merge").exists()
    assert _git(course_repo, "merge-base", "--is-ancestor", "main", "02-loops-solution", check=False).returncode != 0

    _git(course_repo, "stash")
    resumed = runner.invoke(app, ["--repo", str(course_repo), "--resume"])

    assert resumed.exit_code == 0, resumed.output
    for lesson in LESSONS:
        for branch in (lesson, f"{lesson}-solution"):
            assert _git(course_repo, "merge-base", "--is-ancestor", "main", branch, check=False).returncode == 0
        assert _rev(course_repo, f"{lesson}~1") == _rev(course_repo, f"{lesson}-solution")

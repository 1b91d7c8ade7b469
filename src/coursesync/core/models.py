"""Core data models for coursesync."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
import pathlib
import re

from pydantic import BaseModel, ConfigDict, Field, field_validator


DEFAULT_SOLUTION_SUFFIX = "-solution"


class WorkflowError(RuntimeError):
    """Base class for errors raised while synchronising course branches."""


class ConfigurationError(WorkflowError):
    """Raised when the repository is not in a state the workflow can start from."""


class SyncMode(str, Enum):
    """The two modes of operation of the synchroniser."""

    force_push = "force_push"
    rebase_regenerate = "rebase_regenerate"

    @classmethod
    def from_argument(cls, argument: str | None) -> SyncMode:
        """Select the mode from the optional command-line argument.

        Any argument starting with ``-f`` (case-insensitive) selects force-push
        mode, as do the spelled-out ``force`` and ``--force``.
        """
        lowered = (argument or "").lower()
        if lowered.startswith("-f") or lowered.lstrip("-") == "force":
            return cls.force_push
        return cls.rebase_regenerate


class StepKind(str, Enum):
    """Discrete steps a workflow plan is made of."""

    push = "push"
    rebase_solution = "rebase_solution"
    regenerate_exercise = "regenerate_exercise"
    checkout_main = "checkout_main"


class StepStatus(str, Enum):
    """Progress of a single workflow step."""

    pending = "pending"
    done = "done"
    paused = "paused"
    failed = "failed"


class BranchPair(BaseModel):
    """Association between an exercise branch and its solution branch."""

    exercise: str
    solution: str
    has_solution: bool = True

    model_config = ConfigDict(frozen=True, extra="forbid")


class CourseBranches(BaseModel):
    """Course branches discovered in a repository, in lexicographic order."""

    names: tuple[str, ...] = ()
    solution_suffix: str = DEFAULT_SOLUTION_SUFFIX

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("names")
    @classmethod
    def _sort_unique(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        """Keep names deduplicated and sorted."""
        return tuple(sorted(set(value)))

    @property
    def solutions(self) -> tuple[str, ...]:
        """Return the branches ending in the solution suffix."""
        return tuple(name for name in self.names if name.endswith(self.solution_suffix))

    @property
    def exercises(self) -> tuple[str, ...]:
        """Return the branches that are not solution branches."""
        return tuple(name for name in self.names if not name.endswith(self.solution_suffix))

    @property
    def latest_solution(self) -> str | None:
        """Return the lexicographically greatest solution branch.

        Zero-padded lesson numbers make this the most recent lesson, so
        ``10-baz-solution`` wins over ``09-bar-solution``.
        """
        solutions = self.solutions
        return max(solutions) if solutions else None

    @property
    def pairs(self) -> tuple[BranchPair, ...]:
        """Return one pair per exercise branch."""
        known = set(self.names)
        pairs: list[BranchPair] = []
        for exercise in self.exercises:
            solution = f"{exercise}{self.solution_suffix}"
            pairs.append(BranchPair(exercise=exercise, solution=solution, has_solution=solution in known))
        return tuple(pairs)


class RepoCursor(BaseModel):
    """Explicit record of the branch checked out in the working tree."""

    branch: str | None = None

    model_config = ConfigDict(frozen=True, extra="forbid")


class WorkflowStep(BaseModel):
    """One discrete, checkpointable step of a workflow."""

    kind: StepKind
    branch: str
    solution: str | None = None
    status: StepStatus = StepStatus.pending
    commit_id: str | None = None
    detail: str | None = None

    model_config = ConfigDict(frozen=True, extra="forbid")


class WorkflowPlan(BaseModel):
    """Ordered steps for a single synchronisation run."""

    mode: SyncMode
    branches: CourseBranches
    steps: tuple[WorkflowStep, ...]
    notes: list[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True, extra="forbid")


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Checkpoint(BaseModel):
    """Persisted workflow progress used to resume after manual intervention."""

    repo_path: pathlib.Path
    mode: SyncMode
    steps: tuple[WorkflowStep, ...]
    cursor: RepoCursor = Field(default_factory=RepoCursor)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("repo_path")
    @classmethod
    def _coerce_repo_path(cls, value: pathlib.Path) -> pathlib.Path:
        """Ensure repo_path is materialised as a pathlib.Path instance."""
        return pathlib.Path(value)

    @property
    def interrupted_step(self) -> WorkflowStep | None:
        """Return the step that stopped the run, if any."""
        for step in self.steps:
            if step.status in {StepStatus.paused, StepStatus.failed}:
                return step
        return None


class Config(BaseModel):
    """Top level configuration schema validated from TOML files."""

    main_branch: str = "main"
    remote: str = "origin"
    branch_pattern: str = r"/\d\d-"
    solution_suffix: str = DEFAULT_SOLUTION_SUFFIX
    interactive_rebase: bool = True
    update_refs: bool = True
    dry_run: bool = False
    backup_refs: bool = True
    checkpoint_file: str = "coursesync-checkpoint.json"

    model_config = ConfigDict(extra="forbid")

    @field_validator("branch_pattern")
    @classmethod
    def _check_pattern(cls, value: str) -> str:
        """Reject patterns that are not valid regular expressions."""
        try:
            re.compile(value)
        except re.error as exc:
            msg = f"invalid branch pattern {value!r}: {exc}"
            raise ValueError(msg) from exc
        return value

    @field_validator("main_branch", "remote", "solution_suffix", "checkpoint_file")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        """Reject empty names."""
        if not value.strip():
            msg = "value must not be empty"
            raise ValueError(msg)
        return value


__all__ = [
    "DEFAULT_SOLUTION_SUFFIX",
    "BranchPair",
    "Checkpoint",
    "Config",
    "ConfigurationError",
    "CourseBranches",
    "RepoCursor",
    "StepKind",
    "StepStatus",
    "SyncMode",
    "WorkflowError",
    "WorkflowPlan",
    "WorkflowStep",
]

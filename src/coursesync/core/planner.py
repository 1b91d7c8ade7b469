"""Planning of the discrete steps a synchronisation run is made of."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .models import (
    ConfigurationError,
    StepKind,
    SyncMode,
    WorkflowPlan,
    WorkflowStep,
)

if TYPE_CHECKING:  # pragma: no cover - typing helpers only
    from collections.abc import Sequence

    from .models import BranchPair, Config, CourseBranches


class NoSolutionBranchesError(ConfigurationError):
    """Raised when rebase mode finds no solution branch to rebase."""

    def __init__(self) -> None:
        """Initialise the error with the operator facing message."""
        super().__init__("No solution branches found.")


class UnpairedExerciseError(ConfigurationError):
    """Raised when exercise branches have no solution branch to regenerate from."""

    def __init__(self, pairs: Sequence[BranchPair]) -> None:
        """Record the unpaired exercise branches."""
        self.exercises = tuple(pair.exercise for pair in pairs)
        missing = ", ".join(pair.solution for pair in pairs)
        super().__init__(f"Missing solution branches for exercise branches: {missing}")


def plan_force_push(branches: CourseBranches) -> WorkflowPlan:
    """Return one lease-protected push step per course branch."""
    steps = tuple(WorkflowStep(kind=StepKind.push, branch=name) for name in branches.names)
    return WorkflowPlan(
        mode=SyncMode.force_push,
        branches=branches,
        steps=steps,
        notes=[f"branches={len(branches.names)}"],
    )


def plan_rebase_regenerate(branches: CourseBranches, config: Config) -> WorkflowPlan:
    """Return the rebase step, one regenerate step per exercise, then checkout of main.

    Raises:
        NoSolutionBranchesError: when no branch carries the solution suffix.
        UnpairedExerciseError: when an exercise branch lacks its solution branch.

    """
    latest = branches.latest_solution
    if latest is None:
        raise NoSolutionBranchesError

    pairs = branches.pairs
    unpaired = [pair for pair in pairs if not pair.has_solution]
    if unpaired:
        raise UnpairedExerciseError(unpaired)

    steps: list[WorkflowStep] = [
        WorkflowStep(kind=StepKind.rebase_solution, branch=latest),
    ]
    steps.extend(
        WorkflowStep(kind=StepKind.regenerate_exercise, branch=pair.exercise, solution=pair.solution)
        for pair in pairs
    )
    steps.append(WorkflowStep(kind=StepKind.checkout_main, branch=config.main_branch))
    return WorkflowPlan(
        mode=SyncMode.rebase_regenerate,
        branches=branches,
        steps=tuple(steps),
        notes=[
            f"latest_solution={latest}",
            f"onto={config.main_branch}",
            f"exercises={len(pairs)}",
        ],
    )


def plan_workflow(branches: CourseBranches, mode: SyncMode, config: Config) -> WorkflowPlan:
    """Create the plan for ``mode``."""
    if mode is SyncMode.force_push:
        return plan_force_push(branches)
    return plan_rebase_regenerate(branches, config)


__all__ = [
    "NoSolutionBranchesError",
    "UnpairedExerciseError",
    "plan_force_push",
    "plan_rebase_regenerate",
    "plan_workflow",
]

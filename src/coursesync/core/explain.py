"""Utilities for describing workflow plans to users."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .models import StepKind

if TYPE_CHECKING:
    from .models import Config, WorkflowPlan, WorkflowStep


@dataclass(frozen=True, slots=True)
class StepExplanation:
    """Human readable explanation for a step within a plan."""

    step: WorkflowStep
    summary: str
    commands: tuple[str, ...]


def explain_step(step: WorkflowStep, config: Config) -> StepExplanation:
    """Describe what ``step`` will do and which git commands it issues."""
    if step.kind is StepKind.push:
        return StepExplanation(
            step=step,
            summary=f"Force-push {step.branch} to {config.remote} unless the remote moved.",
            commands=(f"git push --force-with-lease {config.remote} {step.branch}",),
        )
    if step.kind is StepKind.rebase_solution:
        opts = [flag for flag, enabled in (
            ("--interactive", config.interactive_rebase),
            ("--update-refs", config.update_refs),
        ) if enabled]
        rebase = " ".join(["git rebase", *opts, config.main_branch])
        return StepExplanation(
            step=step,
            summary=(
                f"Rebase {step.branch} onto {config.main_branch}; "
                "resolve conflicts and continue the rebase if it stops."
            ),
            commands=(f"git checkout {step.branch}", rebase),
        )
    if step.kind is StepKind.regenerate_exercise:
        commit = step.commit_id or f"<{step.branch}>"
        return StepExplanation(
            step=step,
            summary=(
                f"Recreate {step.branch} from {step.solution} and replay its unique commit; "
                "resolve conflicts and continue the cherry-pick if it stops."
            ),
            commands=(
                f"git rev-parse --verify {step.branch}",
                f"git checkout {step.solution}",
                f"git branch -D {step.branch}",
                f"git checkout -b {step.branch}",
                f"git cherry-pick {commit}",
            ),
        )
    return StepExplanation(
        step=step,
        summary=f"Return to {step.branch}.",
        commands=(f"git checkout {step.branch}",),
    )


def explain_plan(plan: WorkflowPlan, config: Config) -> list[StepExplanation]:
    """Generate explanations for each step within ``plan``, in order."""
    return [explain_step(step, config) for step in plan.steps]


__all__ = ["StepExplanation", "explain_plan", "explain_step"]

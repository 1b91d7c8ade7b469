"""Sequential step execution with checkpointing and resume support."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Protocol

from coursesync.git.facade import GitCommandError

from .models import Checkpoint, StepStatus, WorkflowError

if TYPE_CHECKING:  # pragma: no cover - typing helpers only
    from collections.abc import Callable
    from pathlib import Path

    from coursesync.io.logging import StructuredLogger

    from .models import RepoCursor, SyncMode, WorkflowPlan, WorkflowStep


# Failures of these subcommands may leave git waiting for the operator.
PAUSABLE_SUBCOMMANDS = frozenset({"rebase", "cherry-pick"})


class StepRecorder(Protocol):
    """Callable protocol used by step handlers to persist intermediate data."""

    def __call__(self, step: WorkflowStep) -> None:
        """Store ``step`` as the current version of the running step."""
        ...


class StepRunner(Protocol):
    """Callable protocol used to execute a single step."""

    def __call__(self, step: WorkflowStep, cursor: RepoCursor, record: StepRecorder) -> RepoCursor:
        """Run ``step`` from ``cursor`` and return the new position."""
        ...


class CheckpointSink(Protocol):
    """Destination for workflow checkpoints."""

    def save(self, checkpoint: Checkpoint) -> None:
        """Persist ``checkpoint``."""
        ...

    def clear(self) -> None:
        """Forget any persisted checkpoint."""
        ...


class StepInterrupted(WorkflowError):
    """Raised when a git command fails while a step runs."""

    def __init__(self, step: WorkflowStep, error: GitCommandError) -> None:
        """Keep the interrupted step and the underlying git failure."""
        self.step = step
        self.error = error
        super().__init__(f"{step.kind.value} {step.branch} {step.status.value}: {error}")

    @property
    def returncode(self) -> int:
        """Return the exit status of the failing git command."""
        return self.error.returncode

    @property
    def paused(self) -> bool:
        """Return whether git is waiting for the operator to continue."""
        return self.step.status is StepStatus.paused


@dataclass(slots=True, frozen=True)
class ExecutionResult:
    """Result information for a single executor run."""

    steps: tuple[WorkflowStep, ...]
    executed: tuple[WorkflowStep, ...]
    cursor: RepoCursor


def _utcnow() -> datetime:
    return datetime.now(UTC)


def prepare_for_resume(step: WorkflowStep) -> WorkflowStep:
    """Return ``step`` as it should be treated when resuming a checkpoint.

    A paused step was finished by the operator (``git rebase --continue`` or
    ``git cherry-pick --continue``); a failed step is retried.
    """
    if step.status is StepStatus.paused:
        return step.model_copy(update={"status": StepStatus.done, "detail": "completed manually"})
    if step.status is StepStatus.failed:
        return step.model_copy(update={"status": StepStatus.pending, "detail": None})
    return step


class Executor:
    """Run workflow steps in order, threading the cursor and checkpointing progress."""

    def __init__(
        self,
        *,
        repo_path: Path,
        runner: StepRunner,
        logger: StructuredLogger,
        checkpoints: CheckpointSink | None = None,
        in_progress: Callable[[], str | None] | None = None,
    ) -> None:
        """Initialise the executor with the injected collaborators.

        ``in_progress`` reports the sequencer operation git is paused in, if
        any. Without it every git failure marks its step failed.
        """
        self._repo_path = repo_path
        self._runner = runner
        self._logger = logger
        self._checkpoints = checkpoints
        self._in_progress = in_progress

    def execute(self, plan: WorkflowPlan, cursor: RepoCursor) -> ExecutionResult:
        """Execute every step of ``plan`` starting from ``cursor``."""
        return self._run(plan.mode, list(plan.steps), cursor, created_at=_utcnow())

    def resume(self, checkpoint: Checkpoint, cursor: RepoCursor) -> ExecutionResult:
        """Continue the run recorded in ``checkpoint`` from ``cursor``."""
        steps = [prepare_for_resume(step) for step in checkpoint.steps]
        self._logger.info(
            "resuming workflow",
            mode=checkpoint.mode.value,
            remaining=[step.branch for step in steps if step.status is not StepStatus.done],
            cursor=cursor.branch,
        )
        return self._run(checkpoint.mode, steps, cursor, created_at=checkpoint.created_at)

    def _interruption_status(self, error: GitCommandError) -> StepStatus:
        """Return ``paused`` only when git is left inside the failed operation.

        A rebase or cherry-pick that git refused to start (for example over
        unstaged changes) leaves no sequencer state behind and must be retried.
        """
        if error.subcommand not in PAUSABLE_SUBCOMMANDS or self._in_progress is None:
            return StepStatus.failed
        if self._in_progress() != error.subcommand:
            return StepStatus.failed
        return StepStatus.paused

    def _run(
        self,
        mode: SyncMode,
        steps: list[WorkflowStep],
        cursor: RepoCursor,
        *,
        created_at: datetime,
    ) -> ExecutionResult:
        executed: list[WorkflowStep] = []

        def save() -> None:
            if self._checkpoints is None:
                return
            self._checkpoints.save(
                Checkpoint(
                    repo_path=self._repo_path,
                    mode=mode,
                    steps=tuple(steps),
                    cursor=cursor,
                    created_at=created_at,
                    updated_at=_utcnow(),
                ),
            )

        save()
        for index, step in enumerate(steps):
            if step.status is StepStatus.done:
                continue

            def record(updated: WorkflowStep, index: int = index) -> None:
                steps[index] = updated
                save()

            try:
                cursor = self._runner(step, cursor, record)
            except GitCommandError as error:
                status = self._interruption_status(error)
                steps[index] = steps[index].model_copy(
                    update={"status": status, "detail": error.stderr.strip() or str(error)},
                )
                save()
                self._logger.error(
                    "step interrupted",
                    kind=step.kind.value,
                    branch=step.branch,
                    status=status.value,
                    returncode=error.returncode,
                    command=list(error.command),
                )
                raise StepInterrupted(steps[index], error) from error

            steps[index] = steps[index].model_copy(update={"status": StepStatus.done, "detail": None})
            executed.append(steps[index])
            save()

        if self._checkpoints is not None:
            self._checkpoints.clear()
        self._logger.info("workflow complete", mode=mode.value, executed=len(executed), cursor=cursor.branch)
        return ExecutionResult(steps=tuple(steps), executed=tuple(executed), cursor=cursor)


__all__ = [
    "PAUSABLE_SUBCOMMANDS",
    "CheckpointSink",
    "ExecutionResult",
    "Executor",
    "StepInterrupted",
    "StepRecorder",
    "StepRunner",
    "prepare_for_resume",
]

"""Helpers shared by the CLI for planning and execution."""

from __future__ import annotations

import io
import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING

from coursesync.actions import (
    checkout_main,
    ensure_no_operation_in_progress,
    push_with_lease,
    rebase_solution,
    regenerate_exercise,
)
from coursesync.core.executor import ExecutionResult, Executor
from coursesync.core.models import (
    Config,
    ConfigurationError,
    RepoCursor,
    StepKind,
    SyncMode,
)
from coursesync.core.planner import plan_workflow
from coursesync.git.facade import GitFacade
from coursesync.git.observe import RepoObserver
from coursesync.io import CheckpointStore, StructuredLogger, discover_config, load_config

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from coursesync.core.executor import StepRecorder, StepRunner
    from coursesync.core.models import WorkflowPlan, WorkflowStep


@dataclass(slots=True)
class WorkflowContext:
    """Container bundling CLI dependencies for planning and execution."""

    repo_path: Path
    config: Config
    logger: StructuredLogger
    action_facade: GitFacade
    observer_facade: GitFacade
    observer: RepoObserver
    checkpoints: CheckpointStore | None

    @property
    def dry_run(self) -> bool:
        """Return whether mutating commands are only recorded."""
        return self.action_facade.dry_run

    def build_step_runner(self) -> StepRunner:
        """Return an executor-compatible step runner."""

        def runner(step: WorkflowStep, cursor: RepoCursor, record: StepRecorder) -> RepoCursor:
            handler = STEP_HANDLERS[step.kind]
            return handler(self, step, cursor, record)

        return runner

    def build_executor(self) -> Executor:
        """Return an executor persisting checkpoints unless running dry."""
        return Executor(
            repo_path=self.repo_path,
            runner=self.build_step_runner(),
            logger=self.logger,
            checkpoints=None if self.dry_run else self.checkpoints,
            in_progress=self.observer.operation_in_progress,
        )


def default_config() -> Config:
    """Return the default configuration used when no config file is provided."""
    return Config()


def load_cli_config(config_path: Path | None, repo_path: Path) -> Config:
    """Load ``config_path``, else ``coursesync.toml`` in the repository, else defaults."""
    path = config_path if config_path is not None else discover_config(repo_path)
    if path is None:
        return default_config()
    return load_config(path=path)


def build_workflow_context(
    repo_path: Path,
    config: Config,
    *,
    json_logs: bool,
    dry_run_actions: bool,
    silence_logs: bool,
    log_level: str = "INFO",
) -> WorkflowContext:
    """Assemble the context required by CLI commands."""
    stream = io.StringIO() if silence_logs else sys.stderr
    logger = StructuredLogger(name="coursesync.cli", json_mode=json_logs, stream=stream, level=log_level)
    observer_facade = GitFacade(repo_path=repo_path, logger=logger, dry_run=False)
    action_facade = GitFacade(repo_path=repo_path, logger=logger, dry_run=dry_run_actions or config.dry_run)
    observer = RepoObserver(observer_facade)
    return WorkflowContext(
        repo_path=repo_path,
        config=config,
        logger=logger,
        action_facade=action_facade,
        observer_facade=observer_facade,
        observer=observer,
        checkpoints=None,
    )


def attach_checkpoints(context: WorkflowContext) -> CheckpointStore:
    """Bind the checkpoint store to the repository's git directory."""
    if context.checkpoints is None:
        git_dir = context.observer.git_dir()
        context.checkpoints = CheckpointStore(git_dir / context.config.checkpoint_file)
    return context.checkpoints


def build_plan(context: WorkflowContext, mode: SyncMode) -> WorkflowPlan:
    """Discover course branches and plan the run for ``mode``."""
    config = context.config
    branches = context.observer.discover_branches(
        pattern=config.branch_pattern,
        solution_suffix=config.solution_suffix,
    )
    context.logger.info("discovered course branches", mode=mode.value, branches=list(branches.names))
    return plan_workflow(branches, mode, config)


def run_workflow(context: WorkflowContext, plan: WorkflowPlan) -> ExecutionResult:
    """Execute ``plan`` from the current checkout.

    Raises:
        ConfigurationError: when a checkpoint from an earlier run is pending
            or git is in the middle of another operation.

    """
    store = attach_checkpoints(context)
    if not context.dry_run and store.exists():
        msg = (
            f"An interrupted run is recorded in {store.path}; "
            "rerun with --resume or drop it with --discard-checkpoint."
        )
        raise ConfigurationError(msg)
    if plan.mode is SyncMode.rebase_regenerate:
        ensure_no_operation_in_progress(context.observer, context.logger)
    return context.build_executor().execute(plan, context.observer.cursor())


def resume_workflow(context: WorkflowContext) -> ExecutionResult:
    """Continue the run recorded in the checkpoint after manual intervention."""
    store = attach_checkpoints(context)
    try:
        checkpoint = store.load()
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc
    if checkpoint is None:
        msg = f"No interrupted run to resume ({store.path} not found)."
        raise ConfigurationError(msg)
    ensure_no_operation_in_progress(context.observer, context.logger)
    return context.build_executor().resume(checkpoint, context.observer.cursor())


def discard_checkpoint(context: WorkflowContext) -> bool:
    """Delete a pending checkpoint and report whether one existed."""
    store = attach_checkpoints(context)
    existed = store.exists()
    store.clear()
    if existed:
        context.logger.warning("discarded checkpoint", path=str(store.path))
    return existed


if TYPE_CHECKING:
    StepHandler = Callable[[WorkflowContext, WorkflowStep, RepoCursor, StepRecorder], RepoCursor]


def _run_push(
    context: WorkflowContext, step: WorkflowStep, cursor: RepoCursor, _: StepRecorder,
) -> RepoCursor:
    push_with_lease(context.action_facade, context.logger, step.branch, remote=context.config.remote)
    return cursor


def _run_rebase_solution(
    context: WorkflowContext, step: WorkflowStep, _: RepoCursor, __: StepRecorder,
) -> RepoCursor:
    rebase_solution(
        context.action_facade,
        context.logger,
        step.branch,
        context.config.main_branch,
        interactive=context.config.interactive_rebase,
        update_refs=context.config.update_refs,
    )
    return RepoCursor(branch=step.branch)


def _run_regenerate(
    context: WorkflowContext, step: WorkflowStep, _: RepoCursor, record: StepRecorder,
) -> RepoCursor:
    solution = step.solution or f"{step.branch}{context.config.solution_suffix}"

    def remember(commit: str) -> None:
        record(step.model_copy(update={"commit_id": commit}))

    regenerate_exercise(
        context.action_facade,
        context.observer,
        context.logger,
        step.branch,
        solution,
        commit_id=step.commit_id,
        on_commit=remember,
        backup=context.config.backup_refs,
    )
    return RepoCursor(branch=step.branch)


def _run_checkout_main(
    context: WorkflowContext, step: WorkflowStep, _: RepoCursor, __: StepRecorder,
) -> RepoCursor:
    checkout_main(context.action_facade, context.logger, step.branch)
    return RepoCursor(branch=step.branch)


STEP_HANDLERS: dict[StepKind, StepHandler] = {
    StepKind.push: _run_push,
    StepKind.rebase_solution: _run_rebase_solution,
    StepKind.regenerate_exercise: _run_regenerate,
    StepKind.checkout_main: _run_checkout_main,
}


__all__ = [
    "STEP_HANDLERS",
    "WorkflowContext",
    "attach_checkpoints",
    "build_plan",
    "build_workflow_context",
    "default_config",
    "discard_checkpoint",
    "load_cli_config",
    "resume_workflow",
    "run_workflow",
]

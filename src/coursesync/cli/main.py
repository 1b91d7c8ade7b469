"""CLI entry point for coursesync built with Typer."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any

import click
import typer
from pydantic import ValidationError

from coursesync.cli.runtime import (
    WorkflowContext,
    build_plan,
    build_workflow_context,
    discard_checkpoint,
    load_cli_config,
    resume_workflow,
    run_workflow,
)
from coursesync.core.executor import StepInterrupted
from coursesync.core.explain import explain_plan
from coursesync.core.models import ConfigurationError, StepKind, SyncMode
from coursesync.git.facade import GitCommandError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from coursesync.core.executor import ExecutionResult
    from coursesync.core.models import WorkflowPlan


# Dash-prefixed modes such as ``-f`` must reach the MODE argument untouched,
# which is why no short options are declared.
app = typer.Typer(add_completion=False)


def _resolve_repo(repo: Path | None) -> Path:
    return repo.resolve() if repo is not None else Path.cwd()


def _emit_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, ensure_ascii=False))


def _escape(text: str) -> str:
    """Render control characters visibly before echoing git supplied text."""
    return "".join(char if char.isprintable() else repr(char)[1:-1] for char in text)


def _format_validation_error(error: ValidationError) -> str:
    lines = ["Invalid configuration:"]
    for detail in error.errors():
        location = ".".join(str(part) for part in detail.get("loc", ())) or "<root>"
        lines.append(f"  {location}: {detail.get('msg', 'invalid value')}")
    return "\n".join(lines)


def _prepare_context(
    repo: Path | None,
    config_path: Path | None,
    *,
    json_logs: bool,
    dry_run_actions: bool,
    silence_logs: bool,
    verbose: bool = False,
) -> WorkflowContext:
    repo_path = _resolve_repo(repo)
    try:
        config = load_cli_config(config_path, repo_path)
    except FileNotFoundError as exc:
        typer.echo(f"Configuration file not found: {exc}", err=True)
        raise typer.Exit(code=2) from exc
    except ValidationError as exc:
        typer.echo(_format_validation_error(exc), err=True)
        raise typer.Exit(code=2) from exc
    except ValueError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2) from exc

    return build_workflow_context(
        repo_path,
        config,
        json_logs=json_logs,
        dry_run_actions=dry_run_actions,
        silence_logs=silence_logs,
        log_level="DEBUG" if verbose else "INFO",
    )


def _plan_payload(context: WorkflowContext, plan: WorkflowPlan) -> dict[str, Any]:
    explanations = explain_plan(plan, context.config)
    return {
        "repository": str(context.repo_path),
        "mode": plan.mode.value,
        "branches": list(plan.branches.names),
        "latest_solution": plan.branches.latest_solution,
        "notes": list(plan.notes),
        "steps": [
            {
                **explanation.step.model_dump(mode="json"),
                "summary": explanation.summary,
                "commands": list(explanation.commands),
            }
            for explanation in explanations
        ],
    }


def _render_plan(context: WorkflowContext, plan: WorkflowPlan) -> str:
    lines = [
        f"Repository: {context.repo_path}",
        f"Mode: {plan.mode.value}",
        f"Branches: {', '.join(plan.branches.names) or '(none)'}",
        "Steps:",
    ]
    for index, explanation in enumerate(explain_plan(plan, context.config), start=1):
        lines.append(f"  {index}. {explanation.step.kind.value} {explanation.step.branch}")
        lines.append(f"     {explanation.summary}")
        lines.extend(f"     $ {command}" for command in explanation.commands)
    return "\n".join(lines)


def _result_payload(context: WorkflowContext, result: ExecutionResult) -> dict[str, Any]:
    return {
        "repository": str(context.repo_path),
        "steps": [step.model_dump(mode="json") for step in result.steps],
        "executed_steps": [step.model_dump(mode="json") for step in result.executed],
        "cursor": result.cursor.branch,
        "dry_run": context.dry_run,
        "command_history": list(context.action_facade.command_history),
    }


def _render_result(payload: dict[str, Any]) -> str:
    mode = "dry-run" if payload["dry_run"] else "confirmed"
    lines = [
        f"Mode: {mode}",
        f"Executed steps: {len(payload['executed_steps'])}",
    ]
    for index, step in enumerate(payload["executed_steps"], start=1):
        lines.append(f"  {index}. {step['kind']} {step['branch']}")
    lines.append(f"Checked out: {payload['cursor'] or '(detached)'}")
    if payload["dry_run"]:
        lines.append("Command history:")
        for entry in payload["command_history"]:
            command = _escape(" ".join(entry.get("command", [])))
            lines.append(f"  - {command}")
    return "\n".join(lines)


def _interruption_hint(error: StepInterrupted) -> str:
    step = error.step
    if error.paused and step.kind is StepKind.rebase_solution:
        action = "resolve the conflicts, run `git rebase --continue`"
    elif error.paused:
        action = "resolve the conflicts, run `git cherry-pick --continue`"
    else:
        action = "fix the problem reported by git"
    lines = [
        f"Step {step.kind.value} for {step.branch} stopped (git exit status {error.returncode}).",
        f"To finish: {action}, then rerun with --resume.",
    ]
    if step.commit_id:
        lines.append(f"Unique commit of {step.branch}: {step.commit_id}")
    if error.error.stderr:
        lines.append(_escape(error.error.stderr.strip()))
    return "\n".join(lines)


ModeArgument = Annotated[
    str | None,
    typer.Argument(
        help="Pass -f (any case, e.g. -F or -force) to force-push all course branches; "
        "omit to rebase the latest solution and regenerate exercises.",
        show_default=False,
    ),
]
RepoOption = Annotated[Path | None, typer.Option("--repo", help="Path to the repository.")]
ConfigOption = Annotated[Path | None, typer.Option("--config", help="Path to a configuration TOML.")]
JsonFlag = Annotated[
    bool,
    typer.Option("--json", "--json-output", help="Emit JSON instead of text."),
]
DryRunFlag = Annotated[bool, typer.Option("--dry-run", help="Record mutating git commands without running them.")]
PlanFlag = Annotated[bool, typer.Option("--plan", help="Show the planned steps and exit.")]
ResumeFlag = Annotated[bool, typer.Option("--resume", help="Continue an interrupted run.")]
DiscardFlag = Annotated[
    bool,
    typer.Option("--discard-checkpoint", help="Forget an interrupted run and exit."),
]
VerboseFlag = Annotated[bool, typer.Option("--verbose", help="Log git output as well.")]


@app.command(context_settings={"ignore_unknown_options": True})
def sync_command(
    mode: ModeArgument = None,
    repo: RepoOption = None,
    config: ConfigOption = None,
    json_output: JsonFlag = False,
    dry_run: DryRunFlag = False,
    plan: PlanFlag = False,
    resume: ResumeFlag = False,
    discard: DiscardFlag = False,
    verbose: VerboseFlag = False,
) -> None:
    """Rebase course solution branches onto main and regenerate exercise branches."""
    context = _prepare_context(
        repo,
        config,
        json_logs=json_output,
        dry_run_actions=dry_run or plan,
        silence_logs=json_output,
        verbose=verbose,
    )
    try:
        if discard:
            existed = discard_checkpoint(context)
            typer.echo("Checkpoint discarded." if existed else "No checkpoint to discard.")
            return
        if resume:
            result = resume_workflow(context)
        else:
            workflow_plan = build_plan(context, SyncMode.from_argument(mode))
            if plan:
                if json_output:
                    _emit_json(_plan_payload(context, workflow_plan))
                else:
                    typer.echo(_render_plan(context, workflow_plan))
                return
            result = run_workflow(context, workflow_plan)
    except ConfigurationError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc
    except StepInterrupted as exc:
        typer.echo(_interruption_hint(exc), err=True)
        raise typer.Exit(code=exc.returncode) from exc
    except GitCommandError as exc:
        typer.echo(f"{exc}\n{_escape(exc.stderr.strip())}".rstrip(), err=True)
        raise typer.Exit(code=exc.returncode) from exc

    payload = _result_payload(context, result)
    if json_output:
        _emit_json(payload)
        return
    typer.echo(_render_result(payload))


def main(argv: Sequence[str] | None = None) -> int:
    """Execute the coursesync CLI and return the exit status."""
    command = typer.main.get_command(app)
    args = list(argv) if argv is not None else sys.argv[1:]
    try:
        result = command.main(args=args, prog_name="coursesync", standalone_mode=False)
    except click.ClickException as exc:
        exc.show()
        return exc.exit_code
    except click.exceptions.Abort:
        typer.echo("Aborted!", err=True)
        return 1
    return result if isinstance(result, int) else 0


if __name__ == "__main__":  # pragma: no cover - CLI invocation
    raise SystemExit(main())

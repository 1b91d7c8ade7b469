"""Core workflow components for coursesync."""

from .executor import ExecutionResult, Executor, StepInterrupted, StepRunner
from .explain import StepExplanation, explain_plan
from .models import (
    BranchPair,
    Checkpoint,
    Config,
    ConfigurationError,
    CourseBranches,
    RepoCursor,
    StepKind,
    StepStatus,
    SyncMode,
    WorkflowError,
    WorkflowPlan,
    WorkflowStep,
)
from .planner import NoSolutionBranchesError, UnpairedExerciseError, plan_workflow

__all__ = [
    "BranchPair",
    "Checkpoint",
    "Config",
    "ConfigurationError",
    "CourseBranches",
    "ExecutionResult",
    "Executor",
    "NoSolutionBranchesError",
    "RepoCursor",
    "StepExplanation",
    "StepInterrupted",
    "StepKind",
    "StepRunner",
    "StepStatus",
    "SyncMode",
    "UnpairedExerciseError",
    "WorkflowError",
    "WorkflowPlan",
    "WorkflowStep",
    "explain_plan",
    "plan_workflow",
]

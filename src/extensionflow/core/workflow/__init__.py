"""
Workflow engine for extensionflow

Workflows are directed step graphs (WorkflowDefinition) executed by the
WorkflowEngine. Extension steps are delegated to a TaskExecutor, normally the
ExtensionLifecycleManager.
"""

from extensionflow.core.workflow.models import (
    StepType,
    ErrorStrategy,
    ExecutionStatus,
    StepStatus,
    RetryPolicy,
    ErrorHandling,
    WorkflowStep,
    WorkflowDefinition,
    ExecutionLog,
    StepExecutionResult,
    WorkflowExecutionContext,
    WorkflowExecutionResult,
)
from extensionflow.core.workflow.conditions import evaluate_condition, select_branch
from extensionflow.core.workflow.script import run_script
from extensionflow.core.workflow.engine import WorkflowEngine

__all__ = [
    "StepType",
    "ErrorStrategy",
    "ExecutionStatus",
    "StepStatus",
    "RetryPolicy",
    "ErrorHandling",
    "WorkflowStep",
    "WorkflowDefinition",
    "ExecutionLog",
    "StepExecutionResult",
    "WorkflowExecutionContext",
    "WorkflowExecutionResult",
    "evaluate_condition",
    "select_branch",
    "run_script",
    "WorkflowEngine",
]

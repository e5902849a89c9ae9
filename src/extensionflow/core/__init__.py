"""
Core modules of extensionflow

- extensions/: manifest registry, extension lifecycle manager, hook protocol
- workflow/: workflow definitions and the workflow engine
- config/: process-wide hook and settings registry
- types.py: Task and Result records shared by extensions and the engine
- errors.py: exception hierarchy
- utils/: logging and small helpers
"""

from extensionflow.core.errors import (
    ExtensionFlowError,
    ValidationError,
    NotFoundError,
    ExecutionError,
    BoundExceededError,
)
from extensionflow.core.types import Task, TaskStatus, TaskPriority, Result, ResultError
from extensionflow.core.extensions import (
    BaseExtension,
    ExtensionRegistry,
    ExtensionLifecycleManager,
    Manifest,
    get_registry,
)
from extensionflow.core.workflow import WorkflowDefinition, WorkflowEngine

__all__ = [
    "ExtensionFlowError",
    "ValidationError",
    "NotFoundError",
    "ExecutionError",
    "BoundExceededError",
    "Task",
    "TaskStatus",
    "TaskPriority",
    "Result",
    "ResultError",
    "BaseExtension",
    "ExtensionRegistry",
    "ExtensionLifecycleManager",
    "Manifest",
    "get_registry",
    "WorkflowDefinition",
    "WorkflowEngine",
]

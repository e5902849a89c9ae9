"""
extensionflow - Extension orchestration core

Core modules:
- core.extensions: Extension registry, lifecycle manager and hook interface
- core.workflow: Workflow definitions and the workflow engine
- core.config: Hook and settings registry
- extensions: Built-in extensions (echo)
- cli: Command line tools
"""

__version__ = "0.1.0"

from extensionflow.core import (
    ExtensionFlowError,
    ValidationError,
    NotFoundError,
    ExecutionError,
    BoundExceededError,
    Task,
    TaskStatus,
    TaskPriority,
    Result,
    ResultError,
    BaseExtension,
    ExtensionRegistry,
    ExtensionLifecycleManager,
    Manifest,
    get_registry,
    WorkflowDefinition,
    WorkflowEngine,
)

# Unified decorators (Flask-style API)
from extensionflow.core.decorators import (
    register_pre_hook,
    register_post_hook,
    register_workflow_hook,
    clear_config,
)

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
    "register_pre_hook",
    "register_post_hook",
    "register_workflow_hook",
    "clear_config",
    "__version__",
]

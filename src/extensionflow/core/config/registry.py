"""
Global configuration registry for extensionflow

This module provides a centralized registry for managing global configuration
like task hooks, workflow lifecycle hooks and engine settings. Components can
access configuration without passing parameters through multiple layers.
"""

import os
from typing import Callable, Dict, List, Optional

from extensionflow.core.types import TaskPreHook, TaskPostHook
from extensionflow.core.utils.logger import get_logger

logger = get_logger(__name__)

WORKFLOW_HOOK_TYPES = (
    "on_workflow_started",
    "on_workflow_completed",
    "on_workflow_failed",
    "on_workflow_cancelled",
)


class ConfigRegistry:
    """
    Global configuration registry

    This class manages global configuration like:
    - Pre-task hooks (run by the lifecycle manager before every dispatched task)
    - Post-task hooks (run after every dispatched task)
    - Workflow lifecycle hooks
    - Workflow engine settings (context retention, loop bound, retry delay)
    """

    def __init__(self):
        """Initialize registry with defaults (environment variables override)"""
        self._pre_hooks: List[TaskPreHook] = []
        self._post_hooks: List[TaskPostHook] = []
        self._workflow_hooks: Dict[str, List[Callable]] = {
            hook_type: [] for hook_type in WORKFLOW_HOOK_TYPES
        }
        self._load_settings()

    def _load_settings(self) -> None:
        # Execution contexts are discarded this many seconds after a run ends
        self.execution_retention_seconds: float = float(
            os.getenv("EXTENSIONFLOW_EXECUTION_RETENTION_SECONDS", "300")
        )
        self.max_loop_iterations: int = int(
            os.getenv("EXTENSIONFLOW_MAX_LOOP_ITERATIONS", "1000")
        )
        self.default_retry_delay_ms: int = int(
            os.getenv("EXTENSIONFLOW_DEFAULT_RETRY_DELAY_MS", "1000")
        )

    def register_pre_hook(self, hook: TaskPreHook) -> None:
        """
        Register a pre-task hook

        Args:
            hook: Pre-task hook function (sync or async)
        """
        if hook not in self._pre_hooks:
            self._pre_hooks.append(hook)
            logger.debug(
                f"Registered pre-hook: {hook.__name__ if hasattr(hook, '__name__') else str(hook)}"
            )

    def register_post_hook(self, hook: TaskPostHook) -> None:
        """
        Register a post-task hook

        Args:
            hook: Post-task hook function (sync or async)
        """
        if hook not in self._post_hooks:
            self._post_hooks.append(hook)
            logger.debug(
                f"Registered post-hook: {hook.__name__ if hasattr(hook, '__name__') else str(hook)}"
            )

    def get_pre_hooks(self) -> List[TaskPreHook]:
        return self._pre_hooks.copy()

    def get_post_hooks(self) -> List[TaskPostHook]:
        return self._post_hooks.copy()

    def register_workflow_hook(self, hook_type: str, hook: Callable) -> None:
        """
        Register a workflow lifecycle hook

        Args:
            hook_type: One of "on_workflow_started", "on_workflow_completed",
                      "on_workflow_failed", "on_workflow_cancelled"
            hook: Hook function (sync or async)
                 Signature: async def hook(context: WorkflowExecutionContext) -> None

        Raises:
            ValueError: If hook_type is unknown
        """
        if hook_type not in self._workflow_hooks:
            raise ValueError(
                f"Invalid hook_type: {hook_type}. "
                f"Must be one of: {list(self._workflow_hooks.keys())}"
            )
        if hook not in self._workflow_hooks[hook_type]:
            self._workflow_hooks[hook_type].append(hook)
            logger.debug(
                f"Registered workflow hook '{hook_type}': "
                f"{hook.__name__ if hasattr(hook, '__name__') else str(hook)}"
            )

    def get_workflow_hooks(self, hook_type: str) -> List[Callable]:
        return self._workflow_hooks.get(hook_type, []).copy()

    def clear(self) -> None:
        """Clear all configuration (useful for testing)"""
        self._pre_hooks.clear()
        self._post_hooks.clear()
        for hook_list in self._workflow_hooks.values():
            hook_list.clear()
        self._load_settings()
        logger.debug("Cleared configuration registry")


# Global registry instance (singleton pattern)
_global_registry = ConfigRegistry()


def get_config() -> ConfigRegistry:
    """
    Get the current configuration registry

    Returns:
        ConfigRegistry instance (global singleton)
    """
    return _global_registry


def register_pre_hook(hook: Optional[TaskPreHook] = None) -> Callable:
    """
    Register a pre-task hook using decorator syntax

    Can be used as a decorator:
        @register_pre_hook
        async def my_pre_hook(task):
            ...

    Or called directly:
        register_pre_hook(my_pre_hook)
    """

    def decorator(func: TaskPreHook) -> TaskPreHook:
        _global_registry.register_pre_hook(func)
        return func

    if hook is None:
        return decorator
    _global_registry.register_pre_hook(hook)
    return hook


def register_post_hook(hook: Optional[TaskPostHook] = None) -> Callable:
    """
    Register a post-task hook using decorator syntax

    Can be used as a decorator:
        @register_post_hook
        async def my_post_hook(task, result):
            ...

    Or called directly:
        register_post_hook(my_post_hook)
    """

    def decorator(func: TaskPostHook) -> TaskPostHook:
        _global_registry.register_post_hook(func)
        return func

    if hook is None:
        return decorator
    _global_registry.register_post_hook(hook)
    return hook


def register_workflow_hook(hook_type: str) -> Callable:
    """
    Register a workflow lifecycle hook using decorator syntax

    Example:
        @register_workflow_hook("on_workflow_failed")
        async def notify(context):
            ...
    """

    def decorator(func: Callable) -> Callable:
        _global_registry.register_workflow_hook(hook_type, func)
        return func

    return decorator


def get_pre_hooks() -> List[TaskPreHook]:
    return _global_registry.get_pre_hooks()


def get_post_hooks() -> List[TaskPostHook]:
    return _global_registry.get_post_hooks()


def get_workflow_hooks(hook_type: str) -> List[Callable]:
    return _global_registry.get_workflow_hooks(hook_type)


def clear_config() -> None:
    """Clear all global configuration (useful for testing)"""
    _global_registry.clear()


__all__ = [
    "ConfigRegistry",
    "WORKFLOW_HOOK_TYPES",
    "get_config",
    "register_pre_hook",
    "register_post_hook",
    "register_workflow_hook",
    "get_pre_hooks",
    "get_post_hooks",
    "get_workflow_hooks",
    "clear_config",
]

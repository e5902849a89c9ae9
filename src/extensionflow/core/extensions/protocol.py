"""
Extension protocols for type safety without inheritance

This module defines protocols (structural typing) for the two in-process
contracts of the core:

- ExtensionLike: the lifecycle hook interface every managed extension implements
- TaskExecutor: the boundary the workflow engine delegates extension steps to

Lifecycle conformance is checked against the explicit LIFECYCLE_HOOKS table
rather than a class hierarchy, so any object exposing the hooks can be
managed, whether or not it subclasses BaseExtension.
"""

import inspect
from typing import Any, List, Protocol, runtime_checkable

from extensionflow.core.extensions.manifest import ExtensionConfig, Manifest
from extensionflow.core.extensions.types import ExtensionState
from extensionflow.core.types import Result, Task

LIFECYCLE_HOOKS = (
    "on_load",
    "on_initialize",
    "on_ready",
    "on_task_receive",
    "on_before_execute",
    "execute",
    "on_after_execute",
    "on_unload",
    "health_check",
)
"""Hook table; the lifecycle manager dispatches every hook by these names."""

REQUIRED_ACCESSORS = ("get_manifest",)


@runtime_checkable
class ExtensionLike(Protocol):
    """
    Protocol for managed extensions

    Hooks may be plain functions or coroutines.
    """

    def get_manifest(self) -> Manifest:
        ...

    def get_state(self) -> ExtensionState:
        ...

    async def on_load(self) -> None:
        ...

    async def on_initialize(self, config: ExtensionConfig) -> None:
        ...

    async def on_ready(self) -> None:
        ...

    async def on_task_receive(self, task: Task) -> bool:
        ...

    async def on_before_execute(self, task: Task) -> None:
        ...

    async def execute(self, task: Task) -> Result:
        ...

    async def on_after_execute(self, task: Task, result: Result) -> None:
        ...

    async def on_unload(self) -> None:
        ...

    async def health_check(self) -> bool:
        ...


@runtime_checkable
class TaskExecutor(Protocol):
    """
    Protocol for the task-executor boundary consumed by the workflow engine

    Implementations must return a Result and never raise for runtime task
    failures. ExtensionLifecycleManager satisfies this protocol.
    """

    async def execute(self, task: Task) -> Result:
        ...


def check_conformance(obj: Any) -> List[str]:
    """
    List the hooks and accessors an object is missing

    Args:
        obj: Candidate extension

    Returns:
        Names of missing or non-callable members (empty if conformant)
    """
    missing = []
    for name in REQUIRED_ACCESSORS + LIFECYCLE_HOOKS:
        if not callable(getattr(obj, name, None)):
            missing.append(name)
    return missing


async def call_hook(obj: Any, hook_name: str, *args: Any) -> Any:
    """
    Invoke a lifecycle hook by name, awaiting it if it is asynchronous

    Args:
        obj: Extension object
        hook_name: Entry of LIFECYCLE_HOOKS
        *args: Hook arguments

    Returns:
        Whatever the hook returned
    """
    if hook_name not in LIFECYCLE_HOOKS:
        raise KeyError(f"Unknown lifecycle hook: {hook_name}")
    outcome = getattr(obj, hook_name)(*args)
    if inspect.isawaitable(outcome):
        outcome = await outcome
    return outcome


__all__ = [
    "LIFECYCLE_HOOKS",
    "ExtensionLike",
    "TaskExecutor",
    "check_conformance",
    "call_hook",
]

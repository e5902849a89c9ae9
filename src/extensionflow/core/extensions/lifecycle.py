"""
Extension lifecycle manager

Drives extension instances through their lifecycle (load, initialize, ready,
execute, unload) and dispatches tasks to them, converting every runtime
failure into a structured Result.
"""

import traceback
from datetime import datetime
from inspect import iscoroutinefunction
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from extensionflow.core.config import get_post_hooks, get_pre_hooks
from extensionflow.core.errors import ExecutionError, NotFoundError, ValidationError
from extensionflow.core.extensions.base import ExtensionContext
from extensionflow.core.extensions.manifest import ExtensionConfig, Manifest
from extensionflow.core.extensions.protocol import call_hook, check_conformance
from extensionflow.core.extensions.types import ExtensionState
from extensionflow.core.types import (
    Result,
    ResultError,
    ResultMetadata,
    Task,
    TaskPostHook,
    TaskPreHook,
    TaskStatus,
)
from extensionflow.core.utils.helpers import elapsed_ms, utcnow
from extensionflow.core.utils.logger import get_logger

logger = get_logger(__name__)


class ExtensionInstance(BaseModel):
    """A managed extension plus its bookkeeping"""
    extension: Any
    manifest: Manifest
    config: ExtensionConfig
    state: ExtensionState
    loaded_at: datetime
    last_used_at: Optional[datetime] = None
    task_count: int = 0
    error_count: int = 0


class ExtensionLifecycleManager:
    """
    Lifecycle manager for extension instances

    Only fully loaded extensions are tracked: if any load hook fails the
    extension is never added to the managed set. execute_task() is the task
    dispatch entry point and, apart from NotFoundError for an unmanaged id,
    never raises; it always returns a Result.

    The manager also satisfies the TaskExecutor protocol through execute(),
    which is how the workflow engine reaches extensions.

    Example:
        manager = ExtensionLifecycleManager()
        await manager.load_extension(EchoExtension(), ExtensionConfig(extension_id="echo-extension"))
        result = await manager.execute_task(
            "echo-extension",
            Task(type="echo", extension_id="echo-extension", payload={"message": "hi"}),
        )
    """

    def __init__(
        self,
        pre_hooks: Optional[List[TaskPreHook]] = None,
        post_hooks: Optional[List[TaskPostHook]] = None,
    ):
        """
        Initialize ExtensionLifecycleManager

        Args:
            pre_hooks: Optional list of pre-task hook functions, each receiving (task).
                Defaults to the hooks registered in the config registry.
            post_hooks: Optional list of post-task hook functions, each receiving (task, result).
                Defaults to the hooks registered in the config registry.
        """
        self._extensions: Dict[str, ExtensionInstance] = {}
        self.pre_hooks = pre_hooks if pre_hooks is not None else get_pre_hooks()
        self.post_hooks = post_hooks if post_hooks is not None else get_post_hooks()

    async def load_extension(
        self,
        extension: Any,
        config: Optional[ExtensionConfig] = None,
        context: Optional[ExtensionContext] = None,
    ) -> ExtensionInstance:
        """
        Load an extension: on_load(), on_initialize(config), on_ready()

        Args:
            extension: Object implementing the lifecycle hooks
            config: Extension configuration (default: empty config for the manifest id)
            context: Extension context (default: built from config)

        Returns:
            The tracked ExtensionInstance

        Raises:
            ValidationError: If the object lacks lifecycle hooks or the id is already loaded
            Exception: Whatever a load hook raised; the extension is not tracked
        """
        missing = check_conformance(extension)
        if missing:
            raise ValidationError(
                f"Object {extension!r} does not implement the extension interface, missing: {missing}",
                details={"missing": missing},
            )

        manifest = extension.get_manifest()
        if manifest.id in self._extensions:
            raise ValidationError(
                f"Extension already loaded: {manifest.id}",
                details={"extension_id": manifest.id},
            )

        config = config or ExtensionConfig(extension_id=manifest.id)
        context = context or ExtensionContext(config)

        logger.info(f"Loading extension: {manifest.name} ({manifest.id})")
        set_context = getattr(extension, "set_context", None)
        if callable(set_context):
            set_context(context)

        try:
            await call_hook(extension, "on_load")
            await call_hook(extension, "on_initialize", config)
            await call_hook(extension, "on_ready")
        except Exception as e:
            logger.error(f"Failed to load extension: {manifest.name}: {e}")
            if hasattr(extension, "state"):
                extension.state = ExtensionState.FAILED
            raise

        instance = ExtensionInstance(
            extension=extension,
            manifest=manifest,
            config=config,
            state=_state_of(extension, ExtensionState.READY),
            loaded_at=utcnow(),
        )
        self._extensions[manifest.id] = instance

        logger.info(f"Extension loaded successfully: {manifest.name}")
        return instance

    async def unload_extension(self, extension_id: str) -> None:
        """
        Unload an extension

        The instance is removed even if on_unload() raises; the hook failure
        is re-raised after removal.

        Raises:
            NotFoundError: If the extension is not managed
        """
        instance = self._get_instance(extension_id)
        logger.info(f"Unloading extension: {instance.manifest.name}")

        try:
            await call_hook(instance.extension, "on_unload")
        except Exception as e:
            logger.error(f"Failed to unload extension cleanly: {instance.manifest.name}: {e}")
            raise
        finally:
            self._extensions.pop(extension_id, None)
            instance.state = _state_of(instance.extension, ExtensionState.UNLOADED)

        logger.info(f"Extension unloaded successfully: {instance.manifest.name}")

    async def execute_task(self, extension_id: str, task: Task) -> Result:
        """
        Execute a task with a managed extension

        Hook order: on_task_receive (False rejects the task), on_before_execute,
        execute, on_after_execute. Global pre-hooks run before on_task_receive
        and post-hooks run after the Result is built.

        Args:
            extension_id: Managed extension id
            task: Task to execute (moved to RUNNING, then COMPLETED or FAILED)

        Returns:
            Result; failures are reported in Result.error

        Raises:
            NotFoundError: If the extension is not managed
        """
        instance = self._get_instance(extension_id)
        start_time = utcnow()

        if TaskStatus.is_terminal(task.status):
            logger.warning(f"Task {task.task_id} is already {task.status.value}, not executing")
            return self._error_result(
                instance,
                task,
                start_time,
                code="INVALID_TASK_STATE",
                message=f"Task {task.task_id} is already {task.status.value}",
            )

        extension = instance.extension
        try:
            if task.status != TaskStatus.RUNNING:
                task.transition_to(TaskStatus.RUNNING)
            await self._execute_pre_hooks(task)

            is_valid = await call_hook(extension, "on_task_receive", task)
            if not is_valid:
                raise ExecutionError(
                    "Task validation failed",
                    details={"task_id": task.task_id, "type": task.type},
                )

            await call_hook(extension, "on_before_execute", task)
            result = await call_hook(extension, "execute", task)
            if not isinstance(result, Result):
                raise ExecutionError(
                    f"Extension {extension_id} returned {type(result).__name__} instead of Result"
                )
            await call_hook(extension, "on_after_execute", task, result)

            instance.task_count += 1
            instance.last_used_at = utcnow()
        except Exception as e:
            instance.error_count += 1
            instance.last_used_at = utcnow()
            logger.error(f"Task {task.task_id} failed on extension {extension_id}: {e}")
            result = self._error_result(
                instance,
                task,
                start_time,
                code="EXECUTION_ERROR",
                message=str(e),
                details={"name": type(e).__name__},
                stack="".join(traceback.format_exception(type(e), e, e.__traceback__)),
            )
            if getattr(extension, "state", None) == ExtensionState.EXECUTING:
                extension.state = ExtensionState.READY

        instance.state = _state_of(extension, instance.state)
        if not TaskStatus.is_terminal(task.status):
            task.transition_to(TaskStatus.COMPLETED if result.success else TaskStatus.FAILED)
        await self._execute_post_hooks(task, result)
        return result

    async def execute(self, task: Task) -> Result:
        """Task-executor boundary: dispatch to the task's target extension"""
        return await self.execute_task(task.extension_id, task)

    def get_extension(self, extension_id: str) -> Optional[ExtensionInstance]:
        return self._extensions.get(extension_id)

    def get_all_extensions(self) -> List[ExtensionInstance]:
        return list(self._extensions.values())

    def get_extensions_by_state(self, state: ExtensionState) -> List[ExtensionInstance]:
        return [instance for instance in self._extensions.values() if instance.state == state]

    def is_extension_loaded(self, extension_id: str) -> bool:
        return extension_id in self._extensions

    def get_extension_count(self) -> int:
        return len(self._extensions)

    async def check_extension_health(self, extension_id: str) -> bool:
        """
        Health check for one extension; never raises

        Returns:
            False for unknown ids, failed probes and probes that raise
        """
        instance = self._extensions.get(extension_id)
        if instance is None:
            return False
        return await self._probe(instance)

    async def check_all_extensions_health(self) -> Dict[str, bool]:
        """Health check every managed extension; never raises"""
        health: Dict[str, bool] = {}
        for extension_id, instance in list(self._extensions.items()):
            health[extension_id] = await self._probe(instance)
        return health

    async def _probe(self, instance: ExtensionInstance) -> bool:
        try:
            return bool(await call_hook(instance.extension, "health_check"))
        except Exception as e:
            logger.error(f"Health check failed for extension: {instance.manifest.name}: {e}")
            return False

    def _get_instance(self, extension_id: str) -> ExtensionInstance:
        instance = self._extensions.get(extension_id)
        if instance is None:
            raise NotFoundError(
                f"Extension not found: {extension_id}",
                details={"extension_id": extension_id},
            )
        return instance

    def _error_result(
        self,
        instance: ExtensionInstance,
        task: Task,
        start_time: datetime,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        stack: Optional[str] = None,
    ) -> Result:
        return Result(
            task_id=task.task_id,
            result={},
            metadata=ResultMetadata(
                duration=elapsed_ms(start_time, utcnow()),
                extension_version=instance.manifest.version,
                completed_at=utcnow(),
            ),
            error=ResultError(code=code, message=message, details=details, stack=stack),
        )

    async def _execute_pre_hooks(self, task: Task) -> None:
        """
        Execute global pre-task hooks

        Hooks can modify task.payload in place. A failing hook is logged and
        does not fail the task.
        """
        for hook in self.pre_hooks:
            try:
                if iscoroutinefunction(hook):
                    await hook(task)
                else:
                    hook(task)
            except Exception as e:
                logger.warning(
                    f"Pre-hook {getattr(hook, '__name__', hook)} failed for task {task.task_id}: {str(e)}. "
                    f"Continuing with task execution."
                )

    async def _execute_post_hooks(self, task: Task, result: Result) -> None:
        for hook in self.post_hooks:
            try:
                if iscoroutinefunction(hook):
                    await hook(task, result)
                else:
                    hook(task, result)
            except Exception as e:
                logger.warning(
                    f"Post-hook {getattr(hook, '__name__', hook)} failed for task {task.task_id}: {str(e)}. "
                    f"Task execution already completed."
                )


def _state_of(extension: Any, default: ExtensionState) -> ExtensionState:
    get_state = getattr(extension, "get_state", None)
    if not callable(get_state):
        return default
    try:
        return ExtensionState(get_state())
    except (ValueError, TypeError):
        return default


__all__ = ["ExtensionLifecycleManager", "ExtensionInstance"]

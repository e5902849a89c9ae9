"""
Base extension class with default lifecycle hook implementations

Extensions do not have to inherit from BaseExtension: anything that satisfies
the ExtensionLike protocol can be managed. Inherit from BaseExtension if you
want state bookkeeping, task validation against declared operations and the
result helpers for free.
"""

import logging
import traceback
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

from extensionflow.core.extensions.manifest import ExtensionConfig, Manifest
from extensionflow.core.extensions.types import ExtensionState
from extensionflow.core.types import Result, ResultError, ResultMetadata, Task
from extensionflow.core.utils.helpers import utcnow
from extensionflow.core.utils.logger import get_logger

EventEmitter = Callable[[str, Dict[str, Any]], None]


class ExtensionContext:
    """
    Context handed to an extension when it is loaded

    Attributes:
        config: The extension's configuration
        logger: Logger scoped to the extension
        emit: Optional event callback, called as emit(event_name, data)
    """

    def __init__(
        self,
        config: ExtensionConfig,
        logger: Optional[logging.Logger] = None,
        emit: Optional[EventEmitter] = None,
    ):
        self.config = config
        self.logger = logger or get_logger(f"extensionflow.extension.{config.extension_id}")
        self._emit = emit

    def emit(self, event: str, data: Dict[str, Any]) -> None:
        if self._emit is not None:
            self._emit(event, data)


class BaseExtension(ABC):
    """
    Base extension with default hook implementations

    Subclasses must implement get_manifest() and execute(). The protected
    helpers validate_environment(), connect_services(), cleanup() and
    custom_health_check() are no-op extension points.

    Example:
        class EchoExtension(BaseExtension):
            def get_manifest(self) -> Manifest:
                return ECHO_MANIFEST

            async def execute(self, task: Task) -> Result:
                return self.create_result(task, {"message": task.payload["message"]}, 0)
    """

    def __init__(self):
        self.state: ExtensionState = ExtensionState.REGISTERED
        self.context: Optional[ExtensionContext] = None
        self.config: Optional[ExtensionConfig] = None

    @abstractmethod
    def get_manifest(self) -> Manifest:
        """Return the extension manifest"""

    @abstractmethod
    async def execute(self, task: Task) -> Result:
        """Core execution logic"""

    def get_state(self) -> ExtensionState:
        return self.state

    def set_context(self, context: ExtensionContext) -> None:
        """Set extension context (called by the lifecycle manager)"""
        self.context = context

    @property
    def logger(self) -> logging.Logger:
        if self.context is not None:
            return self.context.logger
        return get_logger(f"extensionflow.extension.{self.get_manifest().id}")

    # Lifecycle hooks

    async def on_load(self) -> None:
        """Hook: extension loaded into memory"""
        self.state = ExtensionState.LOADING
        self.logger.info(f"Extension {self.get_manifest().name} loading...")
        await self.validate_environment()
        self.logger.info(f"Extension {self.get_manifest().name} loaded")

    async def on_initialize(self, config: ExtensionConfig) -> None:
        """Hook: before first task execution"""
        self.state = ExtensionState.INITIALIZING
        self.config = config
        self.logger.info(f"Extension {self.get_manifest().name} initializing...")
        await self.connect_services()
        self.logger.info(f"Extension {self.get_manifest().name} initialized")

    async def on_ready(self) -> None:
        """Hook: extension ready for work"""
        self.state = ExtensionState.READY
        self.logger.info(f"Extension {self.get_manifest().name} ready")
        if self.context is not None:
            self.context.emit(
                "extension:ready",
                {"extension_id": self.get_manifest().id, "timestamp": utcnow().isoformat()},
            )

    async def on_task_receive(self, task: Task) -> bool:
        """Hook: new task assigned; returns False to reject it"""
        self.logger.debug(
            f"Extension {self.get_manifest().name} received task {task.task_id} (type: {task.type})"
        )
        return self.validate_task(task)

    async def on_before_execute(self, task: Task) -> None:
        """Hook: just before task execution"""
        self.state = ExtensionState.EXECUTING
        self.logger.info(
            f"Extension {self.get_manifest().name} executing task {task.task_id} (type: {task.type})"
        )

    async def on_after_execute(self, task: Task, result: Result) -> None:
        """Hook: after task completion"""
        self.state = ExtensionState.READY
        if result.error is not None:
            self.logger.error(
                f"Extension {self.get_manifest().name} task {task.task_id} failed "
                f"after {result.metadata.duration}ms: {result.error.message}"
            )
        else:
            self.logger.info(
                f"Extension {self.get_manifest().name} completed task {task.task_id} "
                f"in {result.metadata.duration}ms"
            )

    async def on_unload(self) -> None:
        """Hook: extension being removed"""
        self.state = ExtensionState.UNLOADING
        self.logger.info(f"Extension {self.get_manifest().name} unloading...")
        await self.cleanup()
        self.state = ExtensionState.UNLOADED
        self.logger.info(f"Extension {self.get_manifest().name} unloaded")

    async def health_check(self) -> bool:
        try:
            is_valid_state = self.state in (ExtensionState.READY, ExtensionState.EXECUTING)
            return is_valid_state and await self.custom_health_check()
        except Exception as e:
            self.logger.error(f"Health check failed: {e}")
            return False

    # Extension points

    async def validate_environment(self) -> None:
        pass

    async def connect_services(self) -> None:
        pass

    async def cleanup(self) -> None:
        pass

    async def custom_health_check(self) -> bool:
        return True

    def validate_task(self, task: Task) -> bool:
        """Structural check: task id and type present, type is a declared operation"""
        if not task.task_id or not task.type:
            self.logger.warning("Invalid task: missing required fields (task_id, type)")
            return False

        supported_operations = self.get_manifest().all_operations()
        if task.type not in supported_operations:
            self.logger.warning(
                f"Unsupported task type '{task.type}', supported operations: {supported_operations}"
            )
            return False
        return True

    # Result helpers

    def create_result(self, task: Task, result: Dict[str, Any], duration: int) -> Result:
        return Result(
            task_id=task.task_id,
            result=result,
            metadata=ResultMetadata(
                duration=duration,
                extension_version=self.get_manifest().version,
                completed_at=utcnow(),
            ),
        )

    def create_error_result(
        self,
        task: Task,
        error: BaseException,
        duration: int,
        code: str = "EXECUTION_ERROR",
    ) -> Result:
        return Result(
            task_id=task.task_id,
            result={},
            metadata=ResultMetadata(
                duration=duration,
                extension_version=self.get_manifest().version,
                completed_at=utcnow(),
            ),
            error=ResultError(
                code=code,
                message=str(error),
                details={"name": type(error).__name__},
                stack="".join(traceback.format_exception(type(error), error, error.__traceback__)),
            ),
        )

    def __repr__(self) -> str:
        manifest = self.get_manifest()
        return f"<{self.__class__.__name__}(id='{manifest.id}', version='{manifest.version}', state='{self.state.value}')>"


__all__ = ["BaseExtension", "ExtensionContext"]

"""
Core type definitions for extensionflow

This module contains the task/result records that cross the task-dispatch
boundary between the workflow engine and the extension lifecycle manager.
They are shared across layers to avoid circular dependencies.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from extensionflow.core.errors import ValidationError
from extensionflow.core.utils.helpers import utcnow


# ============================================================================
# Task Status
# ============================================================================

class TaskStatus(str, Enum):
    """
    Task status values

    Status is monotonic: PENDING -> (QUEUED ->) RUNNING -> {COMPLETED, FAILED, CANCELLED}.
    Nothing leaves a terminal state.
    """
    PENDING = "PENDING"
    QUEUED = "QUEUED"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"

    @classmethod
    def is_terminal(cls, status: "TaskStatus") -> bool:
        """
        Check if a status is terminal (task cannot transition from this state)

        Args:
            status: Task status

        Returns:
            True if status is completed, failed, or cancelled
        """
        return status in (cls.COMPLETED, cls.FAILED, cls.CANCELLED)

    @classmethod
    def is_active(cls, status: "TaskStatus") -> bool:
        """True if status is pending, queued or running"""
        return status in (cls.PENDING, cls.QUEUED, cls.RUNNING)


_ALLOWED_TRANSITIONS: Dict[TaskStatus, tuple] = {
    TaskStatus.PENDING: (TaskStatus.QUEUED, TaskStatus.RUNNING, TaskStatus.CANCELLED),
    TaskStatus.QUEUED: (TaskStatus.RUNNING, TaskStatus.CANCELLED),
    TaskStatus.RUNNING: (TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.CANCELLED),
    TaskStatus.COMPLETED: (),
    TaskStatus.FAILED: (),
    TaskStatus.CANCELLED: (),
}


class TaskPriority(str, Enum):
    """Task priority levels"""
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


# ============================================================================
# Task / Result
# ============================================================================

class Task(BaseModel):
    """
    A unit of work dispatched to a managed extension

    Attributes:
        task_id: Unique task identifier
        type: Operation to perform (must be one of the extension's declared operations)
        extension_id: Extension that will process this task
        payload: Input data
        priority: Task priority
        status: Current status (monotonic, see TaskStatus)
        timeout: Optional timeout in milliseconds (advisory, never enforced preemptively)
        correlation_id: Optional id for request tracing
    """
    task_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    type: str
    extension_id: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    priority: TaskPriority = TaskPriority.NORMAL
    status: TaskStatus = TaskStatus.PENDING
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    timeout: Optional[int] = None
    user_id: Optional[str] = None
    correlation_id: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    def can_transition_to(self, status: TaskStatus) -> bool:
        return status in _ALLOWED_TRANSITIONS[self.status]

    def transition_to(self, status: TaskStatus) -> None:
        """
        Move the task to a new status

        Raises:
            ValidationError: If the transition would violate monotonicity
        """
        if not self.can_transition_to(status):
            raise ValidationError(
                f"Invalid task state transition for task {self.task_id}: "
                f"{self.status.value} -> {status.value}",
                details={"task_id": self.task_id, "current": self.status.value, "requested": status.value},
            )
        self.status = status
        self.updated_at = utcnow()


class ResultMetadata(BaseModel):
    """Result metadata; extra keys are allowed"""
    model_config = ConfigDict(extra="allow")

    duration: int = 0
    extension_version: str = ""
    completed_at: datetime = Field(default_factory=utcnow)


class ResultError(BaseModel):
    """Structured error carried by a failed Result"""
    code: str
    message: str
    details: Optional[Dict[str, Any]] = None
    stack: Optional[str] = None


class Artifact(BaseModel):
    type: str
    path: str
    size: int
    mime_type: str


class Result(BaseModel):
    """
    Outcome of a dispatched task

    A Result is the only outward representation of a task outcome; errors
    never propagate as exceptions across the task-dispatch boundary.
    """
    task_id: str
    result: Dict[str, Any] = Field(default_factory=dict)
    metadata: ResultMetadata = Field(default_factory=ResultMetadata)
    artifacts: Optional[List[Artifact]] = None
    error: Optional[ResultError] = None

    @property
    def success(self) -> bool:
        return self.error is None


# ============================================================================
# Hook type aliases
# ============================================================================

TaskPreHook = Callable[[Task], Union[None, Awaitable[None]]]
"""
Type alias for global pre-task hook functions.

Pre-hooks run before a task is handed to an extension and may modify
task.payload in place.

Example:
    async def my_pre_hook(task: Task) -> None:
        task.payload.setdefault("source", "workflow")
"""

TaskPostHook = Callable[[Task, Result], Union[None, Awaitable[None]]]
"""
Type alias for global post-task hook functions.

Post-hooks run after the Result is built, whether it succeeded or not.

Example:
    async def my_post_hook(task: Task, result: Result) -> None:
        logger.info(f"Task {task.task_id} finished, success={result.success}")
"""


__all__ = [
    "TaskStatus",
    "TaskPriority",
    "Task",
    "Result",
    "ResultMetadata",
    "ResultError",
    "Artifact",
    "TaskPreHook",
    "TaskPostHook",
]

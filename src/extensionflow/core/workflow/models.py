"""
Workflow definition and execution models

Definitions (WorkflowDefinition, WorkflowStep, RetryPolicy, ErrorHandling)
describe a directed step graph. Execution records (WorkflowExecutionContext,
StepExecutionResult, WorkflowExecutionResult) capture one run of it.

Workflow JSON documents use camelCase keys ("nextStepId", "retryPolicy");
snake_case field names are accepted as well.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from extensionflow.core.errors import ValidationError
from extensionflow.core.utils.helpers import utcnow

_WORKFLOW_MODEL_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StepType(str, Enum):
    EXTENSION = "extension"
    CONDITIONAL = "conditional"
    PARALLEL = "parallel"
    LOOP = "loop"
    DELAY = "delay"
    SCRIPT = "script"


class ErrorStrategy(str, Enum):
    """
    Workflow-level error handling strategy

    STOP aborts the run on the first exhausted-retry failure. CONTINUE routes
    to the failing step's error_step_id, or ends the run if there is none.
    FALLBACK behaves like CONTINUE but routes to ErrorHandling.fallback_step_id
    when the failing step has no error_step_id of its own.
    """
    STOP = "stop"
    CONTINUE = "continue"
    FALLBACK = "fallback"


class ExecutionStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class StepStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class RetryPolicy(BaseModel):
    """
    Per-step retry policy

    The wait before retrying after failed attempt n (0-indexed) is
    delay_ms * backoff_multiplier ** n. When retryable_errors is set, only
    errors whose message is listed are retried.
    """
    model_config = _WORKFLOW_MODEL_CONFIG

    max_attempts: int = Field(default=1, ge=1)
    delay_ms: int = Field(default=1000, ge=0)
    backoff_multiplier: float = Field(default=1.0, gt=0)
    retryable_errors: Optional[List[str]] = None

    def wait_ms(self, attempt: int) -> float:
        return self.delay_ms * (self.backoff_multiplier ** attempt)

    def is_retryable(self, message: str) -> bool:
        return self.retryable_errors is None or message in self.retryable_errors


class ErrorHandling(BaseModel):
    model_config = _WORKFLOW_MODEL_CONFIG

    strategy: ErrorStrategy = ErrorStrategy.STOP
    fallback_step_id: Optional[str] = None
    log_level: str = "error"


class WorkflowStep(BaseModel):
    """One node of a workflow graph"""
    model_config = _WORKFLOW_MODEL_CONFIG

    id: str
    name: str
    type: StepType
    description: Optional[str] = None
    config: Dict[str, Any] = Field(default_factory=dict)
    next_step_id: Optional[str] = None
    error_step_id: Optional[str] = None
    retry_policy: Optional[RetryPolicy] = None
    timeout: Optional[int] = None
    enabled: bool = True


class WorkflowDefinition(BaseModel):
    """
    A directed graph of steps

    Cycles are legal (loop steps revisit their body step). The run starts at
    start_step_id when set, otherwise at the first step in list order.
    """
    model_config = _WORKFLOW_MODEL_CONFIG

    id: str
    name: str = ""
    description: str = ""
    version: str = "1.0.0"
    steps: List[WorkflowStep] = Field(default_factory=list)
    start_step_id: Optional[str] = None
    variables: Dict[str, Any] = Field(default_factory=dict)
    error_handling: ErrorHandling = Field(default_factory=ErrorHandling)
    tags: List[str] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def get_step(self, step_id: str) -> Optional[WorkflowStep]:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None

    def entry_step_id(self) -> Optional[str]:
        if self.start_step_id:
            return self.start_step_id
        return self.steps[0].id if self.steps else None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkflowDefinition":
        """
        Build a workflow definition from a raw dict

        Raises:
            ValidationError: If the data does not match the workflow shape
        """
        if not isinstance(data, dict):
            raise ValidationError(f"Invalid workflow: expected an object, got {type(data).__name__}")
        try:
            return cls.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid workflow: {e}", details={"errors": e.errors()}) from e


class ExecutionError(BaseModel):
    """A structured error recorded in an execution context (not an exception)"""
    step_id: Optional[str] = None
    code: str
    message: str
    timestamp: datetime = Field(default_factory=utcnow)
    stack: Optional[str] = None
    recoverable: bool = False


class ExecutionLog(BaseModel):
    timestamp: datetime = Field(default_factory=utcnow)
    level: str
    message: str
    step_id: Optional[str] = None
    context: Optional[Dict[str, Any]] = None


class StepExecutionResult(BaseModel):
    step_id: str
    step_name: str
    status: StepStatus = StepStatus.RUNNING
    start_time: datetime = Field(default_factory=utcnow)
    end_time: Optional[datetime] = None
    duration: Optional[int] = None
    output: Any = None
    error: Optional[ExecutionError] = None
    retries: int = 0


class WorkflowExecutionContext(BaseModel):
    """
    Mutable state threaded through one workflow run

    step_results keeps insertion order; a step that runs more than once keeps
    the position of its first run and the value of its latest run.
    """
    execution_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    workflow_id: str
    workflow_version: str
    start_time: datetime = Field(default_factory=utcnow)
    end_time: Optional[datetime] = None
    status: ExecutionStatus = ExecutionStatus.RUNNING
    current_step_id: Optional[str] = None
    last_step_id: Optional[str] = None
    variables: Dict[str, Any] = Field(default_factory=dict)
    step_results: Dict[str, StepExecutionResult] = Field(default_factory=dict)
    errors: List[ExecutionError] = Field(default_factory=list)
    logs: List[ExecutionLog] = Field(default_factory=list)
    user_id: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class WorkflowExecutionResult(BaseModel):
    execution_id: str
    workflow_id: str
    status: ExecutionStatus
    start_time: datetime
    end_time: datetime
    duration: int
    step_results: List[StepExecutionResult]
    final_output: Any = None
    errors: List[ExecutionError]
    logs: List[ExecutionLog]


__all__ = [
    "StepType",
    "ErrorStrategy",
    "ExecutionStatus",
    "StepStatus",
    "RetryPolicy",
    "ErrorHandling",
    "WorkflowStep",
    "WorkflowDefinition",
    "ExecutionError",
    "ExecutionLog",
    "StepExecutionResult",
    "WorkflowExecutionContext",
    "WorkflowExecutionResult",
]

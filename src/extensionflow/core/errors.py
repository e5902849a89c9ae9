"""
Exception classes for extensionflow

Caller mistakes (bad manifest, unknown id, malformed workflow reference) are
raised synchronously. Runtime failures of tasks and steps are converted into
structured Result / StepExecutionResult objects by the lifecycle manager and
the workflow engine and never cross those boundaries as exceptions.
"""

from typing import Any, Dict, Optional


class ExtensionFlowError(Exception):
    """Base exception for all extensionflow errors"""

    code: str = "EXTENSIONFLOW_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class ValidationError(ExtensionFlowError):
    """Raised for malformed manifests, bad versions, bad workflow definitions or illegal task transitions"""

    code = "VALIDATION_ERROR"


class NotFoundError(ExtensionFlowError):
    """Raised when an extension, task, step or execution id is unknown"""

    code = "NOT_FOUND"


class ExecutionError(ExtensionFlowError):
    """Raised when a hook or a step implementation fails"""

    code = "EXECUTION_ERROR"


class BoundExceededError(ExecutionError):
    """Raised when a loop step exceeds its iteration cap"""

    code = "BOUND_EXCEEDED"


__all__ = [
    "ExtensionFlowError",
    "ValidationError",
    "NotFoundError",
    "ExecutionError",
    "BoundExceededError",
]

"""Structured exception hierarchy for the automation engine."""

from enum import Enum
from typing import Optional, Dict, Any, List
from pydantic import BaseModel


class TaskError(BaseModel):
    """Structured error raised by action executors"""
    error_type: str
    error_message: str
    http_status_code: Optional[int] = None
    retry_after_seconds: Optional[int] = None
    is_retryable: bool = False
    context: Dict[str, Any] = {}

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class WorkflowError(Exception):
    """Base exception for workflow errors"""

    def __init__(self, message: str, workflow_id: str = "", **context):
        self.message = message
        self.workflow_id = workflow_id
        self.context = context
        super().__init__(message)


class InvalidReferenceError(WorkflowError):
    pass


class WorkflowNotFoundError(WorkflowError):
    pass


class InvalidTransitionError(WorkflowError):
    pass


class StoreError(WorkflowError):
    pass


class ActionExecutionError(WorkflowError):
    pass


class UnknownTemplateError(KeyError):
    pass


class ActivationFailureReason(str, Enum):
    INVALID_GRAPH = "invalid_graph"
    CHANNEL_UNAVAILABLE = "channel_unavailable"
    ALREADY_ACTIVE = "already_active"


class ActivationRejectedError(WorkflowError):
    """Activation guard failed; the workflow is left untouched"""

    def __init__(
        self,
        reason: ActivationFailureReason,
        message: str,
        workflow_id: str = "",
        errors: Optional[List[Any]] = None,
    ):
        self.reason = reason
        self.errors = errors or []
        super().__init__(message, workflow_id, reason=reason.value)

"""Exception hierarchy and failure taxonomy for the flow manager."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Failure kinds surfaced in responses."""

    CLASSIFICATION_AMBIGUOUS = "classification_ambiguous"
    MISSING_PARAMETER = "missing_parameter"
    HANDLER_FAILURE = "handler_failure"
    CONFIRMATION_REQUIRED = "confirmation_required"
    TIMEOUT = "timeout"
    NOT_IMPLEMENTED = "not_implemented"


class FlowManagerError(Exception):
    """Base class for errors raised by the flow manager and its collaborators."""

    code = "GENERIC_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": type(self).__name__,
            "message": self.message,
            "code": self.code,
            "details": self.details,
            "timestamp": self.timestamp,
        }


class ConfigurationError(FlowManagerError):
    code = "CONFIGURATION_ERROR"


class BackendError(FlowManagerError):
    """The n8n backend could not be reached or rejected a request."""

    code = "N8N_CONNECTION_ERROR"

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, {"status_code": status_code, **(details or {})})
        self.status_code = status_code


class WorkflowError(FlowManagerError):
    code = "WORKFLOW_ERROR"

    def __init__(
        self, message: str, workflow_id: str | None = None, details: dict[str, Any] | None = None
    ) -> None:
        super().__init__(message, {"workflow_id": workflow_id, **(details or {})})
        self.workflow_id = workflow_id


class VersionControlError(FlowManagerError):
    code = "GIT_ERROR"


class CapabilityNotImplemented(FlowManagerError):
    """A pluggable capability has no concrete implementation configured."""

    code = "NOT_IMPLEMENTED"


class DispatchConfigurationError(FlowManagerError):
    """The dispatcher's handler map does not cover the task type enumeration."""

    code = "DISPATCH_CONFIGURATION_ERROR"


__all__ = [
    "ErrorKind",
    "FlowManagerError",
    "ConfigurationError",
    "BackendError",
    "WorkflowError",
    "VersionControlError",
    "CapabilityNotImplemented",
    "DispatchConfigurationError",
]

"""Custom exception classes following Google Cloud API error model.

This module defines a hierarchy of exceptions that map to HTTP status codes
and provide structured error responses. Only configuration problems and
lifecycle conflicts are raised; per-request transport failures are folded
into request outcomes and never surface as exceptions.

Reference: https://cloud.google.com/apis/design/errors
"""

from enum import Enum
from typing import Any


class ErrorStatus(str, Enum):
    """Standard error status codes following Google API conventions."""

    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    NOT_FOUND = "NOT_FOUND"
    FAILED_PRECONDITION = "FAILED_PRECONDITION"
    INTERNAL = "INTERNAL"


class ServiceError(Exception):
    """Base exception for all service errors.

    Attributes:
        message: Human-readable error description.
        code: HTTP status code.
        status: Error status following Google API conventions.
        details: Additional error details.
    """

    def __init__(
        self,
        message: str,
        code: int = 500,
        status: ErrorStatus = ErrorStatus.INTERNAL,
        details: list[dict[str, Any]] | None = None,
    ) -> None:
        """Initialize ServiceError.

        Args:
            message: Human-readable error description.
            code: HTTP status code.
            status: Error status enum value.
            details: Optional list of additional error details.
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.status = status
        self.details = details or []

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to Google API error response format.

        Returns:
            Dictionary following Google Cloud API error format.
        """
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "status": self.status.value,
                "details": self.details,
            }
        }


class ValidationError(ServiceError):
    """Exception for run configuration validation failures.

    Raised when the target address is empty or the method is not one
    of the supported verbs. A run never starts when this is raised.
    """

    def __init__(
        self,
        message: str,
        details: list[dict[str, Any]] | None = None,
    ) -> None:
        """Initialize ValidationError.

        Args:
            message: Description of the validation failure.
            details: Optional field-level error details.
        """
        super().__init__(
            message=message,
            code=400,
            status=ErrorStatus.INVALID_ARGUMENT,
            details=details,
        )


class RunInProgressError(ServiceError):
    """Exception when a run is started while another one is still running."""

    def __init__(
        self,
        message: str = "A run is already in progress",
    ) -> None:
        """Initialize RunInProgressError.

        Args:
            message: Description of the conflict.
        """
        super().__init__(
            message=message,
            code=409,
            status=ErrorStatus.FAILED_PRECONDITION,
        )


class RunNotFoundError(ServiceError):
    """Exception when run state is requested before any run was started."""

    def __init__(
        self,
        message: str = "No run has been started",
    ) -> None:
        """Initialize RunNotFoundError.

        Args:
            message: Description of the missing run.
        """
        super().__init__(
            message=message,
            code=404,
            status=ErrorStatus.NOT_FOUND,
        )


class InternalError(ServiceError):
    """Exception for unexpected internal errors.

    Used as a catch-all for unhandled exceptions. Internal details
    should not be exposed to clients.
    """

    def __init__(
        self,
        message: str = "An internal error occurred",
    ) -> None:
        """Initialize InternalError.

        Args:
            message: Generic error message (avoid exposing internals).
        """
        super().__init__(
            message=message,
            code=500,
            status=ErrorStatus.INTERNAL,
        )

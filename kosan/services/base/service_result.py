"""
Service result patterns for standardized response handling.

Workflows report remote failures through ``ServiceResult`` instead of
raising, so the calling view can show ``result.message`` as is.
"""

from typing import TypeVar, Generic, Optional, Any, Dict
from dataclasses import dataclass
from enum import Enum
from datetime import datetime, timezone

from kosan.core.exceptions import BaseAppException, ErrorCode


class ErrorSeverity(str, Enum):
    """Error severity levels."""

    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class ServiceError:
    """Represents a service operation error with context."""

    code: ErrorCode
    message: str
    severity: ErrorSeverity = ErrorSeverity.ERROR
    details: Optional[Dict[str, Any]] = None
    field: Optional[str] = None
    timestamp: Optional[datetime] = None

    def __post_init__(self):
        """Set timestamp if not provided."""
        if self.timestamp is None:
            self.timestamp = datetime.now(timezone.utc)


TData = TypeVar("TData")


@dataclass
class ServiceResult(Generic[TData]):
    """
    Standardized service operation result with success/failure pattern.

    Attributes:
        is_success: Operation success indicator
        data: Result data (if successful)
        error: Error information (if failed)
        message: Human-readable status message
        metadata: Additional context information
    """

    is_success: bool
    data: Optional[TData] = None
    error: Optional[ServiceError] = None
    message: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @classmethod
    def success(
        cls,
        data: Optional[TData] = None,
        message: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> "ServiceResult[TData]":
        """Create a successful result."""
        return cls(
            is_success=True,
            data=data,
            message=message,
            metadata=metadata or {},
        )

    @classmethod
    def failure(
        cls,
        error: ServiceError,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> "ServiceResult[TData]":
        """Create a failed result."""
        return cls(
            is_success=False,
            error=error,
            message=error.message,
            metadata=metadata or {},
        )

    @classmethod
    def from_exception(
        cls,
        exception: Exception,
        operation: str,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> "ServiceResult[TData]":
        """
        Create a failed result from an exception.

        Client exceptions keep their code and user-facing message; anything
        else is reported as an internal error for ``operation``.
        """
        if isinstance(exception, BaseAppException):
            error = ServiceError(
                code=exception.error_code,
                message=exception.message,
                severity=severity,
                details={**exception.details, "status_code": exception.status_code},
            )
        else:
            error = ServiceError(
                code=ErrorCode.INTERNAL_ERROR,
                message=f"Failed to {operation}: {str(exception)}",
                severity=severity,
                details={"exception_type": type(exception).__name__},
            )
        return cls.failure(error, metadata=metadata)

    @classmethod
    def validation_failure(
        cls,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> "ServiceResult[TData]":
        """Create a validation failure result."""
        return cls.failure(
            ServiceError(
                code=ErrorCode.VALIDATION_ERROR,
                message=message,
                field=field,
                details=details,
                severity=ErrorSeverity.WARNING,
            )
        )

    def __bool__(self) -> bool:
        """Allow boolean evaluation of the result."""
        return self.is_success

    def __repr__(self) -> str:
        """String representation of the result."""
        status = "Success" if self.is_success else "Failure"
        if self.message:
            return f"ServiceResult({status}: {self.message})"
        return f"ServiceResult({status})"


__all__ = [
    "ErrorSeverity",
    "ServiceError",
    "ServiceResult",
]

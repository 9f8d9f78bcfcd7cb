"""
Custom Exceptions for the kos booking client

This module defines the error taxonomy surfaced by the API client and the
booking workflows. Every exception carries a user-facing message that the
views can show verbatim.
"""

from typing import Any, Dict, List, Optional
from enum import Enum


class ErrorCode(str, Enum):
    """Standard error codes for the client"""
    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    MALFORMED_RESPONSE = "MALFORMED_RESPONSE"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    SERVER_ERROR = "SERVER_ERROR"

    # Transport
    NETWORK_ERROR = "NETWORK_ERROR"
    REQUEST_ABORTED = "REQUEST_ABORTED"

    # Authentication & Authorization
    AUTHENTICATION_FAILED = "AUTHENTICATION_FAILED"
    AUTHORIZATION_FAILED = "AUTHORIZATION_FAILED"

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UPLOAD_REJECTED = "UPLOAD_REJECTED"

    # Business logic errors
    BOOKING_CONFLICT = "BOOKING_CONFLICT"
    INVALID_STATE = "INVALID_STATE"
    UNKNOWN_STATUS = "UNKNOWN_STATUS"


class BaseAppException(Exception):
    """
    Base exception class for all client exceptions.

    Provides consistent error handling across the package with
    structured error information.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message='{self.message}', error_code='{self.error_code.value}')"


# ========================================
# Transport Exceptions
# ========================================

class NetworkError(BaseAppException):
    """Transport failure. Retryable by user action only."""

    def __init__(
        self,
        message: str = "Unable to reach the server. Check your connection and try again.",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, ErrorCode.NETWORK_ERROR, details, 0)


class RequestAbortedError(BaseAppException):
    """Raised when the caller aborted a request before its result was applied"""

    def __init__(self, message: str = "Request was aborted"):
        super().__init__(message, ErrorCode.REQUEST_ABORTED, None, 0)


class ServerError(BaseAppException):
    """Exception raised for 5xx responses"""

    def __init__(
        self,
        message: str = "The server encountered an error",
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, ErrorCode.SERVER_ERROR, details, status_code)


class MalformedResponseError(BaseAppException):
    """Exception raised when a response body does not match the expected shape"""

    def __init__(
        self,
        message: str = "Received an unexpected response from the server",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, ErrorCode.MALFORMED_RESPONSE, details, 502)


class ResourceNotFoundError(BaseAppException):
    """Exception raised when a requested resource is not found"""

    def __init__(
        self,
        resource_type: str = "Resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None
    ):
        if not message:
            message = f"{resource_type} not found"
            if resource_id:
                message += f" (ID: {resource_id})"

        details = {
            "resource_type": resource_type,
            "resource_id": resource_id
        }
        super().__init__(message, ErrorCode.RESOURCE_NOT_FOUND, details, 404)


# ========================================
# Authentication & Authorization Exceptions
# ========================================

class AuthError(BaseAppException):
    """Exception raised on 401. The local session is cleared when this surfaces."""

    def __init__(
        self,
        message: str = "Unauthorized: Please login again",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, ErrorCode.AUTHENTICATION_FAILED, details, 401)


class AuthorizationError(BaseAppException):
    """Exception raised when the backend refuses access to another tenant's data"""

    def __init__(
        self,
        message: str = "Access denied",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, ErrorCode.AUTHORIZATION_FAILED, details, 403)


# ========================================
# Input Exceptions
# ========================================

class ValidationError(BaseAppException):
    """Exception raised when input is rejected, locally or by the backend"""

    def __init__(
        self,
        message: str = "Validation failed",
        field_errors: Optional[Dict[str, List[str]]] = None,
        errors: Optional[List[str]] = None,
        status_code: int = 422
    ):
        details: Dict[str, Any] = {}
        if field_errors:
            details["field_errors"] = field_errors
        if errors:
            details["errors"] = errors
        super().__init__(message, ErrorCode.VALIDATION_ERROR, details, status_code)


class UploadError(BaseAppException):
    """Exception raised when a proof file violates size or type constraints"""

    def __init__(
        self,
        message: str = "File upload was rejected",
        filename: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 400
    ):
        details = dict(details or {})
        if filename:
            details["filename"] = filename
        super().__init__(message, ErrorCode.UPLOAD_REJECTED, details, status_code)


# ========================================
# Business Rule Exceptions
# ========================================

class ConflictError(BaseAppException):
    """Exception raised on business-rule violations such as double booking"""

    def __init__(
        self,
        message: str = "The request conflicts with the current state of the booking",
        error_code: ErrorCode = ErrorCode.BOOKING_CONFLICT,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, error_code, details, 409)


class InvalidStateError(ConflictError):
    """Exception raised when an operation is not allowed in the booking's current status"""

    def __init__(
        self,
        message: str = "Operation not allowed in the current booking status",
        current_status: Optional[str] = None,
        allowed_statuses: Optional[List[str]] = None
    ):
        details = {
            "current_status": current_status,
            "allowed_statuses": allowed_statuses or []
        }
        super().__init__(message, ErrorCode.INVALID_STATE, details)


class UnknownStatusError(BaseAppException):
    """Exception raised when the backend sends an enum value with no mapping"""

    def __init__(
        self,
        field: str,
        value: Any,
        message: Optional[str] = None
    ):
        if not message:
            message = f"Unknown {field} value: {value!r}"
        details = {"field": field, "value": value}
        super().__init__(message, ErrorCode.UNKNOWN_STATUS, details, 502)

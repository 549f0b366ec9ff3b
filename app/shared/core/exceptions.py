# 📄 File: app/shared/core/exceptions.py
# 🧭 Purpose (Layman Explanation):
# This file defines all the special error types our Plant Monitoring app uses to communicate
# what went wrong with the database in a clear, organized way instead of generic error messages.
# 🧪 Purpose (Technical Summary):
# Custom exception hierarchy with HTTP status codes, error details, and an explicit
# ErrorKind tag on every database failure so retry decisions never depend on driver messages.
# 🔗 Dependencies:
# FastAPI HTTPException, typing, HTTP status constants
# 🔄 Connected Modules / Calls From:
# app.shared.core.retry, app.shared.infrastructure.database, app.main exception handlers

from enum import Enum
from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class ErrorKind(str, Enum):
    """Failure categories attached to every database error."""
    CONNECTION_FAILED = "connection_failed"
    CONNECTION_TIMEOUT = "connection_timeout"
    OPERATION_TIMEOUT = "operation_timeout"
    SERVER_DISCONNECT = "server_disconnect"
    SERIALIZATION_FAILURE = "serialization_failure"
    DEADLOCK = "deadlock"
    FATAL = "fatal"


# Closed set of transient conditions eligible for backoff-retry
RETRYABLE_ERROR_KINDS = frozenset({
    ErrorKind.CONNECTION_FAILED,
    ErrorKind.CONNECTION_TIMEOUT,
    ErrorKind.OPERATION_TIMEOUT,
    ErrorKind.SERVER_DISCONNECT,
    ErrorKind.SERIALIZATION_FAILURE,
    ErrorKind.DEADLOCK,
})


class PlantCareException(Exception):
    """
    Base exception class for Plant Monitoring Application.
    All custom exceptions should inherit from this class.
    """

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.error_code = error_code or self.__class__.__name__.upper()
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary format."""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details,
                "status_code": self.status_code
            }
        }

    def to_public_dict(self) -> Dict[str, Any]:
        """Dictionary safe to send to untrusted callers."""
        return self.to_dict()

    def to_http_exception(self) -> HTTPException:
        """Convert to FastAPI HTTPException."""
        return HTTPException(
            status_code=self.status_code,
            detail=self.to_public_dict()["error"]
        )


# =============================================================================
# DATABASE EXCEPTIONS
# =============================================================================

class DatabaseError(PlantCareException):
    """
    Exception raised for database operation failures.
    Carries the ErrorKind used by the retry executor's classifier.
    """

    default_kind = ErrorKind.FATAL

    def __init__(
        self,
        message: str = "Database error",
        operation: Optional[str] = None,
        kind: Optional[ErrorKind] = None,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str = "DATABASE_ERROR"
    ):
        if not details:
            details = {}

        self.kind = kind or self.default_kind
        if operation:
            details["operation"] = operation
        details["kind"] = self.kind.value

        super().__init__(
            message=message,
            status_code=status_code,
            details=details,
            error_code=error_code
        )

    @property
    def is_retryable(self) -> bool:
        return self.kind in RETRYABLE_ERROR_KINDS

    def to_public_dict(self) -> Dict[str, Any]:
        """Drop classification and driver details before leaving the process."""
        return {
            "error": {
                "code": self.error_code,
                "message": "A database error occurred",
                "details": {},
                "status_code": self.status_code
            }
        }


class DatabaseConnectionError(DatabaseError):
    """
    Exception raised when the database cannot be reached.
    Used for connect and probe failures; recoverable by retry at a higher layer.
    """

    default_kind = ErrorKind.CONNECTION_FAILED

    def __init__(
        self,
        message: str = "Database connection failed",
        operation: Optional[str] = None,
        kind: Optional[ErrorKind] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            operation=operation,
            kind=kind,
            details=details,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            error_code="DATABASE_CONNECTION_ERROR"
        )


class RetryableOperationError(DatabaseError):
    """
    Exception raised for transient operation failures.
    Timeouts, deadlocks, serialization failures and server disconnects.
    """

    default_kind = ErrorKind.OPERATION_TIMEOUT

    def __init__(
        self,
        message: str = "Transient database failure",
        operation: Optional[str] = None,
        kind: Optional[ErrorKind] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        if kind is not None and kind not in RETRYABLE_ERROR_KINDS:
            raise ValueError(f"{kind.value} is not a retryable error kind")

        super().__init__(
            message=message,
            operation=operation,
            kind=kind,
            details=details,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            error_code="RETRYABLE_OPERATION_ERROR"
        )


class FatalOperationError(DatabaseError):
    """
    Exception raised for database failures that must never be retried.
    """

    def __init__(
        self,
        message: str = "Database operation failed",
        operation: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            operation=operation,
            kind=ErrorKind.FATAL,
            details=details,
            error_code="FATAL_OPERATION_ERROR"
        )


class RetryExhaustedError(DatabaseError):
    """
    Exception raised after a retry policy's attempt budget is spent.
    Wraps the last observed cause and the number of attempts made.
    """

    def __init__(
        self,
        attempts: int,
        last_error: BaseException,
        operation: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        if not details:
            details = {}

        self.attempts = attempts
        self.last_error = last_error
        details["attempts"] = attempts
        details["last_error"] = type(last_error).__name__

        super().__init__(
            message=f"Operation failed after {attempts} attempts: {last_error}",
            operation=operation,
            kind=getattr(last_error, "kind", ErrorKind.FATAL),
            details=details,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            error_code="RETRY_EXHAUSTED"
        )

    @property
    def is_retryable(self) -> bool:
        # The budget is spent; nothing above this layer should retry again.
        return False


# =============================================================================
# TRANSACTION EXCEPTIONS
# =============================================================================

class TransactionError(DatabaseError):
    """
    Exception raised when a database transaction fails at its boundary.
    Always accompanied by a rollback.
    """

    def __init__(
        self,
        message: str = "Database transaction failed",
        operation: Optional[str] = None,
        kind: Optional[ErrorKind] = None,
        details: Optional[Dict[str, Any]] = None,
        error_code: str = "TRANSACTION_ERROR"
    ):
        super().__init__(
            message=message,
            operation=operation,
            kind=kind,
            details=details,
            error_code=error_code
        )


class TransactionStartTimeout(TransactionError):
    """
    Exception raised when a transaction cannot begin within max_wait.
    """

    def __init__(
        self,
        max_wait: float,
        details: Optional[Dict[str, Any]] = None
    ):
        if not details:
            details = {}

        self.max_wait = max_wait
        details["max_wait_seconds"] = max_wait

        super().__init__(
            message=f"Transaction could not start within {max_wait}s",
            operation="begin",
            kind=ErrorKind.CONNECTION_TIMEOUT,
            details=details,
            error_code="TRANSACTION_START_TIMEOUT"
        )


class TransactionTimeout(TransactionError):
    """
    Exception raised when a unit of work exceeds its transaction timeout.
    """

    def __init__(
        self,
        timeout: float,
        details: Optional[Dict[str, Any]] = None
    ):
        if not details:
            details = {}

        self.timeout = timeout
        details["timeout_seconds"] = timeout

        super().__init__(
            message=f"Transaction did not complete within {timeout}s",
            operation="execute",
            kind=ErrorKind.OPERATION_TIMEOUT,
            details=details,
            error_code="TRANSACTION_TIMEOUT"
        )


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def exception_to_dict(exception: Exception) -> Dict[str, Any]:
    """
    Convert any exception to a public dictionary.

    Args:
        exception: Exception to convert

    Returns:
        Dict: Exception data safe for API responses
    """
    if isinstance(exception, PlantCareException):
        return exception.to_public_dict()

    return {
        "error": {
            "code": "INTERNAL_SERVER_ERROR",
            "message": "An internal server error occurred",
            "details": {"error_type": type(exception).__name__},
            "status_code": status.HTTP_500_INTERNAL_SERVER_ERROR
        }
    }

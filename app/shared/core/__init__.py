"""
Core utilities package for Plant Monitoring Application.
Provides the exception hierarchy, retry executor, and FastAPI dependencies.
"""

from .exceptions import (
    RETRYABLE_ERROR_KINDS,
    DatabaseConnectionError,
    DatabaseError,
    ErrorKind,
    FatalOperationError,
    PlantCareException,
    RetryableOperationError,
    RetryExhaustedError,
    TransactionError,
    TransactionStartTimeout,
    TransactionTimeout,
)

from .retry import (
    RetryDecision,
    RetryPolicy,
    classify_by_kind,
    execute_with_retry,
    retry_on_failure,
)

__all__ = [
    # Exceptions
    "RETRYABLE_ERROR_KINDS",
    "DatabaseConnectionError",
    "DatabaseError",
    "ErrorKind",
    "FatalOperationError",
    "PlantCareException",
    "RetryableOperationError",
    "RetryExhaustedError",
    "TransactionError",
    "TransactionStartTimeout",
    "TransactionTimeout",

    # Retry
    "RetryDecision",
    "RetryPolicy",
    "classify_by_kind",
    "execute_with_retry",
    "retry_on_failure",
]

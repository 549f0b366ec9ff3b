# 📄 File: app/shared/infrastructure/database/errors.py
#
# 🧭 Purpose (Layman Explanation):
# Decides whether a database hiccup is temporary (worth trying again) or a real problem,
# so the app can quietly recover from brief outages without hiding genuine bugs.
#
# 🧪 Purpose (Technical Summary):
# Closed classification table mapping SQLSTATE codes and SQLAlchemy/driver exception types
# onto ErrorKind tags, translation of raw driver errors into typed DatabaseError subclasses,
# and the default database RetryPolicy built from settings.
#
# 🔗 Dependencies:
# - sqlalchemy.exc (driver-neutral exception wrappers)
# - app.shared.core.exceptions (ErrorKind, DatabaseError hierarchy)
# - app.shared.core.retry (RetryPolicy, RetryDecision)
#
# 🔄 Connected Modules / Calls From:
# - app.shared.infrastructure.database.connection (probe/execute translation)
# - CRUD services composing execute_with_retry with run_in_transaction

import asyncio
from typing import Dict, Optional

from sqlalchemy import exc

from app.shared.config.settings import Settings, get_settings
from app.shared.core.exceptions import (
    RETRYABLE_ERROR_KINDS,
    DatabaseConnectionError,
    DatabaseError,
    ErrorKind,
    FatalOperationError,
    RetryableOperationError,
)
from app.shared.core.retry import RetryDecision, RetryPolicy, classify_by_kind

# PostgreSQL SQLSTATE codes treated as transient. Anything absent is fatal.
SQLSTATE_ERROR_KINDS: Dict[str, ErrorKind] = {
    # Class 08: connection exception
    "08000": ErrorKind.SERVER_DISCONNECT,    # connection_exception
    "08003": ErrorKind.SERVER_DISCONNECT,    # connection_does_not_exist
    "08006": ErrorKind.SERVER_DISCONNECT,    # connection_failure
    "08001": ErrorKind.CONNECTION_FAILED,    # sqlclient_unable_to_establish_sqlconnection
    "08004": ErrorKind.CONNECTION_FAILED,    # sqlserver_rejected_establishment_of_sqlconnection
    # Class 40: transaction rollback
    "40001": ErrorKind.SERIALIZATION_FAILURE,
    "40P01": ErrorKind.DEADLOCK,
    # Class 57: operator intervention
    "57014": ErrorKind.OPERATION_TIMEOUT,    # query_canceled (statement_timeout)
    "57P01": ErrorKind.SERVER_DISCONNECT,    # admin_shutdown
    "57P02": ErrorKind.SERVER_DISCONNECT,    # crash_shutdown
    "57P03": ErrorKind.CONNECTION_FAILED,    # cannot_connect_now
    # Class 55: object not in prerequisite state
    "55P03": ErrorKind.OPERATION_TIMEOUT,    # lock_not_available (lock_timeout)
}


def _sqlstate(error: BaseException) -> Optional[str]:
    """Extract a SQLSTATE from a SQLAlchemy wrapper or a raw DBAPI error."""
    candidates = [error, getattr(error, "orig", None)]
    for candidate in candidates:
        if candidate is None:
            continue
        for attribute in ("sqlstate", "pgcode"):
            code = getattr(candidate, attribute, None)
            if isinstance(code, str) and code:
                return code.upper()
    return None


def resolve_error_kind(error: BaseException) -> ErrorKind:
    """
    Map any failure raised while talking to the database onto an ErrorKind.

    Args:
        error: Exception raised by SQLAlchemy, the driver, or this package

    Returns:
        ErrorKind: FATAL when the failure is not in the retryable table
    """
    if isinstance(error, DatabaseError):
        return error.kind

    code = _sqlstate(error)
    if code is not None:
        return SQLSTATE_ERROR_KINDS.get(code, ErrorKind.FATAL)

    # Pool checkout timed out
    if isinstance(error, exc.TimeoutError):
        return ErrorKind.CONNECTION_TIMEOUT

    if isinstance(error, exc.DBAPIError) and error.connection_invalidated:
        return ErrorKind.SERVER_DISCONNECT

    if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
        return ErrorKind.OPERATION_TIMEOUT

    if isinstance(error, (ConnectionResetError, ConnectionAbortedError, BrokenPipeError)):
        return ErrorKind.SERVER_DISCONNECT

    if isinstance(error, (ConnectionRefusedError, ConnectionError)):
        return ErrorKind.CONNECTION_FAILED

    return ErrorKind.FATAL


def translate_database_error(
    error: BaseException,
    operation: Optional[str] = None
) -> DatabaseError:
    """
    Wrap a raw failure in the typed DatabaseError matching its kind.

    Already-typed errors are returned as they are.
    """
    if isinstance(error, DatabaseError):
        return error

    kind = resolve_error_kind(error)
    message = f"{type(error).__name__}: {error}"

    if kind in (ErrorKind.CONNECTION_FAILED, ErrorKind.CONNECTION_TIMEOUT):
        translated: DatabaseError = DatabaseConnectionError(
            message=message, operation=operation, kind=kind
        )
    elif kind in RETRYABLE_ERROR_KINDS:
        translated = RetryableOperationError(message=message, operation=operation, kind=kind)
    else:
        translated = FatalOperationError(message=message, operation=operation)

    translated.__cause__ = error
    return translated


def classify_database_error(error: BaseException) -> RetryDecision:
    """Retry classifier understanding both typed errors and raw driver errors."""
    if isinstance(error, DatabaseError):
        return classify_by_kind(error)
    if resolve_error_kind(error) in RETRYABLE_ERROR_KINDS:
        return RetryDecision.RETRYABLE
    return RetryDecision.FATAL


def database_retry_policy(settings: Optional[Settings] = None) -> RetryPolicy:
    """Build the default database retry policy from settings."""
    settings = settings or get_settings()
    return RetryPolicy(
        max_attempts=settings.DB_RETRY_MAX_ATTEMPTS,
        base_delay=settings.DB_RETRY_BASE_DELAY,
        classifier=classify_database_error,
    )

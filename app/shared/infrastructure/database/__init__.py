"""
Database infrastructure: connection lifecycle, transactions, error classification.
"""

from .connection import ConnectionState, DatabaseConnectionManager
from .errors import (
    SQLSTATE_ERROR_KINDS,
    classify_database_error,
    database_retry_policy,
    resolve_error_kind,
    translate_database_error,
)
from .transaction import IsolationLevel, TransactionCoordinator, TransactionEnvelope

__all__ = [
    "ConnectionState",
    "DatabaseConnectionManager",
    "SQLSTATE_ERROR_KINDS",
    "classify_database_error",
    "database_retry_policy",
    "resolve_error_kind",
    "translate_database_error",
    "IsolationLevel",
    "TransactionCoordinator",
    "TransactionEnvelope",
]

import asyncio

import pytest
from sqlalchemy import exc

from app.shared.core.exceptions import (
    DatabaseConnectionError,
    ErrorKind,
    FatalOperationError,
    PlantCareException,
    RetryableOperationError,
    RetryExhaustedError,
    TransactionStartTimeout,
    TransactionTimeout,
    exception_to_dict,
)
from app.shared.core.retry import RetryDecision
from app.shared.infrastructure.database.errors import (
    classify_database_error,
    database_retry_policy,
    resolve_error_kind,
    translate_database_error,
)


class DriverError(Exception):
    """Stand-in for a PostgreSQL driver error carrying a SQLSTATE."""

    def __init__(self, sqlstate):
        super().__init__(f"driver error {sqlstate}")
        self.sqlstate = sqlstate


def wrapped(sqlstate, connection_invalidated=False):
    return exc.OperationalError(
        "UPDATE plants SET health_status = :status",
        {"status": "wilting"},
        DriverError(sqlstate),
        connection_invalidated=connection_invalidated,
    )


@pytest.mark.parametrize(
    "sqlstate, kind",
    [
        ("40001", ErrorKind.SERIALIZATION_FAILURE),
        ("40P01", ErrorKind.DEADLOCK),
        ("40p01", ErrorKind.DEADLOCK),
        ("57014", ErrorKind.OPERATION_TIMEOUT),
        ("57P01", ErrorKind.SERVER_DISCONNECT),
        ("08006", ErrorKind.SERVER_DISCONNECT),
        ("08001", ErrorKind.CONNECTION_FAILED),
        ("55P03", ErrorKind.OPERATION_TIMEOUT),
    ],
)
def test_sqlstate_table(sqlstate, kind):
    assert resolve_error_kind(wrapped(sqlstate)) is kind
    assert classify_database_error(wrapped(sqlstate)) is RetryDecision.RETRYABLE


@pytest.mark.parametrize("sqlstate", ["23505", "42P01", "22P02", "XX000"])
def test_codes_outside_the_table_are_fatal(sqlstate):
    assert resolve_error_kind(wrapped(sqlstate)) is ErrorKind.FATAL
    assert classify_database_error(wrapped(sqlstate)) is RetryDecision.FATAL


def test_pgcode_attribute_is_understood():
    class LegacyDriverError(Exception):
        pgcode = "40001"

    assert resolve_error_kind(LegacyDriverError()) is ErrorKind.SERIALIZATION_FAILURE


def test_invalidated_connection_is_a_disconnect():
    error = exc.OperationalError("SELECT 1", {}, Exception("closed"), connection_invalidated=True)

    assert resolve_error_kind(error) is ErrorKind.SERVER_DISCONNECT


def test_pool_checkout_timeout():
    assert resolve_error_kind(exc.TimeoutError("QueuePool limit reached")) is ErrorKind.CONNECTION_TIMEOUT


@pytest.mark.parametrize(
    "error, kind",
    [
        (asyncio.TimeoutError(), ErrorKind.OPERATION_TIMEOUT),
        (ConnectionResetError(), ErrorKind.SERVER_DISCONNECT),
        (BrokenPipeError(), ErrorKind.SERVER_DISCONNECT),
        (ConnectionRefusedError(), ErrorKind.CONNECTION_FAILED),
        (ValueError("not a database problem"), ErrorKind.FATAL),
        (exc.IntegrityError("INSERT", {}, Exception("duplicate")), ErrorKind.FATAL),
    ],
)
def test_builtin_and_unknown_errors(error, kind):
    assert resolve_error_kind(error) is kind


def test_translate_keeps_the_cause():
    raw = wrapped("40001")

    translated = translate_database_error(raw, operation="update_plant")

    assert isinstance(translated, RetryableOperationError)
    assert translated.kind is ErrorKind.SERIALIZATION_FAILURE
    assert translated.__cause__ is raw
    assert translated.details["operation"] == "update_plant"


def test_translate_connection_and_fatal_errors():
    assert isinstance(translate_database_error(ConnectionRefusedError()), DatabaseConnectionError)
    assert isinstance(translate_database_error(wrapped("23505")), FatalOperationError)


def test_translate_returns_typed_errors_unchanged():
    error = TransactionTimeout(1.0)

    assert translate_database_error(error) is error


def test_transaction_timeouts_are_retryable():
    assert TransactionStartTimeout(5.0).kind is ErrorKind.CONNECTION_TIMEOUT
    assert TransactionTimeout(10.0).kind is ErrorKind.OPERATION_TIMEOUT
    assert classify_database_error(TransactionTimeout(10.0)) is RetryDecision.RETRYABLE


def test_exhausted_errors_are_fatal():
    exhausted = RetryExhaustedError(attempts=3, last_error=wrapped("40P01"))

    assert classify_database_error(exhausted) is RetryDecision.FATAL
    assert exhausted.details["attempts"] == 3
    assert exhausted.status_code == 503


def test_public_dict_hides_driver_details():
    error = RetryableOperationError(
        message="OperationalError: could not serialize access",
        operation="update_plant",
        kind=ErrorKind.SERIALIZATION_FAILURE,
    )

    public = error.to_public_dict()["error"]

    assert public["message"] == "A database error occurred"
    assert public["details"] == {}
    assert error.to_dict()["error"]["details"]["kind"] == "serialization_failure"


def test_exception_to_dict_for_unknown_errors():
    payload = exception_to_dict(RuntimeError("boom"))["error"]

    assert payload["code"] == "INTERNAL_SERVER_ERROR"
    assert payload["status_code"] == 500


def test_plant_care_exception_to_http_exception():
    http_error = PlantCareException("Plant not found", status_code=404).to_http_exception()

    assert http_error.status_code == 404


def test_database_retry_policy_from_settings(settings):
    policy = database_retry_policy(settings)

    assert policy.max_attempts == settings.DB_RETRY_MAX_ATTEMPTS
    assert policy.base_delay == settings.DB_RETRY_BASE_DELAY
    assert policy.classifier is classify_database_error

"""
Retry executor for Plant Monitoring Application.
Re-runs transient database operations with exponential backoff.
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from enum import Enum
from functools import wraps
from typing import Any, Awaitable, Callable, Optional, TypeVar, Union

from .exceptions import RETRYABLE_ERROR_KINDS, RetryExhaustedError

logger = logging.getLogger(__name__)

T = TypeVar('T')

Operation = Callable[[], Union[Awaitable[T], T]]


class RetryDecision(Enum):
    """Outcome of classifying a failure."""
    RETRYABLE = "retryable"
    FATAL = "fatal"


def classify_by_kind(error: BaseException) -> RetryDecision:
    """
    Default classifier: inspect the ErrorKind tag attached to the failure.

    Untagged errors are fatal.
    """
    retryable = getattr(error, "is_retryable", None)
    if retryable is None:
        retryable = getattr(error, "kind", None) in RETRYABLE_ERROR_KINDS
    return RetryDecision.RETRYABLE if retryable else RetryDecision.FATAL


@dataclass(frozen=True)
class RetryPolicy:
    """Configuration for the retry executor."""
    max_attempts: int = 3                # Total invocations allowed, first one included
    base_delay: float = 0.1              # Seconds; delay before retry i is base_delay * 2**i
    classifier: Callable[[BaseException], RetryDecision] = field(default=classify_by_kind)

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0:
            raise ValueError("base_delay must not be negative")

    def delay_for(self, attempt_index: int) -> float:
        """Backoff before the retry that follows attempt ``attempt_index`` (0-based)."""
        return self.base_delay * (2 ** attempt_index)

    @property
    def max_total_delay(self) -> float:
        """Upper bound on the wall-clock time spent sleeping between attempts."""
        return self.base_delay * (2 ** self.max_attempts - 1)

    def to_dict(self) -> dict:
        return {
            "max_attempts": self.max_attempts,
            "base_delay": self.base_delay,
            "classifier": getattr(self.classifier, "__name__", repr(self.classifier)),
        }


async def _invoke(operation: Operation) -> Any:
    result = operation()
    if inspect.isawaitable(result):
        return await result
    return result


async def execute_with_retry(
    operation: Operation,
    policy: Optional[RetryPolicy] = None,
    operation_name: Optional[str] = None
) -> Any:
    """
    Run ``operation`` under ``policy``.

    Args:
        operation: Zero-argument callable returning a result or an awaitable
        policy: Retry policy, defaults to ``RetryPolicy()``
        operation_name: Label used in log messages

    Returns:
        The operation's result

    Raises:
        The original error when it is classified fatal, or
        RetryExhaustedError once max_attempts retryable failures occurred.
    """
    policy = policy or RetryPolicy()
    name = operation_name or getattr(operation, "__name__", "operation")

    for attempt in range(policy.max_attempts):
        try:
            return await _invoke(operation)
        except Exception as e:
            if policy.classifier(e) is RetryDecision.FATAL:
                logger.debug(f"{name} failed with a fatal error, not retrying: {e}")
                raise

            if attempt == policy.max_attempts - 1:
                logger.error(
                    f"{name} failed after {policy.max_attempts} attempts: {e}"
                )
                raise RetryExhaustedError(
                    attempts=policy.max_attempts,
                    last_error=e,
                    operation=name
                ) from e

            delay = policy.delay_for(attempt)
            logger.warning(
                f"{name} failed (attempt {attempt + 1}/{policy.max_attempts}): {e}. "
                f"Retrying in {delay:.3f}s"
            )
            await asyncio.sleep(delay)


def retry_on_failure(policy: Optional[RetryPolicy] = None):
    """
    Decorator applying ``execute_with_retry`` to a function.

    Args:
        policy: Retry policy to apply on every call

    Returns:
        function: Decorated coroutine function
    """
    def decorator(func: Callable):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            return await execute_with_retry(
                lambda: func(*args, **kwargs),
                policy,
                operation_name=func.__qualname__
            )
        return wrapper

    return decorator

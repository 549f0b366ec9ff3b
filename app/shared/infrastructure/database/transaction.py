# 📄 File: app/shared/infrastructure/database/transaction.py
#
# 🧭 Purpose (Layman Explanation):
# Makes sure a group of database changes either all happen or none happen, and that
# nobody waits forever for the database to start or finish that group of changes.
#
# 🧪 Purpose (Technical Summary):
# Transaction coordinator running a unit of work on an AsyncSession under a fixed isolation
# level, with a bounded wait to begin, a bounded execution time, and rollback on every failure.
#
# 🔗 Dependencies:
# - sqlalchemy.ext.asyncio (AsyncSession)
# - app/shared/infrastructure/database/connection.py (session factory)
# - app/shared/core/exceptions.py (TransactionStartTimeout, TransactionTimeout)
#
# 🔄 Connected Modules / Calls From:
# - CRUD services (multi-statement writes)
# - app/shared/core/dependencies.py (FastAPI dependency)

import asyncio
import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, TypeVar, Union

from sqlalchemy import exc
from sqlalchemy.ext.asyncio import AsyncSession

from app.shared.config.settings import Settings, get_settings
from app.shared.core.exceptions import TransactionStartTimeout, TransactionTimeout
from app.shared.infrastructure.database.connection import DatabaseConnectionManager
from app.shared.infrastructure.database.errors import translate_database_error

logger = logging.getLogger(__name__)

T = TypeVar('T')

Work = Callable[[AsyncSession], Union[Awaitable[T], T]]


class IsolationLevel(Enum):
    """SQL transaction isolation levels"""
    READ_UNCOMMITTED = "READ UNCOMMITTED"
    READ_COMMITTED = "READ COMMITTED"
    REPEATABLE_READ = "REPEATABLE READ"
    SERIALIZABLE = "SERIALIZABLE"


@dataclass(frozen=True)
class TransactionEnvelope:
    """Limits for a single unit of work."""
    max_wait: float = 5.0                                   # Seconds allowed to begin
    timeout: float = 10.0                                   # Seconds allowed for the work
    isolation_level: IsolationLevel = IsolationLevel.READ_COMMITTED

    def __post_init__(self):
        if self.max_wait <= 0 or self.timeout <= 0:
            raise ValueError("max_wait and timeout must be greater than zero")

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "TransactionEnvelope":
        settings = settings or get_settings()
        return cls(
            max_wait=settings.DB_TRANSACTION_MAX_WAIT,
            timeout=settings.DB_TRANSACTION_TIMEOUT,
            isolation_level=IsolationLevel(settings.DB_TRANSACTION_ISOLATION_LEVEL),
        )


class TransactionCoordinator:
    """
    Runs units of work atomically.

    The coordinator never retries. Compose it with ``execute_with_retry`` at
    the call site when serialization failures or deadlocks should be retried:

        await execute_with_retry(
            lambda: coordinator.run_in_transaction(work),
            database_retry_policy(),
        )
    """

    def __init__(
        self,
        connection_manager: DatabaseConnectionManager,
        default_envelope: Optional[TransactionEnvelope] = None
    ):
        self._connection_manager = connection_manager
        self._default_envelope = default_envelope or TransactionEnvelope()

    @property
    def default_envelope(self) -> TransactionEnvelope:
        return self._default_envelope

    async def run_in_transaction(
        self,
        work: Work,
        envelope: Optional[TransactionEnvelope] = None
    ) -> Any:
        """
        Execute ``work`` inside a single transaction.

        Args:
            work: Callable receiving the transactional session
            envelope: Wait/timeout/isolation limits, defaults to the coordinator's

        Returns:
            The result of ``work`` after commit

        Raises:
            TransactionStartTimeout: If the transaction cannot begin within max_wait
            TransactionTimeout: If work does not finish within timeout (rolled back)
            Exception: Whatever ``work`` raised, unmodified, after rollback
        """
        envelope = envelope or self._default_envelope
        session_factory = await self._connection_manager.get_session_factory()
        session: AsyncSession = session_factory()

        try:
            await self._begin(session, envelope)

            task = asyncio.ensure_future(self._run_work(work, session))
            try:
                done, _ = await asyncio.wait({task}, timeout=envelope.timeout)
            except asyncio.CancelledError:
                await self._cancel_work(task)
                await self._rollback(session)
                raise

            if task not in done:
                await self._cancel_work(task)
                await self._rollback(session)
                logger.error(
                    f"Transaction exceeded {envelope.timeout}s timeout, rolled back"
                )
                raise TransactionTimeout(envelope.timeout)

            if task.exception() is not None:
                await self._rollback(session)
                logger.error(f"Transaction failed, rolled back: {task.exception()}")
                raise task.exception()

            try:
                await session.commit()
            except Exception as e:
                await self._rollback(session)
                logger.error(f"Transaction commit failed: {e}")
                raise

            logger.debug("Database transaction committed successfully")
            return task.result()

        finally:
            await self._close(session)

    async def _begin(self, session: AsyncSession, envelope: TransactionEnvelope) -> None:
        try:
            await asyncio.wait_for(
                session.connection(
                    execution_options={"isolation_level": envelope.isolation_level.value}
                ),
                timeout=envelope.max_wait
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Transaction could not start within {envelope.max_wait}s")
            raise TransactionStartTimeout(envelope.max_wait) from e
        except (exc.SQLAlchemyError, OSError) as e:
            logger.error(f"Transaction could not start: {e}")
            raise translate_database_error(e, operation="begin") from e

    @staticmethod
    async def _run_work(work: Work, session: AsyncSession) -> Any:
        result = work(session)
        if inspect.isawaitable(result):
            result = await result
        await session.flush()
        return result

    @staticmethod
    async def _cancel_work(task: asyncio.Future) -> None:
        task.cancel()
        await asyncio.wait({task})
        if not task.cancelled() and task.exception() is not None:
            logger.debug(f"Cancelled unit of work raised: {task.exception()}")

    @staticmethod
    async def _rollback(session: AsyncSession) -> None:
        try:
            await session.rollback()
            logger.debug("Database transaction rolled back")
        except Exception as e:
            logger.error(f"Rollback failed: {e}")

    @staticmethod
    async def _close(session: AsyncSession) -> None:
        try:
            await session.close()
        except Exception as e:
            logger.error(f"Closing database session failed: {e}")

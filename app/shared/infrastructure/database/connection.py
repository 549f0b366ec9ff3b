# 📄 File: app/shared/infrastructure/database/connection.py
#
# 🧭 Purpose (Layman Explanation):
# Manages the connection to our plant-monitoring database, like making sure we can talk to our
# data storage and sharing a handful of connections efficiently between many requests.
#
# 🧪 Purpose (Technical Summary):
# Async SQLAlchemy connection lifecycle with an explicit connection state machine, pooled engine,
# liveness probe with latency measurement, and scoped startup/shutdown for the host process.
#
# 🔗 Dependencies:
# - sqlalchemy (async engine, sessions, pool events)
# - asyncpg (PostgreSQL async driver)
# - app/shared/config/settings.py (database configuration)
#
# 🔄 Connected Modules / Calls From:
# - app/shared/infrastructure/database/transaction.py (session factory)
# - app/monitoring/health_checks.py (probe)
# - app/main.py (lifespan)

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from enum import Enum
from typing import Any, AsyncIterator, Dict, Optional

from sqlalchemy import event, exc, text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncConnection,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool, QueuePool

from app.shared.config.settings import Settings, get_settings
from app.shared.core.exceptions import DatabaseConnectionError, DatabaseError, ErrorKind
from app.shared.infrastructure.database.errors import resolve_error_kind, translate_database_error

logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Lifecycle states of the database connection pool."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAILED = "failed"


class DatabaseConnectionManager:
    """
    Manages database connections with connection pooling,
    liveness probing, and explicit lifecycle state.

    One instance is created per process by the application factory and
    handed to collaborators; the pool itself is never exposed.
    """

    def __init__(self, settings: Optional[Settings] = None, database_url: Optional[str] = None):
        self._settings = settings or get_settings()
        self._database_url = database_url or self._settings.database_url
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker] = None
        self._state = ConnectionState.DISCONNECTED
        self._lock = asyncio.Lock()
        self._health_check_query = text("SELECT 1")
        self._probe_timeout = self._settings.DB_PROBE_TIMEOUT

    def _build_connection_params(self) -> Dict[str, Any]:
        """Build SQLAlchemy engine parameters for the configured backend."""
        url = make_url(self._database_url)
        params: Dict[str, Any] = {
            "url": url,
            "echo": self._settings.debug,
            "echo_pool": self._settings.debug,
            "pool_pre_ping": True,  # Validate connections before use
        }

        if url.get_backend_name() == "sqlite":
            # SQLite files are not worth pooling
            params["poolclass"] = NullPool
            return params

        params.update({
            "pool_size": self._settings.database_pool_size,
            "max_overflow": self._settings.database_max_overflow,
            "pool_timeout": self._settings.database_pool_timeout,
            "pool_recycle": self._settings.database_pool_recycle,
        })

        if url.get_driver_name() == "asyncpg":
            params["connect_args"] = {
                "server_settings": {
                    "application_name": "plant_monitoring_backend",
                    "jit": "off",
                },
                "command_timeout": self._settings.DB_COMMAND_TIMEOUT,
                "statement_cache_size": 0,
            }
        return params

    def _set_state(self, new_state: ConnectionState) -> None:
        old_state = self._state
        if old_state is new_state:
            return
        self._state = new_state

        level = logging.ERROR if new_state is ConnectionState.FAILED else logging.INFO
        logger.log(
            level,
            f"Database connection state: {old_state.value} -> {new_state.value}"
        )

    def _register_connection_events(self) -> None:
        """Register SQLAlchemy connection event listeners."""
        if self._engine is None:
            return

        sync_engine = self._engine.sync_engine

        @event.listens_for(sync_engine, "checkout")
        def receive_checkout(dbapi_connection, connection_record, connection_proxy):
            """Log connection checkout for monitoring."""
            if self._settings.debug:
                logger.debug("Connection checked out from pool")

        @event.listens_for(sync_engine, "checkin")
        def receive_checkin(dbapi_connection, connection_record):
            """Log connection checkin for monitoring."""
            if self._settings.debug:
                logger.debug("Connection checked in to pool")

        if not self._settings.debug:
            return

        @event.listens_for(sync_engine, "before_cursor_execute")
        def before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
            conn.info.setdefault("query_start_time", []).append(time.perf_counter())

        @event.listens_for(sync_engine, "after_cursor_execute")
        def after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
            started = conn.info["query_start_time"].pop()
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.debug(f"Query took {elapsed_ms:.2f}ms: {statement}")

        @event.listens_for(sync_engine, "handle_error")
        def handle_error(exception_context):
            # Failed statements never reach after_cursor_execute; info outlives checkouts
            conn = exception_context.connection
            if conn is None or exception_context.cursor is None:
                return
            started_times = conn.info.get("query_start_time")
            if started_times:
                started = started_times.pop()
                elapsed_ms = (time.perf_counter() - started) * 1000
                logger.debug(
                    f"Query failed after {elapsed_ms:.2f}ms: {exception_context.statement}"
                )

    def _connection_error(self, error: BaseException, operation: str) -> DatabaseConnectionError:
        if isinstance(error, DatabaseConnectionError):
            return error
        if resolve_error_kind(error) in (ErrorKind.CONNECTION_TIMEOUT, ErrorKind.OPERATION_TIMEOUT):
            kind = ErrorKind.CONNECTION_TIMEOUT
        else:
            kind = ErrorKind.CONNECTION_FAILED
        return DatabaseConnectionError(
            message=f"Database {operation} failed: {type(error).__name__}: {error}",
            operation=operation,
            kind=kind
        )

    async def _round_trip(self, engine: AsyncEngine) -> float:
        started = time.perf_counter()
        async with engine.connect() as conn:
            result = await conn.execute(self._health_check_query)
            result.scalar()
        return (time.perf_counter() - started) * 1000

    async def _dispose(self) -> None:
        engine = self._engine
        self._engine = None
        self._session_factory = None
        if engine is not None:
            await engine.dispose()

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def connect(self) -> None:
        """
        Create the pooled engine and verify the database is reachable.

        Raises:
            DatabaseConnectionError: If the backing store is unreachable
        """
        async with self._lock:
            if self._state is ConnectionState.CONNECTED:
                logger.debug("Database already connected")
                return

            self._set_state(ConnectionState.CONNECTING)
            try:
                if self._engine is None:
                    logger.info("Initializing database connection pool...")
                    self._engine = create_async_engine(**self._build_connection_params())
                    self._register_connection_events()
                    self._session_factory = async_sessionmaker(
                        bind=self._engine,
                        class_=AsyncSession,
                        expire_on_commit=False,  # Keep objects accessible after commit
                        autoflush=True,
                    )

                latency = await asyncio.wait_for(
                    self._round_trip(self._engine), timeout=self._probe_timeout
                )
            except Exception as e:
                logger.error(f"Failed to connect to database: {e}")
                try:
                    await self._dispose()
                finally:
                    self._set_state(ConnectionState.FAILED)
                raise self._connection_error(e, "connect") from e

            self._set_state(ConnectionState.CONNECTED)
            logger.info(
                f"Database connection pool initialized ({latency:.1f}ms round trip). "
                f"Pool size: {self._settings.database_pool_size}, "
                f"Max overflow: {self._settings.database_max_overflow}"
            )

    async def disconnect(self) -> None:
        """Dispose the pool. Safe to call when never connected."""
        async with self._lock:
            if self._engine is None:
                logger.debug("Database not connected, nothing to close")
                self._set_state(ConnectionState.DISCONNECTED)
                return

            try:
                logger.info("Closing database connection pool...")
                await self._dispose()
                logger.info("Database connection pool closed successfully")
            except Exception as e:
                logger.error(f"Error closing database connection pool: {e}")
                raise
            finally:
                self._set_state(ConnectionState.DISCONNECTED)

    async def start(self) -> None:
        """Startup hook for the host process."""
        await self.connect()

    async def stop(self) -> None:
        """Shutdown hook for the host process."""
        await self.disconnect()

    @asynccontextmanager
    async def lifespan(self) -> AsyncIterator["DatabaseConnectionManager"]:
        """
        Scope the connection to a block; the pool is released on every exit path.

        Example:
            async with manager.lifespan():
                await serve()
        """
        try:
            await self.start()
            yield self
        finally:
            await self.stop()

    # =========================================================================
    # LIVENESS
    # =========================================================================

    async def probe(self) -> float:
        """
        Issue a minimal round trip and measure it.

        Never retries; a failure moves CONNECTED to FAILED and a later
        success moves FAILED back to CONNECTED.

        Returns:
            float: Round-trip latency in milliseconds

        Raises:
            DatabaseConnectionError: On any I/O or timeout failure
        """
        engine = self._engine
        if engine is None:
            raise DatabaseConnectionError(
                message=f"Database is {self._state.value}",
                operation="probe"
            )

        try:
            latency = await asyncio.wait_for(
                self._round_trip(engine), timeout=self._probe_timeout
            )
        except Exception as e:
            logger.warning(f"Database probe failed: {e}")
            if self._state is ConnectionState.CONNECTED:
                self._set_state(ConnectionState.FAILED)
            raise self._connection_error(e, "probe") from e

        if self._state is ConnectionState.FAILED:
            logger.info("Database reachable again")
            self._set_state(ConnectionState.CONNECTED)
        return latency

    async def is_connected(self) -> bool:
        """Boolean liveness; never raises."""
        try:
            await self.probe()
            return True
        except DatabaseConnectionError:
            return False

    # =========================================================================
    # ACCESSORS
    # =========================================================================

    async def _ensure_available(self, operation: str) -> None:
        if self._state is ConnectionState.CONNECTING:
            # Wait for the in-flight connect() to settle
            async with self._lock:
                pass

        if self._state is ConnectionState.CONNECTED:
            return

        if self._state is ConnectionState.FAILED and self._engine is not None:
            await self.probe()
            return

        raise DatabaseConnectionError(
            message=f"Database is {self._state.value}; cannot run {operation}",
            operation=operation
        )

    async def get_session_factory(self) -> async_sessionmaker:
        """
        Session factory bound to the shared pool.

        Raises:
            DatabaseConnectionError: If the database is not available
        """
        await self._ensure_available("session")
        return self._session_factory

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[AsyncConnection]:
        """
        Get a database connection inside a transaction that commits on exit.

        Yields:
            AsyncConnection: Database connection
        """
        await self._ensure_available("connection")

        try:
            async with self._engine.begin() as conn:
                yield conn
        except DatabaseError:
            raise
        except (exc.SQLAlchemyError, OSError) as e:
            logger.error(f"Database connection error: {e}")
            raise translate_database_error(e, operation="connection") from e

    async def execute_query(self, query: str, parameters: Optional[Dict[str, Any]] = None) -> Any:
        """
        Execute a raw SQL statement with parameters.

        Returns:
            List of row dicts for queries returning rows, else the row count
        """
        async with self.connection() as conn:
            result = await conn.execute(text(query), parameters or {})
            if result.returns_rows:
                return [dict(row) for row in result.mappings().all()]
            return result.rowcount

    async def get_connection_info(self) -> Dict[str, Any]:
        """
        Get current connection pool information for monitoring.

        Returns:
            Dict containing pool statistics
        """
        if self._engine is None:
            return {"state": self._state.value}

        pool = self._engine.pool
        info: Dict[str, Any] = {
            "state": self._state.value,
            "url": self.database_url,
            "pool_class": type(pool).__name__,
        }
        if isinstance(pool, QueuePool):
            info.update({
                "pool_size": pool.size(),
                "checked_in": pool.checkedin(),
                "checked_out": pool.checkedout(),
                "overflow": pool.overflow(),
            })
        return info

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def database_url(self) -> str:
        """Configured URL with the password masked."""
        return make_url(self._database_url).render_as_string(hide_password=True)

    @property
    def is_initialized(self) -> bool:
        """Check if the database engine exists."""
        return self._engine is not None

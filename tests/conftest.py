from typing import Tuple
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.shared.config.settings import Settings
from app.shared.infrastructure.database.connection import DatabaseConnectionManager
from app.shared.infrastructure.database.transaction import IsolationLevel, TransactionEnvelope


class FakeMemorySource:
    def __init__(self, used: int, total: int):
        self.used = used
        self.total = total

    def read(self) -> Tuple[int, int]:
        return self.used, self.total


class BrokenMemorySource:
    def read(self) -> Tuple[int, int]:
        raise OSError("no /proc")


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'plants.db'}"


@pytest.fixture
def settings(database_url):
    return Settings(
        ENVIRONMENT="test",
        DATABASE_URL=database_url,
        LOG_FORMAT="text",
        DB_PROBE_TIMEOUT=2.0,
        DB_RETRY_BASE_DELAY=0.01,
    )


@pytest.fixture
def unreachable_settings(tmp_path):
    return Settings(
        ENVIRONMENT="test",
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'dir' / 'plants.db'}",
        LOG_FORMAT="text",
        DB_PROBE_TIMEOUT=2.0,
    )


@pytest.fixture
async def database_manager(settings):
    manager = DatabaseConnectionManager(settings)
    async with manager.lifespan():
        yield manager


@pytest.fixture
async def plants_table(database_manager):
    await database_manager.execute_query(
        "CREATE TABLE plants (id TEXT PRIMARY KEY, health_status TEXT NOT NULL)"
    )
    return "plants"


@pytest.fixture
def sqlite_envelope():
    # SQLite has no READ COMMITTED
    return TransactionEnvelope(
        max_wait=2.0,
        timeout=2.0,
        isolation_level=IsolationLevel.SERIALIZABLE,
    )


@pytest.fixture
def fake_session():
    session = MagicMock()
    session.connection = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    return session


@pytest.fixture
def fake_manager(fake_session):
    manager = MagicMock(spec=DatabaseConnectionManager)
    manager.get_session_factory = AsyncMock(return_value=MagicMock(return_value=fake_session))
    manager.probe = AsyncMock(return_value=3.14159)
    return manager

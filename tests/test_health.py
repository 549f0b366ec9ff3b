import dataclasses
from datetime import datetime

import pytest
from pydantic import ValidationError

from app.monitoring.health_checks import (
    BYTES_PER_MB,
    DatabaseStatus,
    HealthAggregator,
    HealthStatus,
    ProcessMemorySource,
    evaluate_health,
)
from app.shared.config.settings import Settings
from app.shared.core.exceptions import DatabaseConnectionError
from tests.conftest import BrokenMemorySource, FakeMemorySource


def memory(used_mb, total_mb=1000):
    return FakeMemorySource(used_mb * BYTES_PER_MB, total_mb * BYTES_PER_MB)


class FakeClock:
    def __init__(self, *readings):
        self.readings = list(readings)

    def __call__(self):
        return self.readings.pop(0)


@pytest.mark.parametrize(
    "database_status, percentage, expected",
    [
        (DatabaseStatus.CONNECTED, 50.0, HealthStatus.HEALTHY),
        (DatabaseStatus.CONNECTED, 90.0, HealthStatus.HEALTHY),
        (DatabaseStatus.CONNECTED, 90.01, HealthStatus.UNHEALTHY),
        (DatabaseStatus.DISCONNECTED, 0.0, HealthStatus.UNHEALTHY),
    ],
)
def test_verdict_rule(database_status, percentage, expected):
    assert evaluate_health(database_status, percentage) is expected


async def test_healthy_snapshot(fake_manager):
    aggregator = HealthAggregator(fake_manager, memory_source=memory(250))

    snapshot = await aggregator.check_health()

    assert snapshot.is_healthy
    assert snapshot.database.status is DatabaseStatus.CONNECTED
    assert snapshot.database.latency_ms == 3.14
    assert snapshot.memory.used_mb == 250
    assert snapshot.memory.total_mb == 1000
    assert snapshot.memory.percentage == 25.0


async def test_disconnected_database_is_unhealthy_regardless_of_memory(fake_manager):
    fake_manager.probe.side_effect = DatabaseConnectionError()
    aggregator = HealthAggregator(fake_manager, memory_source=memory(0))

    snapshot = await aggregator.check_health()

    assert snapshot.status is HealthStatus.UNHEALTHY
    assert snapshot.database.status is DatabaseStatus.DISCONNECTED
    assert snapshot.database.latency_ms == 0


async def test_memory_pressure_is_unhealthy(fake_manager):
    aggregator = HealthAggregator(fake_manager, memory_source=memory(950))

    snapshot = await aggregator.check_health()

    assert snapshot.status is HealthStatus.UNHEALTHY
    assert snapshot.database.status is DatabaseStatus.CONNECTED
    assert snapshot.memory.percentage == 95.0


async def test_threshold_is_not_inclusive(fake_manager):
    aggregator = HealthAggregator(fake_manager, memory_source=memory(900))

    assert (await aggregator.check_health()).is_healthy


async def test_custom_threshold(fake_manager):
    aggregator = HealthAggregator(fake_manager, memory_source=memory(600), memory_threshold=50)

    assert not (await aggregator.check_health()).is_healthy


async def test_unexpected_probe_error_reports_disconnected(fake_manager):
    fake_manager.probe.side_effect = RuntimeError("driver bug")
    aggregator = HealthAggregator(fake_manager, memory_source=memory(100))

    snapshot = await aggregator.check_health()

    assert snapshot.database.status is DatabaseStatus.DISCONNECTED


async def test_unreadable_memory_reports_zeros(fake_manager):
    aggregator = HealthAggregator(fake_manager, memory_source=BrokenMemorySource())

    snapshot = await aggregator.check_health()

    assert snapshot.is_healthy
    assert (snapshot.memory.used_mb, snapshot.memory.total_mb, snapshot.memory.percentage) == (0, 0, 0.0)


async def test_uptime_and_timestamp(fake_manager):
    aggregator = HealthAggregator(
        fake_manager, memory_source=memory(100), clock=FakeClock(100.0, 142.7)
    )

    snapshot = await aggregator.check_health()

    assert snapshot.uptime_seconds == 42
    assert datetime.fromisoformat(snapshot.timestamp).tzinfo is not None


async def test_snapshots_are_fresh_and_immutable(fake_manager):
    aggregator = HealthAggregator(fake_manager, memory_source=memory(100))

    first = await aggregator.check_health()
    fake_manager.probe.side_effect = DatabaseConnectionError()
    second = await aggregator.check_health()

    assert first.is_healthy
    assert not second.is_healthy
    assert fake_manager.probe.await_count == 2
    with pytest.raises(dataclasses.FrozenInstanceError):
        first.status = HealthStatus.UNHEALTHY


async def test_snapshot_dict_shape(fake_manager):
    aggregator = HealthAggregator(fake_manager, memory_source=memory(300))

    payload = (await aggregator.check_health()).to_dict()

    assert set(payload) == {"status", "timestamp", "uptime_seconds", "memory", "database"}
    assert payload["status"] == "healthy"
    assert payload["memory"] == {"used_mb": 300, "total_mb": 1000, "percentage": 30.0}
    assert payload["database"] == {"status": "connected", "latency_ms": 3.14}


async def test_against_a_real_database(database_manager):
    aggregator = HealthAggregator(database_manager, memory_source=memory(100))

    snapshot = await aggregator.check_health()

    assert snapshot.database.status is DatabaseStatus.CONNECTED
    assert snapshot.database.latency_ms >= 0


def test_process_memory_source_reads_real_figures():
    used, total = ProcessMemorySource().read()

    assert 0 < used < total


def test_process_memory_source_uses_configured_limit():
    limit = 512 * BYTES_PER_MB

    used, total = ProcessMemorySource(limit_bytes=limit).read()

    assert total == limit
    assert used > 0


def test_process_memory_source_rejects_empty_limit():
    with pytest.raises(ValueError):
        ProcessMemorySource(limit_bytes=0)


async def test_memory_limit_drives_the_verdict(fake_manager):
    used, _ = ProcessMemorySource().read()
    # Half the current RSS as the limit puts usage near 200%
    aggregator = HealthAggregator(
        fake_manager, memory_source=ProcessMemorySource(limit_bytes=max(used // 2, 1))
    )

    snapshot = await aggregator.check_health()

    assert snapshot.memory.percentage > 90
    assert snapshot.status is HealthStatus.UNHEALTHY


def test_memory_limit_setting():
    settings = Settings(ENVIRONMENT="test", HEALTH_MEMORY_LIMIT_MB=256)

    assert settings.health_memory_limit_bytes == 256 * BYTES_PER_MB
    assert Settings(ENVIRONMENT="test").health_memory_limit_bytes is None
    with pytest.raises(ValidationError):
        Settings(ENVIRONMENT="test", HEALTH_MEMORY_LIMIT_MB=0)

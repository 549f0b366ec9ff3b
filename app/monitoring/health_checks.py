# 📄 File: app/monitoring/health_checks.py
# 🧭 Purpose (Layman Explanation):
# Works out whether our plant-monitoring service is healthy by checking that the database
# answers and that the app is not running out of memory, like a quick doctor's checkup.
# 🧪 Purpose (Technical Summary):
# Health aggregator combining a database liveness probe (status + latency) with process memory
# pressure from psutil into an immutable, freshly computed HealthSnapshot and a single verdict.
# 🔗 Dependencies:
# psutil, app.shared.infrastructure.database.connection, app.shared.utils.logging
# 🔄 Connected Modules / Calls From:
# app.api.v1.health, app.main (lifespan wiring), load balancers via /health

import asyncio
import logging
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional, Protocol, Tuple

import psutil

from app.shared.infrastructure.database.connection import DatabaseConnectionManager
from app.shared.utils.logging import log_health_check

logger = logging.getLogger(__name__)

BYTES_PER_MB = 1024 * 1024
DEFAULT_MEMORY_THRESHOLD = 90.0


class HealthStatus(str, Enum):
    """Overall service verdict."""
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class DatabaseStatus(str, Enum):
    """Database reachability as seen by the probe."""
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


@dataclass(frozen=True)
class MemoryUsage:
    used_mb: int
    total_mb: int
    percentage: float


@dataclass(frozen=True)
class DatabaseHealth:
    status: DatabaseStatus
    latency_ms: float


@dataclass(frozen=True)
class HealthSnapshot:
    """
    Point-in-time health verdict with its supporting metrics.

    Attributes:
        status: UNHEALTHY iff the database is disconnected or memory is above threshold
        timestamp: UTC ISO-8601 time the snapshot was taken
        uptime_seconds: Whole seconds since the aggregator started
        memory: Process memory usage
        database: Probe outcome
    """

    status: HealthStatus
    timestamp: str
    uptime_seconds: int
    memory: MemoryUsage
    database: DatabaseHealth

    @property
    def is_healthy(self) -> bool:
        return self.status is HealthStatus.HEALTHY

    def to_dict(self) -> Dict[str, Any]:
        """Flat JSON-ready representation."""
        return {
            "status": self.status.value,
            "timestamp": self.timestamp,
            "uptime_seconds": self.uptime_seconds,
            "memory": asdict(self.memory),
            "database": {
                "status": self.database.status.value,
                "latency_ms": self.database.latency_ms,
            },
        }


class MemorySource(Protocol):
    def read(self) -> Tuple[int, int]:
        """Return (used_bytes, total_bytes)."""


class ProcessMemorySource:
    """
    Resident memory of this process against its memory budget.

    The budget is ``limit_bytes`` when given (e.g. the container memory limit),
    otherwise total system memory.
    """

    def __init__(self, limit_bytes: Optional[int] = None):
        if limit_bytes is not None and limit_bytes <= 0:
            raise ValueError("limit_bytes must be greater than zero")
        self._process = psutil.Process()
        self._limit_bytes = limit_bytes

    def read(self) -> Tuple[int, int]:
        used = self._process.memory_info().rss
        total = self._limit_bytes or psutil.virtual_memory().total
        return used, total


def evaluate_health(
    database_status: DatabaseStatus,
    memory_percentage: float,
    memory_threshold: float = DEFAULT_MEMORY_THRESHOLD
) -> HealthStatus:
    """Unhealthy if the database is disconnected or memory is above the threshold."""
    if database_status is DatabaseStatus.DISCONNECTED or memory_percentage > memory_threshold:
        return HealthStatus.UNHEALTHY
    return HealthStatus.HEALTHY


class HealthAggregator:
    """
    Computes a HealthSnapshot on every call. Nothing is cached.
    """

    def __init__(
        self,
        connection_manager: DatabaseConnectionManager,
        memory_source: Optional[MemorySource] = None,
        memory_threshold: float = DEFAULT_MEMORY_THRESHOLD,
        clock: Callable[[], float] = time.monotonic
    ):
        self._connection_manager = connection_manager
        self._memory_source = memory_source or ProcessMemorySource()
        self._memory_threshold = memory_threshold
        self._clock = clock
        self._started_at = clock()

    async def check_health(self) -> HealthSnapshot:
        """
        Probe the database and read memory, then apply the verdict rule.

        Never raises; database problems show up as a disconnected status.
        """
        database, memory = await asyncio.gather(
            self._check_database(),
            self._check_memory(),
        )
        status = evaluate_health(database.status, memory.percentage, self._memory_threshold)

        snapshot = HealthSnapshot(
            status=status,
            timestamp=datetime.now(timezone.utc).isoformat(),
            uptime_seconds=int(self._clock() - self._started_at),
            memory=memory,
            database=database,
        )
        log_health_check(
            "service",
            status.value,
            extra={
                "database_status": database.status.value,
                "memory_percentage": memory.percentage,
            },
        )
        return snapshot

    async def _check_database(self) -> DatabaseHealth:
        try:
            latency = await self._connection_manager.probe()
        except Exception as e:
            logger.warning(f"Database health probe failed: {e}")
            return DatabaseHealth(status=DatabaseStatus.DISCONNECTED, latency_ms=0)
        return DatabaseHealth(status=DatabaseStatus.CONNECTED, latency_ms=round(latency, 2))

    async def _check_memory(self) -> MemoryUsage:
        try:
            used, total = self._memory_source.read()
        except Exception as e:
            # Memory figures are reported as zero; the database verdict still applies
            logger.error(f"Reading process memory failed: {e}")
            return MemoryUsage(used_mb=0, total_mb=0, percentage=0.0)

        percentage = (used / total) * 100 if total else 0.0
        return MemoryUsage(
            used_mb=round(used / BYTES_PER_MB),
            total_mb=round(total / BYTES_PER_MB),
            percentage=round(percentage, 2),
        )

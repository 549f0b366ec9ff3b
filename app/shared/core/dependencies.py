# 📄 File: app/shared/core/dependencies.py
# 🧭 Purpose (Layman Explanation):
# Hands each API endpoint the shared tools it needs (database manager, transaction runner,
# health checker) without every endpoint having to build them itself.
# 🧪 Purpose (Technical Summary):
# FastAPI dependency providers resolving process-scoped collaborators created in the
# application lifespan and stored on app.state.
# 🔗 Dependencies:
# FastAPI Request, app.shared.infrastructure.database, app.monitoring.health_checks
# 🔄 Connected Modules / Calls From:
# app.api.v1.health, CRUD route modules

from fastapi import Request

from app.monitoring.health_checks import HealthAggregator
from app.shared.core.exceptions import DatabaseConnectionError
from app.shared.infrastructure.database.connection import DatabaseConnectionManager
from app.shared.infrastructure.database.transaction import TransactionCoordinator


def _from_state(request: Request, name: str):
    component = getattr(request.app.state, name, None)
    if component is None:
        raise DatabaseConnectionError(
            message=f"{name} is not initialized",
            operation="dependency"
        )
    return component


def get_database_manager(request: Request) -> DatabaseConnectionManager:
    """Process-wide database connection manager."""
    return _from_state(request, "database_manager")


def get_transaction_coordinator(request: Request) -> TransactionCoordinator:
    """Transaction coordinator bound to the shared pool."""
    return _from_state(request, "transaction_coordinator")


def get_health_aggregator(request: Request) -> HealthAggregator:
    """Health aggregator for the health endpoints."""
    return _from_state(request, "health_aggregator")

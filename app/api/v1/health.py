# 📄 File: app/api/v1/health.py
# 🧭 Purpose (Layman Explanation):
# This file provides health check endpoints that tell us if our plant monitoring app is working properly,
# like a doctor's checkup for our system to make sure the database and memory are in good shape.
# 🧪 Purpose (Technical Summary):
# Health, liveness and readiness endpoints. /health serializes the HealthSnapshot and answers
# 200 when healthy, 503 with the same payload otherwise.
# 🔗 Dependencies:
# FastAPI, app.monitoring.health_checks, app.shared.core.dependencies
# 🔄 Connected Modules / Calls From:
# app.api.v1.router, app.main.py, monitoring systems, load balancers

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse

from app.monitoring.health_checks import HealthAggregator
from app.shared.core.dependencies import get_database_manager, get_health_aggregator
from app.shared.infrastructure.database.connection import DatabaseConnectionManager

logger = logging.getLogger(__name__)

# Create router for health endpoints
health_router = APIRouter()


@health_router.get("/health",
                  summary="Health Check",
                  description="Service health verdict with database and memory metrics",
                  tags=["Health Check"])
async def health_check(
    aggregator: HealthAggregator = Depends(get_health_aggregator)
) -> JSONResponse:
    """
    Health check endpoint

    Returns the current health snapshot. Unhealthy snapshots are
    returned with 503 so load balancers take the instance out of rotation.
    """
    snapshot = await aggregator.check_health()

    return JSONResponse(
        status_code=status.HTTP_200_OK if snapshot.is_healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content=snapshot.to_dict()
    )


@health_router.get("/health/live",
                  summary="Liveness Probe",
                  description="Kubernetes liveness probe endpoint",
                  tags=["Health Check"])
async def liveness_probe() -> Response:
    """
    Liveness probe for Kubernetes

    Returns 200 if the application is alive and running.
    """
    return Response(status_code=200, content="OK")


@health_router.get("/health/ready",
                  summary="Readiness Probe",
                  description="Kubernetes readiness probe endpoint",
                  tags=["Health Check"])
async def readiness_probe(
    manager: DatabaseConnectionManager = Depends(get_database_manager)
) -> JSONResponse:
    """
    Readiness probe for Kubernetes

    Returns 200 if the database answers, 503 otherwise.
    """
    timestamp = datetime.now(timezone.utc).isoformat()

    if await manager.is_connected():
        return JSONResponse(
            status_code=200,
            content={"status": "ready", "timestamp": timestamp}
        )

    return JSONResponse(
        status_code=503,
        content={
            "status": "not_ready",
            "reason": "database_unavailable",
            "timestamp": timestamp
        }
    )

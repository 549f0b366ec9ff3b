# 📄 File: app/api/v1/router.py
# 🧭 Purpose (Layman Explanation):
# This file acts like a traffic director for all API version 1 requests, sending each one
# to the right handler.
# 🧪 Purpose (Technical Summary):
# Main API v1 router aggregation that combines module routers and exposes version information.
# 🔗 Dependencies:
# FastAPI, app.api.v1.health
# 🔄 Connected Modules / Calls From:
# app.main.py

import logging

from fastapi import APIRouter

from app.shared.config.settings import get_settings
from .health import health_router

logger = logging.getLogger(__name__)

# Create main API v1 router
api_v1_router = APIRouter()

api_v1_router.include_router(
    health_router,
    tags=["Health Check"]
)


@api_v1_router.get("/",
                  summary="API v1 Information",
                  description="Get API v1 version information and available endpoints",
                  tags=["API Info"])
async def api_v1_info() -> dict:
    """API v1 information endpoint."""
    settings = get_settings()
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "api_version": "v1",
        "endpoints": {
            "health_check": "/health",
            "liveness_probe": "/health/live",
            "readiness_probe": "/health/ready",
        },
    }

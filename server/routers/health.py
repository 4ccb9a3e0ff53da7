"""
Health check endpoints for production deployment.

Provides:
- /health - Basic liveness check (is the app running?)
- /ready - Readiness check (is the bot connected to Discord?)
- /metrics - Guild and game counts for monitoring
"""

import json
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Response

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

# Service references (set during app initialization)
_registry = None
_bot = None


def set_health_dependencies(registry=None, bot=None):
    """Set dependencies for health checks."""
    global _registry, _bot
    _registry = registry
    _bot = bot


@router.get("/health")
async def health_check():
    """
    Basic liveness check - is the app running?

    This endpoint should always return 200 if the process is alive.
    """
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/ready")
async def readiness_check():
    """
    Readiness check - is the Discord gateway connected?

    Returns 503 while the bot is configured but not yet ready.
    """
    checks = {}
    overall_healthy = True

    if _bot is not None:
        if _bot.is_ready() and not _bot.is_closed():
            checks["discord"] = {"status": "ok", "latency_ms": round(_bot.latency * 1000)}
        else:
            checks["discord"] = {"status": "connecting"}
            overall_healthy = False
    else:
        checks["discord"] = {"status": "not_configured"}

    status_code = 200 if overall_healthy else 503
    return Response(
        content=json.dumps({
            "status": "ok" if overall_healthy else "degraded",
            "checks": checks,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }),
        status_code=status_code,
        media_type="application/json",
    )


@router.get("/metrics")
async def metrics():
    """Expose guild and game counts."""
    metrics_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if _registry is not None:
        metrics_data.update(_registry.stats())
    return metrics_data

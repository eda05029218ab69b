"""
Health check endpoints.

Provides endpoints for monitoring application health and view state.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from api.dependencies import get_app_settings
from config.settings import Settings
from inventory.engine import InventoryViewEngine


router = APIRouter(tags=["Health"])


def _engine_state(engine: InventoryViewEngine) -> Dict[str, Any]:
    return {
        "active": engine.active,
        "loading": engine.loading,
        "error": engine.error,
        "revision": engine.revision,
        "items": len(engine.items),
        "realtime": "subscribed" if engine.realtime_active else (engine.realtime_error or "off"),
        "store_status_error": engine.store_status_error,
    }


@router.get("/health")
async def health_check() -> Dict[str, Any]:
    """
    Basic health check endpoint.

    Returns:
        Health status with basic info
    """
    return {
        "status": "healthy",
        "service": "inventory-api",
    }


@router.get("/health/detailed")
async def detailed_health_check(
    request: Request,
    settings: Settings = Depends(get_app_settings),
) -> Dict[str, Any]:
    """
    Detailed health check with view state.

    A view is degraded when its last snapshot fetch failed or its realtime
    subscription is missing while realtime is enabled.
    """
    engines = {
        "public": getattr(request.app.state, "public_engine", None),
        "admin": getattr(request.app.state, "admin_engine", None),
    }
    checks = {name: _engine_state(engine) for name, engine in engines.items() if engine is not None}

    degraded = len(checks) < len(engines) or any(
        check["error"] or (settings.realtime_enabled and check["realtime"] != "subscribed")
        for check in checks.values()
    )
    return {
        "status": "degraded" if degraded else "healthy",
        "service": "inventory-api",
        "environment": settings.environment,
        "store_backend": settings.store_backend,
        "checks": {
            "config": "ok",
            "views": checks,
        },
    }


@router.get("/ready")
async def readiness_check(request: Request) -> Dict[str, str]:
    """
    Readiness probe.

    Ready once both views have completed their initial snapshot fetch.
    """
    for name in ("public_engine", "admin_engine"):
        engine = getattr(request.app.state, name, None)
        if engine is None or not engine.active:
            return {"status": "not_ready", "reason": "views_not_active"}
        if engine.loading:
            return {"status": "not_ready", "reason": "initial_snapshot_pending"}
    return {"status": "ready"}


@router.get("/live")
async def liveness_check() -> Dict[str, str]:
    """
    Liveness probe.

    Returns 200 if the service is alive.
    """
    return {"status": "alive"}

"""Health check endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from ..app_state import GatewayState
from ..deps import gateway_state
from ..models.fleet import RUNNING
from ..services.projection import health

router = APIRouter(tags=["health"])


@router.get("/api/health")
async def health_check(state: GatewayState = Depends(gateway_state)) -> dict:
    """Check Gateway health and backend connectivity."""
    store = state.store
    projects = store.all()
    running = sum(1 for p in projects.values() if p.status == RUNNING)
    return {
        "status": "ok" if not store.error else "degraded",
        "version": "0.1.0",
        "backend": health(store).model_dump(),
        "error": store.error,
        "projects": {
            "total": len(projects),
            "running": running,
            "busy": len(store.busy_map()),
        },
    }

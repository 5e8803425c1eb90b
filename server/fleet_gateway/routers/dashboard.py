"""Dashboard data endpoints: projected view of the store."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends

from ..app_state import GatewayState
from ..deps import gateway_state, request_host
from ..services.projection import build_dashboard, port_table

router = APIRouter(tags=["dashboard"])


@router.get("/api/dashboard")
async def get_dashboard(
    state: GatewayState = Depends(gateway_state),
    host: str = Depends(request_host),
) -> dict:
    """Get the full dashboard view (groups, git, ports, health)."""
    return build_dashboard(state.store, host).model_dump()


@router.get("/api/ports")
async def get_ports(state: GatewayState = Depends(gateway_state)) -> dict:
    """Port registry rows sorted by port number."""
    return {"ports": [row.model_dump() for row in port_table(state.store)]}


@router.post("/api/refresh")
async def refresh(state: GatewayState = Depends(gateway_state)) -> dict:
    """Reload everything from the backends now."""
    result = await state.fetcher.refresh()
    return asdict(result)

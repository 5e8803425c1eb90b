"""Bulk lifecycle endpoints (start-all, stop-all, shutdown)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ..app_state import GatewayState
from ..deps import gateway_state
from ..models.fleet import BulkAction

router = APIRouter(prefix="/api/pm2", tags=["pm2"])


@router.post("/{action}", status_code=status.HTTP_202_ACCEPTED)
async def bulk_action(action: BulkAction, state: GatewayState = Depends(gateway_state)) -> dict:
    """Fire a bulk command; a refresh follows shortly after."""
    await state.reconciler.bulk(action)
    return {"action": action.value}

"""Project management and lifecycle action endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from ..app_state import GatewayState
from ..deps import gateway_state
from ..models.fleet import NewProject, Verb
from ..services.backend_client import BackendError

router = APIRouter(prefix="/api/projects", tags=["projects"])


@router.post("")
async def add_project(req: NewProject, state: GatewayState = Depends(gateway_state)) -> dict:
    """Register a new project with the process manager."""
    try:
        result = await state.reconciler.add_project(req)
    except BackendError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    if not result.success:
        raise HTTPException(status_code=400, detail=result.message or "Process manager refused the project")
    return result.model_dump()


@router.delete("/{project_id}")
async def remove_project(project_id: str, state: GatewayState = Depends(gateway_state)) -> dict:
    """Remove a project from the dashboard."""
    try:
        await state.reconciler.delete_project(project_id)
    except BackendError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    return {"removed": project_id}


@router.post("/{project_id}/{verb}", status_code=status.HTTP_202_ACCEPTED)
async def run_action(project_id: str, verb: Verb, state: GatewayState = Depends(gateway_state)) -> dict:
    """Issue start/stop/restart/sync; completion is tracked by polling."""
    outcome = await state.reconciler.request(project_id, verb)
    if not outcome.accepted:
        busy = state.store.busy_verb(project_id)
        raise HTTPException(
            status_code=409,
            detail=f"'{project_id}' is busy with {busy.value if busy else 'another action'}",
        )
    if outcome.command_failed:
        raise HTTPException(status_code=502, detail=f"Could not issue {verb.value} for '{project_id}'")
    return outcome.model_dump()

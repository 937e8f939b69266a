"""Admin endpoints for the local model and in-flight actions."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from fastapi import APIRouter, HTTPException, Request

router = APIRouter(tags=["admin"])


@router.get("/local-model")
async def get_local_model(request: Request) -> dict[str, Any]:
    """Return the local model status and open session count."""
    runtime = request.app.state.runtime
    manager = runtime.model_manager
    return {
        "status": str(manager.status),
        "model_path": manager.model_path,
        "error": manager.error_message,
        "active_sessions": runtime.session_manager.active_count,
    }


@router.post("/local-model/unload")
async def unload_local_model(request: Request) -> dict[str, str]:
    manager = request.app.state.runtime.model_manager
    await manager.unload()
    return {"status": str(manager.status)}


@router.get("/actions")
async def list_actions(request: Request) -> list[dict[str, Any]]:
    """Return every tracked action, oldest first."""
    tracker = request.app.state.runtime.tracker
    return [action.model_dump(mode="json") for action in tracker.active_actions()]


@router.post("/actions/{action_id}/cancel")
async def cancel_action(action_id: UUID, request: Request) -> dict[str, str]:
    tracker = request.app.state.runtime.tracker
    if not tracker.request_cancellation(action_id):
        raise HTTPException(status_code=404, detail=f"Action {action_id} not found")
    return {"status": "cancellation_requested", "id": str(action_id)}

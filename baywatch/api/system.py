"""Control endpoints: lifecycle, operating mode and on-demand jobs.

Paths:
    POST /api/system/start?force=<bool>
    POST /api/system/stop
    POST /api/system/demo-mode/start
    POST /api/system/demo-mode/end
    POST /api/zones/{zone_id}/live-monitor
    POST /api/zones/{zone_id}/live-digest
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException

from baywatch.core.orchestrator import Orchestrator, TriggerResult


def create_system_router(orchestrator: Orchestrator) -> APIRouter:
    """Factory that wires the control endpoints to the orchestrator."""

    router = APIRouter(prefix="/api", tags=["system"])

    @router.post("/system/start")
    async def start_system(force: bool = False) -> dict[str, Any]:
        result = await orchestrator.start_all(force=force)
        status = "started" if result.started else "not_started"
        if not result.started and orchestrator.is_running:
            status = "already_running"
        return {"status": status, **result.model_dump(), "jobs_created": result.jobs_created}

    @router.post("/system/stop")
    async def stop_system() -> dict[str, Any]:
        result = await orchestrator.stop_all()
        return {"status": "stopped", **result.model_dump()}

    @router.post("/system/demo-mode/start")
    async def start_demo_mode() -> dict[str, Any]:
        result = await orchestrator.start_demo_mode()
        if not result.success:
            raise HTTPException(status_code=400, detail=result.message)
        return result.model_dump(mode="json")

    @router.post("/system/demo-mode/end")
    async def end_demo_mode() -> dict[str, Any]:
        result = await orchestrator.end_demo_mode()
        if not result.success:
            raise HTTPException(status_code=400, detail=result.message)
        return result.model_dump(mode="json")

    # ── On-demand jobs ────────────────────────────────────────

    def _trigger_response(result: TriggerResult) -> dict[str, Any]:
        if not result.success:
            raise HTTPException(status_code=400, detail=result.message)
        return result.model_dump()

    @router.post("/zones/{zone_id}/live-monitor")
    async def trigger_live_monitor(zone_id: str) -> dict[str, Any]:
        return _trigger_response(await orchestrator.trigger_live_monitor(zone_id))

    @router.post("/zones/{zone_id}/live-digest")
    async def trigger_live_digest(zone_id: str) -> dict[str, Any]:
        return _trigger_response(await orchestrator.trigger_live_digest(zone_id))

    return router

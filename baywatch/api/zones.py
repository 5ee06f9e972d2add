"""Read-side REST endpoints: zones, system status and the patrol view.

Paths:
    GET  /api/zones
    GET  /api/zones/{zone_id}
    GET  /api/system/status
    POST /api/patrol/resolve
    GET  /api/patrol/resolved
    GET  /api/patrol/alerts?zone=<id>&since=<iso8601>
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Request

from baywatch.services.dashboard import DashboardService


def create_zones_router(dashboard: DashboardService) -> APIRouter:
    """Factory for the dashboard and patrol read endpoints."""

    router = APIRouter(prefix="/api", tags=["zones"])

    @router.get("/zones")
    async def list_zones() -> dict[str, Any]:
        """Enabled zones with their current actions."""
        return dashboard.list_zones()

    @router.get("/zones/{zone_id}")
    async def get_zone(zone_id: str) -> dict[str, Any]:
        view = dashboard.get_zone(zone_id)
        if view is None:
            raise HTTPException(status_code=404, detail=f"Zone '{zone_id}' not found")
        return view

    @router.get("/system/status")
    async def system_status() -> dict[str, Any]:
        return dashboard.system_status()

    # ── Patrol ────────────────────────────────────────────────

    @router.post("/patrol/resolve")
    async def resolve_action(request: Request) -> dict[str, Any]:
        try:
            payload = await request.json()
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid JSON")
        action_id = payload.get("action_id") if isinstance(payload, dict) else None
        if not action_id:
            raise HTTPException(status_code=400, detail="Missing action_id")
        dashboard.resolve_action(str(action_id))
        return {"success": True, "message": f"Action {action_id} resolved"}

    @router.get("/patrol/resolved")
    async def resolved_actions() -> dict[str, Any]:
        return {"resolved_action_ids": dashboard.resolved_action_ids()}

    @router.get("/patrol/alerts")
    async def patrol_alerts(zone: str, since: Optional[datetime] = None) -> dict[str, Any]:
        """Alerts for one zone, filtered to those newer than ``since``."""
        view = dashboard.patrol_alerts(zone, since)
        if view is None:
            raise HTTPException(status_code=404, detail=f"Zone '{zone}' not found")
        return view

    return router

"""Inbound webhook endpoint for the vision provider.

Path: POST /api/webhooks/trio

The provider expects an answer within a few seconds, so the payload is
acknowledged immediately and processed on a detached task.  Processing
errors are logged by the orchestrator and never reach the provider.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Request

from baywatch.core.orchestrator import Orchestrator

logger = logging.getLogger(__name__)


def create_webhook_router(orchestrator: Orchestrator) -> APIRouter:
    """Factory that wires the webhook endpoint to the orchestrator."""

    router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])

    @router.post("/trio")
    async def receive_trio_webhook(request: Request) -> dict[str, Any]:
        try:
            payload = await request.json()
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid JSON")
        if not isinstance(payload, dict):
            raise HTTPException(status_code=400, detail="Webhook payload must be a JSON object")

        logger.info(
            "Webhook received: type=%s job=%s",
            payload.get("type") or payload.get("event"), payload.get("job_id"),
        )
        orchestrator.dispatch_webhook(payload)
        return {"received": True}

    return router

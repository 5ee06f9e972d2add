"""baywatch — beach-safety monitoring service.

This is the application entry point.  It wires the ZoneStore, the vision
and NOAA clients, the Orchestrator and the REST endpoints together.

Run with:  baywatch  (or: uvicorn baywatch.main:app)
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import uvicorn
from fastapi import FastAPI

from baywatch.adapters.noaa import NoaaEnvironmentalClient
from baywatch.adapters.vision import TrioVisionClient
from baywatch.api.system import create_system_router
from baywatch.api.webhooks import create_webhook_router
from baywatch.api.zones import create_zones_router
from baywatch.config import settings
from baywatch.core.orchestrator import Orchestrator
from baywatch.services.dashboard import DashboardService
from baywatch.store.zone_store import get_store

# ── Logging ──────────────────────────────────────────────────────────────────

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)

logger = logging.getLogger(__name__)

# ── Clients ──────────────────────────────────────────────────────────────────

vision_client = TrioVisionClient(
    base_url=settings.vision_base_url,
    api_key=settings.vision_api_key,
    timeout=settings.http_timeout_seconds,
)

environment_client = NoaaEnvironmentalClient(
    ndbc_base_url=settings.ndbc_base_url,
    coops_base_url=settings.coops_base_url,
    application=settings.coops_application,
    timeout=settings.http_timeout_seconds,
)

# ── State ────────────────────────────────────────────────────────────────────

store = get_store()
dashboard = DashboardService(store)
orchestrator = Orchestrator(store, vision_client, environment_client, settings)


# ── App ──────────────────────────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    if not settings.vision_api_key:
        logger.warning("BAYWATCH_VISION_API_KEY is not set; vision calls will be rejected")
    logger.info("Webhook target: %s", settings.webhook_url)
    yield
    if orchestrator.is_running:
        await orchestrator.stop_all()
    await vision_client.aclose()
    await environment_client.aclose()


app = FastAPI(
    title=settings.app_name,
    description="Beach-safety monitoring: vision checks, NOAA conditions, zone risk",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Routes ───────────────────────────────────────────────────────────────────

app.include_router(create_webhook_router(orchestrator))
app.include_router(create_zones_router(dashboard))
app.include_router(create_system_router(orchestrator))


# ── Health ───────────────────────────────────────────────────────────────────

@app.get("/health")
async def health() -> dict:
    budget = store.budget
    return {
        "status": "ok",
        "running": orchestrator.is_running,
        "initialized": store.is_initialized(),
        "mode": budget.mode.value,
        "enabled_zones": len(store.enabled_zones()),
        "active_job_count": store.state.active_job_count,
        "check_once_used": budget.check_once_used,
        "live_minutes_used": budget.live_minutes_used,
    }


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())

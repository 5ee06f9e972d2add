"""Vision API wire models — responses from the Trio API and its webhooks.

These are validated at the boundary so the orchestrator never has to
re-check field presence.  Unknown fields are ignored: the remote service
adds fields over time and that must never break ingestion.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field

# Webhook event types understood by the orchestrator.
TRIGGER_EVENTS = frozenset({"watch_triggered", "live_monitor_result"})
STOPPED_EVENTS = frozenset({"job_stopped", "job_status"})

# Job statuses after which a job holds no slot.
TERMINAL_JOB_STATUSES = frozenset({"stopped", "completed", "failed"})


class CheckOnceResult(BaseModel):
    """Outcome of one synchronous condition evaluation."""

    triggered: bool
    explanation: str = ""
    latency_ms: Optional[int] = None


class StartedJob(BaseModel):
    job_id: str = Field(..., min_length=1)
    status: str = "running"


class JobStats(BaseModel):
    checks_performed: int = 0
    triggers_fired: int = 0
    frames_skipped: int = 0
    summaries_generated: Optional[int] = None
    auto_stopped: Optional[bool] = None
    reason: Optional[str] = None
    elapsed_seconds: Optional[float] = None


class JobInfo(BaseModel):
    """A remote job as listed by the vision API."""

    job_id: str
    status: str
    job_type: Optional[str] = None
    stream_url: Optional[str] = None
    created_at: Optional[str] = None
    config: dict[str, Any] = Field(default_factory=dict)
    stats: Optional[JobStats] = None


class StreamValidation(BaseModel):
    valid: bool
    is_live: bool = False
    platform: str = ""
    stream_id: Optional[str] = None
    title: Optional[str] = None
    channel: Optional[str] = None
    thumbnail_url: Optional[str] = None
    viewer_count: Optional[int] = None
    error_hint: Optional[str] = None


class PreparedStream(BaseModel):
    success: bool
    message: str = ""
    cached: bool = False
    embed_url: str = ""
    embed_type: str = "iframe"


# ── Webhook ──────────────────────────────────────────────────────────────────


class WebhookTriggerData(BaseModel):
    condition: Optional[str] = None
    triggered: bool = False
    explanation: str = ""
    prefilter_skipped: bool = False
    frame_b64: Optional[str] = None


class VisionWebhookPayload(BaseModel):
    """Inbound webhook event pushed by the vision provider.

    The provider has used both ``type`` and ``event`` for the event name.
    """

    type: Optional[str] = None
    event: Optional[str] = None
    job_id: Optional[str] = None
    stream_url: Optional[str] = None
    timestamp: Optional[str] = None
    data: Optional[WebhookTriggerData] = None

    # Job lifecycle fields
    status: Optional[str] = None
    checks_performed: Optional[int] = None
    triggers_fired: Optional[int] = None
    frames_skipped: Optional[int] = None
    auto_stopped: Optional[bool] = None
    reason: Optional[str] = None
    elapsed_seconds: Optional[float] = None

    @property
    def event_type(self) -> str:
        return self.type or self.event or "unknown"

    @property
    def is_trigger_result(self) -> bool:
        return self.event_type in TRIGGER_EVENTS

    @property
    def is_job_stopped(self) -> bool:
        """True for stop notifications.

        ``job_status`` events only count when they report a terminal
        status or an auto-stop.
        """
        if self.event_type == "job_stopped":
            return True
        if self.event_type == "job_status":
            return bool(self.auto_stopped) or (self.status or "") in TERMINAL_JOB_STATUSES
        return False

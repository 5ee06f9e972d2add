"""Orchestrator — schedules budgeted vision checks and environmental refreshes.

Responsibilities:
    - Lifecycle: start_all() / stop_all(), mode switching (demo vs
      conservative), on-demand live-monitor and live-digest jobs.
    - Condition polling: a ticker alternates crowd / swimmers checks.
      Demo mode sweeps every online zone; conservative mode checks one
      zone per cycle, round-robin, and stops near the daily limit.
    - Environmental refresh: a fixed-interval ticker over enabled zones.
    - Webhook and digest-stream ingestion.

Concurrency model:
    Everything runs on one event loop.  Each ticker sleeps, then spawns a
    cycle task without awaiting it, so a slow cycle may overlap the next
    tick.  Store mutators never await, so every single update is atomic.
    stop_all() cancels the tickers and digest consumers; cycle tasks
    already in flight are allowed to finish.

No vision or NOAA failure is fatal: it is logged, recorded in the store
error log, and the next cycle tries again.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Coroutine, Optional

import httpx
from pydantic import BaseModel, Field, ValidationError

from baywatch.adapters.base import (
    DigestStream,
    EnvironmentalService,
    EnvironmentalUnavailableError,
    VisionService,
)
from baywatch.adapters.vision import VisionAPIError, parse_digest_line
from baywatch.config import Settings, settings as default_settings
from baywatch.core.risk_engine import (
    derive_environmental_factors,
    update_and_compute_risk,
)
from baywatch.domain.alert import AlertEntry
from baywatch.domain.enums import (
    AlertType,
    JobType,
    OperatingMode,
    RiskFactor,
)
from baywatch.domain.risk import PartialFactors
from baywatch.domain.vision import VisionWebhookPayload
from baywatch.domain.zone import VisionConditions
from baywatch.foundation.identifiers import new_alert_id
from baywatch.store.zone_store import ZoneState, ZoneStore

logger = logging.getLogger(__name__)

# Failures of a single vision call: transport, non-2xx, or a malformed body
# (pydantic.ValidationError and json decode errors are ValueErrors).
VISION_ERRORS = (VisionAPIError, httpx.HTTPError, ValueError)
ENVIRONMENTAL_ERRORS = (EnvironmentalUnavailableError, httpx.HTTPError, ValueError)

# Poll rotation: (factor, condition text, alert title)
CONDITION_ROTATION: tuple[tuple[RiskFactor, str, str], ...] = (
    (RiskFactor.HIGH_CROWD_NEAR_WATERLINE, VisionConditions.PRIMARY, "Crowd Near Waterline"),
    (RiskFactor.SWIMMERS_DETECTED, VisionConditions.SWIMMERS, "Swimmers Detected"),
)

_ENVIRONMENTAL_FACTORS = (
    RiskFactor.HIGH_WAVE_HEIGHT,
    RiskFactor.STRONG_WIND,
    RiskFactor.EXTREME_TIDE,
    RiskFactor.POOR_VISIBILITY,
)

_ENVIRONMENTAL_TITLES = {
    RiskFactor.HIGH_WAVE_HEIGHT: "High Surf",
    RiskFactor.STRONG_WIND: "Strong Wind",
    RiskFactor.EXTREME_TIDE: "Extreme Tide",
    RiskFactor.POOR_VISIBILITY: "Poor Visibility",
}


class StartResult(BaseModel):
    started: bool
    message: str
    job_ids: list[str] = Field(default_factory=list)

    @property
    def jobs_created(self) -> int:
        return len(self.job_ids)


class StopResult(BaseModel):
    was_running: bool
    cancelled_jobs: int = 0


class TriggerResult(BaseModel):
    success: bool
    message: str
    zone_id: str
    job_id: Optional[str] = None


class ModeResult(BaseModel):
    success: bool
    message: str
    mode: OperatingMode


class Orchestrator:
    """Drives zone state from vision checks, webhooks and NOAA readings.

    Args:
        store: The zone store to mutate.
        vision: Vision API client.
        environment: Environmental data client.
        config: Intervals, budget limits and the public webhook URL.
    """

    def __init__(
        self,
        store: ZoneStore,
        vision: VisionService,
        environment: EnvironmentalService,
        config: Settings = default_settings,
    ) -> None:
        self._store = store
        self._vision = vision
        self._environment = environment
        self._config = config

        self._running = False
        self._poll_ticker: asyncio.Task | None = None
        self._env_ticker: asyncio.Task | None = None
        self._inflight: set[asyncio.Task] = set()
        self._digest_consumers: dict[str, asyncio.Task] = {}

        self._condition_index = 0
        self._zone_index = 0

    # ── Introspection ────────────────────────────────────────────────────

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def mode(self) -> OperatingMode:
        return self._store.budget.mode

    def poll_interval(self, mode: OperatingMode | None = None) -> float:
        mode = mode or self.mode
        if mode == OperatingMode.DEMO:
            return self._config.demo_poll_interval_seconds
        return self._config.conservative_poll_interval_seconds

    # ── Lifecycle ────────────────────────────────────────────────────────

    async def start_all(self, force: bool = False) -> StartResult:
        """Start monitoring every enabled zone.  A no-op when already running."""
        if self._running:
            if not force:
                return StartResult(started=False, message="Already running")
            await self.stop_all()

        enabled = self._store.enabled_zones()
        if not enabled:
            self._store.add_error("No enabled zones configured")
            logger.warning("start_all: no enabled zones, nothing scheduled")
            return StartResult(started=False, message="No enabled zones")

        self._running = True
        self._store.roll_budget_day()
        self._store.mark_initialized()

        for zone in self._store.all_zones():
            online = zone.config.enabled and zone.config.has_stream
            self._store.set_stream_online(zone.zone_id, online)
            if zone.config.enabled and not online:
                logger.warning("Zone %s: no stream locator, marked offline", zone.zone_id)

        await self.refresh_environmental()

        job_ids: list[str] = []
        if self._config.auto_start_monitor:
            online_zones = self._online_zones()
            if online_zones:
                result = await self.trigger_live_monitor(online_zones[0].zone_id)
                if result.job_id:
                    job_ids.append(result.job_id)

        self._install_poll_ticker()
        self._env_ticker = self._start_ticker(
            "environmental",
            self._config.environmental_interval_seconds,
            self.refresh_environmental,
        )

        logger.info(
            "Monitoring started: %d zones, mode=%s, poll every %.0fs",
            len(enabled), self.mode.value, self.poll_interval(),
        )
        return StartResult(
            started=True,
            message=f"Monitoring {len(enabled)} zones",
            job_ids=job_ids,
        )

    async def stop_all(self) -> StopResult:
        """Cancel tickers, consumers and remote jobs, then reset the store.

        Safe to call repeatedly; every call leaves the store at factory
        defaults.
        """
        was_running = self._running
        self._running = False

        self._cancel_ticker(self._poll_ticker)
        self._cancel_ticker(self._env_ticker)
        self._poll_ticker = None
        self._env_ticker = None

        await self._cancel_digest_consumers()

        cancelled = 0
        try:
            cancelled = await self._vision.cancel_all_running_jobs()
        except VISION_ERRORS as exc:
            logger.error("Cancelling remote jobs failed: %s", exc)

        self._store.reset()
        self._condition_index = 0
        self._zone_index = 0

        logger.info("Monitoring stopped (cancelled %d remote jobs)", cancelled)
        return StopResult(was_running=was_running, cancelled_jobs=cancelled)

    async def start_demo_mode(self) -> ModeResult:
        return self._switch_mode(OperatingMode.DEMO)

    async def end_demo_mode(self) -> ModeResult:
        """Demote to conservative polling.  State and remote jobs are kept."""
        return self._switch_mode(OperatingMode.CONSERVATIVE)

    def _switch_mode(self, mode: OperatingMode) -> ModeResult:
        if not self._running:
            return ModeResult(success=False, message="System is not running", mode=self.mode)
        self._store.set_mode(mode)
        self._install_poll_ticker()
        logger.info("Mode -> %s (poll every %.0fs)", mode.value, self.poll_interval(mode))
        return ModeResult(success=True, message=f"Switched to {mode.value} mode", mode=mode)

    # ── On-demand jobs ───────────────────────────────────────────────────

    async def trigger_live_monitor(self, zone_id: str) -> TriggerResult:
        """Start a continuous monitor on *zone_id*, replacing any running job."""
        return await self._trigger_job(zone_id, JobType.LIVE_MONITOR)

    async def trigger_live_digest(self, zone_id: str) -> TriggerResult:
        """Start a narrative digest on *zone_id* and consume its stream."""
        return await self._trigger_job(zone_id, JobType.LIVE_DIGEST)

    async def _trigger_job(self, zone_id: str, job_type: JobType) -> TriggerResult:
        zone = self._store.get_zone(zone_id)
        if zone is None:
            return TriggerResult(success=False, message=f"Unknown zone: {zone_id}", zone_id=zone_id)
        if not zone.config.has_stream:
            return TriggerResult(
                success=False, message=f"Zone {zone_id} has no stream", zone_id=zone_id,
            )

        self._store.roll_budget_day()
        budget = self._store.budget
        cost = self._config.live_minutes_per_trigger
        if budget.live_minutes_used + cost > self._config.live_minutes_daily_limit:
            return TriggerResult(
                success=False,
                message=(
                    f"Live-minute budget exhausted "
                    f"({budget.live_minutes_used}/{self._config.live_minutes_daily_limit})"
                ),
                zone_id=zone_id,
            )

        # One concurrent job slot on the remote side
        await self._release_job_slot()

        stream_url = zone.config.stream_url
        job_id: str | None = None
        try:
            if job_type == JobType.LIVE_MONITOR:
                started = await self._vision.start_continuous_monitor(
                    stream_url, VisionConditions.PRIMARY, self._config.webhook_url,
                )
                job_id = started.job_id
            else:
                stream = await self._vision.start_narrative_digest(
                    stream_url,
                    self._config.digest_window_minutes,
                    self._config.digest_capture_interval_seconds,
                )
                self._spawn_digest_consumer(zone_id, stream)
        except VISION_ERRORS as exc:
            logger.error("Zone %s: %s start failed: %s", zone_id, job_type.value, exc)
            self._store.add_error(f"Zone {zone_id}: failed to start {job_type.value}")
            return TriggerResult(
                success=False, message=f"Failed to start {job_type.value}", zone_id=zone_id,
            )

        self._store.increment_live_minutes(cost)
        if job_id:
            self._store.set_job_id(zone_id, job_type, job_id)
        self._store.set_active_job_count(1)
        self._add_alert(
            zone,
            AlertType.SYSTEM,
            title="Live Monitor Started" if job_type == JobType.LIVE_MONITOR else "Live Digest Started",
            description=f"{job_type.value} started on {zone.config.name}",
            metadata={"job_type": job_type.value, "job_id": job_id},
        )
        logger.info("Zone %s: %s started (job %s)", zone_id, job_type.value, job_id or "pending")
        return TriggerResult(
            success=True,
            message=f"{job_type.value} started for {zone.config.name}",
            zone_id=zone_id,
            job_id=job_id,
        )

    async def _release_job_slot(self) -> None:
        await self._cancel_digest_consumers()
        try:
            cancelled = await self._vision.cancel_all_running_jobs()
        except VISION_ERRORS as exc:
            logger.warning("Could not cancel running jobs before start: %s", exc)
            return
        if cancelled:
            logger.info("Cancelled %d running job(s) to free the slot", cancelled)
        for zone in self._store.all_zones():
            self._store.clear_job_ids(zone.zone_id)

    # ── Webhooks ─────────────────────────────────────────────────────────

    def dispatch_webhook(self, payload: dict[str, Any]) -> asyncio.Task:
        """Process *payload* off the request path.  Errors are logged only."""
        return self._spawn(self.handle_webhook(payload), name="webhook")

    async def handle_webhook(self, payload: dict[str, Any] | VisionWebhookPayload) -> None:
        if isinstance(payload, VisionWebhookPayload):
            event = payload
        else:
            try:
                event = VisionWebhookPayload.model_validate(payload)
            except ValidationError as exc:
                logger.error("Malformed webhook payload dropped: %s", exc)
                self._store.add_error("Malformed webhook payload dropped")
                return
        event_type = event.event_type
        zone_id = self._store.find_zone_by_job_id(event.job_id or "")
        logger.info("Webhook %s for job %s (zone=%s)", event_type, event.job_id, zone_id)

        if event.is_trigger_result:
            if zone_id is None:
                logger.warning("Webhook for unknown job %s dropped", event.job_id)
            else:
                data = event.data
                self._apply_condition(
                    zone_id,
                    RiskFactor.HIGH_CROWD_NEAR_WATERLINE,
                    triggered=data.triggered if data else False,
                    explanation=data.explanation if data else "",
                    title="Crowd Near Waterline",
                    alert_prefix="wh",
                    frame_base64=data.frame_b64 if data else None,
                )
        elif event.is_job_stopped:
            if zone_id is not None:
                self._store.clear_job_ids(zone_id)
                logger.info(
                    "Job %s stopped for zone %s (auto_stopped=%s, reason=%s)",
                    event.job_id, zone_id, event.auto_stopped, event.reason,
                )
        elif event_type == "job_started":
            logger.info("Job %s started", event.job_id)
        elif event_type == "job_status":
            logger.debug("Job %s status %s", event.job_id, event.status)
        else:
            logger.info("Unhandled webhook event: %s", event_type)

        await self._refresh_active_job_count()

    async def _refresh_active_job_count(self) -> None:
        try:
            jobs = await self._vision.list_jobs(status="running")
        except VISION_ERRORS as exc:
            logger.debug("Active job count refresh skipped: %s", exc)
            return
        self._store.set_active_job_count(len(jobs))

    # ── Condition polling ────────────────────────────────────────────────

    def next_condition(self) -> tuple[RiskFactor, str, str]:
        entry = CONDITION_ROTATION[self._condition_index % len(CONDITION_ROTATION)]
        self._condition_index += 1
        return entry

    async def run_poll_cycle(self) -> int:
        """One condition-poll cycle.  Returns the number of checks issued."""
        self._store.roll_budget_day()
        zones = self._online_zones()
        if not zones:
            return 0

        factor, condition, title = self.next_condition()
        if self.mode == OperatingMode.DEMO:
            return await self._poll_broad(zones, factor, condition, title)
        return await self._poll_narrow(zones, factor, condition, title)

    async def _poll_broad(
        self, zones: list[ZoneState], factor: RiskFactor, condition: str, title: str,
    ) -> int:
        issued = 0
        for i, zone in enumerate(zones):
            if not self._running:
                break
            if self._store.budget.check_once_used >= self._config.check_once_daily_limit:
                logger.info("Daily check budget spent; demo sweep stopped")
                break
            if i > 0 and self._config.inter_call_delay_seconds > 0:
                await asyncio.sleep(self._config.inter_call_delay_seconds)
            if not self._running:
                break
            await self._check_zone(zone, factor, condition, title)
            issued += 1
        return issued

    async def _poll_narrow(
        self, zones: list[ZoneState], factor: RiskFactor, condition: str, title: str,
    ) -> int:
        if not self._running:
            return 0
        used = self._store.budget.check_once_used
        if used >= self._config.check_once_near_limit:
            logger.info(
                "Check budget near limit (%d/%d); skipping cycle",
                used, self._config.check_once_daily_limit,
            )
            return 0
        zone = zones[self._zone_index % len(zones)]
        self._zone_index = (self._zone_index + 1) % len(zones)
        await self._check_zone(zone, factor, condition, title)
        return 1

    async def _check_zone(
        self, zone: ZoneState, factor: RiskFactor, condition: str, title: str,
    ) -> None:
        zone_id = zone.zone_id
        self._store.increment_check_once_used()
        try:
            result = await self._vision.check_once(zone.config.stream_url, condition)
        except VISION_ERRORS as exc:
            logger.error("check-once %s for %s failed: %s", factor.value, zone_id, exc)
            self._store.add_error(f"Zone {zone_id}: check-once {factor.value} failed")
            return

        self._store.set_last_check(zone_id)
        self._apply_condition(
            zone_id,
            factor,
            triggered=result.triggered,
            explanation=result.explanation,
            title=title,
            alert_prefix="co",
        )

    # ── Environmental refresh ────────────────────────────────────────────

    async def refresh_environmental(self) -> None:
        """Fetch readings for every enabled zone and fold them into risk."""
        for zone in self._store.enabled_zones():
            zone_id = zone.zone_id
            try:
                env = await self._environment.fetch_environmental(zone.config)
            except ENVIRONMENTAL_ERRORS as exc:
                logger.error("Environmental fetch for %s failed: %s", zone_id, exc)
                self._store.add_error(f"Environmental fetch failed for {zone_id}")
                continue

            self._store.update_environmental(zone_id, env)
            derived = derive_environmental_factors(env)
            before = zone.risk.factors

            self._apply_factors(zone_id, derived)

            for factor in _ENVIRONMENTAL_FACTORS:
                if derived.get(factor) and not before.get(factor):
                    self._add_alert(
                        zone,
                        AlertType.ENVIRONMENTAL,
                        title=_ENVIRONMENTAL_TITLES[factor],
                        description=f"{_ENVIRONMENTAL_TITLES[factor]} reported for {zone.config.name}",
                        metadata={"factor": factor.value},
                    )
        logger.info("Environmental data refreshed")

    # ── Digest streams ───────────────────────────────────────────────────

    def _spawn_digest_consumer(self, zone_id: str, stream: DigestStream) -> None:
        task = asyncio.create_task(
            self.consume_digest_stream(zone_id, stream), name=f"digest-{zone_id}",
        )
        self._digest_consumers[zone_id] = task
        task.add_done_callback(lambda t, z=zone_id: self._on_digest_done(z, t))

    def _on_digest_done(self, zone_id: str, task: asyncio.Task) -> None:
        if self._digest_consumers.get(zone_id) is task:
            del self._digest_consumers[zone_id]
        self._log_task_failure(task)

    async def consume_digest_stream(self, zone_id: str, stream: DigestStream) -> int:
        """Read digest events until the stream ends.  Returns narratives stored."""
        narratives = 0
        try:
            async for line in stream.lines():
                data = parse_digest_line(line)
                if data is None:
                    continue
                narrative = data.get("summary") or data.get("narrative")
                if narrative:
                    self._store.set_digest_narrative(zone_id, str(narrative))
                    zone = self._store.get_zone(zone_id)
                    if zone is not None:
                        self._add_alert(
                            zone, AlertType.DIGEST, title="Scene Summary", description=str(narrative),
                        )
                    narratives += 1
                job_id = data.get("job_id")
                if job_id:
                    self._store.set_job_id(zone_id, JobType.LIVE_DIGEST, str(job_id))
        except (httpx.HTTPError, VisionAPIError) as exc:
            logger.error("Digest stream for %s broke: %s", zone_id, exc)
            self._store.add_error(f"Digest stream failed for {zone_id}")
        finally:
            await stream.aclose()
        logger.info("Digest stream for %s ended (%d narratives)", zone_id, narratives)
        return narratives

    async def _cancel_digest_consumers(self) -> None:
        tasks = list(self._digest_consumers.values())
        self._digest_consumers.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # ── Shared update path ───────────────────────────────────────────────

    def _apply_condition(
        self,
        zone_id: str,
        factor: RiskFactor,
        *,
        triggered: bool,
        explanation: str,
        title: str,
        alert_prefix: str,
        frame_base64: str | None = None,
    ) -> None:
        """Set one vision factor and recompute; alert when it turns on."""
        zone = self._store.get_zone(zone_id)
        if zone is None:
            return
        if triggered and not zone.risk.factors.get(factor):
            self._add_alert(
                zone,
                AlertType.TRIO_TRIGGER,
                title=title,
                description=explanation,
                prefix=alert_prefix,
                frame_base64=frame_base64,
                metadata={"factor": factor.value},
            )

        self._apply_factors(zone_id, {factor: triggered})

    def _apply_factors(self, zone_id: str, partial: PartialFactors) -> None:
        """Merge *partial*, store the new score, alert if the tier moved."""
        zone = self._store.get_zone(zone_id)
        if zone is None:
            return
        before = zone.risk
        after = update_and_compute_risk(before.factors, partial, before.total)
        self._store.update_zone_risk(zone_id, after)

        if after.level != before.level:
            self._add_alert(
                zone,
                AlertType.RISK_CHANGE,
                title=f"Risk Level: {after.level.value.upper()}",
                description=f"Risk score changed from {before.total} to {after.total}",
                prefix="risk",
                metadata={"previous_total": before.total, "total": after.total},
            )
            logger.info(
                "Zone %s risk %s -> %s (%d -> %d)",
                zone_id, before.level.value, after.level.value, before.total, after.total,
            )

    def _add_alert(
        self,
        zone: ZoneState,
        alert_type: AlertType,
        *,
        title: str,
        description: str = "",
        prefix: str | None = None,
        frame_base64: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        alert = AlertEntry(
            id=new_alert_id(prefix or alert_type.value, zone.zone_id),
            zone_id=zone.zone_id,
            type=alert_type,
            title=title,
            description=description,
            risk_level=zone.risk.level,
            frame_base64=frame_base64,
            metadata=metadata or {},
        )
        self._store.add_alert(zone.zone_id, alert)

    def _online_zones(self) -> list[ZoneState]:
        return [
            z for z in self._store.enabled_zones()
            if z.stream_online and z.config.has_stream
        ]

    # ── Tickers and tasks ────────────────────────────────────────────────

    def _install_poll_ticker(self) -> None:
        self._cancel_ticker(self._poll_ticker)
        self._poll_ticker = self._start_ticker(
            f"poll-{self.mode.value}", self.poll_interval(), self.run_poll_cycle,
        )

    def _start_ticker(
        self,
        name: str,
        interval: float,
        cycle: Callable[[], Awaitable[Any]],
    ) -> asyncio.Task:
        async def tick() -> None:
            while True:
                await asyncio.sleep(interval)
                self._spawn(cycle(), name=f"{name}-cycle")

        return asyncio.create_task(tick(), name=f"{name}-ticker")

    @staticmethod
    def _cancel_ticker(task: asyncio.Task | None) -> None:
        if task is not None and not task.done():
            task.cancel()

    def _spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self._inflight.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._inflight.discard(task)
        self._log_task_failure(task)

    @staticmethod
    def _log_task_failure(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Task %s failed: %s", task.get_name(), exc, exc_info=exc)

    async def drain(self) -> None:
        """Wait for in-flight cycle and webhook tasks to finish."""
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

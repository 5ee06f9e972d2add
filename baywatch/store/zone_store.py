"""In-memory zone store — the single source of truth for live state.

Design notes:
    - One process-wide instance, reachable through get_store().
    - Every mutator is a plain synchronous call.  The service runs on a
      single asyncio event loop and mutators never await, so no two
      mutations interleave and no lock is needed.
    - Mutating an unknown zone id is a silent no-op.  Callers check
      existence only when they need a return value.
    - reset() swaps in factory-default state in place, so references to
      the store held elsewhere stay valid.
"""

from __future__ import annotations

import logging
from datetime import date, datetime

from baywatch.config import settings
from baywatch.domain.alert import AlertEntry
from baywatch.domain.enums import JobType, OperatingMode, RiskFactor
from baywatch.domain.environment import EnvironmentalData
from baywatch.domain.risk import RiskScore, default_risk_score
from baywatch.domain.zone import ZONE_CONFIGS, ZoneConfig
from baywatch.foundation.clock import utc_now, utc_today

logger = logging.getLogger(__name__)

MAX_ALERTS_PER_ZONE = 50
MAX_ERRORS = 20


class ZoneState:
    """Mutable per-zone aggregate.  Mutated only through ZoneStore."""

    __slots__ = (
        "config",
        "risk",
        "environmental",
        "live_monitor_job_id",
        "live_digest_job_id",
        "latest_digest_narrative",
        "latest_digest_at",
        "stream_online",
        "last_check_at",
        "alerts",
    )

    def __init__(self, config: ZoneConfig) -> None:
        self.config: ZoneConfig = config
        self.risk: RiskScore = default_risk_score()
        self.environmental: EnvironmentalData = EnvironmentalData()
        self.live_monitor_job_id: str | None = None
        self.live_digest_job_id: str | None = None
        self.latest_digest_narrative: str | None = None
        self.latest_digest_at: datetime | None = None
        self.stream_online: bool = False
        self.last_check_at: datetime | None = None
        self.alerts: list[AlertEntry] = []

    @property
    def zone_id(self) -> str:
        return self.config.id

    def job_ids(self) -> list[str]:
        return [j for j in (self.live_monitor_job_id, self.live_digest_job_id) if j]

    def to_dict(self) -> dict:
        return {
            "config": self.config.model_dump(mode="json"),
            "risk": self.risk.model_dump(mode="json"),
            "environmental": self.environmental.model_dump(mode="json"),
            "live_monitor_job_id": self.live_monitor_job_id,
            "live_digest_job_id": self.live_digest_job_id,
            "latest_digest_narrative": self.latest_digest_narrative,
            "latest_digest_at": (
                self.latest_digest_at.isoformat() if self.latest_digest_at else None
            ),
            "stream_online": self.stream_online,
            "last_check_at": self.last_check_at.isoformat() if self.last_check_at else None,
            "alerts": [a.model_dump(mode="json") for a in self.alerts],
        }

    def __repr__(self) -> str:
        return (
            f"ZoneState(id={self.zone_id}, risk={self.risk.total}/{self.risk.level.value}, "
            f"online={self.stream_online}, alerts={len(self.alerts)})"
        )


class BudgetRecord:
    """Daily usage counters against the vision API quota."""

    __slots__ = ("check_once_used", "live_minutes_used", "mode", "day")

    def __init__(self) -> None:
        self.check_once_used: int = 0
        self.live_minutes_used: int = 0
        self.mode: OperatingMode = OperatingMode.CONSERVATIVE
        self.day: date = utc_today()

    def to_dict(self) -> dict:
        return {
            "check_once_used": self.check_once_used,
            "live_minutes_used": self.live_minutes_used,
            "mode": self.mode.value,
            "day": self.day.isoformat(),
        }


class SystemState:
    __slots__ = (
        "initialized",
        "started_at",
        "zones",
        "active_job_count",
        "errors",
        "budget",
        "resolved_action_ids",
    )

    def __init__(self, configs: tuple[ZoneConfig, ...]) -> None:
        self.initialized: bool = False
        self.started_at: datetime | None = None
        # Every configured zone, enabled or not, so config is always reachable
        self.zones: dict[str, ZoneState] = {c.id: ZoneState(c) for c in configs}
        self.active_job_count: int = 0
        self.errors: list[str] = []
        self.budget: BudgetRecord = BudgetRecord()
        self.resolved_action_ids: list[str] = []


class ZoneStore:
    """Synchronous accessors and mutators over one SystemState.

    Args:
        configs: The zone configuration table.
        max_alerts_per_zone: Alert feed cap; oldest entries are dropped.
        max_errors: Error log cap; oldest entries are dropped.
    """

    def __init__(
        self,
        configs: tuple[ZoneConfig, ...] = ZONE_CONFIGS,
        max_alerts_per_zone: int = MAX_ALERTS_PER_ZONE,
        max_errors: int = MAX_ERRORS,
    ) -> None:
        self._configs = configs
        self._max_alerts = max_alerts_per_zone
        self._max_errors = max_errors
        self._state = SystemState(configs)

    # ── Reads ────────────────────────────────────────────────────────────

    @property
    def state(self) -> SystemState:
        return self._state

    @property
    def budget(self) -> BudgetRecord:
        return self._state.budget

    @property
    def errors(self) -> list[str]:
        return list(self._state.errors)

    def get_zone(self, zone_id: str) -> ZoneState | None:
        return self._state.zones.get(zone_id)

    def all_zones(self) -> list[ZoneState]:
        return list(self._state.zones.values())

    def enabled_zones(self) -> list[ZoneState]:
        return [z for z in self._state.zones.values() if z.config.enabled]

    def is_initialized(self) -> bool:
        return self._state.initialized

    def resolved_action_ids(self) -> list[str]:
        return list(self._state.resolved_action_ids)

    def find_zone_by_job_id(self, job_id: str) -> str | None:
        """Zone id holding *job_id* as its monitor or digest handle."""
        if not job_id:
            return None
        for zone_id, zone in self._state.zones.items():
            if job_id in (zone.live_monitor_job_id, zone.live_digest_job_id):
                return zone_id
        return None

    # ── System mutators ──────────────────────────────────────────────────

    def mark_initialized(self) -> None:
        """Set the initialized flag; the start time is recorded once."""
        self._state.initialized = True
        if self._state.started_at is None:
            self._state.started_at = utc_now()

    def set_active_job_count(self, count: int) -> None:
        self._state.active_job_count = max(0, count)

    def add_error(self, message: str) -> None:
        """Record a timestamped error, newest first, capped."""
        self._state.errors.insert(0, f"[{utc_now().isoformat()}] {message}")
        del self._state.errors[self._max_errors:]

    def resolve_action(self, action_id: str) -> None:
        if action_id not in self._state.resolved_action_ids:
            self._state.resolved_action_ids.append(action_id)

    def reset(self) -> None:
        """Discard all accumulated state and return to factory defaults."""
        self._state = SystemState(self._configs)
        logger.info("Zone store reset to factory defaults")

    # ── Budget mutators ──────────────────────────────────────────────────

    def roll_budget_day(self, today: date | None = None) -> bool:
        """Zero the counters when the UTC day changed.  Returns True on rollover."""
        today = today or utc_today()
        budget = self._state.budget
        if budget.day == today:
            return False
        logger.info(
            "Budget day rollover %s -> %s (checks=%d, live_minutes=%d)",
            budget.day, today, budget.check_once_used, budget.live_minutes_used,
        )
        budget.day = today
        budget.check_once_used = 0
        budget.live_minutes_used = 0
        return True

    def increment_check_once_used(self) -> None:
        self._state.budget.check_once_used += 1

    def increment_live_minutes(self, minutes: int) -> None:
        self._state.budget.live_minutes_used += minutes

    def set_mode(self, mode: OperatingMode) -> None:
        self._state.budget.mode = mode

    # ── Zone mutators ────────────────────────────────────────────────────

    def update_zone_risk(self, zone_id: str, risk: RiskScore) -> None:
        zone = self._state.zones.get(zone_id)
        if zone is None:
            return
        zone.risk = risk

    def set_risk_factor(self, zone_id: str, factor: RiskFactor, value: bool) -> None:
        """Set one factor on the current score without recomputing the total."""
        zone = self._state.zones.get(zone_id)
        if zone is None:
            return
        factors = zone.risk.factors.merged({factor: value})
        zone.risk = zone.risk.model_copy(update={"factors": factors})

    def update_environmental(self, zone_id: str, data: EnvironmentalData) -> None:
        zone = self._state.zones.get(zone_id)
        if zone is None:
            return
        zone.environmental = data

    def add_alert(self, zone_id: str, alert: AlertEntry) -> None:
        """Prepend *alert* (newest first) and trim to the cap."""
        zone = self._state.zones.get(zone_id)
        if zone is None:
            return
        zone.alerts.insert(0, alert)
        del zone.alerts[self._max_alerts:]

    def set_job_id(self, zone_id: str, job_type: JobType, job_id: str | None) -> None:
        zone = self._state.zones.get(zone_id)
        if zone is None:
            return
        if job_type == JobType.LIVE_MONITOR:
            zone.live_monitor_job_id = job_id
        else:
            zone.live_digest_job_id = job_id

    def clear_job_ids(self, zone_id: str) -> None:
        zone = self._state.zones.get(zone_id)
        if zone is None:
            return
        zone.live_monitor_job_id = None
        zone.live_digest_job_id = None

    def set_digest_narrative(self, zone_id: str, narrative: str) -> None:
        zone = self._state.zones.get(zone_id)
        if zone is None:
            return
        zone.latest_digest_narrative = narrative
        zone.latest_digest_at = utc_now()

    def set_stream_online(self, zone_id: str, online: bool) -> None:
        zone = self._state.zones.get(zone_id)
        if zone is None:
            return
        zone.stream_online = online

    def set_last_check(self, zone_id: str) -> None:
        zone = self._state.zones.get(zone_id)
        if zone is None:
            return
        zone.last_check_at = utc_now()


# ── Process-wide instance ────────────────────────────────────────────────────

_store: ZoneStore | None = None


def get_store() -> ZoneStore:
    """Return the process-wide store, creating it on first use."""
    global _store
    if _store is None:
        _store = ZoneStore(
            max_alerts_per_zone=settings.max_alerts_per_zone,
            max_errors=settings.max_errors,
        )
    return _store

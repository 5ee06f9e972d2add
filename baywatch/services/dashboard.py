"""Read-side views over the zone store for the dashboard and patrol clients."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from baywatch.core.actions import generate_actions, get_highest_priority
from baywatch.core.risk_engine import risk_summary
from baywatch.store.zone_store import ZoneState, ZoneStore

RECENT_ERRORS = 5


class DashboardService:
    """Builds JSON-ready views.  Never mutates the store except resolve_action()."""

    def __init__(self, store: ZoneStore) -> None:
        self._store = store

    def _system_header(self) -> dict[str, Any]:
        state = self._store.state
        return {
            "initialized": state.initialized,
            "started_at": state.started_at.isoformat() if state.started_at else None,
            "active_job_count": state.active_job_count,
        }

    def zone_view(self, zone: ZoneState) -> dict[str, Any]:
        actions = generate_actions(zone.zone_id, zone.risk.factors)
        highest = get_highest_priority(actions)
        view = zone.to_dict()
        view["actions"] = [a.model_dump(mode="json") for a in actions]
        view["highest_priority"] = highest.value if highest else None
        view["risk_summary"] = risk_summary(zone.risk.factors)
        return view

    def list_zones(self) -> dict[str, Any]:
        return {
            "zones": [self.zone_view(z) for z in self._store.enabled_zones()],
            "system": self._system_header(),
        }

    def get_zone(self, zone_id: str) -> dict[str, Any] | None:
        zone = self._store.get_zone(zone_id)
        if zone is None:
            return None
        return self.zone_view(zone)

    def system_status(self) -> dict[str, Any]:
        zones = self._store.all_zones()
        return {
            **self._system_header(),
            "total_zones": len(zones),
            "enabled_zones": sum(1 for z in zones if z.config.enabled),
            "online_streams": sum(1 for z in zones if z.stream_online),
            "recent_errors": self._store.errors[:RECENT_ERRORS],
            "budget": self._store.budget.to_dict(),
            "zones": [
                {
                    "id": z.zone_id,
                    "name": z.config.name,
                    "enabled": z.config.enabled,
                    "stream_online": z.stream_online,
                    "risk_level": z.risk.level.value,
                    "risk_score": z.risk.total,
                    "live_monitor_job_id": z.live_monitor_job_id,
                    "live_digest_job_id": z.live_digest_job_id,
                    "alert_count": len(z.alerts),
                }
                for z in zones
            ],
        }

    # ── Patrol ───────────────────────────────────────────────────────────

    def resolve_action(self, action_id: str) -> None:
        self._store.resolve_action(action_id)

    def resolved_action_ids(self) -> list[str]:
        return self._store.resolved_action_ids()

    def patrol_alerts(self, zone_id: str, since: datetime | None = None) -> dict[str, Any] | None:
        """Alerts for one zone, newest first, optionally only those after *since*.

        Returns None for an unknown zone.
        """
        zone = self._store.get_zone(zone_id)
        if zone is None:
            return None

        alerts = zone.alerts
        if since is not None:
            if since.tzinfo is None:
                since = since.replace(tzinfo=timezone.utc)
            alerts = [a for a in alerts if a.timestamp > since]

        actions = [a.model_dump(mode="json") for a in generate_actions(zone_id, zone.risk.factors)]
        return {
            "zone": {
                "id": zone.zone_id,
                "name": zone.config.name,
                "risk_level": zone.risk.level.value,
                "risk_score": zone.risk.total,
                "stream_online": zone.stream_online,
            },
            "alerts": [
                {
                    **a.model_dump(mode="json"),
                    "zone_name": zone.config.name,
                    "risk_score": zone.risk.total,
                }
                for a in alerts
            ],
            "actions": actions,
            "resolved_action_ids": self._store.resolved_action_ids(),
        }

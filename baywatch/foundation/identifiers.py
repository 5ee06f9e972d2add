"""ID generation for alert entries."""

from __future__ import annotations

from uuid import uuid4


def new_alert_id(prefix: str, zone_id: str) -> str:
    """Unique alert id, readable in logs: ``<prefix>-<zone>-<hex>``."""
    return f"{prefix}-{zone_id}-{uuid4().hex[:12]}"

"""SuggestedAction — derived operator guidance, never stored."""

from __future__ import annotations

from pydantic import BaseModel, Field

from baywatch.domain.enums import ActionPriority, RiskFactor


class SuggestedAction(BaseModel):
    """One action suggested for a zone.

    ``id`` is deterministic (rule slug + zone id) so that resolution
    tracking survives recomputation.
    """

    id: str
    zone_id: str
    priority: ActionPriority
    title: str
    description: str
    icon: str = ""
    triggered_by: list[RiskFactor] = Field(default_factory=list)

    model_config = {"frozen": True}

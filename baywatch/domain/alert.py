"""AlertEntry — an immutable record in a zone's alert feed."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from baywatch.domain.enums import AlertType, RiskLevel
from baywatch.foundation.clock import utc_now


class AlertEntry(BaseModel):
    """A single feed event.  Never mutated after creation."""

    id: str = Field(..., min_length=1)
    zone_id: str
    timestamp: datetime = Field(default_factory=utc_now)
    type: AlertType
    title: str
    description: str = ""
    risk_level: RiskLevel
    frame_base64: Optional[str] = Field(None, description="Frame captured by the vision API, if any")
    metadata: dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": True}

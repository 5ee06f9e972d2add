"""Risk domain models — factor sets and the scores derived from them.

RiskFactors is always complete: every factor key is present.  Partial
updates are expressed as ``PartialFactors`` and only ever combined with a
complete set through the risk engine, never by hand.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from baywatch.domain.enums import RiskFactor, RiskLevel
from baywatch.foundation.clock import utc_now

# A subset of factor values, keyed by factor.  Produced by environmental
# derivation and by single-condition checks.
PartialFactors = dict[RiskFactor, bool]


class RiskFactors(BaseModel):
    """Complete set of named boolean risk conditions.

    Each factor is independent: no factor implies another.
    """

    swimmers_detected: bool = False
    high_crowd_near_waterline: bool = False
    emergency_vehicles_visible: bool = False
    high_wave_height: bool = False
    strong_wind: bool = False
    extreme_tide: bool = False
    poor_visibility: bool = False

    model_config = {"frozen": True}

    def get(self, factor: RiskFactor) -> bool:
        return getattr(self, factor.value)

    def merged(self, partial: PartialFactors) -> RiskFactors:
        """Return a new complete set with *partial* applied on top (partial wins)."""
        values = self.model_dump()
        for factor, value in partial.items():
            values[RiskFactor(factor).value] = bool(value)
        return RiskFactors.model_validate(values)


class RiskScore(BaseModel):
    """Immutable risk score computed from a factor set.

    ``level`` is a pure function of ``total``; ``total`` is a pure function
    of ``factors``.  Constructed by the risk engine only.
    """

    total: int = Field(..., ge=0, le=100)
    level: RiskLevel
    factors: RiskFactors
    previous_total: int = Field(default=0, ge=0, le=100)
    computed_at: datetime = Field(default_factory=utc_now)

    model_config = {"frozen": True}

    @property
    def delta(self) -> int:
        return self.total - self.previous_total


def default_risk_score() -> RiskScore:
    """The all-clear score every zone starts with."""
    return RiskScore(total=0, level=RiskLevel.LOW, factors=RiskFactors())

"""Risk engine — deterministic risk scoring from boolean factors.

Design principles:
    1. Pure functions: factors in, RiskScore out.
    2. No side effects, no state mutation, no I/O.
    3. All weights and thresholds are explicit.

Score formula:
    total = min(100, sum(weight[f] for f in factors if factors[f]))

Level mapping:
    low       total <= 33
    elevated  34 <= total <= 66
    high      total >= 67

Environmental derivation:
    high_wave_height  wave height > 1.5 m
    strong_wind       wind speed > 12.86 m/s (≈25 kn)
    extreme_tide      |level - 2.5 ft| > 1.5 ft   (2.5 ft MLLW ≈ LA/OC mean)
    poor_visibility   always false: no visibility sensor yet

A factor whose reading is unavailable is omitted from the derived set, so
merging never clears a factor because a sensor fetch failed.
"""

from __future__ import annotations

from dataclasses import dataclass

from baywatch.domain.enums import RiskFactor, RiskLevel
from baywatch.domain.environment import EnvironmentalData
from baywatch.domain.risk import PartialFactors, RiskFactors, RiskScore
from baywatch.foundation.clock import utc_now

MAX_TOTAL = 100
LOW_MAX = 33
ELEVATED_MAX = 66


@dataclass(frozen=True)
class RiskWeights:
    """Points each true factor contributes to the total."""

    swimmers_detected: int = 30
    high_crowd_near_waterline: int = 20
    emergency_vehicles_visible: int = 25
    high_wave_height: int = 15
    strong_wind: int = 10
    extreme_tide: int = 10
    poor_visibility: int = 10

    def weight(self, factor: RiskFactor) -> int:
        return getattr(self, factor.value)


@dataclass(frozen=True)
class EnvironmentalThresholds:
    wave_height_m: float = 1.5
    wind_speed_ms: float = 12.86
    tide_deviation_ft: float = 1.5
    mean_tide_level_ft: float = 2.5


DEFAULT_WEIGHTS = RiskWeights()
DEFAULT_THRESHOLDS = EnvironmentalThresholds()

_SUMMARY_LABELS: tuple[tuple[RiskFactor, str], ...] = (
    (RiskFactor.EMERGENCY_VEHICLES_VISIBLE, "Emergency vehicles detected"),
    (RiskFactor.SWIMMERS_DETECTED, "Swimmers in the water"),
    (RiskFactor.HIGH_CROWD_NEAR_WATERLINE, "Crowded waterline"),
    (RiskFactor.HIGH_WAVE_HEIGHT, "High wave conditions"),
    (RiskFactor.STRONG_WIND, "Strong winds"),
    (RiskFactor.EXTREME_TIDE, "Extreme tide"),
    (RiskFactor.POOR_VISIBILITY, "Poor visibility"),
)


# ── Scoring ──────────────────────────────────────────────────────────────────


def level_for_total(total: int) -> RiskLevel:
    if total <= LOW_MAX:
        return RiskLevel.LOW
    if total <= ELEVATED_MAX:
        return RiskLevel.ELEVATED
    return RiskLevel.HIGH


def compute_risk(
    factors: RiskFactors,
    previous_total: int = 0,
    weights: RiskWeights = DEFAULT_WEIGHTS,
) -> RiskScore:
    """Compute a zone risk score (0–100) from a complete factor set."""
    total = sum(weights.weight(f) for f in RiskFactor if factors.get(f))
    total = max(0, min(total, MAX_TOTAL))

    return RiskScore(
        total=total,
        level=level_for_total(total),
        factors=factors,
        previous_total=max(0, min(previous_total, MAX_TOTAL)),
        computed_at=utc_now(),
    )


def update_and_compute_risk(
    current: RiskFactors,
    partial: PartialFactors,
    previous_total: int,
    weights: RiskWeights = DEFAULT_WEIGHTS,
) -> RiskScore:
    """Merge *partial* over *current* (partial wins per key), then score.

    This is the only path by which independent signal sources combine.
    """
    return compute_risk(current.merged(partial), previous_total, weights)


# ── Environmental derivation ─────────────────────────────────────────────────


def derive_environmental_factors(
    env: EnvironmentalData,
    thresholds: EnvironmentalThresholds = DEFAULT_THRESHOLDS,
) -> PartialFactors:
    """Turn NOAA readings into environmental factor booleans.

    Only factors whose underlying reading is present are returned.
    """
    factors: PartialFactors = {}

    buoy = env.buoy
    if buoy is not None and buoy.wave_height is not None:
        factors[RiskFactor.HIGH_WAVE_HEIGHT] = buoy.wave_height > thresholds.wave_height_m

    if buoy is not None and buoy.wind_speed is not None:
        factors[RiskFactor.STRONG_WIND] = buoy.wind_speed > thresholds.wind_speed_ms

    tide = env.tide
    if tide is not None and tide.current_level is not None:
        deviation = abs(tide.current_level - thresholds.mean_tide_level_ft)
        factors[RiskFactor.EXTREME_TIDE] = deviation > thresholds.tide_deviation_ft

    # TODO: derive from a weather-service visibility reading once one is wired in
    factors[RiskFactor.POOR_VISIBILITY] = False

    return factors


# ── Presentation helpers ─────────────────────────────────────────────────────


def risk_summary(factors: RiskFactors) -> list[str]:
    """Human-readable labels for active factors, most severe first."""
    return [label for factor, label in _SUMMARY_LABELS if factors.get(factor)]

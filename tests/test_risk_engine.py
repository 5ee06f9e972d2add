"""Tests for the risk engine: scoring, level boundaries, environmental derivation.

Uses clock patching via baywatch.core.risk_engine.utc_now.
"""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from baywatch.core.risk_engine import (
    RiskWeights,
    compute_risk,
    derive_environmental_factors,
    level_for_total,
    risk_summary,
    update_and_compute_risk,
)
from baywatch.domain.enums import RiskFactor, RiskLevel, TideState
from baywatch.domain.environment import BuoyReading, EnvironmentalData, TideReading
from baywatch.domain.risk import RiskFactors

_NOW = datetime(2026, 7, 4, 15, 0, 0, tzinfo=timezone.utc)


def _factors(*active: RiskFactor) -> RiskFactors:
    return RiskFactors().merged({f: True for f in active})


def _env(
    wave: float | None = None,
    wind: float | None = None,
    tide: float | None = None,
    with_buoy: bool = True,
    with_tide: bool = True,
) -> EnvironmentalData:
    buoy = BuoyReading(station_id="46221", wave_height=wave, wind_speed=wind) if with_buoy else None
    tide_reading = (
        TideReading(station_id="9410840", current_level=tide, tide_state=TideState.UNKNOWN)
        if with_tide else None
    )
    return EnvironmentalData(buoy=buoy, tide=tide_reading)


# ── compute_risk ─────────────────────────────────────────────────────────────


class TestComputeRisk:
    def test_no_factors_is_zero_low(self) -> None:
        score = compute_risk(RiskFactors())
        assert score.total == 0
        assert score.level == RiskLevel.LOW

    def test_swimmers_and_high_waves_is_45_elevated(self) -> None:
        score = compute_risk(_factors(RiskFactor.SWIMMERS_DETECTED, RiskFactor.HIGH_WAVE_HEIGHT))
        assert score.total == 45
        assert score.level == RiskLevel.ELEVATED

    def test_all_factors_clamped_to_100(self) -> None:
        score = compute_risk(_factors(*RiskFactor))
        # 30 + 20 + 25 + 15 + 10 + 10 + 10 = 120
        assert score.total == 100
        assert score.level == RiskLevel.HIGH

    def test_deterministic(self) -> None:
        factors = _factors(RiskFactor.HIGH_CROWD_NEAR_WATERLINE, RiskFactor.STRONG_WIND)
        with patch("baywatch.core.risk_engine.utc_now", return_value=_NOW):
            a = compute_risk(factors, previous_total=10)
            b = compute_risk(factors, previous_total=10)
        assert a == b
        assert a.computed_at == _NOW

    def test_adding_a_factor_never_lowers_total(self) -> None:
        base = _factors(RiskFactor.SWIMMERS_DETECTED)
        for factor in RiskFactor:
            more = base.merged({factor: True})
            assert compute_risk(more).total >= compute_risk(base).total

    def test_previous_total_carried(self) -> None:
        score = compute_risk(_factors(RiskFactor.SWIMMERS_DETECTED), previous_total=20)
        assert score.previous_total == 20
        assert score.delta == 10

    def test_custom_weights(self) -> None:
        weights = RiskWeights(swimmers_detected=70)
        score = compute_risk(_factors(RiskFactor.SWIMMERS_DETECTED), weights=weights)
        assert score.total == 70
        assert score.level == RiskLevel.HIGH


class TestLevelBoundaries:
    @pytest.mark.parametrize(
        "total,level",
        [
            (0, RiskLevel.LOW),
            (33, RiskLevel.LOW),
            (34, RiskLevel.ELEVATED),
            (66, RiskLevel.ELEVATED),
            (67, RiskLevel.HIGH),
            (100, RiskLevel.HIGH),
        ],
    )
    def test_level_for_total(self, total: int, level: RiskLevel) -> None:
        assert level_for_total(total) == level


# ── update_and_compute_risk ──────────────────────────────────────────────────


class TestUpdateAndCompute:
    def test_partial_wins_per_key(self) -> None:
        current = _factors(RiskFactor.SWIMMERS_DETECTED, RiskFactor.STRONG_WIND)
        score = update_and_compute_risk(current, {RiskFactor.STRONG_WIND: False}, 40)
        assert score.factors.swimmers_detected is True
        assert score.factors.strong_wind is False
        assert score.total == 30

    def test_empty_partial_is_recompute_only(self) -> None:
        current = _factors(RiskFactor.EMERGENCY_VEHICLES_VISIBLE)
        score = update_and_compute_risk(current, {}, 0)
        assert score.factors == current
        assert score.total == 25

    def test_merge_keeps_every_factor_present(self) -> None:
        score = update_and_compute_risk(RiskFactors(), {RiskFactor.EXTREME_TIDE: True}, 0)
        dumped = score.factors.model_dump()
        assert set(dumped) == {f.value for f in RiskFactor}


# ── derive_environmental_factors ─────────────────────────────────────────────


class TestEnvironmentalDerivation:
    def test_thresholds_exceeded(self) -> None:
        derived = derive_environmental_factors(_env(wave=2.1, wind=14.0, tide=4.5))
        assert derived[RiskFactor.HIGH_WAVE_HEIGHT] is True
        assert derived[RiskFactor.STRONG_WIND] is True
        assert derived[RiskFactor.EXTREME_TIDE] is True

    def test_values_at_threshold_do_not_trigger(self) -> None:
        derived = derive_environmental_factors(_env(wave=1.5, wind=12.86, tide=4.0))
        assert derived[RiskFactor.HIGH_WAVE_HEIGHT] is False
        assert derived[RiskFactor.STRONG_WIND] is False
        assert derived[RiskFactor.EXTREME_TIDE] is False

    def test_low_tide_counts_as_extreme(self) -> None:
        derived = derive_environmental_factors(_env(tide=0.5))
        assert derived[RiskFactor.EXTREME_TIDE] is True

    def test_missing_readings_are_omitted(self) -> None:
        derived = derive_environmental_factors(_env(with_buoy=False, with_tide=False))
        assert RiskFactor.HIGH_WAVE_HEIGHT not in derived
        assert RiskFactor.STRONG_WIND not in derived
        assert RiskFactor.EXTREME_TIDE not in derived

    def test_missing_wave_height_keeps_current_factor(self) -> None:
        current = _factors(RiskFactor.HIGH_WAVE_HEIGHT)
        derived = derive_environmental_factors(_env(wave=None, wind=3.0))
        score = update_and_compute_risk(current, derived, 15)
        assert score.factors.high_wave_height is True

    def test_poor_visibility_always_false(self) -> None:
        derived = derive_environmental_factors(EnvironmentalData())
        assert derived == {RiskFactor.POOR_VISIBILITY: False}


class TestRiskSummary:
    def test_labels_in_severity_order(self) -> None:
        factors = _factors(RiskFactor.STRONG_WIND, RiskFactor.EMERGENCY_VEHICLES_VISIBLE)
        assert risk_summary(factors) == ["Emergency vehicles detected", "Strong winds"]

    def test_empty_when_clear(self) -> None:
        assert risk_summary(RiskFactors()) == []

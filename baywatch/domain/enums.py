"""Controlled enumerations for the baywatch domain.

Every categorical field in the domain MUST reference an enum defined here.
Free-form strings are not acceptable for classification fields.
"""

from __future__ import annotations

from enum import Enum


class RiskFactor(str, Enum):
    """Named boolean risk conditions.  Values match RiskFactors field names."""

    SWIMMERS_DETECTED = "swimmers_detected"
    HIGH_CROWD_NEAR_WATERLINE = "high_crowd_near_waterline"
    EMERGENCY_VEHICLES_VISIBLE = "emergency_vehicles_visible"
    HIGH_WAVE_HEIGHT = "high_wave_height"
    STRONG_WIND = "strong_wind"
    EXTREME_TIDE = "extreme_tide"
    POOR_VISIBILITY = "poor_visibility"


class RiskLevel(str, Enum):
    """Three-tier summary of a risk total."""

    LOW = "low"
    ELEVATED = "elevated"
    HIGH = "high"


class AlertType(str, Enum):
    """Category of an alert feed entry."""

    TRIO_TRIGGER = "trio_trigger"
    RISK_CHANGE = "risk_change"
    DIGEST = "digest"
    ENVIRONMENTAL = "environmental"
    SYSTEM = "system"


class ActionPriority(str, Enum):
    URGENT = "urgent"
    WARNING = "warning"
    INFO = "info"


class OperatingMode(str, Enum):
    """Polling profile: broad/fast (demo) or narrow/slow (conservative)."""

    DEMO = "demo"
    CONSERVATIVE = "conservative"


class JobType(str, Enum):
    """Kinds of continuous remote jobs a zone may hold a handle for."""

    LIVE_MONITOR = "live-monitor"
    LIVE_DIGEST = "live-digest"


class TideState(str, Enum):
    RISING = "rising"
    FALLING = "falling"
    UNKNOWN = "unknown"

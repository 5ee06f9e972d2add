"""Action generator — risk factors to a prioritized list of suggestions.

Rules are evaluated in a fixed order (urgent, then warning, then info).
Every rule whose condition holds yields one action; several rules may fire
for the same factor (e.g. "swimmers + high waves" and "swimmers").
Collapsing similar actions is left to the presentation layer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from baywatch.domain.action import SuggestedAction
from baywatch.domain.enums import ActionPriority, RiskFactor
from baywatch.domain.risk import RiskFactors


@dataclass(frozen=True)
class ActionRule:
    slug: str
    condition: Callable[[RiskFactors], bool]
    priority: ActionPriority
    title: str
    description: str
    icon: str
    triggered_by: tuple[RiskFactor, ...]


ACTION_RULES: tuple[ActionRule, ...] = (
    # ── Urgent ───────────────────────────────────────────────────────────
    ActionRule(
        slug="emergency-activity",
        condition=lambda f: f.emergency_vehicles_visible,
        priority=ActionPriority.URGENT,
        title="Emergency Activity Detected",
        description=(
            "Emergency vehicles or personnel visible in zone. "
            "Contact zone lifeguard captain immediately."
        ),
        icon="\U0001F6A8",
        triggered_by=(RiskFactor.EMERGENCY_VEHICLES_VISIBLE,),
    ),
    ActionRule(
        slug="swimmers-dangerous-surf",
        condition=lambda f: f.swimmers_detected and f.high_wave_height,
        priority=ActionPriority.URGENT,
        title="Swimmers in Dangerous Surf",
        description=(
            "Active swimmers detected with high wave conditions. Consider posting "
            "red flag and deploying additional water safety personnel."
        ),
        icon="\U0001F3CA",
        triggered_by=(RiskFactor.SWIMMERS_DETECTED, RiskFactor.HIGH_WAVE_HEIGHT),
    ),
    ActionRule(
        slug="swimmers-extreme-tide",
        condition=lambda f: f.swimmers_detected and f.extreme_tide,
        priority=ActionPriority.URGENT,
        title="Swimmers in Extreme Tide",
        description=(
            "Swimmers detected during extreme tide conditions. Increased rip current "
            "risk. Consider restricting water access."
        ),
        icon="\U0001F30A",
        triggered_by=(RiskFactor.SWIMMERS_DETECTED, RiskFactor.EXTREME_TIDE),
    ),
    # ── Warning ──────────────────────────────────────────────────────────
    ActionRule(
        slug="crowd-strong-wind",
        condition=lambda f: f.high_crowd_near_waterline and f.strong_wind,
        priority=ActionPriority.WARNING,
        title="High Crowd + Strong Wind Advisory",
        description=(
            "Large crowd near waterline combined with strong winds. Increase patrol "
            "frequency and monitor for wind-related hazards."
        ),
        icon="\U0001F4A8",
        triggered_by=(RiskFactor.HIGH_CROWD_NEAR_WATERLINE, RiskFactor.STRONG_WIND),
    ),
    ActionRule(
        slug="crowd-high-surf",
        condition=lambda f: f.high_crowd_near_waterline and f.high_wave_height,
        priority=ActionPriority.WARNING,
        title="Crowded Beach + High Surf",
        description=(
            "Heavy crowd activity near waterline during high surf. Pre-position rescue "
            "equipment and increase visual surveillance."
        ),
        icon="\U0001F3D6",
        triggered_by=(RiskFactor.HIGH_CROWD_NEAR_WATERLINE, RiskFactor.HIGH_WAVE_HEIGHT),
    ),
    ActionRule(
        slug="active-swimmers",
        condition=lambda f: f.swimmers_detected,
        priority=ActionPriority.WARNING,
        title="Active Swimmers Detected",
        description=(
            "People observed swimming in the ocean. Maintain continuous visual "
            "surveillance of water area."
        ),
        icon="\U0001F6C1",
        triggered_by=(RiskFactor.SWIMMERS_DETECTED,),
    ),
    ActionRule(
        slug="crowded-waterline",
        condition=lambda f: f.high_crowd_near_waterline,
        priority=ActionPriority.WARNING,
        title="Crowded Waterline",
        description=(
            "Significant crowd activity near the waterline. Maintain elevated "
            "patrol presence."
        ),
        icon="\U0001F465",
        triggered_by=(RiskFactor.HIGH_CROWD_NEAR_WATERLINE,),
    ),
    # ── Info ─────────────────────────────────────────────────────────────
    ActionRule(
        slug="high-surf-advisory",
        condition=lambda f: f.high_wave_height,
        priority=ActionPriority.INFO,
        title="High Surf Advisory",
        description=(
            "Wave height exceeds safety threshold. Monitor conditions and prepare "
            "for potential beach advisories."
        ),
        icon="\U0001F30A",
        triggered_by=(RiskFactor.HIGH_WAVE_HEIGHT,),
    ),
    ActionRule(
        slug="extreme-tide",
        condition=lambda f: f.extreme_tide,
        priority=ActionPriority.INFO,
        title="Extreme Tide Conditions",
        description=(
            "Tide level significantly deviates from mean. Watch for enhanced rip "
            "currents and shoreline changes."
        ),
        icon="\U0001F319",
        triggered_by=(RiskFactor.EXTREME_TIDE,),
    ),
    ActionRule(
        slug="strong-wind-advisory",
        condition=lambda f: f.strong_wind,
        priority=ActionPriority.INFO,
        title="Strong Wind Advisory",
        description=(
            "Wind speeds elevated. Monitor for wind-driven debris and challenging "
            "surf conditions."
        ),
        icon="\U0001F32C",
        triggered_by=(RiskFactor.STRONG_WIND,),
    ),
)


def action_id(slug: str, zone_id: str) -> str:
    return f"{slug}-{zone_id}"


def generate_actions(
    zone_id: str,
    factors: RiskFactors,
    rules: tuple[ActionRule, ...] = ACTION_RULES,
) -> list[SuggestedAction]:
    """Suggested actions for a zone, in rule order (urgent → warning → info)."""
    return [
        SuggestedAction(
            id=action_id(rule.slug, zone_id),
            zone_id=zone_id,
            priority=rule.priority,
            title=rule.title,
            description=rule.description,
            icon=rule.icon,
            triggered_by=list(rule.triggered_by),
        )
        for rule in rules
        if rule.condition(factors)
    ]


def get_highest_priority(actions: list[SuggestedAction]) -> ActionPriority | None:
    if not actions:
        return None
    priorities = {a.priority for a in actions}
    if ActionPriority.URGENT in priorities:
        return ActionPriority.URGENT
    if ActionPriority.WARNING in priorities:
        return ActionPriority.WARNING
    return ActionPriority.INFO

"""Read-side summaries of WorldState."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from storyworld.memory.world_types import WorldAnalysis

if TYPE_CHECKING:
    from . import WorldState

logger = logging.getLogger(__name__)


def analyze_world_state(parameters: dict[str, float]) -> WorldAnalysis:
    """Classify parameter ranges into labels, concerns and opportunities.

    Pure: reads the given values and never touches state.

    Args:
        parameters: Values keyed by snake_case parameter name.
    """
    stability = parameters["political_stability"]
    tension = parameters["tension"]
    economy = parameters["economic_state"]
    magic = parameters["magical_activity"]
    concerns: list[str] = []
    opportunities: list[str] = []

    if stability < 30:
        stability_label = "unstable"
        concerns.append("Political instability threatens the realm")
    elif stability < 60:
        stability_label = "fragile"
    else:
        stability_label = "stable"

    if tension > 70:
        tension_label = "high"
        concerns.append("Rising tensions may lead to conflict")
    elif tension > 40:
        tension_label = "moderate"
    else:
        tension_label = "low"

    if economy < 30:
        economy_label = "poor"
        concerns.append("Economic downturn affects all sectors")
    elif economy > 70:
        economy_label = "excellent"
        opportunities.append("Economic prosperity enables expansion")
    else:
        economy_label = "good"

    if magic > 70:
        magic_label = "highly active"
        opportunities.append("Increased magical energy enables powerful rituals")
    elif magic < 20:
        magic_label = "dormant"
    else:
        magic_label = "normal"

    return WorldAnalysis(
        stability=stability_label,
        tension=tension_label,
        economy=economy_label,
        magic=magic_label,
        concerns=concerns,
        opportunities=opportunities,
    )


def get_world_summary(state: WorldState) -> dict[str, Any]:
    """Compact view of the world for prompts and status displays."""
    temporal = state.temporal
    return {
        "parameters": state.get_parameters(),
        "time": {
            "timeOfDay": temporal.time_of_day,
            "day": temporal.day,
            "month": temporal.month,
            "season": temporal.season,
            "year": temporal.year,
            "weather": temporal.weather,
        },
        "activeEvents": [event.name for event in state.current_events],
        "scheduledEvents": len(state.scheduled_events),
        "recentRumors": [rumor.content for rumor in state.rumors[-3:]],
        "recentNews": [item.content for item in state.news[:3]],
        "analysis": analyze_world_state(state.get_parameters()).to_dict(),
    }

"""World state data types.

These models define the structure for:
- Bounded global parameters and their change records
- The temporal clock (time of day, day, month, season, year, weather)
- World events, rumors and news
- The world change log and the world analysis result
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import Field

from storyworld.memory.entities import WorldModel

logger = logging.getLogger(__name__)


class WorldParameter(StrEnum):
    """Global scalars describing the state of the world."""

    TENSION = "tension"
    POLITICAL_STABILITY = "political_stability"
    ECONOMIC_STATE = "economic_state"
    MAGICAL_ACTIVITY = "magical_activity"


@dataclass(frozen=True)
class ParameterBounds:
    """Declared range and starting value of a world parameter."""

    min: float
    max: float
    default: float


WORLD_PARAMETERS: dict[WorldParameter, ParameterBounds] = {
    WorldParameter.TENSION: ParameterBounds(0, 100, 30),
    WorldParameter.POLITICAL_STABILITY: ParameterBounds(0, 100, 80),
    WorldParameter.ECONOMIC_STATE: ParameterBounds(0, 100, 50),
    WorldParameter.MAGICAL_ACTIVITY: ParameterBounds(0, 100, 20),
}

# Normalized spellings (lowercase, letters and digits only) -> parameter
PARAMETER_ALIASES: dict[str, WorldParameter] = {
    "tension": WorldParameter.TENSION,
    "globaltension": WorldParameter.TENSION,
    "politicalstability": WorldParameter.POLITICAL_STABILITY,
    "stability": WorldParameter.POLITICAL_STABILITY,
    "economicstate": WorldParameter.ECONOMIC_STATE,
    "economy": WorldParameter.ECONOMIC_STATE,
    "magicalactivity": WorldParameter.MAGICAL_ACTIVITY,
    "magic": WorldParameter.MAGICAL_ACTIVITY,
}

# ========== Clock ==========
TIMES_OF_DAY = ("dawn", "morning", "midday", "afternoon", "evening", "night")
MONTHS = ("firstmonth", "secondmonth", "thirdmonth", "fourthmonth")
SEASONS = ("spring", "summer", "autumn", "winter")
DAYS_PER_MONTH = 30
TIME_UNITS = ("hour", "day", "month", "year")

EVENT_BUCKETS = ("current", "completed", "failed", "scheduled")


class ParameterChange(WorldModel):
    """Audit record of one parameter write. new_value is the clamped result."""

    parameter: str
    old_value: float
    new_value: float
    change: float
    reason: str = ""
    timestamp: datetime = Field(default_factory=datetime.now)


class TemporalState(WorldModel):
    """World clock. ``day`` is the day of the month, 1..30."""

    time_of_day: str = "morning"
    season: str = "spring"
    weather: str = "clear"
    day: int = 1
    month: str = "firstmonth"
    year: int = 1000

    def day_ordinal(self) -> int:
        """Absolute day count, used to schedule events."""
        month_index = MONTHS.index(self.month) if self.month in MONTHS else 0
        return (self.year * len(MONTHS) + month_index) * DAYS_PER_MONTH + self.day


class WorldEvent(WorldModel):
    """An event tracked by the world state."""

    id: str
    name: str = "Unnamed event"
    type: str = "social"
    scope: str = "local"
    duration: str = "ongoing"
    description: str = ""
    participants: list[str] = Field(default_factory=list)
    consequences: list[str] = Field(default_factory=list)
    status: str = "active"
    start_time: datetime = Field(default_factory=datetime.now)
    end_time: datetime | None = None
    start_day: int | None = None
    duration_days: int | None = None
    end_day: int | None = None  # Temporary events complete once this day is reached
    trigger_day: int | None = None  # Scheduled events activate once this day is reached


class Rumor(WorldModel):
    content: str
    spread: int = 1
    accuracy: float = 50.0
    timestamp: datetime = Field(default_factory=datetime.now)


class NewsItem(WorldModel):
    content: str
    importance: str = "medium"
    timestamp: datetime = Field(default_factory=datetime.now)


class WorldChange(WorldModel):
    """Entry in the world change log."""

    type: str
    description: str = ""
    data: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=datetime.now)


class DecisiveChoice(WorldModel):
    choice: str
    consequences: list[str] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=datetime.now)


class WorldAnalysis(WorldModel):
    """Qualitative read of the world parameters."""

    stability: str
    tension: str
    economy: str
    magic: str
    concerns: list[str] = Field(default_factory=list)
    opportunities: list[str] = Field(default_factory=list)
    trends: list[str] = Field(default_factory=list)

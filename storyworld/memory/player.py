"""Player record: vitals, reputation, skills and choice history."""

from __future__ import annotations

import logging
from datetime import datetime

from pydantic import Field

from storyworld.memory.entities import WorldModel
from storyworld.utils.constants import (
    CHOICE_HISTORY_LIMIT,
    DEFAULT_SKILL_LEVEL,
    PLAYER_SKILLS,
    REPUTATION_TYPES,
    SKILL_CAP,
)
from storyworld.utils.validation import clamp

logger = logging.getLogger(__name__)

STARTING_LOCATION = "village_square"


class ChoiceRecord(WorldModel):
    """One player choice with a snapshot of the world mood at that moment."""

    choice: str
    timestamp: datetime = Field(default_factory=datetime.now)
    location: str | None = None
    tension: float | None = None
    political_stability: float | None = None


class Player(WorldModel):
    """The player character."""

    name: str = "Traveler"
    level: int = 1
    health: float = 100.0
    max_health: float = 100.0
    experience: int = 0
    reputation: dict[str, float] = Field(
        default_factory=lambda: {kind: 0.0 for kind in REPUTATION_TYPES}
    )
    skills: dict[str, float] = Field(
        default_factory=lambda: {skill: float(DEFAULT_SKILL_LEVEL) for skill in PLAYER_SKILLS}
    )
    traits: list[str] = Field(default_factory=lambda: ["curious", "determined"])
    current_location: str = STARTING_LOCATION
    mood: str = "neutral"
    goals: list[str] = Field(default_factory=lambda: ["explore_world"])
    secrets: list[str] = Field(default_factory=list)
    choice_history: list[ChoiceRecord] = Field(default_factory=list)

    def record_choice(
        self,
        choice: str,
        tension: float | None = None,
        political_stability: float | None = None,
        limit: int = CHOICE_HISTORY_LIMIT,
    ) -> ChoiceRecord:
        """Append a choice, keeping only the most recent ``limit`` entries."""
        record = ChoiceRecord(
            choice=choice,
            location=self.current_location,
            tension=tension,
            political_stability=political_stability,
        )
        self.choice_history.append(record)
        if len(self.choice_history) > limit:
            self.choice_history = self.choice_history[-limit:]
        return record

    def adjust_reputation(self, reputation_type: str, change: float) -> bool:
        """Apply a reputation delta. Unknown reputation types are ignored.

        Returns:
            True if the reputation type exists and was changed.
        """
        if reputation_type not in self.reputation:
            logger.debug(f"Ignoring unknown reputation type '{reputation_type}'")
            return False
        self.reputation[reputation_type] += change
        return True

    def adjust_skill(self, skill: str, change: float) -> bool:
        """Apply a skill delta, capped at SKILL_CAP. Unknown skills are ignored."""
        if skill not in self.skills:
            logger.debug(f"Ignoring unknown skill '{skill}'")
            return False
        self.skills[skill] = min(float(SKILL_CAP), self.skills[skill] + change)
        return True

    def adjust_health(self, change: float) -> float:
        """Apply a health delta clamped to [0, max_health]; returns the new health."""
        self.health = clamp(self.health + change, 0.0, self.max_health)
        return self.health

    def dominant_reputation(self) -> tuple[str, float]:
        """Reputation with the largest magnitude, or ("neutral", 0) when all are zero."""
        dominant = ("neutral", 0.0)
        for kind, value in self.reputation.items():
            if abs(value) > abs(dominant[1]):
                dominant = (kind, value)
        return dominant

    def strongest_skills(self, count: int = 3) -> list[tuple[str, float]]:
        return sorted(self.skills.items(), key=lambda item: item[1], reverse=True)[:count]

"""Relationship graph data types.

These models define the structure for:
- Directed entity-to-entity relationships and their change history
- The global relationship ledger
- Player standing records
- Relationship network analysis results
"""

from __future__ import annotations

import logging
from datetime import datetime
from enum import StrEnum
from typing import Any, Literal

from pydantic import ConfigDict, Field, field_validator

from storyworld.memory.entities import WorldModel
from storyworld.utils.validation import clamp

logger = logging.getLogger(__name__)

STRENGTH_MIN = 0.0
STRENGTH_MAX = 100.0
DEFAULT_STRENGTH = 50.0

DEFAULT_ALLY_THRESHOLD = 70.0
DEFAULT_ENEMY_THRESHOLD = 30.0


class RelationshipType(StrEnum):
    """Kinds of directed relationship between two entities."""

    ALLY = "ally"
    ENEMY = "enemy"
    NEUTRAL = "neutral"
    SUBORDINATE = "subordinate"
    MEMBER = "member"
    RIVAL = "rival"


LedgerAction = Literal["established", "updated", "removed"]


class RelationshipChange(WorldModel):
    """One entry of an edge's own history."""

    change: dict[str, Any] = Field(default_factory=dict)
    previous_state: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=datetime.now)


class Relationship(WorldModel):
    """Directed edge source -> target."""

    source_id: str
    target_id: str
    type: RelationshipType = RelationshipType.NEUTRAL
    strength: float = DEFAULT_STRENGTH
    reason: str = ""
    established: datetime = Field(default_factory=datetime.now)
    last_modified: datetime = Field(default_factory=datetime.now)
    history: list[RelationshipChange] = Field(default_factory=list)

    @field_validator("strength", mode="after")
    @classmethod
    def _clamp_strength(cls, value: float) -> float:
        return clamp(value, STRENGTH_MIN, STRENGTH_MAX)

    def snapshot(self) -> dict[str, Any]:
        """The mutable part of the edge, as stored in history entries."""
        return {"type": self.type.value, "strength": self.strength, "reason": self.reason}


class RelationshipUpdate(WorldModel):
    """Typed partial update for an existing edge."""

    model_config = ConfigDict(extra="forbid")

    type: RelationshipType | None = None
    strength: float | None = None
    reason: str | None = None


class LedgerEntry(WorldModel):
    """Global relationship ledger entry."""

    action: LedgerAction
    source_id: str
    target_id: str
    type: RelationshipType | None = None
    strength: float | None = None
    reason: str = ""
    timestamp: datetime = Field(default_factory=datetime.now)


class StandingChange(WorldModel):
    """One change to the player's standing with an entity."""

    amount: float
    reason: str = ""
    previous_value: float = 0.0
    timestamp: datetime = Field(default_factory=datetime.now)


class PlayerStanding(WorldModel):
    """The player's standing with one entity. Signed, conventionally [-100, 100]."""

    entity_id: str
    value: float = 0.0
    history: list[StandingChange] = Field(default_factory=list)
    last_change: StandingChange | None = None
    established: datetime | None = None


class NetworkAnalysis(WorldModel):
    """Summary of an entity's outgoing relationships."""

    entity_id: str
    direct_connections: int = 0
    allies: int = 0
    enemies: int = 0
    neutral: int = 0
    type_counts: dict[str, int] = Field(default_factory=dict)
    average_strength: float = 0.0
    most_trusted: str | None = None
    most_feared: str | None = None
    network_influence: float = 0.0

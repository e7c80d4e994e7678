"""Entity models for the world model.

Every entity kind is a pydantic model with a ``kind`` discriminator.
Attributes are snake_case in Python and camelCase in persisted JSON;
both spellings are accepted on input.
"""

from __future__ import annotations

import logging
from datetime import datetime
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator
from pydantic.alias_generators import to_camel

from storyworld.utils.exceptions import UnknownEntityKindError
from storyworld.utils.validation import clamp

logger = logging.getLogger(__name__)


class EntityKind(StrEnum):
    """The five entity kinds the store holds, in lookup order."""

    NPC = "npc"
    FACTION = "faction"
    LOCATION = "location"
    ITEM = "item"
    EVENT = "event"


# Plural keys used by detection payloads ("npcs": [...])
KIND_PLURALS: dict[EntityKind, str] = {
    EntityKind.NPC: "npcs",
    EntityKind.FACTION: "factions",
    EntityKind.LOCATION: "locations",
    EntityKind.ITEM: "items",
    EntityKind.EVENT: "events",
}

AFFINITY_METRICS = ("trust", "fear", "respect", "love")
AFFINITY_MIN = 0.0
AFFINITY_MAX = 100.0


def parse_kind(kind: str | EntityKind) -> EntityKind:
    """Resolve a kind name to EntityKind.

    Raises:
        UnknownEntityKindError: If kind is not one of the five entity kinds.
    """
    try:
        return EntityKind(kind)
    except ValueError:
        raise UnknownEntityKindError(
            f"Unknown entity kind '{kind}'. Valid kinds: {[k.value for k in EntityKind]}",
            kind=str(kind),
        ) from None


class WorldModel(BaseModel):
    """Base for persisted models: camelCase aliases, snake_case attributes."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        validate_by_name=True,
        validate_by_alias=True,
    )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


class Entity(WorldModel):
    """Fields shared by every entity kind."""

    id: str
    kind: str
    name: str = "Unknown"
    display_name: str = ""
    created: datetime = Field(default_factory=datetime.now)
    last_modified: datetime = Field(default_factory=datetime.now)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _default_display_name(self) -> Entity:
        if not self.display_name:
            self.display_name = self.name
        return self

    def touch(self) -> None:
        """Refresh last_modified."""
        self.last_modified = datetime.now()


class NPC(Entity):
    """A non-player character and its feelings toward the player."""

    kind: Literal["npc"] = "npc"
    occupation: str = "unknown"
    age: int = 30
    location: str | None = None
    traits: list[str] = Field(default_factory=list)
    backstory: str = ""
    goals: list[str] = Field(default_factory=list)
    secrets: list[str] = Field(default_factory=list)
    mood: str = "neutral"
    importance: str = "medium"

    # Affinity toward the player, each in [0, 100]
    trust: float = 50.0
    fear: float = 10.0
    respect: float = 50.0
    love: float = 0.0

    met: bool = False
    alive: bool = True
    health: float = 100.0
    last_seen: datetime | None = None

    @field_validator(*AFFINITY_METRICS, mode="after")
    @classmethod
    def _clamp_affinity(cls, value: float) -> float:
        return clamp(value, AFFINITY_MIN, AFFINITY_MAX)

    def adjust_affinity(self, metric: str, change: float) -> float:
        """Apply a delta to one affinity metric, clamped to [0, 100].

        Args:
            metric: One of trust, fear, respect, love.
            change: Signed delta.

        Returns:
            The new metric value.

        Raises:
            ValueError: If metric is not an affinity metric.
        """
        if metric not in AFFINITY_METRICS:
            raise ValueError(
                f"Unknown affinity metric '{metric}', expected one of {AFFINITY_METRICS}"
            )
        new_value = clamp(getattr(self, metric) + change, AFFINITY_MIN, AFFINITY_MAX)
        setattr(self, metric, new_value)
        self.touch()
        logger.debug(f"NPC {self.id} {metric} adjusted by {change} -> {new_value}")
        return new_value


class Faction(Entity):
    """A political, military, religious or other organized group."""

    kind: Literal["faction"] = "faction"
    type: str = "political"
    influence: float = 40.0
    wealth: float = 50.0
    military_power: float = 30.0
    attitude: str = "neutral"
    territory: list[str] = Field(default_factory=list)
    goals: list[str] = Field(default_factory=list)
    allies: list[str] = Field(default_factory=list)
    enemies: list[str] = Field(default_factory=list)
    secrets: list[str] = Field(default_factory=list)
    leadership: list[str] = Field(default_factory=list)
    founded_year: str | int = "unknown"
    reputation: str = "unknown"


class Location(Entity):
    """A place in the world, connected to other locations."""

    kind: Literal["location"] = "location"
    type: str = "settlement"
    visited: bool = False
    safety: float = 70.0
    description: str = ""
    atmosphere: str = "neutral"
    connected_to: list[str] = Field(default_factory=list)
    controlled_by: str | None = None
    events: list[str] = Field(default_factory=list)
    secrets: list[str] = Field(default_factory=list)
    resources: list[str] = Field(default_factory=list)
    population: int = 0
    wealth: str = "poor"


class Item(Entity):
    """An object that lies somewhere in the world or in the player's inventory."""

    kind: Literal["item"] = "item"
    type: str = "misc"
    subtype: str = ""
    value: float = 50.0
    weight: float = 1.0
    durability: float = 100.0
    description: str = ""
    enchantments: list[str] = Field(default_factory=list)
    history: str = "unknown"
    location: str = "world"
    rarity: str = "common"
    properties: dict[str, Any] = Field(default_factory=dict)


class StoryEvent(Entity):
    """A happening in the world with participants and consequences."""

    kind: Literal["event"] = "event"
    type: str = "social"
    scope: str = "local"
    duration: str = "ongoing"
    status: str = "active"
    description: str = ""
    consequences: list[str] = Field(default_factory=list)
    participants: list[str] = Field(default_factory=list)
    start_time: datetime = Field(default_factory=datetime.now)
    end_time: datetime | None = None
    completed: bool = False


AnyEntity = Annotated[NPC | Faction | Location | Item | StoryEvent, Field(discriminator="kind")]

_entity_adapter: TypeAdapter[AnyEntity] = TypeAdapter(AnyEntity)

ENTITY_MODELS: dict[EntityKind, type[Entity]] = {
    EntityKind.NPC: NPC,
    EntityKind.FACTION: Faction,
    EntityKind.LOCATION: Location,
    EntityKind.ITEM: Item,
    EntityKind.EVENT: StoryEvent,
}


def entity_from_dict(data: dict[str, Any]) -> Entity:
    """Build the right entity model from a record carrying its ``kind``.

    Raises:
        pydantic.ValidationError: If kind is missing or fields are malformed.
    """
    return _entity_adapter.validate_python(data)


# ========== Typed partial updates ==========
# Each field left unset is not touched by EntityStore.update. Unknown
# fields are rejected.


class EntityUpdate(WorldModel):
    """Fields any entity kind may change."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    display_name: str | None = None
    metadata: dict[str, Any] | None = None


class NPCUpdate(EntityUpdate):
    occupation: str | None = None
    age: int | None = None
    location: str | None = None
    traits: list[str] | None = None
    backstory: str | None = None
    goals: list[str] | None = None
    secrets: list[str] | None = None
    mood: str | None = None
    importance: str | None = None
    trust: float | None = None
    fear: float | None = None
    respect: float | None = None
    love: float | None = None
    met: bool | None = None
    alive: bool | None = None
    health: float | None = None
    last_seen: datetime | None = None


class FactionUpdate(EntityUpdate):
    type: str | None = None
    influence: float | None = None
    wealth: float | None = None
    military_power: float | None = None
    attitude: str | None = None
    territory: list[str] | None = None
    goals: list[str] | None = None
    allies: list[str] | None = None
    enemies: list[str] | None = None
    secrets: list[str] | None = None
    leadership: list[str] | None = None
    founded_year: str | int | None = None
    reputation: str | None = None


class LocationUpdate(EntityUpdate):
    type: str | None = None
    visited: bool | None = None
    safety: float | None = None
    description: str | None = None
    atmosphere: str | None = None
    connected_to: list[str] | None = None
    controlled_by: str | None = None
    events: list[str] | None = None
    secrets: list[str] | None = None
    resources: list[str] | None = None
    population: int | None = None
    wealth: str | None = None


class ItemUpdate(EntityUpdate):
    type: str | None = None
    subtype: str | None = None
    value: float | None = None
    weight: float | None = None
    durability: float | None = None
    description: str | None = None
    enchantments: list[str] | None = None
    history: str | None = None
    location: str | None = None
    rarity: str | None = None
    properties: dict[str, Any] | None = None


class StoryEventUpdate(EntityUpdate):
    type: str | None = None
    scope: str | None = None
    duration: str | None = None
    status: str | None = None
    description: str | None = None
    consequences: list[str] | None = None
    participants: list[str] | None = None
    end_time: datetime | None = None
    completed: bool | None = None


UPDATE_MODELS: dict[EntityKind, type[EntityUpdate]] = {
    EntityKind.NPC: NPCUpdate,
    EntityKind.FACTION: FactionUpdate,
    EntityKind.LOCATION: LocationUpdate,
    EntityKind.ITEM: ItemUpdate,
    EntityKind.EVENT: StoryEventUpdate,
}

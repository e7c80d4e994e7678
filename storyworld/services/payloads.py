"""Payload models exchanged with the story collaborator.

Collaborator output is untrusted: ``from_raw`` never raises. Entries that
are not objects, or that fail validation, are dropped and logged, and a
payload that is not an object at all becomes an empty payload.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import Field, FiniteFloat
from pydantic import ValidationError as PydanticValidationError

from storyworld.memory.entities import KIND_PLURALS, EntityKind, WorldModel
from storyworld.memory.world_types import PARAMETER_ALIASES
from storyworld.utils.validation import is_number, normalize_key

logger = logging.getLogger(__name__)


def _dict_entries(value: Any, label: str) -> list[dict[str, Any]]:
    """Keep only dict entries of a list; anything else becomes []."""
    if not isinstance(value, list):
        if value is not None:
            logger.warning(f"Ignoring {label}: expected a list, got {type(value).__name__}")
        return []
    entries = [entry for entry in value if isinstance(entry, dict)]
    if len(entries) != len(value):
        logger.warning(f"Dropped {len(value) - len(entries)} non-object {label} entries")
    return entries


def _string_entries(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [entry for entry in value if isinstance(entry, str) and entry.strip()]


def _number_map(value: Any) -> dict[str, float]:
    if not isinstance(value, dict):
        return {}
    return {
        str(key): amount
        for key, amount in value.items()
        if is_number(amount)
    }


class EntityProposals(WorldModel):
    """Proposed entities per kind, as raw field dicts."""

    npcs: list[dict[str, Any]] = Field(default_factory=list)
    factions: list[dict[str, Any]] = Field(default_factory=list)
    locations: list[dict[str, Any]] = Field(default_factory=list)
    items: list[dict[str, Any]] = Field(default_factory=list)
    events: list[dict[str, Any]] = Field(default_factory=list)

    def for_kind(self, kind: EntityKind) -> list[dict[str, Any]]:
        proposals: list[dict[str, Any]] = getattr(self, KIND_PLURALS[kind])
        return proposals

    def total(self) -> int:
        return sum(len(self.for_kind(kind)) for kind in EntityKind)


class RelationshipProposal(WorldModel):
    """A proposed directed relationship entity1 -> entity2."""

    entity1: str
    entity2: str
    type: str = "neutral"
    strength: FiniteFloat | None = None
    reason: str = ""


class WorldUpdateProposal(WorldModel):
    """Proposed world-parameter deltas plus rumor and news text."""

    tension: float | None = None
    political_stability: float | None = None
    economic_state: float | None = None
    magical_activity: float | None = None
    rumors: list[str] = Field(default_factory=list)
    news: list[str] = Field(default_factory=list)

    def deltas(self) -> dict[str, float]:
        """Non-zero parameter deltas keyed by snake_case parameter name."""
        values = {
            "tension": self.tension,
            "political_stability": self.political_stability,
            "economic_state": self.economic_state,
            "magical_activity": self.magical_activity,
        }
        return {
            name: delta for name, delta in values.items() if is_number(delta) and delta != 0
        }


class DetectionPayload(WorldModel):
    """Entities, relationships and world updates detected in a narrative."""

    entities: EntityProposals = Field(default_factory=EntityProposals)
    relationships: list[RelationshipProposal] = Field(default_factory=list)
    world_updates: WorldUpdateProposal = Field(default_factory=WorldUpdateProposal)

    def is_empty(self) -> bool:
        updates = self.world_updates
        return (
            self.entities.total() == 0
            and not self.relationships
            and not updates.deltas()
            and not updates.rumors
            and not updates.news
        )

    @classmethod
    def from_raw(cls, data: Any) -> DetectionPayload:
        """Build a payload from untrusted collaborator output."""
        if not isinstance(data, dict):
            if data is not None:
                logger.warning(
                    f"Detection payload is not an object ({type(data).__name__}); using empty"
                )
            return cls()

        raw_entities = data.get("entities")
        raw_entities = raw_entities if isinstance(raw_entities, dict) else {}
        entities = EntityProposals(
            **{
                plural: _dict_entries(raw_entities.get(plural), plural)
                for plural in KIND_PLURALS.values()
            }
        )

        relationships = []
        for entry in _dict_entries(data.get("relationships"), "relationships"):
            try:
                relationships.append(RelationshipProposal.model_validate(entry))
            except PydanticValidationError as e:
                logger.warning(f"Dropped malformed relationship proposal {entry}: {e}")

        raw_updates = data.get("worldUpdates", data.get("world_updates"))
        raw_updates = raw_updates if isinstance(raw_updates, dict) else {}
        deltas = {
            PARAMETER_ALIASES[normalize_key(key)].value: amount
            for key, amount in _number_map(raw_updates).items()
            if normalize_key(key) in PARAMETER_ALIASES
        }
        try:
            world_updates = WorldUpdateProposal.model_validate(
                {
                    **deltas,
                    "rumors": _string_entries(raw_updates.get("rumors")),
                    "news": _string_entries(raw_updates.get("news")),
                }
            )
        except PydanticValidationError as e:
            logger.warning(f"Dropped malformed world updates: {e}")
            world_updates = WorldUpdateProposal()

        return cls(entities=entities, relationships=relationships, world_updates=world_updates)


class RelationshipChangeProposal(WorldModel):
    """A relationship whose type changes as a consequence of a choice."""

    entity1: str
    entity2: str
    new_relationship: str = "neutral"


class PlayerEffects(WorldModel):
    reputation: dict[str, float] = Field(default_factory=dict)
    skills: dict[str, float] = Field(default_factory=dict)
    health: float = 0.0


class LongTermEffects(WorldModel):
    new_events: list[str] = Field(default_factory=list)
    changed_relationships: list[RelationshipChangeProposal] = Field(default_factory=list)
    rumors: list[str] = Field(default_factory=list)
    future_opportunities: list[str] = Field(default_factory=list)


class ConsequencePayload(WorldModel):
    """Effects of a player choice on NPCs, factions, the player and the world."""

    npc_changes: dict[str, dict[str, Any]] = Field(default_factory=dict)
    faction_standings: dict[str, float] = Field(default_factory=dict)
    player_effects: PlayerEffects = Field(default_factory=PlayerEffects)
    world_effects: dict[str, float] = Field(default_factory=dict)
    long_term: LongTermEffects = Field(default_factory=LongTermEffects)

    @classmethod
    def from_raw(cls, data: Any) -> ConsequencePayload:
        """Build a payload from untrusted collaborator output."""
        if not isinstance(data, dict):
            if data is not None:
                logger.warning(
                    f"Consequence payload is not an object ({type(data).__name__}); using empty"
                )
            return cls()

        raw_npcs = data.get("npcChanges")
        npc_changes = {
            str(npc_id): changes
            for npc_id, changes in (raw_npcs.items() if isinstance(raw_npcs, dict) else [])
            if isinstance(changes, dict)
        }

        raw_player = data.get("playerEffects")
        raw_player = raw_player if isinstance(raw_player, dict) else {}
        health = raw_player.get("health")
        player_effects = PlayerEffects(
            reputation=_number_map(raw_player.get("reputation")),
            skills=_number_map(raw_player.get("skills")),
            health=health if is_number(health) else 0,
        )

        raw_long = data.get("longTerm")
        raw_long = raw_long if isinstance(raw_long, dict) else {}
        changed = []
        for entry in _dict_entries(raw_long.get("changedRelationships"), "changedRelationships"):
            try:
                changed.append(RelationshipChangeProposal.model_validate(entry))
            except PydanticValidationError as e:
                logger.warning(f"Dropped malformed relationship change {entry}: {e}")
        long_term = LongTermEffects(
            new_events=_string_entries(raw_long.get("newEvents")),
            changed_relationships=changed,
            rumors=_string_entries(raw_long.get("rumors")),
            future_opportunities=_string_entries(raw_long.get("futureOpportunities")),
        )

        return cls(
            npc_changes=npc_changes,
            faction_standings=_number_map(data.get("factionStandings")),
            player_effects=player_effects,
            world_effects=_number_map(data.get("worldEffects")),
            long_term=long_term,
        )

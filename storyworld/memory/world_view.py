"""Read-only view over the three stores, handed to the validation rules."""

from __future__ import annotations

from dataclasses import dataclass

from storyworld.memory.entities import NPC, EntityKind, Faction, Item, Location
from storyworld.memory.entity_store import EntityStore
from storyworld.memory.relationship_graph import RelationshipGraph
from storyworld.memory.relationship_types import PlayerStanding, Relationship
from storyworld.memory.world_state import WorldState


@dataclass(frozen=True)
class WorldView:
    """Query-only access to committed world state.

    Exposes lookups, never mutators, so validation rules cannot change
    what they inspect.
    """

    _entities: EntityStore
    _relationships: RelationshipGraph
    _world: WorldState

    # ========== Entities ==========

    def npcs(self) -> list[NPC]:
        return self._entities.npcs()

    def factions(self) -> list[Faction]:
        return self._entities.factions()

    def locations(self) -> list[Location]:
        return self._entities.locations()

    def items(self) -> list[Item]:
        return self._entities.items()

    def get_location(self, location_id: str) -> Location | None:
        location = self._entities.get(EntityKind.LOCATION, location_id)
        return location if isinstance(location, Location) else None

    def exists(self, kind: EntityKind, entity_id: str) -> bool:
        return self._entities.exists(kind, entity_id)

    def entity_exists(self, entity_id: str) -> bool:
        return self._entities.find(entity_id) is not None

    def npc_count_at(self, location_id: str) -> int:
        return len(self._entities.entities_at_location(location_id))

    def item_count_at(self, location: str) -> int:
        return sum(1 for item in self.items() if item.location == location)

    def factions_in_territory(self, territory: str) -> int:
        return sum(1 for faction in self.factions() if territory in faction.territory)

    def names(self, kind: EntityKind) -> set[str]:
        return {entity.name for entity in self._entities.list_all(kind)}

    def entity_counts(self) -> dict[EntityKind, int]:
        return {kind: self._entities.count(kind) for kind in EntityKind}

    # ========== Relationships ==========

    def relationships(self) -> list[Relationship]:
        return self._relationships.list_relationships()

    def player_standings(self) -> dict[str, PlayerStanding]:
        return self._relationships.get_all_player_standings()

    # ========== World ==========

    def active_event_count(self) -> int:
        return self._world.active_event_count()

    def parameter(self, name: str) -> float:
        return self._world.get_parameter(name)

    def parameters(self) -> dict[str, float]:
        return self._world.get_parameters()

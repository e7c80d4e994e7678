"""Starting world for a new session."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from storyworld.memory.entities import EntityKind

if TYPE_CHECKING:
    from . import WorldEngine

logger = logging.getLogger(__name__)

STARTING_ENTITIES: list[tuple[EntityKind, str, dict[str, Any]]] = [
    (
        EntityKind.NPC,
        "village_elder",
        {
            "name": "Elder Thane",
            "occupation": "village_leader",
            "age": 68,
            "location": "village_square",
            "traits": ["wise", "patient", "respected", "old"],
            "backstory": "Long-serving elder who has guided the village through many crises",
            "goals": ["protect_village", "maintain_peace"],
            "secrets": ["knows_ancient_prophecy"],
            "importance": "high",
        },
    ),
    (
        EntityKind.FACTION,
        "village_council",
        {
            "name": "Village Council",
            "type": "political",
            "influence": 60,
            "wealth": 40,
            "militaryPower": 20,
            "attitude": "neutral",
            "territory": ["village_square"],
            "goals": ["maintain_order", "protect_citizens"],
            "leadership": ["village_elder"],
            "reputation": "respected",
        },
    ),
    (
        EntityKind.LOCATION,
        "village_square",
        {
            "name": "Village Square",
            "type": "settlement",
            "visited": True,
            "safety": 90,
            "description": "A peaceful cobblestone square with an ancient well at its center",
            "atmosphere": "busy",
            "controlledBy": "village_council",
            "secrets": ["hidden_passage_under_well"],
            "resources": ["fresh_water", "meeting_place"],
            "population": 50,
            "wealth": "moderate",
        },
    ),
    (
        EntityKind.ITEM,
        "rusty_sword",
        {
            "name": "Rusty Iron Sword",
            "type": "weapon",
            "subtype": "sword",
            "value": 15,
            "weight": 3,
            "durability": 40,
            "description": "An old sword showing signs of age but still functional",
            "location": "player_inventory",
            "rarity": "common",
        },
    ),
]

STARTING_STANDINGS = {"village_council": 10}


def initialize_starting_world(engine: WorldEngine) -> None:
    """Create the village, its elder and council, the player's sword and a friendly standing."""
    with engine.state_lock:
        for kind, entity_id, data in STARTING_ENTITIES:
            engine.entities.create(kind, entity_id, data)
        for entity_id, value in STARTING_STANDINGS.items():
            engine.relationships.set_player_standing(entity_id, value, "established")
    logger.info(f"Starting world seeded with {len(STARTING_ENTITIES)} entities")

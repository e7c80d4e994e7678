"""Read-side analytics for WorldEngine. Every function holds the state lock."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from storyworld.memory.entities import EntityKind
from storyworld.utils.constants import (
    PLAYER_INVENTORY,
    STANDING_ALLY_THRESHOLD,
    STANDING_ENEMY_THRESHOLD,
)

if TYPE_CHECKING:
    from . import WorldEngine

logger = logging.getLogger(__name__)


def get_world_summary(engine: WorldEngine) -> dict[str, Any]:
    """Compact world description handed to the collaborator."""
    with engine.state_lock:
        player = engine.player
        return {
            "player": {
                "name": player.name,
                "level": player.level,
                "health": player.health,
                "currentLocation": player.current_location,
                "reputation": dict(player.reputation),
                "skills": dict(player.skills),
            },
            "entities": {
                "npcs": sorted(engine.entities.ids(EntityKind.NPC)),
                "factions": sorted(engine.entities.ids(EntityKind.FACTION)),
                "locations": sorted(engine.entities.ids(EntityKind.LOCATION)),
                "items": sorted(engine.entities.ids(EntityKind.ITEM)),
            },
            "playerStandings": {
                entity_id: standing.value
                for entity_id, standing in engine.relationships.get_all_player_standings().items()
            },
            "world": engine.world.get_world_summary(),
        }


def get_entity_statistics(engine: WorldEngine) -> dict[str, dict[str, int]]:
    with engine.state_lock:
        npcs = engine.entities.npcs()
        locations = engine.entities.locations()
        items = engine.entities.items()
        standings = engine.relationships.get_all_player_standings().values()
        return {
            "npcs": {
                "total": len(npcs),
                "met": sum(1 for npc in npcs if npc.met),
                "alive": sum(1 for npc in npcs if npc.alive),
            },
            "factions": {
                "total": engine.entities.count(EntityKind.FACTION),
                "allied": sum(1 for s in standings if s.value > STANDING_ALLY_THRESHOLD),
                "hostile": sum(1 for s in standings if s.value < STANDING_ENEMY_THRESHOLD),
            },
            "locations": {
                "total": len(locations),
                "visited": sum(1 for location in locations if location.visited),
            },
            "items": {
                "total": len(items),
                "in_inventory": sum(1 for item in items if item.location == PLAYER_INVENTORY),
            },
            "events": {
                "total": engine.entities.count(EntityKind.EVENT),
                "active": engine.world.active_event_count(),
            },
        }


def get_player_relationship_summary(engine: WorldEngine) -> dict[str, list[dict[str, Any]]]:
    """Player standings grouped into allies (> 20), enemies (< -20) and neutral.

    Standings with entities that no longer exist are left out.
    """
    summary: dict[str, list[dict[str, Any]]] = {"allies": [], "enemies": [], "neutral": []}
    with engine.state_lock:
        for entity_id, standing in engine.relationships.get_all_player_standings().items():
            entity = engine.entities.find(entity_id)
            if entity is None:
                continue
            entry = {"id": entity_id, "name": entity.name, "standing": standing.value}
            if standing.value > STANDING_ALLY_THRESHOLD:
                summary["allies"].append(entry)
            elif standing.value < STANDING_ENEMY_THRESHOLD:
                summary["enemies"].append(entry)
            else:
                summary["neutral"].append(entry)
    return summary


def get_relationship_networks(engine: WorldEngine) -> dict[str, dict[str, Any]]:
    """Network analysis for every NPC, keyed by NPC id."""
    with engine.state_lock:
        return {
            npc.id: engine.relationships.analyze_relationship_network(npc.id).to_dict()
            for npc in engine.entities.npcs()
        }


def analyze_player_profile(engine: WorldEngine) -> dict[str, Any]:
    with engine.state_lock:
        player = engine.player
        dominant_type, dominant_value = player.dominant_reputation()
        recent = player.choice_history[-10:]
        return {
            "dominantReputation": {"type": dominant_type, "value": dominant_value},
            "strongestSkills": [
                {"skill": skill, "level": level} for skill, level in player.strongest_skills()
            ],
            "recentActivity": {
                "choices": len(player.choice_history[-5:]),
                "locationsVisited": len({choice.location for choice in recent}),
            },
            "relationships": get_player_relationship_summary(engine),
        }


def get_detailed_state(engine: WorldEngine) -> dict[str, Any]:
    """Summary plus every analysis, for status displays."""
    with engine.state_lock:
        return {
            "summary": get_world_summary(engine),
            "analysis": {
                "world": engine.world.analyze_world_state().to_dict(),
                "playerProfile": analyze_player_profile(engine),
                "entityStatistics": get_entity_statistics(engine),
                "relationshipNetworks": get_relationship_networks(engine),
            },
        }


def get_system_status(engine: WorldEngine) -> dict[str, Any]:
    """Health snapshot: store sizes, pipeline state and integrity verdict."""
    with engine.state_lock:
        report = engine.validate_integrity()
        return {
            "session": engine.meta.session_id,
            "choiceCount": engine.meta.choice_count,
            "entities": {kind.value: engine.entities.count(kind) for kind in EntityKind},
            "relationships": engine.relationships.edge_count(),
            "playerStandings": len(engine.relationships.get_all_player_standings()),
            "activeEvents": engine.world.active_event_count(),
            "pipeline": engine.creation.get_creation_statistics(),
            "integrity": {
                "valid": report.valid,
                "errors": len(report.errors),
                "warnings": len(report.warnings),
            },
            "collaborator": type(engine.collaborator).__name__ if engine.collaborator else None,
        }

"""Consequence application for CreationService."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from storyworld.memory.entities import AFFINITY_METRICS, NPC, EntityKind
from storyworld.services.payloads import ConsequencePayload
from storyworld.utils.exceptions import (
    RelationshipValidationError,
    UnknownParameterError,
    ValidationError,
)
from storyworld.utils.logging_config import get_correlation_id
from storyworld.utils.validation import is_number

from ._batch import resolve_entity_id
from ._types import ConsequenceResult

if TYPE_CHECKING:
    from storyworld.memory.player import Player

    from . import CreationService

logger = logging.getLogger(__name__)

CONSEQUENCE_REASON = "Player choice consequence"
CHANGED_RELATIONSHIP_STRENGTH = 50


def _apply_npc_changes(
    svc: CreationService, payload: ConsequencePayload, result: ConsequenceResult
) -> None:
    for npc_id, changes in payload.npc_changes.items():
        npc = svc.entities.get(EntityKind.NPC, npc_id)
        if not isinstance(npc, NPC):
            result.warnings.append(f"NPC {npc_id} does not exist; changes ignored")
            continue
        for metric, change in changes.items():
            if metric in AFFINITY_METRICS and is_number(change):
                npc.adjust_affinity(metric, change)
            elif metric == "mood" and isinstance(change, str):
                npc.mood = change
                npc.touch()
        result.updated_npcs.append(npc_id)


def _apply_player_effects(
    payload: ConsequencePayload, player: Player | None, result: ConsequenceResult
) -> None:
    effects = payload.player_effects
    if player is None:
        return
    for reputation_type, change in effects.reputation.items():
        if player.adjust_reputation(reputation_type, change):
            result.player_changes.append(f"reputation.{reputation_type} {change:+g}")
    for skill, change in effects.skills.items():
        if player.adjust_skill(skill, change):
            result.player_changes.append(f"skills.{skill} {change:+g}")
    if effects.health:
        player.adjust_health(effects.health)
        result.player_changes.append(f"health {effects.health:+g}")


def _apply_world_effects(
    svc: CreationService, payload: ConsequencePayload, result: ConsequenceResult
) -> None:
    for parameter, change in payload.world_effects.items():
        try:
            result.parameter_changes.append(
                svc.world.update_global_parameter(parameter, change, CONSEQUENCE_REASON)
            )
        except UnknownParameterError as e:
            result.warnings.append(str(e))


def _apply_long_term(
    svc: CreationService, payload: ConsequencePayload, result: ConsequenceResult
) -> None:
    long_term = payload.long_term
    for event_name in long_term.new_events:
        if svc.world.active_event_count() >= svc.validation.limits["MAX_ACTIVE_EVENTS"]:
            result.warnings.append(f"Event '{event_name}' not started: too many active events")
            continue
        try:
            event = svc.world.add_event(
                {
                    "name": event_name,
                    "type": "social",
                    "scope": "local",
                    "description": "Event triggered by player choice",
                }
            )
        except ValidationError as e:
            result.warnings.append(f"Event '{event_name}' not started: {e}")
            continue
        result.events_added.append(event.id)

    for rumor in long_term.rumors:
        svc.world.add_rumor(rumor)
        result.rumors.append(rumor)

    for change in long_term.changed_relationships:
        source_id = resolve_entity_id(svc, change.entity1)
        target_id = resolve_entity_id(svc, change.entity2)
        if source_id is None or target_id is None:
            result.warnings.append(
                f"Relationship change {change.entity1} -> {change.entity2} ignored: "
                "unknown entity"
            )
            continue
        try:
            result.relationships.append(
                svc.relationships.set_relationship(
                    source_id,
                    target_id,
                    change.new_relationship,
                    CHANGED_RELATIONSHIP_STRENGTH,
                    "Player action consequence",
                )
            )
        except RelationshipValidationError as e:
            result.warnings.append(str(e))


def run_consequences(
    svc: CreationService, payload: ConsequencePayload, player: Player | None
) -> ConsequenceResult:
    """Apply the effects of a player choice. Runs with the state lock held.

    NPC affinity deltas are clamped to [0, 100]; faction standing deltas are
    unbounded; world effects are clamped by the world state. Effects on the
    player are applied only when a player is given.
    """
    result = ConsequenceResult(correlation_id=get_correlation_id())
    logger.debug("Applying choice consequences")

    _apply_npc_changes(svc, payload, result)
    for faction_id, change in payload.faction_standings.items():
        svc.relationships.update_player_standing(faction_id, change, CONSEQUENCE_REASON)
        result.standing_changes[faction_id] = change
    _apply_player_effects(payload, player, result)
    _apply_world_effects(svc, payload, result)
    _apply_long_term(svc, payload, result)

    logger.info(
        f"Consequences applied: {len(result.updated_npcs)} NPCs, "
        f"{len(result.standing_changes)} standings, "
        f"{len(result.parameter_changes)} parameter changes"
    )
    return result

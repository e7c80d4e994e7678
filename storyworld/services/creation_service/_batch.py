"""Entity-creation batch for CreationService.

A batch validates and commits proposed entities kind by kind, then the
relationships between them, then world-parameter deltas, rumors and news.
A rejected proposal is recorded in the result and never stops its siblings.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from storyworld.memory.entities import Entity, EntityKind, Location
from storyworld.services.payloads import DetectionPayload, RelationshipProposal
from storyworld.utils.constants import MAX_AUTO_CONNECTIONS, is_compatible_location
from storyworld.utils.exceptions import (
    DuplicateEntityError,
    EntityDataError,
    RelationshipValidationError,
    ValidationError,
    ValidationRejectedError,
)
from storyworld.utils.logging_config import get_correlation_id
from storyworld.utils.validation import lookup, slugify

from ._types import CreationResult, FailedCreation

if TYPE_CHECKING:
    from . import CreationService

logger = logging.getLogger(__name__)

_WORLD_EVENT_FIELDS = {
    "name",
    "type",
    "scope",
    "duration",
    "description",
    "participants",
    "consequences",
}


def _proposal_id(proposal: dict[str, Any]) -> str | None:
    """Explicit id, else a slug of the name, else None."""
    entity_id = lookup(proposal, "id")
    if isinstance(entity_id, str) and entity_id.strip():
        return entity_id.strip()
    name = lookup(proposal, "name")
    if isinstance(name, str) and name.strip():
        return slugify(name) or None
    return None


def _reject(
    result: CreationResult,
    kind: EntityKind,
    entity_id: str | None,
    reason: str,
    proposal: dict[str, Any],
) -> None:
    result.failed[kind].append(FailedCreation(id=entity_id, reason=reason, data=proposal))
    result.warnings.append(f"Failed to create {kind.value} {entity_id or '<unnamed>'}: {reason}")
    logger.info(f"Rejected {kind.value} {entity_id or '<unnamed>'}: {reason}")


def _after_create(
    svc: CreationService, entity: Entity, player_location: str | None, result: CreationResult
) -> None:
    """Kind-specific bookkeeping once an entity is committed."""
    if entity.kind == EntityKind.FACTION:
        if not svc.relationships.has_player_standing(entity.id):
            svc.relationships.set_player_standing(entity.id, 0, "faction discovered")
    elif entity.kind == EntityKind.EVENT:
        event_data = entity.model_dump(include=_WORLD_EVENT_FIELDS)
        try:
            svc.world.add_event({"id": entity.id, **event_data})
        except ValidationError as e:
            result.warnings.append(f"Event {entity.id} not registered with the world: {e}")
    elif isinstance(entity, Location) and svc.auto_connect_locations and not entity.connected_to:
        connected = auto_connect_location(svc, entity, player_location)
        if connected:
            logger.debug(f"Auto-connected location {entity.id} to {connected}")


def auto_connect_location(
    svc: CreationService, location: Location, player_location: str | None
) -> list[str]:
    """Connect a new, unconnected location to the map.

    Links to the player's current location and at most one other location
    of a compatible type. Connections are made in both directions.

    Returns:
        Ids of the locations connected.
    """
    targets: list[str] = []
    if (
        player_location
        and player_location != location.id
        and svc.entities.exists(EntityKind.LOCATION, player_location)
    ):
        targets.append(player_location)

    for other in svc.entities.locations():
        if other.id == location.id or other.id in targets:
            continue
        if is_compatible_location(location.type, other.type):
            targets.append(other.id)
            break

    targets = targets[:MAX_AUTO_CONNECTIONS]
    if not targets:
        return []

    svc.entities.update(EntityKind.LOCATION, location.id, {"connected_to": targets})
    for target_id in targets:
        target = svc.entities.get(EntityKind.LOCATION, target_id)
        if isinstance(target, Location) and location.id not in target.connected_to:
            svc.entities.update(
                EntityKind.LOCATION,
                target_id,
                {"connected_to": [*target.connected_to, location.id]},
            )
    return targets


def _create_entities(
    svc: CreationService,
    payload: DetectionPayload,
    player_location: str | None,
    result: CreationResult,
) -> None:
    for kind in EntityKind:
        for proposal in payload.entities.for_kind(kind):
            entity_id = _proposal_id(proposal)
            if entity_id is None:
                _reject(result, kind, None, "Proposal has neither an id nor a name", proposal)
                continue

            validation = svc.validation.validate_creation(kind, proposal, svc.view)
            result.warnings.extend(validation.warnings)
            try:
                validation.raise_if_invalid(kind.value)
                entity = svc.entities.create(kind, entity_id, proposal)
            except (ValidationRejectedError, DuplicateEntityError, EntityDataError) as e:
                _reject(result, kind, entity_id, str(e), proposal)
                continue

            _after_create(svc, entity, player_location, result)
            result.created[kind].append(svc.entities.get(kind, entity_id) or entity)


def resolve_entity_id(svc: CreationService, reference: str) -> str | None:
    """Resolve an id or a display name to an existing entity id."""
    if svc.entities.find(reference) is not None:
        return reference
    wanted = reference.strip().lower()
    for kind in EntityKind:
        for entity in svc.entities.list_all(kind):
            if entity.name.lower() == wanted or entity.display_name.lower() == wanted:
                return entity.id
    return None


def _commit_relationship(
    svc: CreationService, proposal: RelationshipProposal, result: CreationResult
) -> None:
    source_id = resolve_entity_id(svc, proposal.entity1)
    target_id = resolve_entity_id(svc, proposal.entity2)
    if source_id is None or target_id is None:
        missing = proposal.entity1 if source_id is None else proposal.entity2
        result.skipped_relationships.append((proposal.entity1, proposal.entity2))
        result.warnings.append(
            f"Skipped relationship {proposal.entity1} -> {proposal.entity2}: "
            f"entity {missing} does not exist"
        )
        return
    result.warnings.extend(
        svc.validation.validate_relationship(proposal.type, proposal.strength).warnings
    )
    try:
        relationship = svc.relationships.set_relationship(
            source_id, target_id, proposal.type, proposal.strength, proposal.reason
        )
    except RelationshipValidationError as e:
        result.skipped_relationships.append((proposal.entity1, proposal.entity2))
        result.warnings.append(f"Skipped relationship {source_id} -> {target_id}: {e}")
        return
    result.relationships.append(relationship)


def _apply_world_updates(
    svc: CreationService, payload: DetectionPayload, result: CreationResult
) -> None:
    updates = payload.world_updates
    for parameter, delta in updates.deltas().items():
        result.parameter_changes.append(
            svc.world.update_global_parameter(parameter, delta, "narrative development")
        )
    for rumor in updates.rumors:
        svc.world.add_rumor(rumor)
        result.rumors.append(rumor)
    for news in updates.news:
        svc.world.add_news(news)
        result.news.append(news)


def run_entity_batch(
    svc: CreationService, payload: DetectionPayload, player_location: str | None
) -> CreationResult:
    """Commit one detection payload. Runs with the state lock held.

    Args:
        svc: The owning CreationService.
        payload: Proposed entities, relationships and world updates.
        player_location: Player's current location, used for auto-connection.

    Returns:
        CreationResult describing what was committed and what was not.
    """
    result = CreationResult(correlation_id=get_correlation_id())
    logger.info(f"Processing creation batch with {payload.entities.total()} proposed entities")

    _create_entities(svc, payload, player_location, result)
    for proposal in payload.relationships:
        _commit_relationship(svc, proposal, result)
    _apply_world_updates(svc, payload, result)

    logger.info(
        f"Creation batch done: {result.created_count()} created, "
        f"{result.failed_count()} failed, {len(result.relationships)} relationships"
    )
    return result

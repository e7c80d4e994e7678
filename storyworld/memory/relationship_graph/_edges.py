"""Edge CRUD operations for RelationshipGraph."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as PydanticValidationError

from storyworld.memory.relationship_types import (
    DEFAULT_STRENGTH,
    LedgerEntry,
    Relationship,
    RelationshipChange,
    RelationshipType,
    RelationshipUpdate,
)
from storyworld.utils.exceptions import RelationshipNotFoundError, RelationshipValidationError
from storyworld.utils.validation import is_number

if TYPE_CHECKING:
    from . import RelationshipGraph

logger = logging.getLogger(__name__)


def _parse_type(
    relationship_type: RelationshipType | str, source_id: str, target_id: str
) -> RelationshipType:
    try:
        return RelationshipType(relationship_type)
    except ValueError:
        raise RelationshipValidationError(
            f"Unknown relationship type '{relationship_type}' for {source_id} -> {target_id}",
            source_id=source_id,
            target_id=target_id,
            reason="unknown_type",
            suggestions=[t.value for t in RelationshipType],
        ) from None


def _trim(history: list[RelationshipChange], limit: int) -> list[RelationshipChange]:
    return history[-limit:] if len(history) > limit else history


def set_relationship(
    graph: RelationshipGraph,
    source_id: str,
    target_id: str,
    relationship_type: RelationshipType | str,
    strength: float | None,
    reason: str,
) -> Relationship:
    """Create or overwrite the edge source -> target.

    Strength defaults to 50 and is clamped to [0, 100]. When the edge
    already exists its history is kept and extended, and the ledger
    records the write as ``updated``.

    Args:
        graph: RelationshipGraph instance.
        source_id: Source entity id.
        target_id: Target entity id.
        relationship_type: One of RelationshipType.
        strength: Strength, None for the default.
        reason: Free-text provenance.

    Returns:
        The stored relationship.

    Raises:
        RelationshipValidationError: On self loops, unknown types or
            non-numeric strength.
    """
    if source_id == target_id:
        raise RelationshipValidationError(
            f"Cannot create self-referential relationship: entity {source_id} cannot "
            f"have a relationship with itself",
            source_id=source_id,
            target_id=target_id,
            reason="self_loop",
            suggestions=["Choose a different target entity"],
        )
    rel_type = _parse_type(relationship_type, source_id, target_id)
    if strength is None:
        strength = DEFAULT_STRENGTH
    elif not is_number(strength):
        raise RelationshipValidationError(
            f"Relationship strength must be numeric, got {strength!r}",
            source_id=source_id,
            target_id=target_id,
            reason="invalid_strength",
        )

    now = datetime.now()
    existing = get_relationship(graph, source_id, target_id)
    relationship = Relationship(
        source_id=source_id,
        target_id=target_id,
        type=rel_type,
        strength=strength,
        reason=reason,
        established=now,
        last_modified=now,
    )
    if existing is not None:
        relationship.established = existing.established
        relationship.history = _trim(
            [
                *existing.history,
                RelationshipChange(
                    change=relationship.snapshot(),
                    previous_state=existing.snapshot(),
                    timestamp=now,
                ),
            ],
            graph.edge_history_limit,
        )
        action = "updated"
    else:
        action = "established"

    graph.graph.add_edge(source_id, target_id, relationship=relationship)
    graph._record(
        LedgerEntry(
            action=action,
            source_id=source_id,
            target_id=target_id,
            type=rel_type,
            strength=relationship.strength,
            reason=reason,
            timestamp=now,
        )
    )
    logger.debug(
        f"Relationship {action}: {source_id} --{rel_type}({relationship.strength})--> {target_id}"
    )
    return relationship


def update_relationship(
    graph: RelationshipGraph,
    source_id: str,
    target_id: str,
    changes: RelationshipUpdate | dict[str, Any],
) -> Relationship:
    """Merge typed changes into an existing edge.

    Raises:
        RelationshipNotFoundError: If the edge does not exist.
        RelationshipValidationError: If changes carry unknown fields or values.
    """
    existing = get_relationship(graph, source_id, target_id)
    if existing is None:
        raise RelationshipNotFoundError(
            f"No relationship {source_id} -> {target_id}",
            source_id=source_id,
            target_id=target_id,
        )
    if isinstance(changes, dict):
        try:
            changes = RelationshipUpdate.model_validate(changes)
        except PydanticValidationError as e:
            raise RelationshipValidationError(
                f"Invalid relationship update for {source_id} -> {target_id}: {e}",
                source_id=source_id,
                target_id=target_id,
                reason="invalid_changes",
            ) from e

    applied = changes.model_dump(exclude_unset=True, exclude_none=True, mode="json")
    now = datetime.now()
    previous_state = existing.snapshot()
    updated = existing.model_copy(deep=True)
    if changes.type is not None:
        updated.type = changes.type
    if changes.strength is not None:
        updated = Relationship.model_validate(
            {**updated.model_dump(), "strength": changes.strength}
        )
    if changes.reason is not None:
        updated.reason = changes.reason
    updated.last_modified = now
    updated.history = _trim(
        [
            *updated.history,
            RelationshipChange(change=applied, previous_state=previous_state, timestamp=now),
        ],
        graph.edge_history_limit,
    )

    graph.graph.add_edge(source_id, target_id, relationship=updated)
    graph._record(
        LedgerEntry(
            action="updated",
            source_id=source_id,
            target_id=target_id,
            type=updated.type,
            strength=updated.strength,
            reason=updated.reason,
            timestamp=now,
        )
    )
    logger.debug(f"Relationship updated: {source_id} -> {target_id} {applied}")
    return updated


def get_relationship(
    graph: RelationshipGraph, source_id: str, target_id: str
) -> Relationship | None:
    """Return the edge source -> target, or None."""
    data = graph.graph.get_edge_data(source_id, target_id)
    if data is None:
        return None
    relationship: Relationship = data["relationship"]
    return relationship


def get_outgoing(graph: RelationshipGraph, entity_id: str) -> list[Relationship]:
    """Edges whose source is entity_id."""
    if entity_id not in graph.graph:
        return []
    return [data["relationship"] for _, _, data in graph.graph.out_edges(entity_id, data=True)]


def get_entity_relationships(graph: RelationshipGraph, entity_id: str) -> list[Relationship]:
    """Edges where entity_id is either source or target (outgoing first)."""
    if entity_id not in graph.graph:
        return []
    incoming = [data["relationship"] for _, _, data in graph.graph.in_edges(entity_id, data=True)]
    return get_outgoing(graph, entity_id) + incoming


def _drop_isolated(graph: RelationshipGraph, *nodes: str) -> None:
    for node in nodes:
        if node in graph.graph and graph.graph.degree(node) == 0:
            graph.graph.remove_node(node)


def remove_relationship(graph: RelationshipGraph, entity_a: str, entity_b: str) -> bool:
    """Remove the edges a -> b and b -> a, whichever exist.

    Returns:
        True if at least one edge was removed.
    """
    removed = False
    for source_id, target_id in ((entity_a, entity_b), (entity_b, entity_a)):
        relationship = get_relationship(graph, source_id, target_id)
        if relationship is None:
            continue
        graph.graph.remove_edge(source_id, target_id)
        graph._record(
            LedgerEntry(
                action="removed",
                source_id=source_id,
                target_id=target_id,
                type=relationship.type,
                strength=relationship.strength,
            )
        )
        removed = True
    _drop_isolated(graph, entity_a, entity_b)
    if removed:
        logger.debug(f"Removed relationship between {entity_a} and {entity_b}")
    return removed


def remove_entity_relationships(graph: RelationshipGraph, entity_id: str) -> int:
    """Remove every edge touching entity_id.

    Returns:
        Number of edges removed.
    """
    if entity_id not in graph.graph:
        return 0
    neighbours = set(graph.graph.successors(entity_id)) | set(graph.graph.predecessors(entity_id))
    before = graph.edge_count()
    for other in neighbours:
        remove_relationship(graph, entity_id, other)
    removed = before - graph.edge_count()
    logger.info(f"Removed {removed} relationships of {entity_id}")
    return removed


def get_relationship_history(
    graph: RelationshipGraph, entity_id: str, other_id: str | None = None
) -> list[LedgerEntry]:
    """Ledger entries involving entity_id, optionally only those with other_id."""
    entries = []
    for entry in graph.ledger:
        pair = {entry.source_id, entry.target_id}
        if entity_id not in pair:
            continue
        if other_id is not None and other_id not in pair:
            continue
        entries.append(entry)
    return entries

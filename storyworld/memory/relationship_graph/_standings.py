"""Player standing ledger for RelationshipGraph."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from storyworld.memory.relationship_types import PlayerStanding, StandingChange

if TYPE_CHECKING:
    from . import RelationshipGraph

logger = logging.getLogger(__name__)


def _apply(
    graph: RelationshipGraph, standing: PlayerStanding, new_value: float, amount: float, reason: str
) -> PlayerStanding:
    change = StandingChange(
        amount=amount,
        reason=reason,
        previous_value=standing.value,
        timestamp=datetime.now(),
    )
    standing.value = new_value
    standing.last_change = change
    standing.history.append(change)
    if len(standing.history) > graph.standing_history_limit:
        standing.history = standing.history[-graph.standing_history_limit :]
    return standing


def set_player_standing(
    graph: RelationshipGraph, entity_id: str, value: float, reason: str
) -> PlayerStanding:
    """Set the player's standing with an entity to an absolute value."""
    standing = graph.standings.get(entity_id)
    if standing is None:
        standing = PlayerStanding(entity_id=entity_id, established=datetime.now())
        graph.standings[entity_id] = standing
    _apply(graph, standing, value, value - standing.value, reason)
    logger.debug(f"Player standing with {entity_id} set to {value} ({reason})")
    return standing


def update_player_standing(
    graph: RelationshipGraph, entity_id: str, delta: float, reason: str
) -> PlayerStanding:
    """Apply a delta to the player's standing, creating a zero record on first touch.

    The value is not bounded; [-100, 100] is only a convention.
    """
    standing = graph.standings.get(entity_id)
    if standing is None:
        standing = PlayerStanding(entity_id=entity_id, established=datetime.now())
        graph.standings[entity_id] = standing
    _apply(graph, standing, standing.value + delta, delta, reason)
    logger.info(
        f"Player standing with {entity_id}: {delta:+g} -> {standing.value:g}"
        + (f" ({reason})" if reason else "")
    )
    return standing


def get_player_standing(graph: RelationshipGraph, entity_id: str) -> PlayerStanding:
    """The stored standing, or a neutral record that is not stored."""
    standing = graph.standings.get(entity_id)
    if standing is None:
        return PlayerStanding(entity_id=entity_id)
    return standing


def remove_player_standing(graph: RelationshipGraph, entity_id: str) -> bool:
    return graph.standings.pop(entity_id, None) is not None

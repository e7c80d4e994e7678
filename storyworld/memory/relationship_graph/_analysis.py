"""Derived, read-only relationship analytics for RelationshipGraph."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from storyworld.memory.relationship_types import (
    NetworkAnalysis,
    Relationship,
    RelationshipType,
)

if TYPE_CHECKING:
    from . import RelationshipGraph

logger = logging.getLogger(__name__)


def find_by_type(
    graph: RelationshipGraph,
    entity_id: str,
    relationship_type: RelationshipType,
    min_strength: float,
) -> list[Relationship]:
    """Outgoing edges of a type with strength >= min_strength, strongest first."""
    matches = [
        rel
        for rel in graph.get_outgoing(entity_id)
        if rel.type == relationship_type and rel.strength >= min_strength
    ]
    return sorted(matches, key=lambda rel: rel.strength, reverse=True)


def calculate_relationship_strength(
    graph: RelationshipGraph, entity_a: str, entity_b: str
) -> float:
    """Direct strength a -> b, else the mean over two-hop paths a -> m -> b.

    Each two-hop path contributes (s(a, m) * s(m, b)) / 100. Longer paths
    are not considered. Returns 0 when there is no direct edge and no
    two-hop path.
    """
    direct = graph.get_relationship(entity_a, entity_b)
    if direct is not None:
        return direct.strength
    if entity_a not in graph.graph or entity_b not in graph.graph:
        return 0.0

    contributions = []
    for middle in graph.graph.successors(entity_a):
        second = graph.get_relationship(middle, entity_b)
        if second is None:
            continue
        first = graph.get_relationship(entity_a, middle)
        if first is None:
            continue
        contributions.append(first.strength * second.strength / 100)

    if not contributions:
        return 0.0
    return sum(contributions) / len(contributions)


def analyze_relationship_network(graph: RelationshipGraph, entity_id: str) -> NetworkAnalysis:
    """Summarize an entity's outgoing relationships.

    Influence is 2 x allies - enemies + neutrals, where neutrals are all
    edges that are neither ally nor enemy (rival, member, ...).
    """
    outgoing = graph.get_outgoing(entity_id)
    analysis = NetworkAnalysis(entity_id=entity_id, direct_connections=len(outgoing))
    if not outgoing:
        return analysis

    type_counts: dict[str, int] = {}
    for rel in outgoing:
        type_counts[rel.type.value] = type_counts.get(rel.type.value, 0) + 1

    allies = [rel for rel in outgoing if rel.type == RelationshipType.ALLY]
    enemies = [rel for rel in outgoing if rel.type == RelationshipType.ENEMY]
    # Every edge that is neither ally nor enemy counts as neutral
    neutral_count = len(outgoing) - len(allies) - len(enemies)

    analysis.allies = len(allies)
    analysis.enemies = len(enemies)
    analysis.neutral = neutral_count
    analysis.type_counts = type_counts
    analysis.average_strength = sum(rel.strength for rel in outgoing) / len(outgoing)
    if allies:
        analysis.most_trusted = max(allies, key=lambda rel: rel.strength).target_id
    if enemies:
        analysis.most_feared = max(enemies, key=lambda rel: rel.strength).target_id
    analysis.network_influence = 2 * len(allies) - len(enemies) + neutral_count

    logger.debug(
        "Network of %s: %d connections, %d allies, %d enemies",
        entity_id,
        analysis.direct_connections,
        analysis.allies,
        analysis.enemies,
    )
    return analysis

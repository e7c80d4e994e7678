"""Export and import for RelationshipGraph."""

from __future__ import annotations

import logging
from collections import deque
from typing import TYPE_CHECKING, Any

import networkx as nx
from pydantic import ValidationError as PydanticValidationError

from storyworld.memory.relationship_types import LedgerEntry, PlayerStanding, Relationship
from storyworld.utils.exceptions import RelationshipValidationError

if TYPE_CHECKING:
    from . import RelationshipGraph

logger = logging.getLogger(__name__)


def export_relationships(graph: RelationshipGraph) -> dict[str, Any]:
    """Export as {playerStandings, edges: {source: {target: record}}, history}."""
    edges: dict[str, dict[str, Any]] = {}
    for source_id, target_id, data in graph.graph.edges(data=True):
        edges.setdefault(source_id, {})[target_id] = data["relationship"].to_dict()
    return {
        "playerStandings": {
            entity_id: standing.to_dict() for entity_id, standing in graph.standings.items()
        },
        "edges": edges,
        "history": [entry.to_dict() for entry in graph.ledger],
    }


def import_relationships(graph: RelationshipGraph, data: dict[str, Any]) -> None:
    """Replace edges, standings and ledger with an exported document.

    Everything is parsed before anything is replaced.

    Raises:
        RelationshipValidationError: If a record is malformed or is a self loop.
    """
    new_graph: nx.DiGraph = nx.DiGraph()
    try:
        for source_id, targets in (data.get("edges") or {}).items():
            for target_id, record in (targets or {}).items():
                if source_id == target_id:
                    raise RelationshipValidationError(
                        f"Self-referential relationship {source_id} in import",
                        source_id=source_id,
                        target_id=target_id,
                        reason="self_loop",
                    )
                relationship = Relationship.model_validate(
                    {**record, "source_id": source_id, "target_id": target_id}
                )
                new_graph.add_edge(source_id, target_id, relationship=relationship)

        new_standings = {
            entity_id: PlayerStanding.model_validate({**record, "entity_id": entity_id})
            for entity_id, record in (data.get("playerStandings") or {}).items()
        }
        new_ledger = deque(
            (LedgerEntry.model_validate(entry) for entry in data.get("history") or []),
            maxlen=graph.history_limit,
        )
    except PydanticValidationError as e:
        raise RelationshipValidationError(
            f"Invalid relationship data in import: {e}", reason="invalid_import"
        ) from e

    graph.graph = new_graph
    graph.standings = new_standings
    graph.ledger = new_ledger
    logger.info(
        f"Imported {new_graph.number_of_edges()} relationships and "
        f"{len(new_standings)} player standings"
    )

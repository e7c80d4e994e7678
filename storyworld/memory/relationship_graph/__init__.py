"""Relationship graph: directed entity relationships plus player standings."""

from __future__ import annotations

import logging
from collections import deque
from typing import Any

import networkx as nx

from storyworld.memory.relationship_types import (
    DEFAULT_ALLY_THRESHOLD,
    DEFAULT_ENEMY_THRESHOLD,
    LedgerEntry,
    NetworkAnalysis,
    PlayerStanding,
    Relationship,
    RelationshipType,
    RelationshipUpdate,
)
from storyworld.utils import constants

from . import _analysis, _edges, _io, _standings

logger = logging.getLogger(__name__)


class RelationshipGraph:
    """Directed relationships between entities, stored in a networkx DiGraph.

    Each edge carries a ``Relationship`` under the ``relationship`` key.
    Edges are not symmetric: A->B says nothing about B->A. The player's
    standing with entities is a separate ledger, not part of the graph.
    """

    def __init__(
        self,
        history_limit: int = constants.RELATIONSHIP_HISTORY_LIMIT,
        edge_history_limit: int = constants.EDGE_HISTORY_LIMIT,
        standing_history_limit: int = constants.STANDING_HISTORY_LIMIT,
    ) -> None:
        self.graph: nx.DiGraph = nx.DiGraph()
        self.ledger: deque[LedgerEntry] = deque(maxlen=history_limit)
        self.standings: dict[str, PlayerStanding] = {}
        self.history_limit = history_limit
        self.edge_history_limit = edge_history_limit
        self.standing_history_limit = standing_history_limit
        logger.debug(
            "RelationshipGraph initialized: ledger=%d, edge_history=%d, standing_history=%d",
            history_limit,
            edge_history_limit,
            standing_history_limit,
        )

    # ========== Edges ==========

    def set_relationship(
        self,
        source_id: str,
        target_id: str,
        relationship_type: RelationshipType | str = RelationshipType.NEUTRAL,
        strength: float | None = None,
        reason: str = "",
    ) -> Relationship:
        return _edges.set_relationship(
            self, source_id, target_id, relationship_type, strength, reason
        )

    def update_relationship(
        self,
        source_id: str,
        target_id: str,
        changes: RelationshipUpdate | dict[str, Any],
    ) -> Relationship:
        return _edges.update_relationship(self, source_id, target_id, changes)

    def get_relationship(self, source_id: str, target_id: str) -> Relationship | None:
        return _edges.get_relationship(self, source_id, target_id)

    def get_outgoing(self, entity_id: str) -> list[Relationship]:
        return _edges.get_outgoing(self, entity_id)

    def get_entity_relationships(self, entity_id: str) -> list[Relationship]:
        return _edges.get_entity_relationships(self, entity_id)

    def remove_relationship(self, entity_a: str, entity_b: str) -> bool:
        return _edges.remove_relationship(self, entity_a, entity_b)

    def remove_entity_relationships(self, entity_id: str) -> int:
        return _edges.remove_entity_relationships(self, entity_id)

    def get_relationship_history(
        self, entity_id: str, other_id: str | None = None
    ) -> list[LedgerEntry]:
        return _edges.get_relationship_history(self, entity_id, other_id)

    def list_relationships(self) -> list[Relationship]:
        return [data["relationship"] for _, _, data in self.graph.edges(data=True)]

    def edge_count(self) -> int:
        return int(self.graph.number_of_edges())

    # ========== Player standing ==========

    def set_player_standing(
        self, entity_id: str, value: float = 0.0, reason: str = "established"
    ) -> PlayerStanding:
        return _standings.set_player_standing(self, entity_id, value, reason)

    def update_player_standing(
        self, entity_id: str, delta: float, reason: str = ""
    ) -> PlayerStanding:
        return _standings.update_player_standing(self, entity_id, delta, reason)

    def get_player_standing(self, entity_id: str) -> PlayerStanding:
        return _standings.get_player_standing(self, entity_id)

    def has_player_standing(self, entity_id: str) -> bool:
        return entity_id in self.standings

    def get_all_player_standings(self) -> dict[str, PlayerStanding]:
        return dict(self.standings)

    def remove_player_standing(self, entity_id: str) -> bool:
        return _standings.remove_player_standing(self, entity_id)

    # ========== Analytics ==========

    def find_allies(
        self, entity_id: str, min_strength: float = DEFAULT_ALLY_THRESHOLD
    ) -> list[Relationship]:
        return _analysis.find_by_type(self, entity_id, RelationshipType.ALLY, min_strength)

    def find_enemies(
        self, entity_id: str, min_strength: float = DEFAULT_ENEMY_THRESHOLD
    ) -> list[Relationship]:
        return _analysis.find_by_type(self, entity_id, RelationshipType.ENEMY, min_strength)

    def calculate_relationship_strength(self, entity_a: str, entity_b: str) -> float:
        return _analysis.calculate_relationship_strength(self, entity_a, entity_b)

    def analyze_relationship_network(self, entity_id: str) -> NetworkAnalysis:
        return _analysis.analyze_relationship_network(self, entity_id)

    # ========== Export / import ==========

    def export_relationships(self) -> dict[str, Any]:
        return _io.export_relationships(self)

    def import_relationships(self, data: dict[str, Any]) -> None:
        _io.import_relationships(self, data)

    def _record(self, entry: LedgerEntry) -> None:
        """Append to the global ledger (oldest entries fall off)."""
        self.ledger.append(entry)

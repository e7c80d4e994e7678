"""Tests for RelationshipGraph."""

import pytest

from storyworld.memory.relationship_graph import RelationshipGraph
from storyworld.memory.relationship_types import RelationshipType, RelationshipUpdate
from storyworld.utils.exceptions import RelationshipNotFoundError, RelationshipValidationError


class TestSetRelationship:
    """Tests for set_relationship."""

    def test_defaults(self, relationship_graph):
        """Type defaults to neutral and strength to 50."""
        rel = relationship_graph.set_relationship("a", "b")

        assert rel.type == RelationshipType.NEUTRAL
        assert rel.strength == 50
        assert relationship_graph.get_relationship("a", "b") is rel

    def test_strength_clamped(self, relationship_graph):
        """Strength outside [0, 100] is clamped."""
        high = relationship_graph.set_relationship("a", "b", "ally", 500)
        low = relationship_graph.set_relationship("a", "c", "enemy", -20)

        assert high.strength == 100
        assert low.strength == 0

    def test_directed(self, relationship_graph):
        """A -> B does not imply B -> A."""
        relationship_graph.set_relationship("a", "b", "ally", 80)

        assert relationship_graph.get_relationship("b", "a") is None

    def test_self_loop_rejected(self, relationship_graph):
        """An entity cannot relate to itself."""
        with pytest.raises(RelationshipValidationError, match="self-referential") as exc_info:
            relationship_graph.set_relationship("a", "a", "ally", 60)

        assert exc_info.value.reason == "self_loop"
        assert relationship_graph.edge_count() == 0

    def test_unknown_type_rejected(self, relationship_graph):
        """Unknown relationship types are rejected."""
        with pytest.raises(RelationshipValidationError, match="Unknown relationship type"):
            relationship_graph.set_relationship("a", "b", "sibling", 60)

    def test_non_numeric_strength_rejected(self, relationship_graph):
        """Non-numeric strength is rejected."""
        with pytest.raises(RelationshipValidationError, match="must be numeric"):
            relationship_graph.set_relationship("a", "b", "ally", "strong")

    def test_overwrite_keeps_history(self, relationship_graph):
        """Overwriting keeps the established time and records the previous state."""
        first = relationship_graph.set_relationship("a", "b", "ally", 60, "met at the inn")
        second = relationship_graph.set_relationship("a", "b", "rival", 40, "card game")

        assert second.established == first.established
        assert second.type == RelationshipType.RIVAL
        assert len(second.history) == 1
        assert second.history[0].previous_state["strength"] == 60
        assert [entry.action for entry in relationship_graph.ledger] == [
            "established",
            "updated",
        ]


class TestUpdateRelationship:
    """Tests for update_relationship."""

    def test_merges_changes(self, relationship_graph):
        """Only given fields change."""
        relationship_graph.set_relationship("a", "b", "ally", 60, "old friends")

        updated = relationship_graph.update_relationship("a", "b", {"strength": 75})

        assert updated.strength == 75
        assert updated.type == RelationshipType.ALLY
        assert updated.reason == "old friends"
        assert updated.history[-1].change == {"strength": 75.0}

    def test_typed_update_clamps(self, relationship_graph):
        """Typed updates are clamped like new edges."""
        relationship_graph.set_relationship("a", "b")

        updated = relationship_graph.update_relationship(
            "a", "b", RelationshipUpdate(strength=250)
        )

        assert updated.strength == 100

    def test_missing_edge(self, relationship_graph):
        """Updating a missing edge raises RelationshipNotFoundError."""
        with pytest.raises(RelationshipNotFoundError):
            relationship_graph.update_relationship("a", "b", {"strength": 10})

    def test_unknown_field(self, relationship_graph):
        """Unknown fields are rejected."""
        relationship_graph.set_relationship("a", "b")

        with pytest.raises(RelationshipValidationError, match="Invalid relationship update"):
            relationship_graph.update_relationship("a", "b", {"colour": "red"})


class TestRemove:
    """Tests for edge removal."""

    def test_removes_both_directions(self, relationship_graph):
        """remove_relationship drops a -> b and b -> a."""
        relationship_graph.set_relationship("a", "b", "ally", 70)
        relationship_graph.set_relationship("b", "a", "ally", 65)

        assert relationship_graph.remove_relationship("a", "b") is True

        assert relationship_graph.get_relationship("a", "b") is None
        assert relationship_graph.get_relationship("b", "a") is None
        assert relationship_graph.edge_count() == 0

    def test_remove_missing(self, relationship_graph):
        """Removing a missing pair reports False."""
        assert relationship_graph.remove_relationship("a", "b") is False

    def test_remove_entity_relationships(self, relationship_graph):
        """Every edge touching the entity is removed."""
        relationship_graph.set_relationship("a", "b")
        relationship_graph.set_relationship("c", "a")
        relationship_graph.set_relationship("b", "c")

        assert relationship_graph.remove_entity_relationships("a") == 2
        assert relationship_graph.get_entity_relationships("a") == []
        assert relationship_graph.get_relationship("b", "c") is not None

    def test_history_filters_by_pair(self, relationship_graph):
        """Ledger history can be narrowed to one counterpart."""
        relationship_graph.set_relationship("a", "b")
        relationship_graph.set_relationship("a", "c")
        relationship_graph.remove_relationship("a", "b")

        history = relationship_graph.get_relationship_history("a", "b")
        assert [entry.action for entry in history] == ["established", "removed"]
        assert len(relationship_graph.get_relationship_history("a")) == 3


class TestLedger:
    """Tests for the bounded global ledger."""

    def test_ledger_is_bounded(self):
        """Oldest ledger entries fall off past the limit."""
        graph = RelationshipGraph(history_limit=3)
        for target in ("b", "c", "d", "e"):
            graph.set_relationship("a", target)

        assert len(graph.ledger) == 3
        assert graph.ledger[0].target_id == "c"


class TestStandings:
    """Tests for the player standing ledger."""

    def test_unknown_standing_is_neutral(self, relationship_graph):
        """Reading an untouched standing returns 0 without storing it."""
        assert relationship_graph.get_player_standing("guild").value == 0
        assert not relationship_graph.has_player_standing("guild")

    def test_update_accumulates(self, relationship_graph):
        """Deltas accumulate and each change is recorded."""
        relationship_graph.update_player_standing("guild", 15, "helped")
        standing = relationship_graph.update_player_standing("guild", -5, "insulted")

        assert standing.value == 10
        assert standing.last_change.amount == -5
        assert standing.last_change.previous_value == 15
        assert len(standing.history) == 2

    def test_standing_not_bounded(self, relationship_graph):
        """The standing value is signed and unbounded."""
        standing = relationship_graph.update_player_standing("guild", -250)

        assert standing.value == -250

    def test_set_absolute(self, relationship_graph):
        """set_player_standing records the difference as the change amount."""
        relationship_graph.set_player_standing("guild", 10)
        standing = relationship_graph.set_player_standing("guild", 40)

        assert standing.value == 40
        assert standing.last_change.amount == 30

    def test_remove_standing(self, relationship_graph):
        """Removing a standing reports whether one existed."""
        relationship_graph.set_player_standing("guild", 10)

        assert relationship_graph.remove_player_standing("guild") is True
        assert relationship_graph.remove_player_standing("guild") is False


class TestAnalytics:
    """Tests for derived analytics."""

    def test_direct_strength(self, relationship_graph):
        """A direct edge's strength is returned as-is."""
        relationship_graph.set_relationship("a", "b", "ally", 72)

        assert relationship_graph.calculate_relationship_strength("a", "b") == 72

    def test_two_hop_strength(self, relationship_graph):
        """Without a direct edge, two-hop paths contribute s1 * s2 / 100."""
        relationship_graph.set_relationship("a", "m", "ally", 80)
        relationship_graph.set_relationship("m", "b", "ally", 60)

        assert relationship_graph.calculate_relationship_strength("a", "b") == pytest.approx(48)

    def test_two_hop_mean(self, relationship_graph):
        """Several two-hop paths are averaged."""
        relationship_graph.set_relationship("a", "m", "ally", 80)
        relationship_graph.set_relationship("m", "b", "ally", 60)
        relationship_graph.set_relationship("a", "n", "ally", 50)
        relationship_graph.set_relationship("n", "b", "ally", 40)

        assert relationship_graph.calculate_relationship_strength("a", "b") == pytest.approx(34)

    def test_no_path(self, relationship_graph):
        """Unconnected entities have strength 0."""
        relationship_graph.set_relationship("a", "m", "ally", 80)

        assert relationship_graph.calculate_relationship_strength("a", "z") == 0

    def test_allies_and_enemies(self, relationship_graph):
        """find_allies/find_enemies filter by type and threshold, strongest first."""
        relationship_graph.set_relationship("a", "b", "ally", 75)
        relationship_graph.set_relationship("a", "c", "ally", 90)
        relationship_graph.set_relationship("a", "d", "ally", 40)
        relationship_graph.set_relationship("a", "e", "enemy", 35)

        assert [rel.target_id for rel in relationship_graph.find_allies("a")] == ["c", "b"]
        assert [rel.target_id for rel in relationship_graph.find_enemies("a")] == ["e"]

    def test_network_analysis(self, relationship_graph):
        """Influence is 2 x allies - enemies + neutrals."""
        relationship_graph.set_relationship("a", "b", "ally", 80)
        relationship_graph.set_relationship("a", "c", "ally", 60)
        relationship_graph.set_relationship("a", "d", "enemy", 70)
        relationship_graph.set_relationship("a", "e", "neutral", 50)

        analysis = relationship_graph.analyze_relationship_network("a")

        assert analysis.direct_connections == 4
        assert analysis.network_influence == 4
        assert analysis.most_trusted == "b"
        assert analysis.most_feared == "d"
        assert analysis.average_strength == pytest.approx(65)

    def test_other_types_count_as_neutral(self, relationship_graph):
        """Rival, member and subordinate edges are neutral for influence."""
        relationship_graph.set_relationship("a", "b", "ally", 80)
        relationship_graph.set_relationship("a", "c", "rival", 60)
        relationship_graph.set_relationship("a", "d", "member", 60)

        analysis = relationship_graph.analyze_relationship_network("a")

        assert analysis.allies == 1
        assert analysis.enemies == 0
        assert analysis.neutral == 2
        assert analysis.type_counts == {"ally": 1, "rival": 1, "member": 1}
        assert analysis.network_influence == 4

    def test_empty_network(self, relationship_graph):
        """An entity without edges gets an empty analysis."""
        analysis = relationship_graph.analyze_relationship_network("loner")

        assert analysis.direct_connections == 0
        assert analysis.most_trusted is None


class TestExportImport:
    """Tests for export_relationships / import_relationships."""

    def test_round_trip(self, relationship_graph):
        """A fresh graph reproduces edges, standings and ledger."""
        relationship_graph.set_relationship("a", "b", "ally", 80, "sworn")
        relationship_graph.set_relationship("b", "c", "enemy", 20)
        relationship_graph.update_player_standing("guild", 12, "helped")

        fresh = RelationshipGraph()
        fresh.import_relationships(relationship_graph.export_relationships())

        rel = fresh.get_relationship("a", "b")
        assert rel.type == RelationshipType.ALLY
        assert rel.strength == 80
        assert rel.reason == "sworn"
        assert fresh.edge_count() == 2
        assert fresh.get_player_standing("guild").value == 12
        assert len(fresh.ledger) == len(relationship_graph.ledger)

    def test_export_shape(self, relationship_graph):
        """Edges are nested source -> target with camelCase records."""
        relationship_graph.set_relationship("a", "b")

        exported = relationship_graph.export_relationships()

        assert set(exported) == {"playerStandings", "edges", "history"}
        assert "lastModified" in exported["edges"]["a"]["b"]

    def test_self_loop_import_rejected(self, relationship_graph):
        """Importing a self loop fails and leaves the graph untouched."""
        relationship_graph.set_relationship("a", "b")
        document = {"edges": {"x": {"x": {"type": "ally", "strength": 50}}}}

        with pytest.raises(RelationshipValidationError):
            relationship_graph.import_relationships(document)

        assert relationship_graph.get_relationship("a", "b") is not None

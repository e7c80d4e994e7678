"""Tests for collaborator payload parsing."""

import pytest

from storyworld.memory.entities import EntityKind
from storyworld.services.payloads import ConsequencePayload, DetectionPayload
from storyworld.services.story_collaborator import parse_detection_response


class TestDetectionPayload:
    """Tests for DetectionPayload.from_raw."""

    @pytest.mark.parametrize("raw", [None, "text", 42, ["a", "b"]])
    def test_non_object_is_empty(self, raw):
        """Anything but an object becomes an empty payload."""
        assert DetectionPayload.from_raw(raw).is_empty()

    def test_non_object_entries_dropped(self):
        """Entity entries that are not objects are dropped."""
        payload = DetectionPayload.from_raw(
            {"entities": {"npcs": [{"name": "Ada"}, "Bram", 7], "items": "sword"}}
        )

        assert payload.entities.for_kind(EntityKind.NPC) == [{"name": "Ada"}]
        assert payload.entities.items == []
        assert payload.entities.total() == 1

    def test_malformed_relationship_dropped(self):
        """Relationships missing an endpoint are dropped, others kept."""
        payload = DetectionPayload.from_raw(
            {
                "relationships": [
                    {"entity1": "a"},
                    {"entity1": "a", "entity2": "b", "strength": 40},
                ]
            }
        )

        assert len(payload.relationships) == 1
        assert payload.relationships[0].strength == 40
        assert payload.relationships[0].type == "neutral"

    def test_world_update_aliases(self):
        """Parameter names are normalized and non-numeric deltas dropped."""
        payload = DetectionPayload.from_raw(
            {
                "worldUpdates": {
                    "politicalStability": -4,
                    "MAGIC": 6,
                    "tension": "lots",
                    "morale": 3,
                    "rumors": ["one", "", 5],
                }
            }
        )

        assert payload.world_updates.deltas() == {
            "political_stability": -4,
            "magical_activity": 6,
        }
        assert payload.world_updates.rumors == ["one"]

    def test_zero_deltas_ignored(self):
        """Zero deltas do not count as updates."""
        payload = DetectionPayload.from_raw({"worldUpdates": {"tension": 0}})

        assert payload.is_empty()

    def test_non_finite_deltas_dropped(self):
        """NaN and Infinity literals in a reply are not deltas."""
        payload = parse_detection_response(
            '{"worldUpdates": {"tension": NaN, "magic": Infinity, "economy": 5}}'
        )

        assert payload.world_updates.deltas() == {"economic_state": 5}

    def test_non_finite_strength_dropped(self):
        """A relationship with a NaN strength is dropped as malformed."""
        payload = parse_detection_response(
            '{"relationships": [{"entity1": "a", "entity2": "b", "strength": NaN}]}'
        )

        assert payload.relationships == []


class TestConsequencePayload:
    """Tests for ConsequencePayload.from_raw."""

    def test_full_payload(self):
        """Every section is read from its camelCase key."""
        payload = ConsequencePayload.from_raw(
            {
                "npcChanges": {"elder": {"trust": 5}, "ghost": "angry"},
                "factionStandings": {"guild": -3, "church": "high"},
                "playerEffects": {"reputation": {"heroic": 2}, "health": "lots"},
                "worldEffects": {"tension": 4},
                "longTerm": {
                    "newEvents": ["Festival"],
                    "changedRelationships": [
                        {"entity1": "a", "entity2": "b", "newRelationship": "rival"},
                        {"entity1": "a"},
                    ],
                    "futureOpportunities": ["Trade route"],
                },
            }
        )

        assert payload.npc_changes == {"elder": {"trust": 5}}
        assert payload.faction_standings == {"guild": -3}
        assert payload.player_effects.reputation == {"heroic": 2}
        assert payload.player_effects.health == 0
        assert payload.world_effects == {"tension": 4}
        assert payload.long_term.new_events == ["Festival"]
        assert len(payload.long_term.changed_relationships) == 1
        assert payload.long_term.changed_relationships[0].new_relationship == "rival"
        assert payload.long_term.future_opportunities == ["Trade route"]

    def test_non_object_is_empty(self):
        """A non-object payload has no effects."""
        payload = ConsequencePayload.from_raw(["nope"])

        assert payload.npc_changes == {}
        assert payload.long_term.new_events == []

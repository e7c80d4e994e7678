"""Tests for WorldEngine and ServiceContainer."""

import json
import random
from unittest.mock import MagicMock, patch

import pytest

from storyworld.memory.entities import EntityKind
from storyworld.services import ServiceContainer
from storyworld.services.payloads import ConsequencePayload, DetectionPayload
from storyworld.services.story_collaborator import OllamaStoryCollaborator
from storyworld.services.world_engine import SAVE_FORMAT_VERSION, WorldEngine
from storyworld.settings import Settings
from storyworld.utils.constants import FALLBACK_NARRATIVE
from storyworld.utils.exceptions import CollaboratorError, OutOfRangeError, SaveFileValidationError


def _collaborator(narrative="The elder smiles.", detection=None, consequences=None):
    collaborator = MagicMock()
    collaborator.generate_story.return_value = narrative
    collaborator.detect_entities.return_value = DetectionPayload.from_raw(detection or {})
    collaborator.analyze_consequences.return_value = ConsequencePayload.from_raw(
        consequences or {}
    )
    return collaborator


class TestStartingWorld:
    """Tests for the seeded starting world."""

    def test_seeded_entities(self, engine):
        """The village, elder, council and sword exist with a friendly standing."""
        assert engine.entities.get("npc", "village_elder").name == "Elder Thane"
        assert engine.entities.get("faction", "village_council").leadership == ["village_elder"]
        assert engine.entities.get("location", "village_square").visited is True
        assert engine.entities.get("item", "rusty_sword").location == "player_inventory"
        assert engine.relationships.get_player_standing("village_council").value == 10
        assert engine.player.current_location == "village_square"

    def test_seeded_world_is_consistent(self, engine):
        """The starting world passes the integrity scan."""
        report = engine.validate_integrity()

        assert report.valid
        assert report.errors == []

    def test_unseeded(self, empty_engine):
        """seed_world=False starts with no entities."""
        assert empty_engine.entities.count() == 0

    def test_seed_setting(self):
        """Settings can switch seeding off."""
        engine = WorldEngine(Settings(seed_starting_world=False))

        assert engine.entities.count() == 0


class TestProcessTurn:
    """Tests for process_turn."""

    def test_fallback_without_collaborator(self, engine):
        """Without a collaborator the turn completes with the fallback narrative."""
        result = engine.process_turn("I help the elder carry water")

        assert result.narrative == FALLBACK_NARRATIVE
        assert result.used_fallback is True
        assert result.new_entities_count == 0
        assert engine.world.get_parameter("tension") == 30
        assert engine.player.reputation["heroic"] == 0
        assert engine.player.current_location == "village_square"
        assert engine.meta.choice_count == 1
        assert engine.player.choice_history[-1].choice == "I help the elder carry water"
        assert result.correlation_id == "turn-1"

    def test_collaborator_failure_falls_back(self, engine):
        """A collaborator error degrades to the fallback narrative."""
        collaborator = _collaborator()
        collaborator.generate_story.side_effect = CollaboratorError("offline")

        result = engine.process_turn("I look around", collaborator=collaborator)

        assert result.used_fallback is True
        assert result.narrative == FALLBACK_NARRATIVE
        collaborator.detect_entities.assert_not_called()
        collaborator.analyze_consequences.assert_not_called()

    @pytest.mark.parametrize(
        "error", [KeyError("message"), TypeError("bad reply"), AttributeError("strip")]
    )
    def test_unexpected_collaborator_error_falls_back(self, engine, error):
        """Errors that are not LLM errors still degrade to the fallback narrative."""
        collaborator = _collaborator()
        collaborator.detect_entities.side_effect = error

        result = engine.process_turn("I look around", collaborator=collaborator)

        assert result.used_fallback is True
        assert result.narrative == FALLBACK_NARRATIVE
        assert engine.meta.choice_count == 1

    def test_empty_narrative_falls_back(self, engine):
        """A blank narrative is treated as a failure."""
        result = engine.process_turn("I look around", collaborator=_collaborator("   "))

        assert result.used_fallback is True

    def test_turn_with_collaborator(self):
        """Detected entities are committed and the destination is marked visited."""
        collaborator = _collaborator(
            narrative="You push open the tavern door. A bard waves at you.",
            detection={
                "entities": {
                    "locations": [{"id": "tavern", "name": "The Gilded Tankard"}],
                    "npcs": [{"name": "Lira", "occupation": "bard", "location": "tavern"}],
                },
                "relationships": [
                    {"entity1": "lira", "entity2": "village_council", "type": "neutral"}
                ],
            },
            consequences={"factionStandings": {"village_council": 5}},
        )
        engine = WorldEngine(Settings(), collaborator=collaborator, rng=random.Random(3))

        result = engine.process_turn("I walk into the tavern", destination="tavern")

        assert result.used_fallback is False
        assert result.new_entities_count == 2
        assert result.creation.correlation_id == "turn-1"
        assert engine.player.current_location == "tavern"
        tavern = engine.entities.get("location", "tavern")
        assert tavern.visited is True
        assert "village_square" in tavern.connected_to
        assert engine.relationships.get_relationship("lira", "village_council") is not None
        assert engine.relationships.get_player_standing("village_council").value == 15

    def test_consequences_applied(self, engine):
        """The collaborator's consequence analysis is applied to the player and world."""
        collaborator = _collaborator(
            consequences={
                "playerEffects": {"reputation": {"heroic": 2}, "skills": {"diplomacy": 1}},
                "worldEffects": {"tension": -2},
            }
        )

        result = engine.process_turn("I help the elder carry water", collaborator=collaborator)

        assert result.applied.world_effects == {"tension": -2}
        assert engine.world.get_parameter("tension") == 28
        assert engine.player.reputation["heroic"] == 2
        assert engine.player.skills["diplomacy"] == 11

    def test_analysis_failure_keeps_turn(self, engine):
        """A failed consequence analysis still completes the turn."""
        collaborator = _collaborator()
        collaborator.analyze_consequences.side_effect = CollaboratorError("timeout")

        result = engine.process_turn("I wait", collaborator=collaborator)

        assert result.used_fallback is False
        assert result.narrative == "The elder smiles."
        assert engine.world.get_parameter("tension") == 30

    def test_unexpected_analysis_error_keeps_turn(self, engine):
        """A TypeError from consequence analysis is logged and the turn completes."""
        collaborator = _collaborator(detection={"worldUpdates": {"tension": 5}})
        collaborator.analyze_consequences.side_effect = TypeError("NoneType")

        result = engine.process_turn("I wait", collaborator=collaborator)

        assert result.used_fallback is False
        assert result.applied == ConsequencePayload()
        assert engine.world.get_parameter("tension") == 35

    def test_unknown_destination_still_moves(self, engine):
        """Moving to a location not in the store changes only the player record."""
        engine.process_turn("I wander off", destination="far_hills")

        assert engine.player.current_location == "far_hills"
        assert not engine.entities.exists("location", "far_hills")

    def test_empty_input_rejected(self, engine):
        """An empty input is a ValueError."""
        with pytest.raises(ValueError):
            engine.process_turn("   ")

    def test_choice_history_limit(self):
        """Only the newest choices are kept."""
        engine = WorldEngine(Settings(choice_history_limit=2), seed_world=False)
        for choice in ("one", "two", "three"):
            engine.record_player_choice(choice)

        assert [c.choice for c in engine.player.choice_history] == ["two", "three"]
        assert engine.meta.choice_count == 3


class TestPersistence:
    """Tests for export/import and save files."""

    def test_round_trip(self, engine, empty_engine):
        """A fresh engine restored from an export matches the original."""
        engine.process_turn("I help the elder")
        engine.relationships.set_relationship("village_elder", "village_council", "member", 80)
        engine.world.add_rumor("The well is haunted", accuracy=30)

        empty_engine.import_state(engine.export_state())

        for kind in EntityKind:
            assert empty_engine.entities.ids(kind) == engine.entities.ids(kind)
        assert empty_engine.world.get_parameters() == engine.world.get_parameters()
        assert empty_engine.relationships.get_relationship(
            "village_elder", "village_council"
        ).strength == 80
        assert empty_engine.relationships.get_player_standing("village_council").value == 10
        assert empty_engine.player.reputation == engine.player.reputation
        assert empty_engine.meta.session_id == engine.meta.session_id
        assert empty_engine.world.rumors[-1].content == "The well is haunted"

    def test_pipeline_follows_import(self, engine, empty_engine):
        """After an import the pipeline writes into the restored stores."""
        empty_engine.import_state(engine.export_state())

        empty_engine.creation.process_entity_creation({"entities": {"npcs": [{"name": "Ada"}]}})

        assert empty_engine.entities.exists("npc", "ada")
        assert not engine.entities.exists("npc", "ada")

    def test_document_sections(self, engine):
        """The export carries every section, with camelCase keys."""
        document = engine.export_state()

        assert set(document) == {
            "player",
            "entities",
            "relationships",
            "worldState",
            "creationHistory",
            "meta",
        }
        assert document["meta"]["version"] == SAVE_FORMAT_VERSION
        assert "currentLocation" in document["player"]
        assert json.loads(json.dumps(document)) == document

    def test_missing_section(self, engine, empty_engine):
        """A document without a required section is rejected and nothing changes."""
        document = engine.export_state()
        del document["meta"]

        with pytest.raises(SaveFileValidationError) as exc_info:
            empty_engine.import_state(document)

        assert exc_info.value.missing_sections == ["meta"]
        assert empty_engine.entities.count() == 0

    def test_not_an_object(self, empty_engine):
        """A non-object document is rejected."""
        with pytest.raises(SaveFileValidationError):
            empty_engine.import_state(["player"])

    def test_bad_world_state_leaves_engine_untouched(self, engine):
        """A failing section aborts the import before anything is replaced."""
        document = engine.export_state()
        document["worldState"]["parameters"]["tension"] = 400
        engine.entities.create("npc", "ada", {"name": "Ada"})

        with pytest.raises(OutOfRangeError):
            engine.import_state(document)

        assert engine.entities.exists("npc", "ada")

    def test_save_and_load(self, engine, empty_engine, tmp_path):
        """save_game writes a file that load_game restores."""
        engine.process_turn("I study the old well")
        engine.player.adjust_skill("knowledge", 2)
        target = tmp_path / "slot1.json"

        written = engine.save_game(target)
        empty_engine.load_game(target)

        assert written == target
        assert empty_engine.meta.last_save is not None
        assert empty_engine.meta.choice_count == 1
        assert empty_engine.player.skills["knowledge"] == 12

    def test_default_save_location(self, engine, empty_engine):
        """Without a path the save goes to the saves directory."""
        written = engine.save_game()

        assert written.name == "gamestate.json"
        assert written.exists()
        empty_engine.load_game()
        assert empty_engine.entities.count() == engine.entities.count()

    def test_load_corrupt_file(self, empty_engine, tmp_path):
        """A file that is not JSON raises JSONDecodeError."""
        target = tmp_path / "broken.json"
        target.write_text("{not json", encoding="utf-8")

        with pytest.raises(json.JSONDecodeError):
            empty_engine.load_game(target)


class TestAnalytics:
    """Tests for the read-side analytics."""

    def test_entity_statistics(self, engine):
        """Counts reflect the seeded world."""
        stats = engine.get_entity_statistics()

        assert stats["npcs"] == {"total": 1, "met": 0, "alive": 1}
        assert stats["factions"] == {"total": 1, "allied": 0, "hostile": 0}
        assert stats["locations"] == {"total": 1, "visited": 1}
        assert stats["items"] == {"total": 1, "in_inventory": 1}
        assert stats["events"] == {"total": 0, "active": 0}

    def test_relationship_summary(self, engine):
        """Standings above 20 are allies, below -20 enemies."""
        engine.entities.create("faction", "bandits", {"name": "Bandits"})
        engine.relationships.update_player_standing("village_council", 15)
        engine.relationships.update_player_standing("bandits", -40)
        engine.relationships.update_player_standing("vanished", 50)

        summary = engine.get_player_relationship_summary()

        assert [entry["id"] for entry in summary["allies"]] == ["village_council"]
        assert [entry["id"] for entry in summary["enemies"]] == ["bandits"]
        assert summary["neutral"] == []

    def test_world_summary(self, engine):
        """The summary lists entity ids, standings and world parameters."""
        summary = engine.get_world_summary()

        assert summary["entities"]["npcs"] == ["village_elder"]
        assert summary["playerStandings"] == {"village_council": 10}
        assert summary["world"]["parameters"]["tension"] == 30

    def test_player_profile(self, engine):
        """Dominant reputation and strongest skills are reported."""
        engine.player.adjust_reputation("villainous", -7)
        engine.player.adjust_skill("stealth", 30)

        profile = engine.analyze_player_profile()

        assert profile["dominantReputation"] == {"type": "villainous", "value": -7}
        assert profile["strongestSkills"][0] == {"skill": "stealth", "level": 40}

    def test_relationship_networks(self, engine):
        """Every NPC gets a network analysis."""
        engine.relationships.set_relationship("village_elder", "village_council", "ally", 90)

        networks = engine.get_relationship_networks()

        assert networks["village_elder"]["mostTrusted"] == "village_council"

    def test_detailed_state(self, engine):
        """The detailed state bundles summary and analyses."""
        state = engine.get_detailed_state()

        assert set(state["analysis"]) == {
            "world",
            "playerProfile",
            "entityStatistics",
            "relationshipNetworks",
        }

    def test_system_status(self, engine):
        """Status reports sizes, pipeline and integrity."""
        status = engine.get_system_status()

        assert status["entities"]["npc"] == 1
        assert status["playerStandings"] == 1
        assert status["integrity"] == {"valid": True, "errors": 0, "warnings": 0}
        assert status["pipeline"]["pipeline_state"] == "idle"
        assert status["collaborator"] is None


class TestServiceContainer:
    """Tests for ServiceContainer wiring."""

    def test_uses_given_collaborator(self):
        """The container shares one collaborator and settings object with the engine."""
        collaborator = _collaborator()
        settings = Settings()

        services = ServiceContainer(settings, collaborator=collaborator)

        assert services.engine.collaborator is collaborator
        assert services.engine.settings is settings
        assert services.creation is services.engine.creation
        assert services.validation is services.engine.validation

    def test_default_collaborator_is_ollama(self):
        """Without a collaborator an Ollama one is built from settings."""
        with patch("storyworld.services.story_collaborator.ollama.Client"):
            services = ServiceContainer(Settings())

        assert isinstance(services.collaborator, OllamaStoryCollaborator)

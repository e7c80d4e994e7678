"""Tests for the story collaborator and its response parsing."""

import json
from unittest.mock import MagicMock, patch

import httpx
import ollama
import pytest

from storyworld.services.payloads import ConsequencePayload, DetectionPayload
from storyworld.services.story_collaborator import (
    OllamaStoryCollaborator,
    StoryCollaborator,
    parse_consequence_response,
    parse_detection_response,
)
from storyworld.settings import Settings
from storyworld.utils.exceptions import CollaboratorError


def _reply(content):
    return {"message": {"role": "assistant", "content": content}}


@pytest.fixture
def mock_client():
    return MagicMock()


@pytest.fixture
def collaborator(mock_client):
    return OllamaStoryCollaborator(
        "test-model", client=mock_client, max_retries=2, retry_delay=0
    )


class TestParseDetectionResponse:
    """Tests for parse_detection_response."""

    def test_code_block(self):
        """JSON in a fenced block is parsed."""
        body = {
            "entities": {"npcs": [{"id": "mara", "name": "Mara"}]},
            "relationships": [{"entity1": "mara", "entity2": "elder", "type": "ally"}],
            "worldUpdates": {"tension": 5, "rumors": ["A stranger arrived"]},
        }
        response = f"Here you go:\n```json\n{json.dumps(body)}\n```"

        payload = parse_detection_response(response)

        assert payload.entities.npcs == [{"id": "mara", "name": "Mara"}]
        assert payload.relationships[0].entity2 == "elder"
        assert payload.world_updates.deltas() == {"tension": 5}
        assert payload.world_updates.rumors == ["A stranger arrived"]

    def test_no_json_gives_empty_payload(self):
        """Prose without JSON yields an empty payload instead of raising."""
        payload = parse_detection_response("Nothing new happened.")

        assert isinstance(payload, DetectionPayload)
        assert payload.is_empty()

    def test_thinking_tags_stripped(self):
        """Reasoning blocks are ignored when locating the JSON."""
        response = '<think>{"bogus": true</think>{"entities": {"items": [{"name": "Lamp"}]}}'

        payload = parse_detection_response(response)

        assert payload.entities.items == [{"name": "Lamp"}]


class TestParseConsequenceResponse:
    """Tests for parse_consequence_response."""

    def test_flat_shape(self):
        """The flat reply shape is read directly."""
        response = json.dumps(
            {"factionStandings": {"guild": -10}, "worldEffects": {"tension": 5}}
        )

        payload = parse_consequence_response(response)

        assert payload.faction_standings == {"guild": -10}
        assert payload.world_effects == {"tension": 5}

    def test_nested_shape(self):
        """The nested {consequences: {immediate: ...}} shape is flattened."""
        response = json.dumps(
            {
                "consequences": {
                    "immediate": {
                        "npcReactions": {"elder": {"trust": 10}},
                        "factionStandings": {"village_council": 5},
                        "playerEffects": {"health": -5},
                    },
                    "worldEffects": {"politicalStability": -3},
                    "longTerm": {"newEvents": ["Council meeting"]},
                }
            }
        )

        payload = parse_consequence_response(response)

        assert payload.npc_changes == {"elder": {"trust": 10}}
        assert payload.faction_standings == {"village_council": 5}
        assert payload.player_effects.health == -5
        assert payload.world_effects == {"politicalStability": -3}
        assert payload.long_term.new_events == ["Council meeting"]

    def test_garbage_gives_empty_payload(self):
        """Unparseable replies yield an empty payload."""
        payload = parse_consequence_response("I refuse.")

        assert isinstance(payload, ConsequencePayload)
        assert payload.npc_changes == {}


class TestOllamaStoryCollaborator:
    """Tests for the Ollama-backed collaborator."""

    def test_satisfies_protocol(self, collaborator):
        """The Ollama collaborator is a StoryCollaborator."""
        assert isinstance(collaborator, StoryCollaborator)

    def test_generate_story(self, collaborator, mock_client):
        """The reply is cleaned and the world summary is in the prompt."""
        mock_client.chat.return_value = _reply("<think>plan</think>The elder nods slowly.")

        narrative = collaborator.generate_story("I greet the elder", {"tension": 30})

        assert narrative == "The elder nods slowly."
        kwargs = mock_client.chat.call_args.kwargs
        assert kwargs["model"] == "test-model"
        assert "I greet the elder" in kwargs["messages"][0]["content"]
        assert '"tension": 30' in kwargs["messages"][0]["content"]
        assert kwargs["options"] == {"temperature": 0.8}

    def test_detect_entities(self, collaborator, mock_client):
        """Detection replies are parsed into a DetectionPayload."""
        mock_client.chat.return_value = _reply(
            '{"entities": {"npcs": [{"name": "Mara"}]}, "relationships": []}'
        )

        payload = collaborator.detect_entities("I look around", "A woman waves.", {})

        assert payload.entities.npcs == [{"name": "Mara"}]

    def test_analyze_consequences(self, collaborator, mock_client):
        """Consequence replies are parsed into a ConsequencePayload."""
        mock_client.chat.return_value = _reply('{"factionStandings": {"guild": 4}}')

        payload = collaborator.analyze_consequences("help", "I help the guild", {})

        assert payload.faction_standings == {"guild": 4}

    def test_response_error_not_retried(self, collaborator, mock_client):
        """A model error fails immediately."""
        mock_client.chat.side_effect = ollama.ResponseError("model not found", 404)

        with pytest.raises(CollaboratorError, match="Model error"):
            collaborator.generate_story("hello", {})

        assert mock_client.chat.call_count == 1

    @pytest.mark.parametrize(
        "reply", [{}, {"message": {}}, {"message": {"content": None}}, None]
    )
    def test_malformed_reply_wrapped(self, collaborator, mock_client, reply):
        """A reply without string content becomes a CollaboratorError, not retried."""
        mock_client.chat.return_value = reply

        with pytest.raises(CollaboratorError, match="Malformed model response"):
            collaborator.generate_story("hello", {})

        assert mock_client.chat.call_count == 1

    def test_connection_errors_retried(self, collaborator, mock_client):
        """Connection errors are retried before giving up."""
        mock_client.chat.side_effect = ConnectionError("refused")

        with pytest.raises(CollaboratorError, match="after 2 attempts"):
            collaborator.generate_story("hello", {})

        assert mock_client.chat.call_count == 2

    def test_recovers_after_timeout(self, collaborator, mock_client):
        """A transient timeout followed by a reply succeeds."""
        mock_client.chat.side_effect = [httpx.ReadTimeout("slow"), _reply("Done.")]

        assert collaborator.generate_story("hello", {}) == "Done."

    def test_empty_model_rejected(self, mock_client):
        """A model name is required."""
        with pytest.raises(ValueError):
            OllamaStoryCollaborator("  ", client=mock_client)

    def test_check_health(self, collaborator, mock_client):
        """Health reports the number of available models."""
        mock_client.list.return_value = {"models": [{"name": "a"}, {"name": "b"}]}

        healthy, message = collaborator.check_health()

        assert healthy is True
        assert "2 models" in message

    def test_check_health_unavailable(self, collaborator, mock_client):
        """An unreachable server reports unhealthy instead of raising."""
        mock_client.list.side_effect = ConnectionError("refused")

        healthy, message = collaborator.check_health()

        assert healthy is False
        assert "unavailable" in message

    def test_from_settings(self):
        """Settings supply model, host, timeout and temperature."""
        settings = Settings(ollama_model="mistral", collaborator_temperature=0.3)

        with patch("storyworld.services.story_collaborator.ollama.Client") as client_cls:
            collaborator = OllamaStoryCollaborator.from_settings(settings)

        client_cls.assert_called_once_with(host=settings.ollama_url, timeout=120.0)
        assert collaborator.model == "mistral"
        assert collaborator.temperature == 0.3

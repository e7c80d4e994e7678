"""Story collaborator - the language model that narrates and proposes changes.

The engine depends only on the StoryCollaborator protocol. The Ollama
implementation builds prompts from the world summary, calls a local
Ollama server and parses the replies leniently: malformed or non-JSON
output becomes an empty payload, never an exception.
"""

from __future__ import annotations

import json
import logging
import time
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import httpx
import ollama

from storyworld.services.payloads import ConsequencePayload, DetectionPayload
from storyworld.utils.exceptions import CollaboratorError
from storyworld.utils.json_parser import clean_llm_text, extract_json
from storyworld.utils.logging_config import log_performance
from storyworld.utils.validation import validate_not_empty

if TYPE_CHECKING:
    from storyworld.settings import Settings

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 2
DEFAULT_RETRY_DELAY = 1.0


@runtime_checkable
class StoryCollaborator(Protocol):
    """What the engine needs from a narrative generator."""

    def generate_story(self, player_input: str, world_summary: dict[str, Any]) -> str: ...

    def detect_entities(
        self, player_input: str, narrative: str, world_summary: dict[str, Any]
    ) -> DetectionPayload: ...

    def analyze_consequences(
        self, player_input: str, choice: str, world_summary: dict[str, Any]
    ) -> ConsequencePayload: ...


# ========== Response parsing ==========


def parse_detection_response(response: str) -> DetectionPayload:
    """Parse a detection reply; anything unparseable yields an empty payload."""
    data = extract_json(response, strict=False)
    if data is None:
        logger.warning("Detection response contained no JSON; using empty payload")
    return DetectionPayload.from_raw(data)


def _flatten_consequences(data: dict[str, Any]) -> dict[str, Any]:
    """Accept the nested {consequences: {immediate: {...}, ...}} reply shape."""
    nested = data.get("consequences")
    if not isinstance(nested, dict):
        return data
    immediate = nested.get("immediate")
    immediate = immediate if isinstance(immediate, dict) else {}
    return {
        "npcChanges": immediate.get("npcReactions", immediate.get("npcChanges")),
        "factionStandings": immediate.get("factionStandings"),
        "playerEffects": immediate.get("playerEffects"),
        "worldEffects": nested.get("worldEffects"),
        "longTerm": nested.get("longTerm"),
    }


def parse_consequence_response(response: str) -> ConsequencePayload:
    """Parse a consequence reply; anything unparseable yields an empty payload."""
    data = extract_json(response, strict=False)
    if isinstance(data, dict):
        data = _flatten_consequences(data)
    elif data is None:
        logger.warning("Consequence response contained no JSON; using empty payload")
    return ConsequencePayload.from_raw(data)


# ========== Prompts ==========

_STORY_PROMPT = """You are the narrator of a persistent fantasy world.

CURRENT WORLD:
{world}

PLAYER INPUT: "{player_input}"

Write a narrative response (200-350 words) that acknowledges the player's action,
reflects NPC and faction attitudes, the world's tension and active events, and
ends with 3-4 numbered choices under a "CHOICES:" heading."""

_DETECTION_PROMPT = """Analyze this interaction for new entities and relationships.

PLAYER ACTION: "{player_input}"
NARRATIVE: "{narrative}"

CURRENT WORLD:
{world}

Only report entities explicitly mentioned or clearly implied that are not already
in the world. Return ONLY valid JSON:
{{
  "entities": {{
    "npcs": [{{"id": "unique_id", "name": "Name", "occupation": "role", "location": "location_id",
              "age": 30, "traits": [], "importance": "low/medium/high"}}],
    "factions": [{{"id": "faction_id", "name": "Name", "type": "political", "influence": 40,
                  "territory": [], "allies": [], "enemies": [], "leadership": []}}],
    "locations": [{{"id": "location_id", "name": "Name", "type": "settlement", "safety": 70,
                   "population": 0, "connectedTo": [], "controlledBy": null}}],
    "items": [{{"id": "item_id", "name": "Name", "type": "misc", "value": 50,
               "rarity": "common", "location": "location_id"}}],
    "events": [{{"id": "event_id", "name": "Name", "type": "social", "scope": "local",
                "duration": "ongoing", "participants": []}}]
  }},
  "relationships": [{{"entity1": "id1", "entity2": "id2", "type": "ally", "strength": 60,
                     "reason": "why"}}],
  "worldUpdates": {{"tension": 0, "politicalStability": 0, "economicState": 0,
                   "magicalActivity": 0, "rumors": [], "news": []}}
}}"""

_CONSEQUENCE_PROMPT = """Analyze the consequences of this player choice.

PLAYER INPUT: "{player_input}"
CHOSEN ACTION: "{choice}"

CURRENT WORLD:
{world}

Return ONLY valid JSON:
{{
  "npcChanges": {{"npc_id": {{"trust": 0, "fear": 0, "respect": 0, "love": 0, "mood": "calm"}}}},
  "factionStandings": {{"faction_id": 0}},
  "playerEffects": {{"health": 0, "reputation": {{"heroic": 0}}, "skills": {{"combat": 0}}}},
  "worldEffects": {{"tension": 0, "politicalStability": 0, "economicState": 0,
                   "magicalActivity": 0}},
  "longTerm": {{"newEvents": [], "changedRelationships": [{{"entity1": "id1",
               "entity2": "id2", "newRelationship": "ally"}}], "rumors": [],
               "futureOpportunities": []}}
}}"""


def _world_text(world_summary: dict[str, Any]) -> str:
    return json.dumps(world_summary, indent=2, default=str)


class OllamaStoryCollaborator:
    """StoryCollaborator backed by a local Ollama server."""

    def __init__(
        self,
        model: str,
        host: str = "http://localhost:11434",
        timeout: float = 120.0,
        temperature: float = 0.8,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        client: ollama.Client | None = None,
    ):
        """Initialize the collaborator.

        Args:
            model: Ollama model name.
            host: Ollama server URL.
            timeout: Request timeout in seconds.
            temperature: Sampling temperature.
            max_retries: Attempts per call for connection errors and timeouts.
            retry_delay: Seconds between attempts.
            client: Pre-built client (tests inject a mock here).
        """
        validate_not_empty(model, "model")
        self.model = model
        self.temperature = temperature
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self.client = client or ollama.Client(host=host, timeout=timeout)
        logger.debug(f"OllamaStoryCollaborator using {model} at {host}")

    @classmethod
    def from_settings(cls, settings: Settings) -> OllamaStoryCollaborator:
        return cls(
            model=settings.ollama_model,
            host=settings.ollama_url,
            timeout=settings.ollama_timeout,
            temperature=settings.collaborator_temperature,
        )

    def _chat(self, prompt: str, operation: str) -> str:
        """Send one prompt and return the cleaned reply.

        Raises:
            CollaboratorError: If the model errors or every attempt fails.
        """
        last_error: Exception | None = None
        with log_performance(logger, operation):
            for attempt in range(self.max_retries):
                try:
                    logger.info(
                        f"{operation}: calling {self.model} "
                        f"(attempt {attempt + 1}/{self.max_retries})"
                    )
                    response = self.client.chat(
                        model=self.model,
                        messages=[{"role": "user", "content": prompt}],
                        options={"temperature": self.temperature},
                    )
                    content = response["message"]["content"]
                    if not isinstance(content, str):
                        raise TypeError(f"content is {type(content).__name__}, not str")
                    return clean_llm_text(content)
                except ollama.ResponseError as e:
                    logger.error(f"{operation}: Ollama response error: {e}")
                    raise CollaboratorError(f"Model error: {e}") from e
                except (KeyError, TypeError, AttributeError) as e:
                    logger.error(f"{operation}: malformed model response: {e!r}")
                    raise CollaboratorError(f"Malformed model response: {e!r}") from e
                except (ConnectionError, TimeoutError, httpx.HTTPError) as e:
                    last_error = e
                    logger.warning(f"{operation}: attempt {attempt + 1} failed: {e}")
                    if attempt < self.max_retries - 1:
                        time.sleep(self.retry_delay)

        raise CollaboratorError(
            f"{operation} failed after {self.max_retries} attempts: {last_error}"
        ) from last_error

    def generate_story(self, player_input: str, world_summary: dict[str, Any]) -> str:
        prompt = _STORY_PROMPT.format(
            player_input=player_input, world=_world_text(world_summary)
        )
        return self._chat(prompt, "Story generation")

    def detect_entities(
        self, player_input: str, narrative: str, world_summary: dict[str, Any]
    ) -> DetectionPayload:
        prompt = _DETECTION_PROMPT.format(
            player_input=player_input, narrative=narrative, world=_world_text(world_summary)
        )
        return parse_detection_response(self._chat(prompt, "Entity detection"))

    def analyze_consequences(
        self, player_input: str, choice: str, world_summary: dict[str, Any]
    ) -> ConsequencePayload:
        prompt = _CONSEQUENCE_PROMPT.format(
            player_input=player_input, choice=choice, world=_world_text(world_summary)
        )
        return parse_consequence_response(self._chat(prompt, "Consequence analysis"))

    def check_health(self) -> tuple[bool, str]:
        """Check that the Ollama server answers.

        Returns:
            Tuple of (is_healthy, message).
        """
        try:
            models = self.client.list()
        except (ollama.ResponseError, ConnectionError, TimeoutError, httpx.HTTPError) as e:
            logger.warning(f"Ollama health check failed: {e}")
            return False, f"Ollama unavailable: {e}"
        model_count = len(models.get("models", []))
        return True, f"Ollama connected. {model_count} models available."

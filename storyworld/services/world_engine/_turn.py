"""Turn processing for WorldEngine.

A turn records the choice, asks the collaborator for a narrative and a
detection payload, commits the payload through the pipeline, then applies
the collaborator's consequence analysis.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from storyworld.memory.entities import EntityKind
from storyworld.services.creation_service import ConsequenceResult, CreationResult
from storyworld.services.payloads import ConsequencePayload, DetectionPayload
from storyworld.utils.constants import FALLBACK_NARRATIVE
from storyworld.utils.exceptions import LLMError
from storyworld.utils.logging_config import log_context
from storyworld.utils.validation import validate_not_empty

if TYPE_CHECKING:
    from storyworld.services.story_collaborator import StoryCollaborator

    from . import WorldEngine

logger = logging.getLogger(__name__)


@dataclass
class TurnResult:
    """Everything one player turn produced."""

    narrative: str
    creation: CreationResult | None = None
    consequences: ConsequenceResult | None = None
    applied: ConsequencePayload = field(default_factory=ConsequencePayload)
    used_fallback: bool = False
    correlation_id: str | None = None

    @property
    def new_entities_count(self) -> int:
        return self.creation.created_count() if self.creation else 0


def _narrate(
    collaborator: StoryCollaborator | None, player_input: str, summary: dict
) -> tuple[str, DetectionPayload, bool]:
    """Narrative and detection payload, or the fallback pair on any collaborator failure."""
    if collaborator is None:
        logger.info("No story collaborator configured; using fallback narrative")
        return FALLBACK_NARRATIVE, DetectionPayload(), True
    try:
        narrative = collaborator.generate_story(player_input, summary)
        if not narrative.strip():
            logger.warning("Collaborator returned an empty narrative; using fallback")
            return FALLBACK_NARRATIVE, DetectionPayload(), True
        detection = collaborator.detect_entities(player_input, narrative, summary)
    except LLMError as e:
        logger.warning(f"Story collaborator failed, using fallback narrative: {e}")
        return FALLBACK_NARRATIVE, DetectionPayload(), True
    except Exception:
        logger.exception("Story collaborator raised unexpectedly; using fallback narrative")
        return FALLBACK_NARRATIVE, DetectionPayload(), True
    return narrative, detection, False


def _analyze(
    collaborator: StoryCollaborator | None,
    player_input: str,
    summary: dict,
    used_fallback: bool,
) -> ConsequencePayload:
    if collaborator is None or used_fallback:
        return ConsequencePayload()
    try:
        return collaborator.analyze_consequences(player_input, player_input, summary)
    except LLMError as e:
        logger.info(f"Collaborator consequence analysis skipped: {e}")
        return ConsequencePayload()
    except Exception:
        logger.exception("Consequence analysis raised unexpectedly; skipping it")
        return ConsequencePayload()


def _move_player(engine: WorldEngine, destination: str | None) -> None:
    if not destination or destination == engine.player.current_location:
        return
    with engine.state_lock:
        engine.player.current_location = destination
    logger.info(f"Player moved to {destination}")


def _mark_visited(engine: WorldEngine) -> None:
    location_id = engine.player.current_location
    with engine.state_lock:
        location = engine.entities.get(EntityKind.LOCATION, location_id)
        if location is not None and not location.visited:
            engine.entities.update(EntityKind.LOCATION, location_id, {"visited": True})


def process_turn(
    engine: WorldEngine,
    player_input: str,
    collaborator: StoryCollaborator | None,
    destination: str | None = None,
) -> TurnResult:
    """Run one player turn end to end.

    Raises:
        ValueError: If player_input is empty.
    """
    validate_not_empty(player_input, "player_input")
    collaborator = collaborator or engine.collaborator

    with log_context(f"turn-{engine.meta.choice_count + 1}") as correlation_id:
        engine.record_player_choice(player_input)
        _move_player(engine, destination)
        summary = engine.get_world_summary()

        narrative, detection, used_fallback = _narrate(collaborator, player_input, summary)
        creation = engine.creation.process_entity_creation(
            detection, engine.player.current_location
        )
        _mark_visited(engine)

        consequences = _analyze(collaborator, player_input, summary, used_fallback)
        applied = engine.creation.process_consequences(consequences, engine.player)

        logger.info(
            f"Turn {engine.meta.choice_count} complete: "
            f"{creation.created_count() if creation else 0} new entities"
        )
        return TurnResult(
            narrative=narrative,
            creation=creation,
            consequences=applied,
            applied=consequences,
            used_fallback=used_fallback,
            correlation_id=correlation_id,
        )

"""Save-file export and import for WorldEngine."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as PydanticValidationError

from storyworld.memory.entity_store import EntityStore
from storyworld.memory.player import Player
from storyworld.memory.relationship_graph import RelationshipGraph
from storyworld.memory.world_state import WorldState
from storyworld.settings import SAVES_DIR
from storyworld.utils.exceptions import SaveFileValidationError
from storyworld.utils.file_io import atomic_write_json, read_json

from ._meta import SessionMeta

if TYPE_CHECKING:
    from . import WorldEngine

logger = logging.getLogger(__name__)

REQUIRED_SECTIONS = ("player", "entities", "worldState", "meta")
DEFAULT_SAVE_NAME = "gamestate.json"


def export_state(engine: WorldEngine) -> dict[str, Any]:
    """The whole session as one JSON-compatible document."""
    with engine.state_lock:
        return {
            "player": engine.player.to_dict(),
            "entities": engine.entities.export_entities(),
            "relationships": engine.relationships.export_relationships(),
            "worldState": engine.world.export_world_state(),
            "creationHistory": engine.entities.export_creation_history(),
            "meta": engine.meta.to_dict(),
        }


def import_state(engine: WorldEngine, document: Any) -> None:
    """Replace the session with an exported document.

    The document is parsed into fresh stores first; the engine is only
    touched once every section has parsed, so a bad document changes
    nothing.

    Raises:
        SaveFileValidationError: If the document is not an object, lacks a
            required section, or the player or meta record is malformed.
        EntityDataError: If an entity record is malformed.
        RelationshipValidationError: If the relationship section is malformed.
        OutOfRangeError: If a world parameter is outside its bounds.
        ValidationError: If another world-state record is malformed.
    """
    if not isinstance(document, dict):
        raise SaveFileValidationError(
            f"Save document must be an object, got {type(document).__name__}",
            missing_sections=list(REQUIRED_SECTIONS),
        )
    missing = [section for section in REQUIRED_SECTIONS if section not in document]
    if missing:
        raise SaveFileValidationError(
            f"Save document is missing required sections: {', '.join(missing)}",
            missing_sections=missing,
        )

    settings = engine.settings
    entities = EntityStore()
    entities.import_entities(document["entities"] or {}, document.get("creationHistory"))
    relationships = RelationshipGraph(
        history_limit=settings.relationship_history_limit,
        edge_history_limit=settings.edge_history_limit,
        standing_history_limit=settings.standing_history_limit,
    )
    relationships.import_relationships(document.get("relationships") or {})
    world = engine.build_world_state()
    world.import_world_state(document["worldState"] or {})
    try:
        player = Player.model_validate(document["player"])
        meta = SessionMeta.model_validate(document["meta"])
    except PydanticValidationError as e:
        raise SaveFileValidationError(f"Invalid player or meta record: {e}") from e

    with engine.state_lock:
        engine.entities = entities
        engine.relationships = relationships
        engine.world = world
        engine.player = player
        engine.meta = meta
        engine.creation.rebind(entities, relationships, world)
    logger.info(
        f"Restored session {meta.session_id}: {entities.count()} entities, "
        f"{relationships.edge_count()} relationships"
    )


def save_game(engine: WorldEngine, path: Path | str | None) -> Path:
    """Write the session to disk atomically and return the path written."""
    target = Path(path) if path is not None else SAVES_DIR / DEFAULT_SAVE_NAME
    with engine.state_lock:
        engine.meta.last_save = datetime.now()
        document = export_state(engine)
    atomic_write_json(target, document)
    logger.info(f"Game saved to {target}")
    return target


def load_game(engine: WorldEngine, path: Path | str | None) -> None:
    """Read a save file and restore it.

    Raises:
        OSError: If the file cannot be read.
        json.JSONDecodeError: If the file is not valid JSON.
        SaveFileValidationError: If the document fails validation.
    """
    source = Path(path) if path is not None else SAVES_DIR / DEFAULT_SAVE_NAME
    logger.debug(f"Loading game from {source}")
    import_state(engine, read_json(source))
    logger.info(f"Game loaded from {source} (last saved {engine.meta.last_save})")

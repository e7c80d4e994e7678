"""Pytest fixtures for Story World Engine tests."""

import logging
import random

import pytest

from storyworld.memory.entity_store import EntityStore
from storyworld.memory.relationship_graph import RelationshipGraph
from storyworld.memory.world_state import WorldState
from storyworld.memory.world_view import WorldView
from storyworld.services.creation_service import CreationService
from storyworld.services.validation_service import ValidationService
from storyworld.services.world_engine import WorldEngine
from storyworld.settings import Settings


@pytest.fixture(autouse=True, scope="function")
def cleanup_production_log_handlers():
    """Remove file handlers pointing to the production log after each test.

    Tests that call setup_logging() with the default file would otherwise
    leave a handler writing to logs/storyworld.log.
    """
    yield

    root_logger = logging.getLogger()
    production_log_name = "storyworld.log"

    handlers_to_remove = []
    for handler in root_logger.handlers:
        if isinstance(handler, logging.FileHandler):
            if hasattr(handler, "baseFilename") and production_log_name in handler.baseFilename:
                handlers_to_remove.append(handler)

    for handler in handlers_to_remove:
        handler.close()
        root_logger.removeHandler(handler)


@pytest.fixture(autouse=True)
def clear_settings_cache_per_test():
    """Clear Settings cache before each test to ensure isolation."""
    Settings.clear_cache()
    yield
    Settings.clear_cache()


@pytest.fixture(autouse=True)
def isolate_saves_directory(tmp_path, monkeypatch):
    """Redirect SAVES_DIR so default save_game() calls never touch output/."""
    import storyworld.services.world_engine._persistence as persistence_module
    import storyworld.settings as settings_module

    saves_dir = tmp_path / "saves"
    monkeypatch.setattr(settings_module, "SAVES_DIR", saves_dir)
    monkeypatch.setattr(persistence_module, "SAVES_DIR", saves_dir)
    yield


@pytest.fixture
def entity_store() -> EntityStore:
    return EntityStore()


@pytest.fixture
def relationship_graph() -> RelationshipGraph:
    return RelationshipGraph()


@pytest.fixture
def world_state() -> WorldState:
    """World state with a seeded random source."""
    return WorldState(rng=random.Random(42))


@pytest.fixture
def world_view(entity_store, relationship_graph, world_state) -> WorldView:
    return WorldView(entity_store, relationship_graph, world_state)


@pytest.fixture
def validation_service() -> ValidationService:
    return ValidationService()


@pytest.fixture
def creation_service(
    entity_store, relationship_graph, world_state, validation_service
) -> CreationService:
    return CreationService(entity_store, relationship_graph, world_state, validation_service)


@pytest.fixture
def village(entity_store):
    """A small settlement with one location and one faction."""
    entity_store.create("location", "village_square", {"name": "Village Square", "population": 50})
    entity_store.create(
        "faction", "village_council", {"name": "Village Council", "territory": ["village_square"]}
    )
    return entity_store


@pytest.fixture
def engine() -> WorldEngine:
    """Seeded engine without a collaborator."""
    return WorldEngine(Settings(), rng=random.Random(7))


@pytest.fixture
def empty_engine() -> WorldEngine:
    """Engine with no starting world."""
    return WorldEngine(Settings(), rng=random.Random(7), seed_world=False)

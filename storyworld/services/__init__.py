"""Services layer - validation, creation pipeline, collaborator and engine.

The memory stores hold state; the services decide what may change and
serialize every change that originates from a collaborator payload.
"""

import logging
import time
from dataclasses import dataclass

from storyworld.settings import Settings

from .creation_service import CreationService
from .story_collaborator import OllamaStoryCollaborator, StoryCollaborator
from .validation_service import ValidationService
from .world_engine import WorldEngine

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Dependency injection container for the engine and its services.

    Usage:
        settings = Settings.load()
        services = ServiceContainer(settings)

        result = services.engine.process_turn("I greet the elder")
        services.engine.save_game()
    """

    settings: Settings
    collaborator: StoryCollaborator
    engine: WorldEngine

    def __init__(
        self, settings: Settings | None = None, collaborator: StoryCollaborator | None = None
    ):
        """Create the collaborator and engine sharing one Settings object.

        Args:
            settings: Application settings. Loaded via Settings.load() if omitted.
            collaborator: Narrative generator. An OllamaStoryCollaborator built
                from settings is used if omitted.
        """
        t0 = time.perf_counter()
        logger.info("Initializing ServiceContainer...")
        self.settings = settings or Settings.load()
        self.collaborator = collaborator or OllamaStoryCollaborator.from_settings(self.settings)
        self.engine = WorldEngine(self.settings, collaborator=self.collaborator)
        logger.info(f"ServiceContainer ready in {time.perf_counter() - t0:.2f}s")

    @property
    def validation(self) -> ValidationService:
        return self.engine.validation

    @property
    def creation(self) -> CreationService:
        return self.engine.creation


__all__ = [
    "CreationService",
    "OllamaStoryCollaborator",
    "ServiceContainer",
    "StoryCollaborator",
    "ValidationService",
    "WorldEngine",
]

"""World engine - owns the stores and runs player turns.

WorldEngine wires the entity store, relationship graph and world state
to the validation and creation services, keeps the player record and
session metadata, and handles save files.
"""

from __future__ import annotations

import logging
import random
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Any

from storyworld.memory.entity_store import EntityStore
from storyworld.memory.player import ChoiceRecord, Player
from storyworld.memory.relationship_graph import RelationshipGraph
from storyworld.memory.world_state import WorldState
from storyworld.memory.world_view import WorldView
from storyworld.services.creation_service import CreationService
from storyworld.services.validation_service import IntegrityReport, ValidationService
from storyworld.settings import Settings

from . import _analytics, _persistence, _seed, _turn
from ._meta import SAVE_FORMAT_VERSION, SessionMeta
from ._turn import TurnResult

if TYPE_CHECKING:
    from storyworld.memory.world_types import WorldEvent
    from storyworld.services.story_collaborator import StoryCollaborator

logger = logging.getLogger(__name__)

__all__ = [
    "SAVE_FORMAT_VERSION",
    "SessionMeta",
    "TurnResult",
    "WorldEngine",
]


class WorldEngine:
    """A persistent story world and the player moving through it.

    Writes from payloads go through ``creation``; reads and exports take
    ``state_lock`` so they never observe a half-applied batch.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        collaborator: StoryCollaborator | None = None,
        rng: random.Random | None = None,
        seed_world: bool | None = None,
    ):
        """Initialize the engine.

        Args:
            settings: Engine settings; defaults are used when omitted.
            collaborator: Narrative generator used by process_turn.
            rng: Random source for rumor accuracy (tests pass a seeded one).
            seed_world: Override settings.seed_starting_world.
        """
        self.settings = settings or Settings()
        self.collaborator = collaborator
        self._rng = rng or random.Random()
        self.state_lock = threading.RLock()

        self.entities = EntityStore()
        self.relationships = RelationshipGraph(
            history_limit=self.settings.relationship_history_limit,
            edge_history_limit=self.settings.edge_history_limit,
            standing_history_limit=self.settings.standing_history_limit,
        )
        self.world = self.build_world_state()
        self.validation = ValidationService(self.settings)
        self.creation = CreationService(
            self.entities,
            self.relationships,
            self.world,
            self.validation,
            settings=self.settings,
            state_lock=self.state_lock,
        )
        self.player = Player()
        self.meta = SessionMeta()

        should_seed = self.settings.seed_starting_world if seed_world is None else seed_world
        if should_seed:
            self.initialize_starting_world()
        logger.info(f"WorldEngine ready (session {self.meta.session_id})")

    def build_world_state(self) -> WorldState:
        return WorldState(
            parameter_history_limit=self.settings.parameter_history_limit,
            world_change_limit=self.settings.world_change_limit,
            max_rumors=self.settings.max_rumors,
            max_news=self.settings.max_news,
            rng=self._rng,
        )

    @property
    def view(self) -> WorldView:
        return WorldView(self.entities, self.relationships, self.world)

    def initialize_starting_world(self) -> None:
        _seed.initialize_starting_world(self)

    # ========== Turns ==========

    def record_player_choice(self, choice: str) -> ChoiceRecord:
        """Append a choice to the player's history and bump the choice counter."""
        with self.state_lock:
            record = self.player.record_choice(
                choice,
                tension=self.world.get_parameter("tension"),
                political_stability=self.world.get_parameter("political_stability"),
                limit=self.settings.choice_history_limit,
            )
            self.meta.choice_count += 1
            return record

    def process_turn(
        self,
        player_input: str,
        collaborator: StoryCollaborator | None = None,
        destination: str | None = None,
    ) -> TurnResult:
        """Run one player turn.

        Any collaborator failure degrades to the fallback narrative and an
        empty detection payload; the turn itself still completes.

        Args:
            player_input: What the player typed.
            collaborator: Overrides the engine's collaborator for this turn.
            destination: Location id the player moves to before the narrative.

        Returns:
            TurnResult with the narrative and what was committed.
        """
        return _turn.process_turn(self, player_input, collaborator, destination)

    def complete_event(self, event_id: str, success: bool = True) -> WorldEvent | None:
        """Complete a world event through the pipeline, keeping its entity in step."""
        return self.creation.complete_event(event_id, success)

    # ========== Read side ==========

    def get_world_summary(self) -> dict[str, Any]:
        return _analytics.get_world_summary(self)

    def get_detailed_state(self) -> dict[str, Any]:
        return _analytics.get_detailed_state(self)

    def get_entity_statistics(self) -> dict[str, dict[str, int]]:
        return _analytics.get_entity_statistics(self)

    def get_player_relationship_summary(self) -> dict[str, list[dict[str, Any]]]:
        return _analytics.get_player_relationship_summary(self)

    def get_relationship_networks(self) -> dict[str, dict[str, Any]]:
        return _analytics.get_relationship_networks(self)

    def analyze_player_profile(self) -> dict[str, Any]:
        return _analytics.analyze_player_profile(self)

    def get_system_status(self) -> dict[str, Any]:
        return _analytics.get_system_status(self)

    def validate_integrity(self) -> IntegrityReport:
        with self.state_lock:
            return self.validation.validate_integrity(self.view)

    # ========== Persistence ==========

    def export_state(self) -> dict[str, Any]:
        return _persistence.export_state(self)

    def import_state(self, document: Any) -> None:
        _persistence.import_state(self, document)

    def save_game(self, path: Path | str | None = None) -> Path:
        return _persistence.save_game(self, path)

    def load_game(self, path: Path | str | None = None) -> None:
        _persistence.load_game(self, path)

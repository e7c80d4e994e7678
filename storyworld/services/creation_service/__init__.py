"""Creation service - the single-writer pipeline for world mutations.

Every write that originates from a detection or consequence payload goes
through one FIFO queue. Whoever finds the pipeline idle becomes the
writer and drains the queue, one batch at a time, with the state lock
held per batch. Callers that arrive while a batch is in flight get
``None`` back and collect their result from the future returned by
``submit``.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Callable
from concurrent.futures import Future
from typing import TYPE_CHECKING, Any, TypeVar

from storyworld.memory.entities import EntityKind, parse_kind
from storyworld.memory.entity_store import EntityStore
from storyworld.memory.relationship_graph import RelationshipGraph
from storyworld.memory.world_state import WorldState
from storyworld.memory.world_view import WorldView
from storyworld.services.payloads import ConsequencePayload, DetectionPayload
from storyworld.services.validation_service import ValidationService
from storyworld.utils.logging_config import get_correlation_id, log_context

from ._batch import auto_connect_location, run_entity_batch
from ._consequences import run_consequences
from ._types import (
    ConsequenceResult,
    CreationResult,
    FailedCreation,
    PipelineState,
    _WorkItem,
)

if TYPE_CHECKING:
    from storyworld.memory.player import Player
    from storyworld.memory.world_types import WorldEvent
    from storyworld.settings import Settings

logger = logging.getLogger(__name__)

__all__ = [
    "ConsequenceResult",
    "CreationResult",
    "CreationService",
    "FailedCreation",
    "PipelineState",
    "auto_connect_location",
]

T = TypeVar("T")


class CreationService:
    """Serializes entity creation, consequence application and removal.

    The stores themselves have no locking. This service is the only
    writer on the payload path, and shares ``state_lock`` with read-side
    queries so that a reader never sees half a batch.
    """

    def __init__(
        self,
        entities: EntityStore,
        relationships: RelationshipGraph,
        world: WorldState,
        validation: ValidationService,
        settings: Settings | None = None,
        state_lock: threading.RLock | None = None,
    ):
        """Initialize the creation service.

        Args:
            entities: Entity store to commit into.
            relationships: Relationship graph to commit into.
            world: World state to apply parameter deltas to.
            validation: Admission rules for proposed entities.
            settings: Optional settings (auto-connection, creation history cap).
            state_lock: Lock shared with read-side queries; a private one is
                created when omitted.
        """
        logger.debug("Initializing CreationService")
        self.entities = entities
        self.relationships = relationships
        self.world = world
        self.validation = validation
        self.view = WorldView(entities, relationships, world)
        self.auto_connect_locations = settings.auto_connect_locations if settings else True
        self.creation_history_limit = settings.creation_history_limit if settings else 0
        self.state_lock = state_lock if state_lock is not None else threading.RLock()

        self._queue: deque[_WorkItem] = deque()
        self._queue_lock = threading.Lock()
        self._state = PipelineState.IDLE
        self._stats: dict[str, int] = {
            "batches_processed": 0,
            "entities_created": 0,
            "entities_failed": 0,
            "relationships_created": 0,
            "relationships_skipped": 0,
            "consequences_applied": 0,
        }

    @property
    def state(self) -> PipelineState:
        return self._state

    def pending_count(self) -> int:
        with self._queue_lock:
            return len(self._queue)

    def rebind(
        self, entities: EntityStore, relationships: RelationshipGraph, world: WorldState
    ) -> None:
        """Point the pipeline at a new set of stores (after a load)."""
        with self.state_lock:
            self.entities = entities
            self.relationships = relationships
            self.world = world
            self.view = WorldView(entities, relationships, world)

    # ========== Queue ==========

    def _enqueue(self, label: str, run: Callable[[], T]) -> Future[T]:
        future: Future[T] = Future()
        # Marks the future running so a queued batch cannot be cancelled
        future.set_running_or_notify_cancel()
        with self._queue_lock:
            self._queue.append(_WorkItem(label, run, future, get_correlation_id()))
            depth = len(self._queue)
        logger.debug(f"Queued {label} (queue depth {depth})")
        return future

    def _run_item(self, item: _WorkItem) -> None:
        with self.state_lock, log_context(item.correlation_id):
            try:
                result = item.run()
            except Exception as e:
                logger.exception(f"{item.label} failed: {e}")
                item.future.set_exception(e)
            else:
                item.future.set_result(result)

    def _drain(self) -> bool:
        """Become the writer and run queued work until the queue is empty.

        Returns:
            False if another writer is already processing.
        """
        with self._queue_lock:
            if self._state is PipelineState.PROCESSING:
                return False
            self._state = PipelineState.PROCESSING
        try:
            while True:
                with self._queue_lock:
                    if not self._queue:
                        self._state = PipelineState.IDLE
                        return True
                    item = self._queue.popleft()
                self._run_item(item)
        except BaseException:
            with self._queue_lock:
                self._state = PipelineState.IDLE
            raise

    def _process(self, future: Future[T]) -> T | None:
        if not self._drain():
            logger.debug("Pipeline busy; work queued behind the current batch")
            return None
        return future.result()

    # ========== Entity creation ==========

    def submit(
        self, payload: DetectionPayload | dict[str, Any], player_location: str | None = None
    ) -> Future[CreationResult]:
        """Queue a detection payload without processing it.

        The returned future resolves once a writer has committed the batch.
        """
        detection = (
            payload if isinstance(payload, DetectionPayload) else DetectionPayload.from_raw(payload)
        )
        return self._enqueue(
            "entity creation", lambda: self._create_batch(detection, player_location)
        )

    def process_entity_creation(
        self, payload: DetectionPayload | dict[str, Any], player_location: str | None = None
    ) -> CreationResult | None:
        """Validate and commit a detection payload.

        Args:
            payload: Detection payload, or its raw dict form.
            player_location: Player's current location, for auto-connection.

        Returns:
            The CreationResult, or None when another batch is in flight and
            this one was queued behind it.
        """
        return self._process(self.submit(payload, player_location))

    def _create_batch(
        self, payload: DetectionPayload, player_location: str | None
    ) -> CreationResult:
        result = run_entity_batch(self, payload, player_location)
        if self.creation_history_limit:
            self.entities.trim_creation_history(self.creation_history_limit)
        self._stats["batches_processed"] += 1
        self._stats["entities_created"] += result.created_count()
        self._stats["entities_failed"] += result.failed_count()
        self._stats["relationships_created"] += len(result.relationships)
        self._stats["relationships_skipped"] += len(result.skipped_relationships)
        return result

    # ========== Consequences ==========

    def process_consequences(
        self, payload: ConsequencePayload | dict[str, Any], player: Player | None = None
    ) -> ConsequenceResult | None:
        """Apply a consequence payload through the queue.

        Returns:
            The ConsequenceResult, or None if queued behind a batch in flight.
        """
        consequences = (
            payload
            if isinstance(payload, ConsequencePayload)
            else ConsequencePayload.from_raw(payload)
        )
        future = self._enqueue("consequences", lambda: self._apply(consequences, player))
        return self._process(future)

    def _apply(self, payload: ConsequencePayload, player: Player | None) -> ConsequenceResult:
        result = run_consequences(self, payload, player)
        self._stats["consequences_applied"] += 1
        return result

    # ========== Events ==========

    def complete_event(self, event_id: str, success: bool = True) -> WorldEvent | None:
        """Complete a world event and mirror the outcome onto its event entity.

        Returns:
            The completed WorldEvent, or None if queued.

        Raises:
            EventNotFoundError: If no active world event has this id.
        """
        future = self._enqueue("complete event", lambda: self._complete(event_id, success))
        return self._process(future)

    def _complete(self, event_id: str, success: bool) -> WorldEvent:
        event = self.world.complete_event(event_id, success)
        if self.entities.exists(EntityKind.EVENT, event_id):
            self.entities.update(
                EntityKind.EVENT,
                event_id,
                {"status": event.status, "completed": True, "end_time": event.end_time},
            )
        return event

    # ========== Removal ==========

    def remove_entity(self, kind: str | EntityKind, entity_id: str) -> bool | None:
        """Delete an entity together with its relationships and player standing.

        Removing an event also drops its world-state record.

        Returns:
            True if the entity existed, False if not, None if queued.

        Raises:
            UnknownEntityKindError: If kind is not recognized.
        """
        entity_kind = parse_kind(kind)
        future = self._enqueue(
            f"remove {entity_kind.value}", lambda: self._remove(entity_kind, entity_id)
        )
        return self._process(future)

    def _remove(self, kind: EntityKind, entity_id: str) -> bool:
        if not self.entities.delete(kind, entity_id):
            logger.warning(f"Cannot remove {kind.value} '{entity_id}': not found")
            return False
        edges = self.relationships.remove_entity_relationships(entity_id)
        self.relationships.remove_player_standing(entity_id)
        if kind == EntityKind.EVENT:
            self.world.remove_event(entity_id)
        logger.info(f"Removed {kind.value} '{entity_id}' and {edges} relationship(s)")
        return True

    # ========== Statistics ==========

    def get_creation_statistics(self) -> dict[str, Any]:
        """Per-kind creation counts plus pipeline totals."""
        with self.state_lock:
            per_kind = {
                kind.value: {
                    "created": len(self.entities.creation_history(kind)),
                    "current": self.entities.count(kind),
                }
                for kind in EntityKind
            }
            return {
                "by_kind": per_kind,
                "total_entities": self.entities.count(),
                "pipeline_state": self._state.value,
                "pending": self.pending_count(),
                **self._stats,
            }

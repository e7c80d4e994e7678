"""Entity store: canonical record of every NPC, faction, location, item and event."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, cast

from pydantic import Field
from pydantic import ValidationError as PydanticValidationError

from storyworld.memory.entities import (
    ENTITY_MODELS,
    NPC,
    UPDATE_MODELS,
    Entity,
    EntityKind,
    EntityUpdate,
    Faction,
    FactionUpdate,
    Item,
    ItemUpdate,
    Location,
    LocationUpdate,
    NPCUpdate,
    StoryEvent,
    StoryEventUpdate,
    WorldModel,
    entity_from_dict,
    parse_kind,
)
from storyworld.utils.exceptions import (
    DuplicateEntityError,
    EntityDataError,
    EntityNotFoundError,
)

logger = logging.getLogger(__name__)

# Fields that identify a record and are never taken from caller data
_IDENTITY_FIELDS = ("id", "kind")


class CreationRecord(WorldModel):
    """Audit entry appended on every successful create."""

    id: str
    timestamp: datetime = Field(default_factory=datetime.now)
    data: dict[str, Any] = Field(default_factory=dict)


def _summarize_errors(error: PydanticValidationError) -> str:
    """Render pydantic errors as 'field: message; ...'."""
    parts = []
    for err in error.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "<root>"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


class EntityStore:
    """Holds every entity, partitioned by kind.

    Ids are unique within a kind; the same id may exist under two kinds.
    The store performs no cross-entity validation; callers run the
    validation rules before creating.
    """

    def __init__(self) -> None:
        self._entities: dict[EntityKind, dict[str, Entity]] = {kind: {} for kind in EntityKind}
        self._creation_history: dict[EntityKind, list[CreationRecord]] = {
            kind: [] for kind in EntityKind
        }

    def create(
        self, kind: str | EntityKind, entity_id: str, data: dict[str, Any] | None = None
    ) -> Entity:
        """Create an entity of the given kind.

        Args:
            kind: Entity kind.
            entity_id: Id, unique within the kind.
            data: Field values (snake_case or camelCase); ``id``/``kind`` keys are ignored.

        Returns:
            The created entity.

        Raises:
            UnknownEntityKindError: If kind is not recognized.
            DuplicateEntityError: If entity_id already exists for the kind.
            EntityDataError: If the id is empty or the fields are malformed.
        """
        entity_kind = parse_kind(kind)
        if not isinstance(entity_id, str) or not entity_id.strip():
            raise EntityDataError(
                f"Entity id must be a non-empty string, got {entity_id!r}", kind=entity_kind
            )
        bucket = self._entities[entity_kind]
        if entity_id in bucket:
            raise DuplicateEntityError(
                f"{entity_kind.value} '{entity_id}' already exists",
                kind=entity_kind,
                entity_id=entity_id,
            )

        payload = {k: v for k, v in (data or {}).items() if k not in _IDENTITY_FIELDS}
        payload["id"] = entity_id
        payload["kind"] = entity_kind.value
        model = ENTITY_MODELS[entity_kind]
        try:
            entity = model.model_validate(payload)
        except PydanticValidationError as e:
            raise EntityDataError(
                f"Invalid {entity_kind.value} '{entity_id}': {_summarize_errors(e)}",
                kind=entity_kind,
                entity_id=entity_id,
            ) from e

        bucket[entity_id] = entity
        self._creation_history[entity_kind].append(
            CreationRecord(id=entity_id, data=entity.to_dict())
        )
        logger.info(f"Created {entity_kind.value} '{entity_id}' ({entity.name})")
        return entity

    def get(self, kind: str | EntityKind, entity_id: str) -> Entity | None:
        """Get an entity by kind and id, or None."""
        return self._entities[parse_kind(kind)].get(entity_id)

    def exists(self, kind: str | EntityKind, entity_id: str) -> bool:
        return entity_id in self._entities[parse_kind(kind)]

    def find(self, entity_id: str) -> Entity | None:
        """Find an entity by id across all kinds (npc, faction, location, item, event)."""
        for kind in EntityKind:
            entity = self._entities[kind].get(entity_id)
            if entity is not None:
                return entity
        return None

    def update(
        self,
        kind: str | EntityKind,
        entity_id: str,
        changes: EntityUpdate | dict[str, Any],
    ) -> Entity:
        """Apply a typed partial update to an entity.

        Only fields explicitly set on ``changes`` are merged. The merged
        record is re-validated and ``last_modified`` is refreshed.

        Args:
            kind: Entity kind.
            entity_id: Id of the entity to update.
            changes: The kind's update model, or a dict validated into it.

        Returns:
            The updated entity.

        Raises:
            EntityNotFoundError: If the entity does not exist.
            EntityDataError: If changes carry unknown fields, bad values,
                or an update model for another kind.
        """
        entity_kind = parse_kind(kind)
        current = self._entities[entity_kind].get(entity_id)
        if current is None:
            raise EntityNotFoundError(
                f"{entity_kind.value} '{entity_id}' not found",
                kind=entity_kind,
                entity_id=entity_id,
            )

        update_model = UPDATE_MODELS[entity_kind]
        if isinstance(changes, dict):
            try:
                changes = update_model.model_validate(changes)
            except PydanticValidationError as e:
                raise EntityDataError(
                    f"Invalid update for {entity_kind.value} '{entity_id}': "
                    f"{_summarize_errors(e)}",
                    kind=entity_kind,
                    entity_id=entity_id,
                ) from e
        elif not isinstance(changes, update_model):
            raise EntityDataError(
                f"{type(changes).__name__} cannot update a {entity_kind.value}; "
                f"expected {update_model.__name__}",
                kind=entity_kind,
                entity_id=entity_id,
            )

        merged = current.model_dump()
        merged.update(changes.model_dump(exclude_unset=True))
        try:
            updated = ENTITY_MODELS[entity_kind].model_validate(merged)
        except PydanticValidationError as e:
            raise EntityDataError(
                f"Update leaves {entity_kind.value} '{entity_id}' invalid: "
                f"{_summarize_errors(e)}",
                kind=entity_kind,
                entity_id=entity_id,
            ) from e
        updated.touch()
        self._entities[entity_kind][entity_id] = updated
        logger.debug(
            f"Updated {entity_kind.value} '{entity_id}': "
            f"{sorted(changes.model_dump(exclude_unset=True))}"
        )
        return updated

    def update_npc(self, entity_id: str, changes: NPCUpdate) -> NPC:
        updated = self.update(EntityKind.NPC, entity_id, changes)
        return cast(NPC, updated)

    def update_faction(self, entity_id: str, changes: FactionUpdate) -> Faction:
        updated = self.update(EntityKind.FACTION, entity_id, changes)
        return cast(Faction, updated)

    def update_location(self, entity_id: str, changes: LocationUpdate) -> Location:
        updated = self.update(EntityKind.LOCATION, entity_id, changes)
        return cast(Location, updated)

    def update_item(self, entity_id: str, changes: ItemUpdate) -> Item:
        updated = self.update(EntityKind.ITEM, entity_id, changes)
        return cast(Item, updated)

    def update_event(self, entity_id: str, changes: StoryEventUpdate) -> StoryEvent:
        updated = self.update(EntityKind.EVENT, entity_id, changes)
        return cast(StoryEvent, updated)

    def delete(self, kind: str | EntityKind, entity_id: str) -> bool:
        """Hard-delete an entity.

        Returns:
            True if the entity existed, False otherwise.
        """
        entity_kind = parse_kind(kind)
        removed = self._entities[entity_kind].pop(entity_id, None)
        if removed is None:
            logger.debug(f"Delete of missing {entity_kind.value} '{entity_id}' ignored")
            return False
        logger.info(f"Deleted {entity_kind.value} '{entity_id}'")
        return True

    def list_all(self, kind: str | EntityKind) -> list[Entity]:
        """All entities of a kind, in creation order."""
        return list(self._entities[parse_kind(kind)].values())

    def npcs(self) -> list[NPC]:
        return [e for e in self._entities[EntityKind.NPC].values() if isinstance(e, NPC)]

    def factions(self) -> list[Faction]:
        return [e for e in self._entities[EntityKind.FACTION].values() if isinstance(e, Faction)]

    def locations(self) -> list[Location]:
        return [
            e for e in self._entities[EntityKind.LOCATION].values() if isinstance(e, Location)
        ]

    def items(self) -> list[Item]:
        return [e for e in self._entities[EntityKind.ITEM].values() if isinstance(e, Item)]

    def events(self) -> list[StoryEvent]:
        return [e for e in self._entities[EntityKind.EVENT].values() if isinstance(e, StoryEvent)]

    def ids(self, kind: str | EntityKind) -> set[str]:
        return set(self._entities[parse_kind(kind)])

    def count(self, kind: str | EntityKind | None = None) -> int:
        """Count entities of one kind, or of all kinds when kind is None."""
        if kind is None:
            return sum(len(bucket) for bucket in self._entities.values())
        return len(self._entities[parse_kind(kind)])

    def entities_at_location(self, location_id: str) -> list[NPC]:
        """NPCs whose location is location_id."""
        return [npc for npc in self.npcs() if npc.location == location_id]

    def creation_history(self, kind: str | EntityKind) -> list[CreationRecord]:
        return list(self._creation_history[parse_kind(kind)])

    def trim_creation_history(self, max_records: int) -> None:
        """Keep only the most recent max_records creation records per kind."""
        if max_records < 0:
            raise ValueError(f"max_records must be >= 0, got {max_records}")
        for kind, records in self._creation_history.items():
            if len(records) > max_records:
                self._creation_history[kind] = records[-max_records:] if max_records else []

    # ========== Export / import ==========

    def export_entities(self) -> dict[str, dict[str, dict[str, Any]]]:
        """Export as {kind: {id: record}}."""
        return {
            kind.value: {entity_id: entity.to_dict() for entity_id, entity in bucket.items()}
            for kind, bucket in self._entities.items()
        }

    def export_creation_history(self) -> dict[str, list[dict[str, Any]]]:
        return {
            kind.value: [record.to_dict() for record in records]
            for kind, records in self._creation_history.items()
        }

    def import_entities(
        self,
        entities: dict[str, dict[str, dict[str, Any]]],
        creation_history: dict[str, list[dict[str, Any]]] | None = None,
    ) -> None:
        """Replace the store's content with an exported document.

        The whole document is parsed before anything is replaced, so a
        malformed record leaves the store untouched.

        Raises:
            UnknownEntityKindError: If a top-level key is not an entity kind.
            EntityDataError: If a record is malformed.
        """
        new_entities: dict[EntityKind, dict[str, Entity]] = {kind: {} for kind in EntityKind}
        for kind_name, records in entities.items():
            entity_kind = parse_kind(kind_name)
            for entity_id, record in (records or {}).items():
                payload = {k: v for k, v in record.items() if k not in _IDENTITY_FIELDS}
                payload["id"] = entity_id
                payload["kind"] = entity_kind.value
                try:
                    new_entities[entity_kind][entity_id] = entity_from_dict(payload)
                except PydanticValidationError as e:
                    raise EntityDataError(
                        f"Invalid {entity_kind.value} '{entity_id}' in import: "
                        f"{_summarize_errors(e)}",
                        kind=entity_kind,
                        entity_id=entity_id,
                    ) from e

        new_history: dict[EntityKind, list[CreationRecord]] = {kind: [] for kind in EntityKind}
        for kind_name, records in (creation_history or {}).items():
            entity_kind = parse_kind(kind_name)
            try:
                new_history[entity_kind] = [CreationRecord.model_validate(r) for r in records]
            except PydanticValidationError as e:
                raise EntityDataError(
                    f"Invalid creation history for {entity_kind.value}: {_summarize_errors(e)}",
                    kind=entity_kind,
                ) from e

        self._entities = new_entities
        self._creation_history = new_history
        logger.info(f"Imported {self.count()} entities")

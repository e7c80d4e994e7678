"""Result and queue types for CreationService."""

from __future__ import annotations

from collections.abc import Callable
from concurrent.futures import Future
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from storyworld.memory.entities import Entity, EntityKind
from storyworld.memory.relationship_types import Relationship
from storyworld.memory.world_types import ParameterChange


class PipelineState(StrEnum):
    IDLE = "idle"
    PROCESSING = "processing"


def _per_kind() -> dict[EntityKind, list[Any]]:
    return {kind: [] for kind in EntityKind}


@dataclass
class FailedCreation:
    """A proposed entity that was not committed."""

    id: str | None
    reason: str
    data: dict[str, Any] = field(default_factory=dict)


@dataclass
class CreationResult:
    """Outcome of one entity-creation batch.

    Attributes:
        created: Committed entities per kind, in commit order.
        failed: Rejected proposals per kind, each with a reason.
        relationships: Relationships committed by the batch.
        skipped_relationships: Proposals whose endpoints did not exist, as (source, target).
        parameter_changes: World-parameter writes applied by the batch.
        rumors: Rumor texts added.
        news: News texts added.
        warnings: Human-readable notes, including one per rejection.
        correlation_id: Log correlation id the batch ran under.
    """

    created: dict[EntityKind, list[Entity]] = field(default_factory=_per_kind)
    failed: dict[EntityKind, list[FailedCreation]] = field(default_factory=_per_kind)
    relationships: list[Relationship] = field(default_factory=list)
    skipped_relationships: list[tuple[str, str]] = field(default_factory=list)
    parameter_changes: list[ParameterChange] = field(default_factory=list)
    rumors: list[str] = field(default_factory=list)
    news: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    correlation_id: str | None = None

    def created_count(self) -> int:
        return sum(len(entities) for entities in self.created.values())

    def failed_count(self) -> int:
        return sum(len(failures) for failures in self.failed.values())

    def created_ids(self, kind: EntityKind) -> list[str]:
        return [entity.id for entity in self.created[kind]]


@dataclass
class ConsequenceResult:
    """Outcome of applying one consequence payload."""

    updated_npcs: list[str] = field(default_factory=list)
    standing_changes: dict[str, float] = field(default_factory=dict)
    parameter_changes: list[ParameterChange] = field(default_factory=list)
    events_added: list[str] = field(default_factory=list)
    relationships: list[Relationship] = field(default_factory=list)
    rumors: list[str] = field(default_factory=list)
    player_changes: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    correlation_id: str | None = None


@dataclass
class _WorkItem:
    label: str
    run: Callable[[], Any]
    future: Future[Any]
    correlation_id: str | None = None

"""Whole-world integrity scan for ValidationService."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from storyworld.memory.entities import EntityKind
from storyworld.memory.world_types import WORLD_PARAMETERS
from storyworld.utils.constants import SPECIAL_ITEM_LOCATIONS

from ._types import IntegrityReport

if TYPE_CHECKING:
    from storyworld.memory.world_view import WorldView

    from . import ValidationService

logger = logging.getLogger(__name__)


def _check_npcs(svc: ValidationService, view: WorldView, report: IntegrityReport) -> None:
    limit = svc.limits["MAX_NPCS_PER_LOCATION"]
    per_location: dict[str, int] = {}
    for npc in view.npcs():
        if not npc.location:
            continue
        if view.get_location(npc.location) is None:
            report.error(f"NPC {npc.id} references missing location {npc.location}")
            continue
        per_location[npc.location] = per_location.get(npc.location, 0) + 1

    for location_id, count in per_location.items():
        if count > limit:
            report.warn(f"Location {location_id} holds {count} NPCs (capacity {limit})")


def _check_factions(view: WorldView, report: IntegrityReport) -> None:
    for faction in view.factions():
        for leader_id in faction.leadership:
            if not view.exists(EntityKind.NPC, leader_id):
                report.error(f"Faction {faction.id} references missing leader NPC {leader_id}")


def _check_locations(view: WorldView, report: IntegrityReport) -> None:
    for location in view.locations():
        for connected_id in location.connected_to:
            if view.get_location(connected_id) is None:
                report.error(
                    f"Location {location.id} is connected to missing location {connected_id}"
                )
        if location.controlled_by and not view.exists(EntityKind.FACTION, location.controlled_by):
            report.warn(
                f"Location {location.id} is controlled by missing faction {location.controlled_by}"
            )


def _check_items(view: WorldView, report: IntegrityReport) -> None:
    for item in view.items():
        if item.location in SPECIAL_ITEM_LOCATIONS:
            continue
        if view.get_location(item.location) is None:
            report.warn(f"Item {item.id} is at missing location {item.location}")


def _check_relationships(view: WorldView, report: IntegrityReport) -> None:
    for relationship in view.relationships():
        for endpoint in (relationship.source_id, relationship.target_id):
            if not view.entity_exists(endpoint):
                report.warn(
                    f"Relationship {relationship.source_id} -> {relationship.target_id} "
                    f"references missing entity {endpoint}"
                )
    for entity_id in view.player_standings():
        if not view.entity_exists(entity_id):
            report.warn(f"Player standing references missing entity {entity_id}")


def _check_parameters(view: WorldView, report: IntegrityReport) -> None:
    parameters = view.parameters()
    for parameter, bounds in WORLD_PARAMETERS.items():
        value = parameters[parameter.value]
        if not bounds.min <= value <= bounds.max:
            report.error(
                f"World parameter {parameter.value}={value} outside "
                f"[{bounds.min}, {bounds.max}]"
            )


def validate_integrity(svc: ValidationService, view: WorldView) -> IntegrityReport:
    """Scan committed state for orphaned references and out-of-bounds values.

    Findings are reported, never corrected. Broken entity references and
    out-of-bounds parameters are errors; dangling edges, standings and
    soft references are warnings.

    Args:
        svc: The owning ValidationService (supplies capacity limits).
        view: Read-only access to committed state.

    Returns:
        IntegrityReport with errors, warnings and entity statistics.
    """
    logger.debug("Running world integrity check")
    report = IntegrityReport()

    _check_npcs(svc, view, report)
    _check_factions(view, report)
    _check_locations(view, report)
    _check_items(view, report)
    _check_relationships(view, report)
    _check_parameters(view, report)

    report.statistics = {
        **{f"{kind.value}_count": count for kind, count in view.entity_counts().items()},
        "relationship_count": len(view.relationships()),
        "standing_count": len(view.player_standings()),
    }

    if report.valid:
        logger.info(f"Integrity check passed with {len(report.warnings)} warning(s)")
    else:
        logger.warning(
            f"Integrity check found {len(report.errors)} error(s), "
            f"{len(report.warnings)} warning(s)"
        )
    return report

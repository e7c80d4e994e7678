"""Per-kind creation rules for ValidationService.

Each rule reads a raw proposal (snake_case or camelCase keys) and the
committed world through a WorldView, and fills a ValidationResult.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from storyworld.memory.entities import EntityKind
from storyworld.memory.relationship_types import DEFAULT_STRENGTH
from storyworld.utils.constants import (
    EVENT_DURATIONS,
    EVENT_SCOPES,
    PLAYER_INVENTORY,
    POPULATION_RANGES,
    RARITY_VALUE_RANGES,
    SPECIAL_ITEM_LOCATIONS,
    suitable_location_types,
)
from storyworld.utils.validation import is_number, lookup

from ._types import ValidationResult

if TYPE_CHECKING:
    from storyworld.memory.world_view import WorldView

    from . import ValidationService

logger = logging.getLogger(__name__)

MAX_ITEM_VALUE_WARNING = 100000
UNSTABLE_POLITICS_THRESHOLD = 30


def _number(data: dict[str, Any], field_name: str, result: ValidationResult) -> float | None:
    """Numeric field value, or None when absent. Non-numeric values reject."""
    value = lookup(data, field_name)
    if value is None:
        return None
    if not is_number(value):
        result.reject(f"{field_name} must be a number, got {value!r}")
        return None
    return float(value)


def _id_list(data: dict[str, Any], field_name: str, result: ValidationResult) -> list[str]:
    """List-of-ids field; a bare string counts as a one-element list."""
    value = lookup(data, field_name)
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return value
    result.reject(f"{field_name} must be a list of ids, got {value!r}")
    return []


def _text(data: dict[str, Any], field_name: str) -> str | None:
    value = lookup(data, field_name)
    return value if isinstance(value, str) and value else None


def validate_npc(
    svc: ValidationService, data: dict[str, Any], view: WorldView, result: ValidationResult
) -> None:
    """NPC rules: location capacity, age range, duplicate names, occupation fit."""
    limit = svc.limits["MAX_NPCS_PER_LOCATION"]
    name = _text(data, "name")
    location_id = _text(data, "location")

    if location_id:
        if view.npc_count_at(location_id) >= limit:
            result.reject(f"Location {location_id} has reached maximum NPC capacity ({limit})")
        if view.get_location(location_id) is None:
            result.warn(f"Location {location_id} does not exist")

    if name and name in view.names(EntityKind.NPC):
        result.warn(f'NPC with name "{name}" already exists')

    age = _number(data, "age", result)
    if age is not None and not 1 <= age <= 1000:
        result.reject(f"Age {age:g} is outside the valid range (1-1000)")

    occupation = _text(data, "occupation")
    if occupation and location_id:
        location = view.get_location(location_id)
        if location is not None and location.type not in suitable_location_types(occupation):
            result.warn(
                f'Occupation "{occupation}" may not be suitable for location type '
                f'"{location.type}"'
            )


def validate_faction(
    svc: ValidationService, data: dict[str, Any], view: WorldView, result: ValidationResult
) -> None:
    """Faction rules: territory control cap, influence range, allies vs enemies, leaders."""
    limit = svc.limits["MAX_FACTIONS_PER_TERRITORY"]
    name = _text(data, "name")

    for territory in _id_list(data, "territory", result):
        if view.factions_in_territory(territory) >= limit:
            result.reject(f"Territory {territory} has reached maximum faction control ({limit})")

    if name and name in view.names(EntityKind.FACTION):
        result.warn(f'Faction with name "{name}" already exists')

    influence = _number(data, "influence", result)
    if influence is not None and not 0 <= influence <= 100:
        result.reject(f"Influence {influence:g} must be between 0 and 100")

    for leader_id in _id_list(data, "leadership", result):
        if not view.exists(EntityKind.NPC, leader_id):
            result.warn(f"Leadership NPC {leader_id} does not exist")

    allies = set(_id_list(data, "allies", result))
    enemies = set(_id_list(data, "enemies", result))
    overlap = sorted(allies & enemies)
    if overlap:
        result.reject(f"Factions cannot be both allies and enemies: {', '.join(overlap)}")


def validate_location(
    svc: ValidationService, data: dict[str, Any], view: WorldView, result: ValidationResult
) -> None:
    """Location rules: safety range, population, connections, controlling faction."""
    location_type = _text(data, "type") or "settlement"

    safety = _number(data, "safety", result)
    if safety is not None and not 0 <= safety <= 100:
        result.reject(f"Safety {safety:g} must be between 0 and 100")

    population = _number(data, "population", result)
    if population is not None:
        if population < 0:
            result.reject(f"Population cannot be negative ({population:g})")
        elif location_type in POPULATION_RANGES:
            low, high = POPULATION_RANGES[location_type]
            if not low <= population <= high:
                result.warn(
                    f"Population {population:g} may be unrealistic for {location_type} "
                    f"(suggested range: {low}-{high})"
                )

    for connected_id in _id_list(data, "connected_to", result):
        if view.get_location(connected_id) is None:
            result.warn(f"Connected location {connected_id} does not exist")

    controlled_by = _text(data, "controlled_by")
    if controlled_by and not view.exists(EntityKind.FACTION, controlled_by):
        result.warn(f"Controlling faction {controlled_by} does not exist")


def validate_item(
    svc: ValidationService, data: dict[str, Any], view: WorldView, result: ValidationResult
) -> None:
    """Item rules: value, weight, durability, rarity band, location, inventory capacity."""
    value = _number(data, "value", result)
    if value is not None:
        if value < 0:
            result.reject(f"Item value cannot be negative ({value:g})")
        elif value > MAX_ITEM_VALUE_WARNING:
            result.warn(f"Item value {value:g} is unusually high")

    weight = _number(data, "weight", result)
    if weight is not None and weight < 0:
        result.reject(f"Item weight cannot be negative ({weight:g})")

    durability = _number(data, "durability", result)
    if durability is not None and not 0 <= durability <= 100:
        result.reject(f"Durability {durability:g} must be between 0 and 100")

    rarity = _text(data, "rarity")
    if rarity and value is not None and value >= 0 and rarity in RARITY_VALUE_RANGES:
        low, high = RARITY_VALUE_RANGES[rarity]
        if not low <= value <= high:
            result.warn(f'Value {value:g} is unusual for rarity "{rarity}" (expected {low}-{high})')

    location = _text(data, "location")
    if location == PLAYER_INVENTORY:
        limit = svc.limits["MAX_ITEMS_IN_INVENTORY"]
        if view.item_count_at(PLAYER_INVENTORY) >= limit:
            result.reject(f"Player inventory is full (limit {limit})")
    elif (
        location
        and location not in SPECIAL_ITEM_LOCATIONS
        and view.get_location(location) is None
    ):
        result.warn(f"Item location {location} does not exist")


def validate_event(
    svc: ValidationService, data: dict[str, Any], view: WorldView, result: ValidationResult
) -> None:
    """Event rules: active event cap, duration, scope, participants, politics."""
    limit = svc.limits["MAX_ACTIVE_EVENTS"]
    if view.active_event_count() >= limit:
        result.reject(f"Maximum active events reached ({limit})")

    duration = _text(data, "duration")
    if duration and duration not in EVENT_DURATIONS:
        result.warn(f'Unknown event duration "{duration}"')

    scope = _text(data, "scope")
    if scope and scope not in EVENT_SCOPES:
        result.warn(f'Unknown event scope "{scope}"')

    for participant in _id_list(data, "participants", result):
        if not view.entity_exists(participant):
            result.warn(f"Event participant {participant} does not exist")

    if _text(data, "type") == "political":
        if view.parameter("political_stability") < UNSTABLE_POLITICS_THRESHOLD:
            result.warn("Political event during unstable times may have amplified effects")


def validate_relationship(
    svc: ValidationService,
    relationship_type: str,
    strength: float | None,
    result: ValidationResult,
) -> None:
    """Relationship rules: an alliance weaker than the trust threshold is flagged."""
    if relationship_type != "ally":
        return
    threshold = svc.limits["MIN_TRUST_FOR_ALLIANCE"]
    effective = DEFAULT_STRENGTH if strength is None else strength
    if effective < threshold:
        result.warn(
            f"Alliance strength {effective:g} is below the trust threshold ({threshold})"
        )

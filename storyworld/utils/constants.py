"""Shared constants used across the application."""

import logging

logger = logging.getLogger(__name__)

# ========== Capacity Limits ==========
# Defaults for the creation rules; Settings can override each of them.
VALIDATION_RULES: dict[str, int] = {
    "MAX_NPCS_PER_LOCATION": 15,
    "MAX_FACTIONS_PER_TERRITORY": 3,
    "MIN_TRUST_FOR_ALLIANCE": 70,
    "MAX_ITEMS_IN_INVENTORY": 25,
    "MAX_ACTIVE_EVENTS": 10,
    "MAX_RUMORS": 15,
}

MAX_NPCS_PER_LOCATION = VALIDATION_RULES["MAX_NPCS_PER_LOCATION"]
MAX_FACTIONS_PER_TERRITORY = VALIDATION_RULES["MAX_FACTIONS_PER_TERRITORY"]
MIN_TRUST_FOR_ALLIANCE = VALIDATION_RULES["MIN_TRUST_FOR_ALLIANCE"]
MAX_ITEMS_IN_INVENTORY = VALIDATION_RULES["MAX_ITEMS_IN_INVENTORY"]
MAX_ACTIVE_EVENTS = VALIDATION_RULES["MAX_ACTIVE_EVENTS"]
MAX_RUMORS = VALIDATION_RULES["MAX_RUMORS"]

# ========== History Limits ==========
RELATIONSHIP_HISTORY_LIMIT = 1000
EDGE_HISTORY_LIMIT = 50
STANDING_HISTORY_LIMIT = 50
PARAMETER_HISTORY_LIMIT = 1000
WORLD_CHANGE_LIMIT = 100
CHOICE_HISTORY_LIMIT = 50
MAX_NEWS = 20

# ========== Entity Vocabularies ==========
FACTION_TYPES = ("political", "military", "religious", "criminal", "merchant", "academic")
LOCATION_TYPES = ("settlement", "wilderness", "structure", "landmark", "dungeon")
ITEM_TYPES = ("weapon", "armor", "tool", "treasure", "consumable", "quest", "misc")
IMPORTANCE_LEVELS = ("low", "medium", "high", "critical")
EVENT_DURATIONS = ("ongoing", "temporary", "permanent")
EVENT_SCOPES = ("local", "regional", "global")

# Item locations that never refer to a Location entity
PLAYER_INVENTORY = "player_inventory"
SPECIAL_ITEM_LOCATIONS = frozenset({PLAYER_INVENTORY, "world"})

# Expected item value band per rarity tier: (min, max)
RARITY_VALUE_RANGES: dict[str, tuple[int, int]] = {
    "common": (1, 100),
    "uncommon": (50, 500),
    "rare": (200, 2000),
    "epic": (1000, 10000),
    "legendary": (5000, 100000),
}

# Plausible population per location type: (min, max)
POPULATION_RANGES: dict[str, tuple[int, int]] = {
    "settlement": (10, 10000),
    "wilderness": (0, 50),
    "structure": (0, 100),
    "landmark": (0, 200),
    "dungeon": (0, 500),
}

# Location types where an occupation is plausible
OCCUPATION_LOCATION_TYPES: dict[str, tuple[str, ...]] = {
    "merchant": ("settlement", "structure"),
    "guard": ("settlement", "structure"),
    "farmer": ("settlement", "wilderness"),
    "scholar": ("settlement", "structure"),
    "noble": ("settlement", "structure"),
    "priest": ("settlement", "structure"),
    "soldier": ("settlement", "structure"),
    "bandit": ("wilderness",),
    "hermit": ("wilderness", "landmark"),
    "blacksmith": ("settlement",),
    "tavern_keeper": ("settlement",),
    "mage": ("settlement", "structure", "landmark"),
    "thief": ("settlement", "wilderness"),
}
DEFAULT_OCCUPATION_LOCATION_TYPES: tuple[str, ...] = (
    "settlement",
    "wilderness",
    "structure",
    "landmark",
)

# Location types a new location of a given type may be auto-connected to
LOCATION_COMPATIBILITY: dict[str, tuple[str, ...]] = {
    "settlement": ("settlement", "structure", "landmark"),
    "wilderness": ("wilderness", "settlement", "landmark"),
    "structure": ("settlement", "structure"),
    "landmark": ("settlement", "wilderness"),
    "dungeon": ("wilderness", "structure"),
}
MAX_AUTO_CONNECTIONS = 3

# ========== Player ==========
PLAYER_SKILLS = ("combat", "diplomacy", "stealth", "knowledge", "magic", "survival")
REPUTATION_TYPES = ("heroic", "villainous", "mysterious", "diplomatic")
SKILL_CAP = 100
DEFAULT_SKILL_LEVEL = 10

# Player standing thresholds for the relationship summary
STANDING_ALLY_THRESHOLD = 20
STANDING_ENEMY_THRESHOLD = -20

FALLBACK_NARRATIVE = (
    "The world seems to pause for a moment, as if uncertain how to respond to your "
    "action. Try a different approach."
)


def is_compatible_location(new_type: str, existing_type: str) -> bool:
    """Check whether a location of new_type may be auto-connected to existing_type.

    Args:
        new_type: Type of the location being created.
        existing_type: Type of an already committed location.

    Returns:
        True if the connection is plausible.
    """
    allowed = LOCATION_COMPATIBILITY.get(new_type)
    if allowed is None:
        logger.debug(f"No compatibility table for location type '{new_type}'")
        return False
    return existing_type in allowed


def suitable_location_types(occupation: str) -> tuple[str, ...]:
    """Return the location types suited to an NPC occupation.

    Unknown occupations fall back to every non-dungeon type.
    """
    return OCCUPATION_LOCATION_TYPES.get(occupation, DEFAULT_OCCUPATION_LOCATION_TYPES)

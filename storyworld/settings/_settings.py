"""Main Settings dataclass for the story world engine.

Settings are stored in settings.json next to the package.
"""

from __future__ import annotations

import json
import logging
import shutil
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, ClassVar

from storyworld.settings import _validation as _validation_mod
from storyworld.settings._paths import SETTINGS_FILE
from storyworld.utils import constants
from storyworld.utils.exceptions import ConfigError
from storyworld.utils.file_io import atomic_write_json, read_json

logger = logging.getLogger(__name__)


def _merge_with_defaults(data: dict[str, Any], settings_cls: type[Settings]) -> bool:
    """Merge loaded JSON data with dataclass defaults.

    - Adds missing keys with their default values
    - Removes keys that no longer exist in the dataclass

    Modifies *data* in place.

    Returns:
        True if any changes were made, False otherwise.
    """
    default_dict = asdict(settings_cls())
    known_fields = {f.name for f in fields(settings_cls)}
    changed = False

    for key in list(data):
        if key not in known_fields:
            logger.info("Removing obsolete setting: %s", key)
            del data[key]
            changed = True

    for key in known_fields:
        if key not in data:
            logger.info("Adding new setting with default: %s", key)
            data[key] = default_dict[key]
            changed = True

    return changed


def _create_backup(path: Path) -> None:
    """Copy the current settings file to <name>.json.bak if it exists."""
    if not path.exists():
        return
    backup_path = path.with_suffix(".json.bak")
    try:
        shutil.copy(path, backup_path)
        logger.debug("Backed up settings to %s", backup_path)
    except OSError as e:
        logger.warning("Failed to back up settings: %s", e)


@dataclass
class Settings:
    """Application settings."""

    # Logging
    log_level: str = "INFO"

    # Creation rules
    max_npcs_per_location: int = constants.MAX_NPCS_PER_LOCATION
    max_factions_per_territory: int = constants.MAX_FACTIONS_PER_TERRITORY
    min_trust_for_alliance: int = constants.MIN_TRUST_FOR_ALLIANCE
    max_items_in_inventory: int = constants.MAX_ITEMS_IN_INVENTORY
    max_active_events: int = constants.MAX_ACTIVE_EVENTS
    max_rumors: int = constants.MAX_RUMORS
    max_news: int = constants.MAX_NEWS
    auto_connect_locations: bool = True  # Link new isolated locations to compatible ones

    # History limits (most recent N kept)
    relationship_history_limit: int = constants.RELATIONSHIP_HISTORY_LIMIT
    edge_history_limit: int = constants.EDGE_HISTORY_LIMIT
    standing_history_limit: int = constants.STANDING_HISTORY_LIMIT
    parameter_history_limit: int = constants.PARAMETER_HISTORY_LIMIT
    world_change_limit: int = constants.WORLD_CHANGE_LIMIT
    choice_history_limit: int = constants.CHOICE_HISTORY_LIMIT
    creation_history_limit: int = 0  # 0 keeps every record

    # Session
    seed_starting_world: bool = True

    # Story collaborator (Ollama)
    ollama_url: str = "http://localhost:11434"
    ollama_model: str = "llama3.1:8b"
    ollama_timeout: float = 120.0  # Seconds per request
    collaborator_temperature: float = 0.8

    def save(self, path: Path | None = None) -> None:
        """Save settings to JSON file."""
        self.validate()
        target = path or SETTINGS_FILE
        _create_backup(target)
        atomic_write_json(target, asdict(self))
        logger.info("Settings saved to %s", target)

    def validate(self) -> None:
        """Validate all settings fields. Delegates to _validation module.

        Raises:
            ConfigError: If any field contains an invalid value.
        """
        _validation_mod.validate(self)

    # Class-level cache for settings (speeds up repeated load() calls)
    _cached_instance: ClassVar[Settings | None] = None

    @classmethod
    def load(cls, use_cache: bool = True, path: Path | None = None) -> Settings:
        """Load settings from JSON file, or create defaults.

        New settings get default values, removed settings are cleaned up.
        Customized values are always preserved.

        Args:
            use_cache: If True, return cached instance if available.
            path: Settings file to read instead of the default location.

        Returns:
            Settings instance.

        Raises:
            ConfigError: If a stored value is out of range or of the wrong type.
        """
        if use_cache and path is None and cls._cached_instance is not None:
            return cls._cached_instance

        source = path or SETTINGS_FILE
        data: dict[str, Any] = {}
        loaded_from_file = False

        if source.exists():
            try:
                raw = read_json(source)
                if isinstance(raw, dict):
                    data = raw
                    loaded_from_file = bool(raw)
                else:
                    logger.error(
                        "Corrupted settings file (expected JSON object, got %s)",
                        type(raw).__name__,
                    )
            except json.JSONDecodeError as e:
                logger.error("Corrupted settings file (invalid JSON): %s", e)
            except OSError as e:
                logger.error("Cannot read settings file: %s", e)

        logger.info("Settings load: loaded_from_file=%s, keys_read=%d", loaded_from_file, len(data))
        changed = _merge_with_defaults(data, cls)

        try:
            settings = cls(**data)
            settings.validate()
        except TypeError as e:
            raise ConfigError(f"Invalid settings value type: {e}") from e

        if changed:
            try:
                _create_backup(source)
                atomic_write_json(source, asdict(settings))
            except OSError as write_err:
                logger.warning("Could not persist updated settings to disk: %s", write_err)

        if path is None:
            cls._cached_instance = settings
        return settings

    @classmethod
    def clear_cache(cls) -> None:
        """Clear the cached settings instance.

        Use this in tests that need to verify settings loading behavior.
        """
        cls._cached_instance = None

    def validation_limits(self) -> dict[str, int]:
        """Return the capacity limits keyed like constants.VALIDATION_RULES."""
        return {
            "MAX_NPCS_PER_LOCATION": self.max_npcs_per_location,
            "MAX_FACTIONS_PER_TERRITORY": self.max_factions_per_territory,
            "MIN_TRUST_FOR_ALLIANCE": self.min_trust_for_alliance,
            "MAX_ITEMS_IN_INVENTORY": self.max_items_in_inventory,
            "MAX_ACTIVE_EVENTS": self.max_active_events,
            "MAX_RUMORS": self.max_rumors,
        }

"""Validation functions for Settings."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from urllib.parse import urlparse

from storyworld.settings._types import LOG_LEVELS
from storyworld.utils.exceptions import ConfigError

if TYPE_CHECKING:
    from storyworld.settings._settings import Settings

logger = logging.getLogger(__name__)

_CAPACITY_FIELDS = (
    "max_npcs_per_location",
    "max_factions_per_territory",
    "max_items_in_inventory",
    "max_active_events",
    "max_rumors",
    "max_news",
)

_HISTORY_FIELDS = (
    "relationship_history_limit",
    "edge_history_limit",
    "standing_history_limit",
    "parameter_history_limit",
    "world_change_limit",
    "choice_history_limit",
)


def validate(settings: Settings) -> None:
    """Validate all settings fields.

    Delegates to individual validation functions for each category of settings.

    Raises:
        ConfigError: If any field contains an invalid value.
    """
    _validate_log_level(settings)
    _validate_capacities(settings)
    _validate_history_limits(settings)
    _validate_url(settings)
    _validate_collaborator(settings)
    logger.debug("Settings validated")


def _validate_log_level(settings: Settings) -> None:
    """Validate log_level is a known logging level."""
    if settings.log_level not in LOG_LEVELS:
        raise ConfigError(
            f"log_level must be one of {list(LOG_LEVELS.keys())}, got {settings.log_level}"
        )


def _validate_capacities(settings: Settings) -> None:
    """Validate creation-rule capacities are positive integers."""
    for name in _CAPACITY_FIELDS:
        value = getattr(settings, name)
        if not isinstance(value, int) or value < 1:
            raise ConfigError(f"{name} must be a positive integer, got {value}")

    if not 0 <= settings.min_trust_for_alliance <= 100:
        raise ConfigError(
            f"min_trust_for_alliance must be between 0 and 100, "
            f"got {settings.min_trust_for_alliance}"
        )


def _validate_history_limits(settings: Settings) -> None:
    """Validate history limits keep at least one record."""
    for name in _HISTORY_FIELDS:
        value = getattr(settings, name)
        if not isinstance(value, int) or value < 1:
            raise ConfigError(f"{name} must be a positive integer, got {value}")

    if settings.creation_history_limit < 0:
        raise ConfigError(
            f"creation_history_limit must be >= 0, got {settings.creation_history_limit}"
        )


def _validate_url(settings: Settings) -> None:
    """Validate URL format for ollama_url."""
    parsed = urlparse(settings.ollama_url)
    if parsed.scheme not in ("http", "https"):
        raise ConfigError(f"Invalid URL scheme in ollama_url: {settings.ollama_url}")
    if not parsed.netloc:
        raise ConfigError(f"Invalid URL (missing host) in ollama_url: {settings.ollama_url}")


def _validate_collaborator(settings: Settings) -> None:
    """Validate collaborator timeout and temperature."""
    if settings.ollama_timeout <= 0:
        raise ConfigError(f"ollama_timeout must be positive, got {settings.ollama_timeout}")
    if not 0.0 <= settings.collaborator_temperature <= 2.0:
        raise ConfigError(
            f"collaborator_temperature must be between 0.0 and 2.0, "
            f"got {settings.collaborator_temperature}"
        )

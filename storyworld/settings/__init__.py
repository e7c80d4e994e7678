"""Settings package for the story world engine.

- _paths.py: Path constants for settings and save files
- _types.py: Log level table
- _validation.py: Settings validation functions
- _settings.py: Main Settings dataclass
"""

from storyworld.settings._paths import SAVES_DIR, SETTINGS_FILE
from storyworld.settings._settings import Settings
from storyworld.settings._types import LOG_LEVELS

__all__ = [
    "LOG_LEVELS",
    "SAVES_DIR",
    "SETTINGS_FILE",
    "Settings",
]

"""Path constants for settings and save files."""

from pathlib import Path

SETTINGS_FILE = Path(__file__).parent.parent / "settings.json"

# Go up from storyworld/settings to storyworld/, then to project root, then into output/
SAVES_DIR = Path(__file__).parent.parent.parent / "output" / "saves"

__all__ = [
    "SAVES_DIR",
    "SETTINGS_FILE",
]
